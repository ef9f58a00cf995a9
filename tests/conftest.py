import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import asyncio
import pytest
from datetime import timedelta
from typing import AsyncGenerator, Tuple
from uuid import UUID

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from study_overlay.database import Base, get_db
from study_overlay.middlewares import register_exception_handlers
from study_overlay.models import room_participant, study_room, user  # noqa: F401
from study_overlay.models.room_participant import RoomParticipant
from study_overlay.routes import auth as auth_routes
from study_overlay.routes import users as users_routes
from study_overlay.routes import study_rooms as study_room_routes
from study_overlay.utils import jwt as jwt_utils
from study_overlay.utils.clock import utcnow


class FakeRedis:
    def __init__(self):
        self._store = {}
    async def incr(self, key):
        self._store[key] = int(self._store.get(key, 0)) + 1
        return self._store[key]
    async def expire(self, key, seconds):
        return True
    async def setex(self, key, exp, value):
        self._store[key] = value
        return True
    async def exists(self, key):
        return 1 if key in self._store else 0
    async def ping(self):
        return True
    async def get(self, key):
        return self._store.get(key)
    async def delete(self, key):
        self._store.pop(key, None)
        return 1


@pytest.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    SessionLocal = async_sessionmaker(
        bind=test_engine,
        expire_on_commit=False,
        class_=AsyncSession,
        autoflush=True,
        autocommit=False,
    )
    async with SessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
def fake_redis(monkeypatch) -> FakeRedis:
    redis = FakeRedis()

    async def fake_get_redis():
        return redis

    monkeypatch.setattr("study_overlay.redis_client.get_redis", fake_get_redis)
    monkeypatch.setattr("study_overlay.utils.jwt.get_redis", fake_get_redis)
    monkeypatch.setattr("study_overlay.middlewares.rate_limit_middleware.get_redis", fake_get_redis)
    return redis


@pytest.fixture(scope="function")
async def app_client(db_session: AsyncSession, fake_redis) -> AsyncGenerator[Tuple[FastAPI, AsyncClient], None]:
    app = FastAPI(title="TestApp")
    register_exception_handlers(app)
    app.include_router(auth_routes.router)
    app.include_router(users_routes.router)
    app.include_router(study_room_routes.router)

    # Every request shares one session, so requests must not overlap.
    lock = asyncio.Lock()

    async def override_get_db():
        async with lock:
            yield db_session
    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield app, client


@pytest.fixture(scope="function")
def make_user(db_session: AsyncSession):
    from study_overlay.models.user import User

    async def _make_user(full_name="Test User", avatar_url=None, with_profile=True) -> Tuple[UUID, str]:
        if with_profile:
            user = User(full_name=full_name, email=None, avatar_url=avatar_url)
            db_session.add(user)
            await db_session.commit()
            await db_session.refresh(user)
            user_id = user.id
        else:
            from uuid import uuid4
            user_id = uuid4()
        token = jwt_utils.create_access_token({"sub": str(user_id)})
        return user_id, token

    return _make_user


@pytest.fixture(scope="function")
async def test_user_token(make_user) -> Tuple[str, dict]:
    user_id, token = await make_user(full_name="Test User")
    return token, {"id": str(user_id), "full_name": "Test User"}


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def age_participant(db: AsyncSession, participant_id, seconds: float) -> None:
    """Pretend the participant last pinged `seconds` ago."""
    await db.execute(
        update(RoomParticipant)
        .where(RoomParticipant.id == UUID(str(participant_id)))
        .values(last_ping_at=utcnow() - timedelta(seconds=seconds))
    )
    await db.commit()
