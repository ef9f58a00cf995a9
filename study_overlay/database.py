from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from study_overlay.config import settings

def get_async_database_url(url: str) -> str:
    """Convert database URL to use asyncpg driver for async operations."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def get_engine_options(url: str) -> dict:
    """Pool and driver options; SQLite gets none of the Postgres tuning."""
    if url.startswith("sqlite"):
        return {"echo": settings.debug, "future": True}
    return {
        "echo": settings.debug,
        "future": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "connect_args": {
            "command_timeout": 60,
            "server_settings": {
                "jit": "off",
            },
        },
    }


DATABASE_URL = get_async_database_url(settings.database_url)

engine = create_async_engine(DATABASE_URL, **get_engine_options(DATABASE_URL))

# Create async sessionmaker
SessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    class_=AsyncSession,
    autoflush=True,
    autocommit=False
)

# Create Base class for models
Base = declarative_base()

# Dependency to get async database session
async def get_db() -> AsyncSession:
    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
