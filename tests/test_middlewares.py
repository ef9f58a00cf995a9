import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from study_overlay.middlewares import LoggingMiddleware, RateLimitMiddleware, register_exception_handlers
from study_overlay.exceptions import NotFoundError


def build_app(max_requests: int) -> FastAPI:
    app = FastAPI(title="MiddlewareApp")
    app.add_middleware(RateLimitMiddleware, max_requests=max_requests, window_seconds=60)
    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    @app.get("/study-room/probe")
    async def probe():
        return {"ok": True}

    @app.get("/study-room/missing")
    async def missing():
        raise NotFoundError(detail="Room not found")

    @app.get("/other")
    async def other():
        return {"ok": True}

    return app


@pytest.mark.asyncio
async def test_rate_limit_applies_to_room_api_only(fake_redis):
    app = build_app(max_requests=2)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        assert (await client.get("/study-room/probe")).status_code == 200
        assert (await client.get("/study-room/probe")).status_code == 200

        limited = await client.get("/study-room/probe")
        assert limited.status_code == 429
        assert limited.headers["Retry-After"] == "60"
        assert limited.json()["success"] is False

        for _ in range(3):
            assert (await client.get("/other")).status_code == 200


@pytest.mark.asyncio
async def test_rate_limit_fails_open_without_redis(monkeypatch):
    async def unreachable():
        raise ConnectionError("redis down")
    monkeypatch.setattr("study_overlay.middlewares.rate_limit_middleware.get_redis", unreachable)

    app = build_app(max_requests=1)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        for _ in range(3):
            assert (await client.get("/study-room/probe")).status_code == 200


@pytest.mark.asyncio
async def test_logging_middleware_stamps_headers(fake_redis):
    app = build_app(max_requests=100)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/other")
    assert resp.headers["X-Request-ID"]
    assert float(resp.headers["X-Process-Time"]) >= 0


@pytest.mark.asyncio
async def test_custom_exceptions_render_envelope(fake_redis):
    app = build_app(max_requests=100)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/study-room/missing")
    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Room not found"
    assert body["errors"]["code"] == "NF_001"
    assert body["errors"]["request_id"] == resp.headers["X-Request-ID"]


def make_request(method: str, path: str):
    from starlette.requests import Request
    return Request({"type": "http", "method": method, "path": path, "headers": [], "query_string": b""})


def test_polling_requests_are_recognized():
    from study_overlay.middlewares.logging_middleware import is_polling_request

    assert is_polling_request(make_request("POST", "/study-room/ping"))
    assert is_polling_request(make_request("GET", "/study-room/6f1c1e0a-0000-0000-0000-000000000000"))
    assert not is_polling_request(make_request("GET", "/study-room/code/STUDY-AB12"))
    assert not is_polling_request(make_request("POST", "/study-room/join"))
    assert not is_polling_request(make_request("GET", "/user/me"))


@pytest.mark.asyncio
async def test_rate_limit_is_per_user_behind_shared_address(fake_redis):
    from uuid import uuid4
    from study_overlay.utils.jwt import create_access_token

    app = build_app(max_requests=3)
    shared_ip = {"X-Forwarded-For": "203.0.113.7"}
    tokens = [create_access_token({"sub": str(uuid4())}) for _ in range(6)]

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        for token in tokens:
            for _ in range(3):
                resp = await client.get("/study-room/probe", headers={**shared_ip, "Authorization": f"Bearer {token}"})
                assert resp.status_code == 200

        over = await client.get("/study-room/probe", headers={**shared_ip, "Authorization": f"Bearer {tokens[0]}"})
        assert over.status_code == 429

        # Anonymous callers share the address budget.
        statuses = [(await client.get("/study-room/probe", headers=shared_ip)).status_code for _ in range(4)]
        assert statuses == [200, 200, 200, 429]

        invalid = await client.get("/study-room/probe", headers={**shared_ip, "Authorization": "Bearer garbage"})
        assert invalid.status_code == 429
