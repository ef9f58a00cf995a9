import pytest
from httpx import ASGITransport, AsyncClient

from study_overlay.config import settings
from study_overlay.main import app


@pytest.mark.asyncio
async def test_root_and_health():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        root = await client.get("/")
        health = await client.get("/health")

    assert root.status_code == 200
    assert root.json()["status"] == "running"
    assert root.headers["X-Request-ID"]

    assert health.status_code == 200
    assert health.json() == {"status": "healthy", "service": settings.app_name, "version": settings.version}
