import pytest
from httpx import AsyncClient

from study_overlay.utils import jwt as jwt_utils


@pytest.mark.asyncio
async def test_refresh_success(app_client: tuple[object, AsyncClient], make_user):
    app, client = app_client
    user_id, _ = await make_user(full_name="Alice")
    refresh = jwt_utils.create_refresh_token({"sub": str(user_id)})

    resp = await client.post("/auth/refresh", json={"refresh_token": refresh})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["token_type"] == "bearer"

    payload = jwt_utils.verify_token(body["data"]["access_token"])
    assert payload["sub"] == str(user_id)
    assert payload["type"] == "access"


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(app_client: tuple[object, AsyncClient], test_user_token):
    app, client = app_client
    token, _ = test_user_token

    resp = await client.post("/auth/refresh", json={"refresh_token": token})
    assert resp.status_code == 401
    assert resp.json()["success"] is False

    resp_garbage = await client.post("/auth/refresh", json={"refresh_token": "not-a-jwt"})
    assert resp_garbage.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token_cannot_call_rooms(app_client: tuple[object, AsyncClient], make_user):
    app, client = app_client
    user_id, _ = await make_user()
    refresh = jwt_utils.create_refresh_token({"sub": str(user_id)})

    resp = await client.post(
        "/study-room/create", headers={"Authorization": f"Bearer {refresh}"}, json={"name": "Library"}
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_token(app_client: tuple[object, AsyncClient], test_user_token, fake_redis):
    app, client = app_client
    token, _ = test_user_token
    headers = {"Authorization": f"Bearer {token}"}

    resp = await client.post("/auth/logout", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert await fake_redis.exists(f"blacklist:{token}") == 1

    resp_after = await client.get("/user/me", headers=headers)
    assert resp_after.status_code == 401
    assert resp_after.json()["errors"]["code"] == "AUTH_001"


@pytest.mark.asyncio
async def test_logout_requires_auth(app_client: tuple[object, AsyncClient]):
    app, client = app_client
    resp = await client.post("/auth/logout")
    assert resp.status_code == 401
