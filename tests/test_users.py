import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_get_me_requires_auth(app_client: tuple[object, AsyncClient]):
    app, client = app_client
    resp = await client.get("/user/me")
    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_get_me_without_profile(app_client: tuple[object, AsyncClient], make_user):
    app, client = app_client
    _, token = await make_user(with_profile=False)
    resp = await client.get("/user/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_get_and_update_me_success(app_client: tuple[object, AsyncClient], test_user_token):
    app, client = app_client
    token, user_info = test_user_token

    headers = {"Authorization": f"Bearer {token}"}

    # Get profile
    resp = await client.get("/user/me", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["data"]["id"] == user_info["id"]
    assert data["data"]["full_name"] == user_info["full_name"]

    # Update profile
    new_name = "Updated Name"
    new_email = "updated@example.com"
    resp2 = await client.put(
        "/user/me",
        headers=headers,
        json={"full_name": new_name, "email": new_email, "avatar_url": "https://img.example/me.png"},
    )
    assert resp2.status_code == 200
    data2 = resp2.json()
    assert data2["success"] is True
    assert data2["data"]["full_name"] == new_name
    assert data2["data"]["email"] == new_email
    assert data2["data"]["avatar_url"] == "https://img.example/me.png"


@pytest.mark.asyncio
async def test_profile_feeds_join_defaults(app_client: tuple[object, AsyncClient], make_user):
    app, client = app_client
    _, owner = await make_user(full_name="Owner")
    _, guest = await make_user(full_name="Guest", avatar_url="https://img.example/guest.png")

    create = await client.post("/study-room/create", headers={"Authorization": f"Bearer {owner}"}, json={"name": "Lab"})
    room = create.json()["data"]["room"]
    await client.post(
        "/study-room/join", headers={"Authorization": f"Bearer {guest}"}, json={"inviteCode": room["invite_code"]}
    )

    roster = (await client.get(f"/study-room/{room['id']}")).json()["data"]["participants"]
    assert roster[1]["display_name"] == "Guest"
    assert roster[1]["avatar_url"] == "https://img.example/guest.png"
