import logging
from typing import Any, Optional
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)


class StudyRoomAPIError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class StudyRoomClient:
    """
    Async HTTP client for the study-room API.

    Either pass a ready `httpx.AsyncClient` (tests hand in one bound to the
    ASGI app) or a base URL; the client is created lazily in the latter case.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
            self._owns_client = True
        return self._client

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        client = await self._get_client()
        response = await client.request(method, path, json=json, headers=self._headers())
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400:
            message = body.get("message") or body.get("detail") or response.reason_phrase
            raise StudyRoomAPIError(response.status_code, str(message))
        return body.get("data")

    async def create_room(self, name: str, room_image_url: Optional[str] = None) -> dict:
        data = await self._request("POST", "/study-room/create", {"name": name, "roomImageUrl": room_image_url})
        return data["room"]

    async def join_room(
        self,
        invite_code: str,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        custom_status: Optional[str] = None,
    ) -> dict:
        payload = {"inviteCode": invite_code}
        if display_name is not None:
            payload["displayName"] = display_name
        if avatar_url is not None:
            payload["avatarUrl"] = avatar_url
        if custom_status is not None:
            payload["customStatus"] = custom_status
        data = await self._request("POST", "/study-room/join", payload)
        return data["room"]

    async def resolve_code(self, invite_code: str) -> dict:
        data = await self._request("GET", f"/study-room/code/{invite_code}")
        return data["room"]

    async def get_room(self, room_id: UUID | str) -> dict:
        return await self._request("GET", f"/study-room/{room_id}")

    async def ping(self, room_id: UUID | str) -> bool:
        data = await self._request("POST", "/study-room/ping", {"roomId": str(room_id)})
        return bool(data and data.get("updated"))

    async def update_status(self, room_id: UUID | str, **changes: Optional[str]) -> None:
        """Send only the keyword fields given: custom_status, display_name, avatar_url."""
        field_names = {"custom_status": "customStatus", "display_name": "displayName", "avatar_url": "avatarUrl"}
        payload = {"roomId": str(room_id)}
        for key, value in changes.items():
            if key not in field_names:
                raise TypeError(f"Unknown status field: {key}")
            payload[field_names[key]] = value
        await self._request("POST", "/study-room/status", payload)

    async def remove_participant(self, room_id: UUID | str, participant_id: UUID | str) -> int:
        data = await self._request(
            "DELETE", "/study-room/kick", {"roomId": str(room_id), "participantId": str(participant_id)}
        )
        return data.get("affected", 0) if data else 0

    async def close(self) -> None:
        if self._client is not None and self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "StudyRoomClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
