"""
Client-side polling loop for a study room.

While a member sits in a room, two timers run: a ping that keeps them
active and a roster fetch that keeps the view fresh. Both are owned by a
`RoomPresenceSession` and are guaranteed to be cancelled when the session
exits, so a closed overlay never leaves a timer behind.
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Union
from uuid import UUID

from study_overlay.client.study_room_client import StudyRoomClient
from study_overlay.config import settings

logger = logging.getLogger(__name__)

RosterCallback = Callable[[dict], Union[None, Awaitable[None]]]


class RoomPresenceSession:
    def __init__(
        self,
        client: StudyRoomClient,
        room_id: Union[UUID, str],
        ping_interval: Optional[float] = None,
        poll_interval: Optional[float] = None,
        on_roster: Optional[RosterCallback] = None,
        send_pings: bool = True,
    ):
        self.client = client
        self.room_id = room_id
        self.ping_interval = settings.ping_interval_seconds if ping_interval is None else ping_interval
        self.poll_interval = settings.roster_poll_interval_seconds if poll_interval is None else poll_interval
        self.on_roster = on_roster
        # Viewers that are not members (e.g. an OBS browser source) only poll.
        self.send_pings = send_pings

        self.roster: Optional[dict] = None
        self.ping_count = 0
        self.fetch_count = 0
        self.error_count = 0
        self.running = False
        self.tasks: List[asyncio.Task] = []

    async def start(self) -> None:
        if self.running:
            logger.warning(f"Presence session for room {self.room_id} already running")
            return
        self.running = True

        # First fetch happens before the timers start.
        await self.refresh()

        self.tasks = [asyncio.create_task(self._run_every(self.poll_interval, self.refresh, "roster"))]
        if self.send_pings:
            self.tasks.append(asyncio.create_task(self._run_every(self.ping_interval, self.ping, "ping")))
        logger.info(f"Presence session started for room {self.room_id}")

    async def stop(self) -> None:
        self.running = False
        for task in self.tasks:
            task.cancel()
        await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks = []
        logger.info(f"Presence session stopped for room {self.room_id}")

    async def ping(self) -> bool:
        updated = await self.client.ping(self.room_id)
        self.ping_count += 1
        if not updated:
            logger.info(f"Ping for room {self.room_id} matched no membership")
        return updated

    async def refresh(self) -> Optional[dict]:
        try:
            roster = await self.client.get_room(self.room_id)
        except Exception as e:
            # Next tick retries; a failed refresh is never surfaced.
            self.error_count += 1
            logger.warning(f"Roster refresh for room {self.room_id} failed: {e}")
            return None
        self.roster = roster
        self.fetch_count += 1
        if self.on_roster is not None:
            result = self.on_roster(roster)
            if inspect.isawaitable(result):
                await result
        return roster

    async def _run_every(self, interval: float, action: Callable[[], Awaitable[Any]], name: str) -> None:
        try:
            while self.running:
                await asyncio.sleep(interval)
                if not self.running:
                    break
                try:
                    await action()
                except Exception as e:
                    self.error_count += 1
                    logger.warning(f"{name} tick for room {self.room_id} failed: {e}")
        except asyncio.CancelledError:
            logger.debug(f"{name} loop for room {self.room_id} cancelled")
            raise

    async def __aenter__(self) -> "RoomPresenceSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()
