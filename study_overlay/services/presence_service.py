"""
Presence tracking for study-room participants.

A participant is either active or away. The state is never driven by a
timer: it is a function of how long ago the participant last pinged, and is
evaluated whenever somebody reads the roster. Pings and (re)joins are the
only writes that bring a participant back to active.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from study_overlay.config import settings
from study_overlay.exceptions import ValidationError
from study_overlay.models.room_participant import RoomParticipant
from study_overlay.utils.clock import utcnow, ensure_utc

logger = logging.getLogger(__name__)

ACTIVE = 1
AWAY = 0


class PresenceService:

    @staticmethod
    def seconds_since_ping(last_ping_at: Optional[datetime], now: datetime) -> Optional[float]:
        if last_ping_at is None:
            return None
        return (ensure_utc(now) - ensure_utc(last_ping_at)).total_seconds()

    @staticmethod
    def is_active_at(last_ping_at: Optional[datetime], now: datetime, timeout: Optional[int] = None) -> bool:
        """Active while the last ping is at most `timeout` seconds old (inclusive)."""
        elapsed = PresenceService.seconds_since_ping(last_ping_at, now)
        if elapsed is None:
            return False
        limit = settings.presence_timeout_seconds if timeout is None else timeout
        return elapsed <= limit

    @staticmethod
    async def ping(db: AsyncSession, room_id: UUID, user_id: UUID, now: Optional[datetime] = None) -> bool:
        """
        Refresh the caller's liveness in a room.

        Single conditional UPDATE keyed on (room_id, user_id). Returns False
        when the caller has no membership row; that is not an error, since a
        removed client can keep pinging until its timer is torn down.
        """
        now = now or utcnow()
        result = await db.execute(
            update(RoomParticipant)
            .where(RoomParticipant.room_id == room_id, RoomParticipant.user_id == user_id)
            .values(last_ping_at=now, is_active=ACTIVE)
        )
        await db.commit()
        if result.rowcount == 0:
            logger.debug(f"Ping from non-member {user_id} in room {room_id} ignored")
            return False
        return True

    @staticmethod
    async def update_status(db: AsyncSession, room_id: UUID, user_id: UUID, changes: dict) -> bool:
        """Sparse patch of the caller's own display fields; absent keys are left untouched."""
        allowed = {"custom_status", "display_name", "avatar_url"}
        values = {key: value for key, value in changes.items() if key in allowed}
        if "display_name" in values:
            display_name = (values["display_name"] or "").strip()
            if not display_name:
                raise ValidationError(
                    detail="Display name cannot be empty",
                    field_errors={"displayName": "must not be empty"}
                )
            values["display_name"] = display_name
        if not values:
            return False
        result = await db.execute(
            update(RoomParticipant)
            .where(RoomParticipant.room_id == room_id, RoomParticipant.user_id == user_id)
            .values(**values)
        )
        await db.commit()
        return result.rowcount > 0

    @staticmethod
    async def mark_away(db: AsyncSession, participant_ids: Iterable[UUID]) -> int:
        ids = list(participant_ids)
        if not ids:
            return 0
        result = await db.execute(
            update(RoomParticipant)
            .where(RoomParticipant.id.in_(ids))
            .values(is_active=AWAY)
        )
        await db.commit()
        return result.rowcount
