import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from study_overlay.exceptions import NotFoundError
from study_overlay.models.room_participant import RoomParticipant
from study_overlay.models.study_room import StudyRoom
from study_overlay.services.presence_service import PresenceService, ACTIVE, AWAY
from study_overlay.utils.clock import utcnow

logger = logging.getLogger(__name__)


class RosterService:
    @staticmethod
    def project_room(room: StudyRoom) -> dict:
        return {
            "id": room.id,
            "name": room.name,
            "creator_id": room.creator_id,
            "invite_code": room.invite_code,
            "room_image_url": room.room_image_url,
            "created_at": room.created_at,
            "updated_at": room.updated_at,
        }

    @staticmethod
    def project_participant(participant: RoomParticipant, now: datetime) -> dict:
        active = PresenceService.is_active_at(participant.last_ping_at, now)
        return {
            "id": participant.id,
            "room_id": participant.room_id,
            "user_id": participant.user_id,
            "display_name": participant.display_name,
            "avatar_url": participant.avatar_url,
            "custom_status": participant.custom_status,
            "is_active": ACTIVE if active else AWAY,
            "last_ping_at": participant.last_ping_at,
            "joined_at": participant.joined_at,
            "seconds_since_last_ping": PresenceService.seconds_since_ping(participant.last_ping_at, now),
        }

    @staticmethod
    async def get_room_with_roster(db: AsyncSession, room_id: UUID, now: Optional[datetime] = None) -> dict:
        """
        Room plus participants in join order, with `is_active` computed as of now.

        Participants that were stored active but have since gone stale are
        written back as away in one batch. The write-back is best effort: the
        returned roster is already correct if it fails.
        """
        now = now or utcnow()
        room = (await db.execute(
            select(StudyRoom)
            .where(StudyRoom.id == room_id)
            .execution_options(populate_existing=True)
        )).scalar_one_or_none()
        if room is None:
            raise NotFoundError(detail="Room not found")

        result = await db.execute(
            select(RoomParticipant)
            .where(RoomParticipant.room_id == room_id)
            .order_by(RoomParticipant.joined_at.asc())
            .execution_options(populate_existing=True)
        )
        participants = result.scalars().all()

        # Snapshot first; a failed write-back rollback expires loaded rows.
        room_data = RosterService.project_room(room)
        roster = [RosterService.project_participant(p, now) for p in participants]
        gone_away = [
            stored.id
            for stored, projected in zip(participants, roster)
            if projected["is_active"] == AWAY and stored.is_active == ACTIVE
        ]

        if gone_away:
            try:
                marked = await PresenceService.mark_away(db, gone_away)
                logger.info(f"Marked {marked} participant(s) away in room {room_id}")
            except SQLAlchemyError as e:
                await db.rollback()
                logger.warning(f"Away write-back failed for room {room_id}: {e}")

        return {"room": room_data, "participants": roster}
