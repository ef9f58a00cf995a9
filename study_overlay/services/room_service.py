import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from study_overlay.config import settings
from study_overlay.exceptions import (
    CodeExhaustionError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from study_overlay.models.room_participant import RoomParticipant, MEMBERSHIP_CONSTRAINT
from study_overlay.models.study_room import StudyRoom, INVITE_CODE_CONSTRAINT
from study_overlay.services.presence_service import ACTIVE
from study_overlay.services.user_service import UserService
from study_overlay.utils.clock import utcnow
from study_overlay.utils.invite_code import generate_invite_code, is_valid_invite_code, normalize_invite_code

logger = logging.getLogger(__name__)


def _violates(exc: IntegrityError, constraint: str, sqlite_marker: str) -> bool:
    # Postgres names the constraint; SQLite names the columns.
    message = str(exc.orig)
    return constraint in message or sqlite_marker in message


def is_invite_code_conflict(exc: IntegrityError) -> bool:
    return _violates(exc, INVITE_CODE_CONSTRAINT, "study_rooms.invite_code")


def is_membership_conflict(exc: IntegrityError) -> bool:
    return _violates(exc, MEMBERSHIP_CONSTRAINT, "room_participants.room_id, room_participants.user_id")


class RoomService:
    @staticmethod
    async def create_room(
        db: AsyncSession,
        creator_id: UUID,
        name: Optional[str],
        room_image_url: Optional[str] = None,
    ) -> StudyRoom:
        """
        Create a room under a fresh invite code and seat the creator in it.

        The unique constraint on invite_code is the collision check: a
        rejected insert means the candidate was taken, so a new one is drawn.
        Any other store error is fatal.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError(detail="Room name is required", field_errors={"name": "must not be empty"})

        max_attempts = settings.invite_code_max_attempts
        room = None
        for attempt in range(1, max_attempts + 1):
            candidate = StudyRoom(
                name=name,
                creator_id=creator_id,
                invite_code=generate_invite_code(),
                room_image_url=room_image_url or None,
            )
            db.add(candidate)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                if is_invite_code_conflict(e):
                    logger.info(f"Invite code collision on attempt {attempt}/{max_attempts}, retrying")
                    continue
                logger.error(f"Room insert rejected: {e}")
                raise DatabaseError(detail="Failed to create room")
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Room insert failed: {e}")
                raise DatabaseError(detail="Failed to create room")
            room = candidate
            break

        if room is None:
            logger.error(f"Invite code space exhausted after {max_attempts} attempts")
            raise CodeExhaustionError(attempts=max_attempts)

        # Detached so a rollback in the membership write cannot expire it.
        db.expunge(room)
        logger.info(f"Room {room.id} created by {creator_id} with code {room.invite_code}")

        # The room stands even if the creator's seat cannot be written; they can join explicitly.
        try:
            await RoomService.ensure_participant(db, room.id, creator_id)
        except (SQLAlchemyError, DatabaseError) as e:
            await db.rollback()
            logger.warning(f"Could not auto-join creator {creator_id} to room {room.id}: {e}")

        return room

    @staticmethod
    async def resolve_invite_code(db: AsyncSession, code: Optional[str]) -> StudyRoom:
        normalized = normalize_invite_code(code or "")
        if not normalized:
            raise ValidationError(detail="Invite code is required", field_errors={"inviteCode": "must not be empty"})
        if not is_valid_invite_code(normalized):
            raise NotFoundError(detail="Invalid invite code")
        result = await db.execute(select(StudyRoom).where(StudyRoom.invite_code == normalized))
        room = result.scalar_one_or_none()
        if room is None:
            raise NotFoundError(detail="Invalid invite code")
        return room

    @staticmethod
    async def join_room(
        db: AsyncSession,
        code: Optional[str],
        user_id: UUID,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        custom_status: Optional[str] = None,
    ) -> StudyRoom:
        """Join by invite code. Joining twice is a rejoin; the caller gets the room either way."""
        room = await RoomService.resolve_invite_code(db, code)
        db.expunge(room)
        rejoined = await RoomService.ensure_participant(
            db, room.id, user_id,
            display_name=display_name,
            avatar_url=avatar_url,
            custom_status=custom_status,
        )
        logger.info(f"User {user_id} {'rejoined' if rejoined else 'joined'} room {room.id}")
        return room

    @staticmethod
    async def ensure_participant(
        db: AsyncSession,
        room_id: UUID,
        user_id: UUID,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        custom_status: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Find-or-create the (room, user) membership row. Returns True on rejoin.

        Rejoin refreshes liveness and only overwrites display fields that were
        explicitly supplied. If a concurrent join wins the insert race, the
        loser falls back to the update path.
        """
        now = now or utcnow()
        supplied = {
            key: value
            for key, value in (
                ("display_name", display_name),
                ("avatar_url", avatar_url),
                ("custom_status", custom_status),
            )
            if value is not None
        }

        if await RoomService._refresh_membership(db, room_id, user_id, supplied, now):
            return True

        profile = await UserService.get_profile(db, user_id)
        participant = RoomParticipant(
            room_id=room_id,
            user_id=user_id,
            display_name=display_name or (profile.full_name if profile else None) or settings.default_display_name,
            avatar_url=avatar_url or (profile.avatar_url if profile else None),
            custom_status=custom_status or None,
            is_active=ACTIVE,
            last_ping_at=now,
            joined_at=now,
        )
        db.add(participant)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if not is_membership_conflict(e):
                raise DatabaseError(detail="Failed to join room")
            logger.info(f"Concurrent join for {user_id} in room {room_id}; updating instead")
            if await RoomService._refresh_membership(db, room_id, user_id, supplied, now):
                return True
            raise DatabaseError(detail="Failed to join room")
        return False

    @staticmethod
    async def _refresh_membership(db: AsyncSession, room_id: UUID, user_id: UUID, supplied: dict, now: datetime) -> bool:
        result = await db.execute(
            update(RoomParticipant)
            .where(RoomParticipant.room_id == room_id, RoomParticipant.user_id == user_id)
            .values(last_ping_at=now, is_active=ACTIVE, **supplied)
        )
        if result.rowcount == 0:
            return False
        await db.commit()
        return True

    @staticmethod
    async def remove_participant(db: AsyncSession, room_id: UUID, participant_id: UUID, requesting_user_id: UUID) -> int:
        """
        Remove a participant from a room.

        Moderation is flat: any authenticated caller may remove any
        participant, the creator has no extra rights, and membership of the
        requester is not checked. Removing a missing row affects nothing and
        still succeeds.
        """
        result = await db.execute(
            delete(RoomParticipant)
            .where(RoomParticipant.id == participant_id, RoomParticipant.room_id == room_id)
        )
        await db.commit()
        logger.info(f"User {requesting_user_id} removed participant {participant_id} from room {room_id} ({result.rowcount} row)")
        return result.rowcount
