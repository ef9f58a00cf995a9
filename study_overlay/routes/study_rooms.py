from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID
import logging

from study_overlay.database import get_db
from study_overlay.exceptions import ValidationError
from study_overlay.middlewares.auth_middleware import get_current_user_id
from study_overlay.middlewares.logging_middleware import RoomActivityLogger
from study_overlay.schemas.response import BaseResponse, error_payload
from study_overlay.schemas.study_room_schemas import (
    RoomCreate, RoomJoin, PingRequest, StatusUpdate, RemoveParticipant,
    RoomResponse, ParticipantResponse, RoomEnvelope, RoomDetailsResponse,
    PingResult, OperationResult,
)
from study_overlay.services.presence_service import PresenceService
from study_overlay.services.room_service import RoomService
from study_overlay.services.roster_service import RosterService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/study-room", tags=["study-rooms"])


def _error_response(e: HTTPException) -> JSONResponse:
    errors = getattr(e, "field_errors", None) or e.detail
    return JSONResponse(
        status_code=e.status_code,
        content=error_payload(e.detail, errors),
        headers=e.headers,
    )


def _server_error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(message, "Internal server error"),
    )


@router.post(
    "/create",
    response_model=BaseResponse[RoomEnvelope],
    status_code=201
)
async def create_room(
    data: RoomCreate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    try:
        room = await RoomService.create_room(db, user_id, data.name, data.room_image_url)
        RoomActivityLogger.log_room_action(user_id, "room_created", room.id, {"invite_code": room.invite_code})
        return BaseResponse(
            success=True,
            message="Room created successfully",
            data=RoomEnvelope(room=RoomResponse.model_validate(room))
        )
    except HTTPException as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Failed to create study room: {e}", exc_info=True)
        return _server_error("Failed to create room")


@router.post(
    "/join",
    response_model=BaseResponse[RoomEnvelope]
)
async def join_room(
    data: RoomJoin,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    try:
        room = await RoomService.join_room(
            db,
            data.invite_code,
            user_id,
            display_name=data.display_name,
            avatar_url=data.avatar_url,
            custom_status=data.custom_status,
        )
        RoomActivityLogger.log_room_action(user_id, "room_joined", room.id)
        return BaseResponse(
            success=True,
            message="Joined room successfully",
            data=RoomEnvelope(room=RoomResponse.model_validate(room))
        )
    except HTTPException as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Failed to join study room: {e}", exc_info=True)
        return _server_error("Failed to join room")


@router.get(
    "/code/{invite_code}",
    response_model=BaseResponse[RoomEnvelope]
)
async def resolve_invite_code(
    invite_code: str,
    db: AsyncSession = Depends(get_db)
):
    """Look a room up by its shareable code, e.g. for the join page."""
    try:
        room = await RoomService.resolve_invite_code(db, invite_code)
        return BaseResponse(
            success=True,
            message="Room found",
            data=RoomEnvelope(room=RoomResponse.model_validate(room))
        )
    except HTTPException as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Failed to resolve invite code: {e}", exc_info=True)
        return _server_error("Failed to find room")


@router.post(
    "/ping",
    response_model=BaseResponse[PingResult]
)
async def ping_room(
    data: PingRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    try:
        if data.room_id is None:
            raise ValidationError(detail="Room ID is required", field_errors={"roomId": "required"})
        updated = await PresenceService.ping(db, data.room_id, user_id)
        return BaseResponse(
            success=True,
            message="Ping recorded" if updated else "Not a member of this room",
            data=PingResult(updated=updated)
        )
    except HTTPException as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Failed to ping room: {e}", exc_info=True)
        return _server_error("Failed to ping room")


@router.post(
    "/status",
    response_model=BaseResponse[OperationResult]
)
async def update_status(
    data: StatusUpdate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    try:
        if data.room_id is None:
            raise ValidationError(detail="Room ID is required", field_errors={"roomId": "required"})
        updated = await PresenceService.update_status(db, data.room_id, user_id, data.changes())
        return BaseResponse(
            success=True,
            message="Status updated",
            data=OperationResult(affected=1 if updated else 0)
        )
    except HTTPException as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Failed to update participant status: {e}", exc_info=True)
        return _server_error("Failed to update status")


@router.delete(
    "/kick",
    response_model=BaseResponse[OperationResult]
)
async def remove_participant(
    data: RemoveParticipant,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    # Any signed-in user may remove any participant; see RoomService.remove_participant.
    try:
        if data.room_id is None or data.participant_id is None:
            raise ValidationError(
                detail="Room ID and participant ID are required",
                field_errors={"roomId": "required", "participantId": "required"}
            )
        affected = await RoomService.remove_participant(db, data.room_id, data.participant_id, user_id)
        RoomActivityLogger.log_room_action(
            user_id, "participant_removed", data.room_id,
            {"participant_id": str(data.participant_id), "affected": affected}
        )
        return BaseResponse(
            success=True,
            message="Participant removed" if affected else "Participant already gone",
            data=OperationResult(affected=affected)
        )
    except HTTPException as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Failed to remove participant: {e}", exc_info=True)
        return _server_error("Failed to remove participant")


@router.get(
    "/{room_id}",
    response_model=BaseResponse[RoomDetailsResponse]
)
async def get_room(
    room_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """Room plus roster, with each participant's active/away state computed at read time."""
    try:
        result = await RosterService.get_room_with_roster(db, room_id)
        details = RoomDetailsResponse(
            room=RoomResponse.model_validate(result["room"]),
            participants=[ParticipantResponse.model_validate(p) for p in result["participants"]],
        )
        return BaseResponse(
            success=True,
            message="Room fetched",
            data=details
        )
    except HTTPException as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Failed to get room data: {e}", exc_info=True)
        return _server_error("Failed to get room data")
