from .study_room_schemas import (
    RoomCreate, RoomJoin, PingRequest, StatusUpdate, RemoveParticipant,
    RoomResponse, ParticipantResponse, RoomEnvelope, RoomDetailsResponse,
    PingResult, OperationResult,
)
from .user_schemas import UserUpdate, UserResponse, RefreshRequest, TokenRefreshResponse
from .response import BaseResponse

__all__ = [
    "RoomCreate", "RoomJoin", "PingRequest", "StatusUpdate", "RemoveParticipant",
    "RoomResponse", "ParticipantResponse", "RoomEnvelope", "RoomDetailsResponse",
    "PingResult", "OperationResult",
    "UserUpdate", "UserResponse", "RefreshRequest", "TokenRefreshResponse",
    "BaseResponse",
]
