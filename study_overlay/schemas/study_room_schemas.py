from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class CamelRequest(BaseModel):
    """Request bodies arrive camelCased from the dashboard; snake_case is accepted too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RoomCreate(CamelRequest):
    name: Optional[str] = None
    room_image_url: Optional[str] = None

class RoomJoin(CamelRequest):
    invite_code: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    custom_status: Optional[str] = None

class PingRequest(CamelRequest):
    room_id: Optional[UUID] = None

class StatusUpdate(CamelRequest):
    room_id: Optional[UUID] = None
    custom_status: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    def changes(self) -> dict:
        # Only keys the client actually sent; null clears custom_status and avatar_url.
        return self.model_dump(exclude_unset=True, exclude={"room_id"})

class RemoveParticipant(CamelRequest):
    room_id: Optional[UUID] = None
    participant_id: Optional[UUID] = None


class RoomResponse(BaseModel):
    id: UUID
    name: str
    creator_id: UUID
    invite_code: str
    room_image_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ParticipantResponse(BaseModel):
    id: UUID
    room_id: UUID
    user_id: UUID
    display_name: str
    avatar_url: Optional[str] = None
    custom_status: Optional[str] = None
    is_active: int
    last_ping_at: Optional[datetime] = None
    joined_at: Optional[datetime] = None
    seconds_since_last_ping: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)

class RoomEnvelope(BaseModel):
    room: RoomResponse

class RoomDetailsResponse(BaseModel):
    room: RoomResponse
    participants: List[ParticipantResponse]

class PingResult(BaseModel):
    success: bool = True
    updated: bool

class OperationResult(BaseModel):
    success: bool = True
    affected: int = 0
