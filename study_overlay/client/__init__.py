from .study_room_client import StudyRoomClient, StudyRoomAPIError
from .presence_session import RoomPresenceSession

__all__ = ["StudyRoomClient", "StudyRoomAPIError", "RoomPresenceSession"]
