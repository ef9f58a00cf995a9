from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from study_overlay.database import Base
from study_overlay.utils.clock import utcnow

MEMBERSHIP_CONSTRAINT = "uq_room_participants_room_user"

class RoomParticipant(Base):
    __tablename__ = "room_participants"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name=MEMBERSHIP_CONSTRAINT),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, unique=True)
    room_id = Column(UUID(as_uuid=True), ForeignKey("study_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False)
    display_name = Column(String, nullable=False)
    avatar_url = Column(String, nullable=True)
    custom_status = Column(String, nullable=True)
    # Cached projection of last_ping_at; 1 = active, 0 = away.
    is_active = Column(Integer, nullable=False, default=1)
    last_ping_at = Column(DateTime(timezone=True), default=utcnow)
    joined_at = Column(DateTime(timezone=True), default=utcnow)

    room = relationship("StudyRoom", back_populates="participants")
