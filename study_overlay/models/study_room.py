from sqlalchemy import Column, String, DateTime, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from study_overlay.database import Base
from study_overlay.utils.clock import utcnow

INVITE_CODE_CONSTRAINT = "uq_study_rooms_invite_code"

class StudyRoom(Base):
    __tablename__ = "study_rooms"
    __table_args__ = (
        UniqueConstraint("invite_code", name=INVITE_CODE_CONSTRAINT),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, unique=True, index=True)
    name = Column(String, nullable=False)
    creator_id = Column(UUID(as_uuid=True), nullable=False)
    invite_code = Column(String, nullable=False)
    room_image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    participants = relationship(
        "RoomParticipant",
        back_populates="room",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
