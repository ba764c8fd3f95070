# db_service/models/meeting.py
"""
Modèles SQLAlchemy pour les réunions (appels vidéo / audio).
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Boolean,
    Float,
    ForeignKey,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from core.validators import utcnow
from db_service.base import Base, TimestampMixin


MEETING_STATUSES = ("scheduled", "active", "ended")
MEETING_TYPES = ("video", "audio", "screen-share")

DEFAULT_MEETING_SETTINGS = {
    "allowScreenShare": True,
    "allowChat": True,
    "allowRecording": False,
    "maxParticipants": 6,
}


class Meeting(Base, TimestampMixin):
    __tablename__ = "meetings"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    host_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), default="scheduled", nullable=False, index=True)
    room_id = Column(String(64), unique=True, index=True, nullable=False)
    meeting_type = Column(String(20), default="video", nullable=False)
    settings = Column(JSON, default=lambda: dict(DEFAULT_MEETING_SETTINGS), nullable=False)
    analytics = Column(JSON, default=dict, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)

    # Relations
    participant_links = relationship(
        "MeetingParticipant",
        back_populates="meeting",
        cascade="all, delete-orphan",
        order_by="MeetingParticipant.id",
    )
    recordings = relationship(
        "MeetingRecording",
        back_populates="meeting",
        cascade="all, delete-orphan",
        order_by="MeetingRecording.id",
    )

    @property
    def participant_ids(self):
        return [link.user_id for link in self.participant_links]

    def __repr__(self):
        return f"<Meeting(id={self.id}, room_id={self.room_id}, status={self.status})>"


class MeetingParticipant(Base):
    __tablename__ = "meeting_participants"
    __table_args__ = (
        UniqueConstraint("meeting_id", "user_id", name="uq_meeting_participant"),
    )

    id = Column(Integer, primary_key=True)
    meeting_id = Column(
        Integer,
        ForeignKey("meetings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    meeting = relationship("Meeting", back_populates="participant_links")


class MeetingRecording(Base):
    __tablename__ = "meeting_recordings"

    id = Column(Integer, primary_key=True)
    meeting_id = Column(
        Integer,
        ForeignKey("meetings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url = Column(String(1024), nullable=False)
    duration = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    meeting = relationship("Meeting", back_populates="recordings")
