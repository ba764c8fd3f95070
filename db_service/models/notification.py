from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index

from core.validators import utcnow
from db_service.base import Base


NOTIFICATION_TYPES = ("match", "missed_call", "system")


class Notification(Base):
    """Journal append-only : seul ``is_read`` change après insertion."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    type = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # Référence non typée, utilisée uniquement pour la navigation côté client
    related_id = Column(String(64), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.type})>"
