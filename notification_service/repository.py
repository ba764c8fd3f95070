"""Repository for the append-only notification ledger."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from config_service.config import settings
from core.decorators import storage_guard
from core.exceptions import NotFoundError
from core.validators import non_empty_str, one_of, utcnow
from db_service.models.notification import NOTIFICATION_TYPES, Notification

logger = logging.getLogger(__name__)


class NotificationLedger:
    """Append and read per-user notifications.

    Records are never edited after insertion except for the one-way
    ``is_read`` flag.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    @storage_guard
    def append(
        self,
        user_id: int,
        type: str,
        title: str,
        message: str,
        related_id: Optional[str] = None,
    ) -> Notification:
        one_of(type, NOTIFICATION_TYPES, "type")
        notification = Notification(
            user_id=user_id,
            type=type,
            title=non_empty_str(title, "title"),
            message=non_empty_str(message, "message"),
            related_id=str(related_id) if related_id is not None else None,
            created_at=utcnow(),
        )
        self._db.add(notification)
        self._db.commit()
        self._db.refresh(notification)
        logger.debug(f"Notification {notification.id} ({type}) appended for user {user_id}")
        return notification

    def list_for_user(self, user_id: int, limit: Optional[int] = None) -> List[Notification]:
        limit = limit or settings.NOTIFICATION_LIST_LIMIT
        return (
            self._db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    @storage_guard
    def mark_read(self, notification_id: int, user_id: Optional[int] = None) -> Notification:
        query = self._db.query(Notification).filter(Notification.id == notification_id)
        if user_id is not None:
            # Une notification d'un autre utilisateur est traitée comme absente
            query = query.filter(Notification.user_id == user_id)
        notification = query.first()
        if not notification:
            raise NotFoundError("Notification not found", details={"notification_id": notification_id})
        if not notification.is_read:
            notification.is_read = True
            self._db.commit()
            self._db.refresh(notification)
        return notification

    @storage_guard
    def mark_all_read(self, user_id: int) -> int:
        updated = (
            self._db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self._db.commit()
        return updated

    def exists(
        self,
        user_id: int,
        type: str,
        related_id: Optional[str] = None,
        title_prefix: Optional[str] = None,
    ) -> bool:
        query = self._db.query(Notification.id).filter(
            Notification.user_id == user_id,
            Notification.type == type,
        )
        if related_id is not None:
            query = query.filter(Notification.related_id == str(related_id))
        if title_prefix:
            query = query.filter(Notification.title.startswith(title_prefix, autoescape=True))
        return query.first() is not None
