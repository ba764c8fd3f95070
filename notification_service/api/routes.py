from typing import Any, List
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config_service.config import settings
from db_service.models.user import User
from db_service.session import get_db
from notification_service.repository import NotificationLedger
from notification_service.schemas import MarkAllReadResult, NotificationRead
from user_service.api.deps import get_current_active_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=List[NotificationRead])
async def list_notifications(
    limit: int = Query(settings.NOTIFICATION_LIST_LIMIT, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Notifications de l'utilisateur courant, les plus récentes d'abord."""
    return NotificationLedger(db).list_for_user(current_user.id, limit=limit)


@router.put("/read-all", response_model=MarkAllReadResult)
async def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return MarkAllReadResult(updated=NotificationLedger(db).mark_all_read(current_user.id))


@router.put("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return NotificationLedger(db).mark_read(notification_id, user_id=current_user.id)
