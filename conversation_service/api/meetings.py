"""REST endpoints for meetings."""

from typing import Any, List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from db_service.models.user import User
from db_service.session import get_db
from conversation_service.meeting_service import MeetingStore
from conversation_service.models.meeting_models import (
    MeetingAnalyticsUpdate,
    MeetingCreate,
    MeetingRead,
    MeetingStatusUpdate,
    RecordingCreate,
    RecordingRead,
    RoomValidation,
)
from user_service.api.deps import get_current_active_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/validate/{room_id}", response_model=RoomValidation)
async def validate_room(room_id: str, db: Session = Depends(get_db)) -> Any:
    """Vérification publique de l'existence d'une salle."""
    meeting = MeetingStore(db).get_by_room_id(room_id)
    if meeting is None:
        return RoomValidation(exists=False)
    return RoomValidation(exists=True, meeting=MeetingRead.model_validate(meeting))


@router.post("", response_model=MeetingRead)
async def create_meeting(
    meeting_in: MeetingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    settings_in = meeting_in.settings.model_dump(exclude_none=True) if meeting_in.settings else None
    return MeetingStore(db).create(
        current_user.id,
        meeting_in.title,
        description=meeting_in.description,
        start_time=meeting_in.start_time,
        room_id=meeting_in.room_id,
        meeting_type=meeting_in.meeting_type,
        participant_ids=meeting_in.participant_ids,
        settings=settings_in,
    )


@router.get("", response_model=List[MeetingRead])
async def list_meetings(
    status: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return MeetingStore(db).list_for_user(current_user.id, status=status, skip=skip, limit=limit)


@router.get("/{meeting_id}", response_model=MeetingRead)
async def get_meeting(
    meeting_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return MeetingStore(db).get_by_id(meeting_id)


@router.patch("/{meeting_id}/status", response_model=MeetingRead)
async def update_meeting_status(
    meeting_id: int,
    status_in: MeetingStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Changer le statut d'une réunion.

    Le passage à ``ended`` horodate la fin de la réunion.

    Raises:
        HuddleError 400: Statut inconnu
        HuddleError 403: L'appelant n'est ni hôte ni participant
        HuddleError 404: Réunion inconnue
    """
    return MeetingStore(db).set_status(meeting_id, status_in.status, actor_id=current_user.id)


@router.post("/{meeting_id}/participants/{user_id}", response_model=MeetingRead)
async def add_meeting_participant(
    meeting_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return MeetingStore(db).add_participant(meeting_id, user_id, actor_id=current_user.id)


@router.delete("/{meeting_id}/participants/{user_id}", response_model=MeetingRead)
async def remove_meeting_participant(
    meeting_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return MeetingStore(db).remove_participant(meeting_id, user_id, actor_id=current_user.id)


@router.put("/{meeting_id}/analytics", response_model=MeetingRead)
async def update_meeting_analytics(
    meeting_id: int,
    analytics_in: MeetingAnalyticsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return MeetingStore(db).record_analytics(meeting_id, analytics_in.analytics, actor_id=current_user.id)


@router.post("/{meeting_id}/recordings", response_model=RecordingRead)
async def add_meeting_recording(
    meeting_id: int,
    recording_in: RecordingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return MeetingStore(db).append_recording(
        meeting_id, recording_in.url, recording_in.duration, actor_id=current_user.id
    )
