"""Meeting records: scheduling, status, participants, analytics, recordings."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from core.decorators import storage_guard
from core.exceptions import AccessDeniedError, NotFoundError, StorageUnavailableError, ValidationError
from core.validators import dedupe, ensure_aware, non_empty_str, one_of, utcnow
from db_service.models.meeting import (
    DEFAULT_MEETING_SETTINGS,
    MEETING_STATUSES,
    MEETING_TYPES,
    Meeting,
    MeetingParticipant,
    MeetingRecording,
)
from conversation_service.meeting_repository import MeetingRepository

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2
MAX_PARTICIPANTS = 50
MAX_ROOM_ID_ATTEMPTS = 5


def merge_settings(overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Apply non-null overrides on top of the default meeting settings."""
    merged = dict(DEFAULT_MEETING_SETTINGS)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    max_participants = merged.get("maxParticipants")
    if (
        isinstance(max_participants, bool)
        or not isinstance(max_participants, int)
        or not MIN_PARTICIPANTS <= max_participants <= MAX_PARTICIPANTS
    ):
        raise ValidationError(
            f"maxParticipants must be between {MIN_PARTICIPANTS} and {MAX_PARTICIPANTS}",
            details={"maxParticipants": max_participants},
        )
    return merged


class MeetingStore:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow) -> None:
        self._db = db
        self._clock = clock
        self._repo = MeetingRepository(db)

    def _new_room_id(self) -> str:
        for _ in range(MAX_ROOM_ID_ATTEMPTS):
            room_id = secrets.token_hex(5)
            if not self._repo.room_exists(room_id):
                return room_id
        raise StorageUnavailableError("Could not allocate a unique room id")

    @storage_guard
    def create(
        self,
        host_id: int,
        title: str,
        description: Optional[str] = None,
        start_time: Optional[datetime] = None,
        room_id: Optional[str] = None,
        meeting_type: str = "video",
        participant_ids: Iterable[int] = (),
        settings: Optional[Dict[str, Any]] = None,
    ) -> Meeting:
        """
        Schedule a meeting hosted by ``host_id``.

        A room id is generated when none is given; a caller-supplied one must
        be free. Settings are merged over the defaults.
        """
        title = non_empty_str(title, "title")
        one_of(meeting_type, MEETING_TYPES, "meeting_type")
        merged = merge_settings(settings)

        if room_id:
            room_id = room_id.strip()
            if self._repo.room_exists(room_id):
                raise ValidationError("Room id already in use", details={"room_id": room_id})
        else:
            room_id = self._new_room_id()

        now = self._clock()
        start = ensure_aware(start_time).astimezone(timezone.utc) if start_time else now
        meeting = Meeting(
            title=title,
            description=description,
            host_id=host_id,
            start_time=start,
            status="scheduled",
            room_id=room_id,
            meeting_type=meeting_type,
            settings=merged,
            analytics={},
            created_at=now,
            updated_at=now,
        )
        for user_id in dedupe(participant_ids):
            meeting.participant_links.append(MeetingParticipant(user_id=user_id))
        self._repo.add(meeting)
        self._db.commit()
        logger.info(f"Meeting {meeting.id} scheduled by user {host_id} in room {room_id}")
        return self.get_by_id(meeting.id)

    def _require_member(self, meeting: Meeting, actor_id: Optional[int], target_id: Optional[int] = None) -> None:
        """Hôte ou participant; ``target_id`` autorise aussi l'utilisateur concerné lui-même."""
        if actor_id is None:
            return
        if actor_id == meeting.host_id or actor_id == target_id or actor_id in meeting.participant_ids:
            return
        raise AccessDeniedError("Not a member of this meeting", details={"meeting_id": meeting.id})

    def _require_host_or_self(self, meeting: Meeting, actor_id: Optional[int], target_id: int) -> None:
        if actor_id is None or actor_id in (meeting.host_id, target_id):
            return
        raise AccessDeniedError("Only the host can remove other participants", details={"meeting_id": meeting.id})

    def get_by_id(self, meeting_id: int) -> Meeting:
        meeting = self._repo.get(meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting not found", details={"meeting_id": meeting_id})
        return meeting

    def get_by_room_id(self, room_id: str) -> Optional[Meeting]:
        return self._repo.get_by_room_id(room_id)

    def list_for_user(
        self,
        user_id: int,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Meeting]:
        if status:
            one_of(status, MEETING_STATUSES, "status")
        return self._repo.list_for_user(user_id, status=status, skip=max(skip, 0), limit=max(limit, 1))

    @storage_guard
    def set_status(self, meeting_id: int, status: str, actor_id: Optional[int] = None) -> Meeting:
        one_of(status, MEETING_STATUSES, "status")
        meeting = self.get_by_id(meeting_id)
        self._require_member(meeting, actor_id)
        meeting.status = status
        if status == "ended":
            meeting.end_time = self._clock()
        meeting.updated_at = self._clock()
        self._db.commit()
        self._db.refresh(meeting)
        return meeting

    @storage_guard
    def add_participant(self, meeting_id: int, user_id: int, actor_id: Optional[int] = None) -> Meeting:
        """Les membres peuvent inviter; un utilisateur peut aussi se joindre lui-même."""
        meeting = self.get_by_id(meeting_id)
        self._require_member(meeting, actor_id, target_id=user_id)
        if self._repo.add_participant(meeting, user_id):
            self._db.commit()
            self._db.refresh(meeting)
        return meeting

    @storage_guard
    def remove_participant(self, meeting_id: int, user_id: int, actor_id: Optional[int] = None) -> Meeting:
        meeting = self.get_by_id(meeting_id)
        self._require_host_or_self(meeting, actor_id, user_id)
        if self._repo.remove_participant(meeting, user_id):
            self._db.commit()
            self._db.refresh(meeting)
        return meeting

    @storage_guard
    def record_analytics(
        self, meeting_id: int, analytics: Dict[str, Any], actor_id: Optional[int] = None
    ) -> Meeting:
        """Replace the analytics document of the meeting."""
        meeting = self.get_by_id(meeting_id)
        self._require_member(meeting, actor_id)
        meeting.analytics = dict(analytics or {})
        meeting.updated_at = self._clock()
        self._db.commit()
        self._db.refresh(meeting)
        return meeting

    @storage_guard
    def append_recording(
        self, meeting_id: int, url: str, duration: float = 0, actor_id: Optional[int] = None
    ) -> MeetingRecording:
        meeting = self.get_by_id(meeting_id)
        self._require_member(meeting, actor_id)
        if duration is None or duration < 0:
            raise ValidationError("duration must be non-negative", details={"duration": duration})
        recording = self._repo.add_recording(meeting, non_empty_str(url, "url"), float(duration), self._clock())
        self._db.commit()
        self._db.refresh(recording)
        return recording

    def upcoming(self, start: datetime, end: datetime) -> List[Meeting]:
        """Scheduled meetings whose start time falls in ``[start, end]``."""
        return self._repo.scheduled_between(start, end)
