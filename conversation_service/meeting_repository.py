"""Repository for meetings, their participants and recordings."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from db_service.models.meeting import Meeting, MeetingParticipant, MeetingRecording


class MeetingRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def _base_query(self):
        return (
            self._db.query(Meeting)
            .options(selectinload(Meeting.participant_links), selectinload(Meeting.recordings))
            .filter(Meeting.is_deleted.is_(False))
        )

    def add(self, meeting: Meeting) -> Meeting:
        self._db.add(meeting)
        self._db.flush()
        return meeting

    def get(self, meeting_id: int) -> Optional[Meeting]:
        return self._base_query().filter(Meeting.id == meeting_id).first()

    def get_by_room_id(self, room_id: str) -> Optional[Meeting]:
        return self._base_query().filter(Meeting.room_id == room_id).first()

    def room_exists(self, room_id: str) -> bool:
        return self._db.query(Meeting.id).filter(Meeting.room_id == room_id).first() is not None

    def list_for_user(
        self,
        user_id: int,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Meeting]:
        """Meetings hosted by or including ``user_id``, most recent first."""
        participating = select(MeetingParticipant.meeting_id).where(
            MeetingParticipant.user_id == user_id
        )
        query = self._base_query().filter(
            or_(Meeting.host_id == user_id, Meeting.id.in_(participating))
        )
        if status:
            query = query.filter(Meeting.status == status)
        return (
            query.order_by(
                func.coalesce(Meeting.end_time, Meeting.start_time).desc(),
                Meeting.id.desc(),
            )
            .offset(skip)
            .limit(limit)
            .all()
        )

    def scheduled_between(self, start, end) -> List[Meeting]:
        return (
            self._base_query()
            .filter(
                Meeting.status == "scheduled",
                Meeting.start_time >= start,
                Meeting.start_time <= end,
            )
            .order_by(Meeting.start_time)
            .all()
        )

    def add_participant(self, meeting: Meeting, user_id: int) -> bool:
        if user_id in meeting.participant_ids:
            return False
        meeting.participant_links.append(MeetingParticipant(user_id=user_id))
        return True

    def remove_participant(self, meeting: Meeting, user_id: int) -> bool:
        for link in list(meeting.participant_links):
            if link.user_id == user_id:
                meeting.participant_links.remove(link)
                return True
        return False

    def add_recording(self, meeting: Meeting, url: str, duration: float, now) -> MeetingRecording:
        recording = MeetingRecording(url=url, duration=duration, created_at=now)
        meeting.recordings.append(recording)
        self._db.flush()
        return recording
