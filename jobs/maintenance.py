"""
Maintenance jobs

Plain functions taking a session and the current time, so the Celery tasks
stay thin and the logic can be exercised directly:
- purge of expired invite codes and OTP records
- reminders for meetings about to start
"""

from datetime import datetime, timedelta
from typing import Dict, Optional
import logging

from sqlalchemy.orm import Session

from config_service.config import settings
from core.validators import utcnow
from conversation_service.meeting_service import MeetingStore
from notification_service.repository import NotificationLedger
from token_service.invites import InviteVault
from token_service.otp import OTPVault

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Meeting Starting Soon"


def purge_expired_tokens(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """Delete expired invite codes and OTP records."""
    now = now or utcnow()
    invites = InviteVault(db).purge_expired(now)
    otps = OTPVault(db).purge_expired(now)
    logger.info(f"Expired token purge: {invites} invites, {otps} OTP records")
    return {"invites": invites, "otps": otps}


def send_meeting_reminders(
    db: Session,
    now: Optional[datetime] = None,
    lead_minutes: Optional[int] = None,
) -> int:
    """
    Notify participants of scheduled meetings starting in about ``lead_minutes``.

    The window is one minute wide, ``[now + lead - 1min, now + lead]``, which
    matches a once-a-minute schedule. A participant already holding a reminder
    for the meeting is skipped.

    Returns:
        int: Number of notifications appended
    """
    now = now or utcnow()
    lead = lead_minutes or settings.MEETING_REMINDER_MINUTES
    window_start = now + timedelta(minutes=lead - 1)
    window_end = now + timedelta(minutes=lead)

    ledger = NotificationLedger(db)
    sent = 0
    for meeting in MeetingStore(db).upcoming(window_start, window_end):
        logger.info(f"Meeting {meeting.id} starts soon, notifying participants")
        for user_id in meeting.participant_ids:
            if ledger.exists(user_id, "system", str(meeting.id), REMINDER_TITLE):
                continue
            ledger.append(
                user_id,
                "system",
                f"{REMINDER_TITLE} ⏳",
                f'"{meeting.title}" starts in about {lead} minutes.',
                related_id=str(meeting.id),
            )
            sent += 1
    return sent
