from datetime import timedelta

from conversation_service.meeting_service import MeetingStore
from db_service.models.notification import Notification
from jobs.maintenance import purge_expired_tokens, send_meeting_reminders
from token_service.invites import InviteVault
from token_service.otp import OTPVault


def test_purge_expired_tokens(db, make_user, clock):
    alice = make_user("alice")
    InviteVault(db, clock=clock).issue(alice.id, ttl=timedelta(hours=1))
    OTPVault(db, clock=clock).issue("alice@example.com")

    assert purge_expired_tokens(db, clock.now + timedelta(minutes=5)) == {"invites": 0, "otps": 0}
    assert purge_expired_tokens(db, clock.now + timedelta(hours=2)) == {"invites": 1, "otps": 1}


def test_meeting_reminders_fire_once_inside_window(db, make_user, clock):
    host, bob, carol = make_user("host"), make_user("bob"), make_user("carol")
    now = clock.now
    store = MeetingStore(db, clock=clock)
    soon = store.create(
        host.id, "Planning", participant_ids=[bob.id, carol.id],
        start_time=now + timedelta(minutes=14, seconds=30),
    )
    store.create(host.id, "Later", participant_ids=[bob.id], start_time=now + timedelta(hours=2))

    assert send_meeting_reminders(db, now) == 2
    assert send_meeting_reminders(db, now + timedelta(seconds=20)) == 0

    notes = db.query(Notification).order_by(Notification.user_id).all()
    assert [n.user_id for n in notes] == [bob.id, carol.id]
    assert all(n.related_id == str(soon.id) for n in notes)
    assert all(n.title.startswith("Meeting Starting Soon") for n in notes)


def test_meeting_reminders_skip_started_meetings(db, make_user, clock):
    host, bob = make_user("host"), make_user("bob")
    now = clock.now
    store = MeetingStore(db, clock=clock)
    meeting = store.create(
        host.id, "Live", participant_ids=[bob.id],
        start_time=now + timedelta(minutes=14, seconds=30),
    )
    store.set_status(meeting.id, "active")

    assert send_meeting_reminders(db, now) == 0
