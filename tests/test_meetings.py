from datetime import timedelta

import pytest

from core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from conversation_service.meeting_service import MeetingStore, merge_settings


def test_create_generates_room_and_merges_settings(db, make_user, clock):
    host, guest = make_user("host"), make_user("guest")
    meeting = MeetingStore(db, clock=clock).create(
        host.id,
        "Standup",
        participant_ids=[guest.id, guest.id],
        settings={"allowRecording": True},
    )

    assert meeting.room_id
    assert meeting.status == "scheduled"
    assert meeting.participant_ids == [guest.id]
    assert meeting.settings == {
        "allowScreenShare": True,
        "allowChat": True,
        "allowRecording": True,
        "maxParticipants": 6,
    }


@pytest.mark.parametrize("value", [1, 51, "six", True])
def test_max_participants_bounds(value):
    with pytest.raises(ValidationError):
        merge_settings({"maxParticipants": value})


def test_room_id_must_be_unique(db, make_user, clock):
    host = make_user("host")
    store = MeetingStore(db, clock=clock)
    store.create(host.id, "One", room_id="room-1")

    with pytest.raises(ValidationError):
        store.create(host.id, "Two", room_id="room-1")
    assert store.get_by_room_id("room-1").title == "One"
    assert store.get_by_room_id("missing") is None


def test_status_transitions(db, make_user, clock):
    host = make_user("host")
    store = MeetingStore(db, clock=clock)
    meeting = store.create(host.id, "Review")

    assert store.set_status(meeting.id, "active").end_time is None
    ended = store.set_status(meeting.id, "ended")
    assert ended.status == "ended"
    assert ended.end_time is not None

    with pytest.raises(ValidationError):
        store.set_status(meeting.id, "paused")
    with pytest.raises(NotFoundError):
        store.set_status(404, "active")


def test_participants_are_idempotent(db, make_user, clock):
    host, guest = make_user("host"), make_user("guest")
    store = MeetingStore(db, clock=clock)
    meeting = store.create(host.id, "Sync")

    store.add_participant(meeting.id, guest.id)
    assert store.add_participant(meeting.id, guest.id).participant_ids == [guest.id]
    store.remove_participant(meeting.id, guest.id)
    assert store.remove_participant(meeting.id, guest.id).participant_ids == []


def test_list_for_user_includes_hosted_and_joined(db, make_user, clock):
    alice, bob, carol = make_user("alice"), make_user("bob"), make_user("carol")
    store = MeetingStore(db, clock=clock)
    start = clock.now
    hosted = store.create(alice.id, "Hosted", start_time=start + timedelta(hours=1))
    joined = store.create(bob.id, "Joined", participant_ids=[alice.id], start_time=start + timedelta(hours=2))
    store.create(carol.id, "Unrelated")

    assert [m.id for m in store.list_for_user(alice.id)] == [joined.id, hosted.id]
    assert [m.id for m in store.list_for_user(alice.id, limit=1, skip=1)] == [hosted.id]
    assert store.list_for_user(alice.id, status="ended") == []


def test_analytics_and_recordings(db, make_user, clock):
    host = make_user("host")
    store = MeetingStore(db, clock=clock)
    meeting = store.create(host.id, "Demo")

    store.record_analytics(meeting.id, {"participantCount": 3})
    updated = store.record_analytics(meeting.id, {"engagementScore": 0.8})
    assert updated.analytics == {"engagementScore": 0.8}

    recording = store.append_recording(meeting.id, "https://cdn.example.com/r1.webm", 42.5)
    assert recording.duration == 42.5
    assert [r.url for r in store.get_by_id(meeting.id).recordings] == ["https://cdn.example.com/r1.webm"]


def test_mutations_require_membership(db, make_user, clock):
    host, guest, outsider = make_user("host"), make_user("guest"), make_user("outsider")
    store = MeetingStore(db, clock=clock)
    meeting = store.create(host.id, "Private", participant_ids=[guest.id])

    with pytest.raises(AccessDeniedError):
        store.set_status(meeting.id, "ended", actor_id=outsider.id)
    with pytest.raises(AccessDeniedError):
        store.record_analytics(meeting.id, {"participantCount": 9}, actor_id=outsider.id)
    with pytest.raises(AccessDeniedError):
        store.append_recording(meeting.id, "https://cdn.example.com/x.webm", 1, actor_id=outsider.id)
    with pytest.raises(AccessDeniedError):
        store.remove_participant(meeting.id, guest.id, actor_id=outsider.id)

    refreshed = store.get_by_id(meeting.id)
    assert refreshed.status == "scheduled"
    assert refreshed.analytics == {}
    assert refreshed.participant_ids == [guest.id]

    assert store.set_status(meeting.id, "active", actor_id=guest.id).status == "active"


def test_users_can_join_and_leave_themselves(db, make_user, clock):
    host, guest, other = make_user("host"), make_user("guest"), make_user("other")
    store = MeetingStore(db, clock=clock)
    meeting = store.create(host.id, "Open")

    assert store.add_participant(meeting.id, guest.id, actor_id=guest.id).participant_ids == [guest.id]
    with pytest.raises(AccessDeniedError):
        store.remove_participant(meeting.id, guest.id, actor_id=other.id)
    assert store.remove_participant(meeting.id, guest.id, actor_id=guest.id).participant_ids == []
