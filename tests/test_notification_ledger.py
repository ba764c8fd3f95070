import pytest

from core.exceptions import NotFoundError, ValidationError
from notification_service.repository import NotificationLedger


def test_append_and_list_newest_first(db, make_user):
    alice = make_user("alice")
    ledger = NotificationLedger(db)
    first = ledger.append(alice.id, "system", "Welcome", "Hello there")
    second = ledger.append(alice.id, "match", "New Connection", "Bob joined", related_id=7)

    listed = ledger.list_for_user(alice.id)
    assert [n.id for n in listed] == [second.id, first.id]
    assert listed[0].related_id == "7"
    assert all(n.is_read is False for n in listed)


def test_append_rejects_unknown_type(db, make_user):
    alice = make_user("alice")
    with pytest.raises(ValidationError):
        NotificationLedger(db).append(alice.id, "promo", "Buy", "now")


def test_append_does_not_deduplicate(db, make_user):
    alice = make_user("alice")
    ledger = NotificationLedger(db)
    ledger.append(alice.id, "system", "Same", "Same")
    ledger.append(alice.id, "system", "Same", "Same")
    assert len(ledger.list_for_user(alice.id)) == 2


def test_mark_read_is_scoped_to_owner(db, make_user):
    alice, bob = make_user("alice"), make_user("bob")
    ledger = NotificationLedger(db)
    note = ledger.append(alice.id, "missed_call", "Missed call", "Bob called")

    with pytest.raises(NotFoundError):
        ledger.mark_read(note.id, user_id=bob.id)

    assert ledger.mark_read(note.id, user_id=alice.id).is_read is True
    assert ledger.mark_read(note.id).is_read is True


def test_mark_all_read(db, make_user):
    alice, bob = make_user("alice"), make_user("bob")
    ledger = NotificationLedger(db)
    for i in range(3):
        ledger.append(alice.id, "system", f"n{i}", "body")
    ledger.append(bob.id, "system", "other", "body")

    assert ledger.mark_all_read(alice.id) == 3
    assert ledger.mark_all_read(alice.id) == 0
    assert ledger.list_for_user(bob.id)[0].is_read is False


def test_exists_filters_on_title_prefix(db, make_user):
    alice = make_user("alice")
    ledger = NotificationLedger(db)
    ledger.append(alice.id, "system", "Meeting Starting Soon ⏳", "soon", related_id="12")

    assert ledger.exists(alice.id, "system", "12", "Meeting Starting Soon")
    assert not ledger.exists(alice.id, "system", "13", "Meeting Starting Soon")
    assert not ledger.exists(alice.id, "match", "12")
