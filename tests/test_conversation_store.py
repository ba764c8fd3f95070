import pytest

from core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from conversation_service.service import ConversationStore


@pytest.fixture
def trio(make_user):
    return make_user("alice"), make_user("bob"), make_user("carol")


def test_group_flag_derived_from_participant_count(db, trio, clock):
    alice, bob, carol = trio
    store = ConversationStore(db, clock=clock)

    direct = store.create([alice.id, bob.id], created_by=alice.id)
    group = store.create([alice.id, bob.id, carol.id], created_by=alice.id, name="Team")

    assert direct.is_group is False
    assert group.is_group is True
    assert group.participant_ids == [alice.id, bob.id, carol.id]


def test_create_dedupes_and_validates(db, trio, clock):
    alice, bob, _ = trio
    store = ConversationStore(db, clock=clock)

    conv = store.create([alice.id, bob.id, alice.id, bob.id], created_by=alice.id)
    assert conv.participant_ids == [alice.id, bob.id]
    assert conv.is_group is False

    with pytest.raises(ValidationError):
        store.create([], created_by=alice.id)
    with pytest.raises(ValidationError):
        store.create([bob.id], created_by=alice.id)
    with pytest.raises(ValidationError):
        store.create([alice.id, 424242], created_by=alice.id)


def test_get_or_create_direct_reuses_pair(db, trio, clock):
    alice, bob, carol = trio
    store = ConversationStore(db, clock=clock)
    store.create([alice.id, bob.id, carol.id], created_by=alice.id)

    first = store.get_or_create_direct(alice.id, bob.id)
    second = store.get_or_create_direct(bob.id, alice.id)

    assert first.id == second.id
    assert first.is_group is False


def test_unread_count_and_mark_read(db, trio, clock):
    alice, bob, _ = trio
    store = ConversationStore(db, clock=clock)
    conv = store.create([alice.id, bob.id], created_by=alice.id)

    store.post_message(conv.id, bob.id, "hi")
    store.post_message(conv.id, bob.id, "are you there?")
    store.post_message(conv.id, alice.id, "yes")

    [summary] = store.list_for_user(alice.id)
    assert summary.unread_count == 2
    [bob_view] = store.list_for_user(bob.id)
    assert bob_view.unread_count == 1

    assert store.mark_read(conv.id, alice.id) == 2
    [summary] = store.list_for_user(alice.id)
    assert summary.unread_count == 0


def test_summary_embeds_other_participants_and_last_message(db, trio, clock):
    alice, bob, carol = trio
    store = ConversationStore(db, clock=clock)
    conv = store.create([alice.id, bob.id, carol.id], created_by=alice.id)
    last = store.post_message(conv.id, carol.id, "  latest  ")

    [summary] = store.list_for_user(alice.id)
    assert [p.id for p in summary.participants] == [bob.id, carol.id]
    assert all(p.online is None for p in summary.participants)
    assert summary.last_message.id == last.id
    assert summary.last_message.content == "latest"
    assert summary.last_message.sender_username == "carol"


def test_last_message_pointer_and_ordering(db, trio, clock):
    alice, bob, carol = trio
    store = ConversationStore(db, clock=clock)
    older = store.create([alice.id, bob.id], created_by=alice.id)
    newer = store.create([alice.id, carol.id], created_by=alice.id)

    assert [s.id for s in store.list_for_user(alice.id)] == [newer.id, older.id]

    message = store.post_message(older.id, bob.id, "bump")
    db.refresh(older)
    assert older.last_message_id == message.id
    assert [s.id for s in store.list_for_user(alice.id)] == [older.id, newer.id]


def test_deleted_participant_uses_placeholder(db, trio, clock):
    alice, bob, _ = trio
    store = ConversationStore(db, clock=clock)
    conv = store.create([alice.id, bob.id], created_by=alice.id)
    bob.is_deleted = True
    db.commit()

    [summary] = store.list_for_user(alice.id)
    assert summary.participants[0].model_dump(exclude_none=True) == {
        "id": bob.id,
        "name": "Unknown",
        "username": "unknown",
    }


def test_post_message_validation(db, trio, clock):
    alice, bob, carol = trio
    store = ConversationStore(db, clock=clock)
    conv = store.create([alice.id, bob.id], created_by=alice.id)

    with pytest.raises(ValidationError):
        store.post_message(conv.id, alice.id, "   ")
    with pytest.raises(ValidationError):
        store.post_message(conv.id, alice.id, "x", kind="sticker")
    with pytest.raises(NotFoundError):
        store.post_message(9999, alice.id, "x")
    with pytest.raises(AccessDeniedError):
        store.post_message(conv.id, carol.id, "intruder")


def test_status_only_on_own_messages(db, trio, clock):
    alice, bob, _ = trio
    store = ConversationStore(db, clock=clock)
    conv = store.create([alice.id, bob.id], created_by=alice.id)
    store.post_message(conv.id, alice.id, "mine")
    store.post_message(conv.id, bob.id, "theirs")

    views = store.list_messages(conv.id, alice.id)
    mine, theirs = views
    assert mine.status == "delivered"
    assert "status" not in theirs.model_dump()

    store.mark_read(conv.id, bob.id)
    mine, _ = store.list_messages(conv.id, alice.id)
    assert mine.status == "seen"
    assert mine.model_dump()["status"] == "seen"


def test_list_messages_requires_participant(db, trio, clock):
    alice, bob, carol = trio
    store = ConversationStore(db, clock=clock)
    conv = store.create([alice.id, bob.id], created_by=alice.id)

    with pytest.raises(AccessDeniedError):
        store.list_messages(conv.id, carol.id)
    with pytest.raises(NotFoundError):
        store.list_messages(12345, alice.id)


def test_pin_and_reactions_accumulate(db, trio, clock):
    alice, bob, _ = trio
    store = ConversationStore(db, clock=clock)
    conv = store.create([alice.id, bob.id], created_by=alice.id)
    message = store.post_message(conv.id, alice.id, "hello")

    assert store.set_pinned(message.id, True).is_pinned is True
    assert store.set_pinned(message.id, False).is_pinned is False

    store.react(message.id, bob.id, "👍")
    store.react(message.id, bob.id, "👍")
    store.react(message.id, alice.id, "🎉")

    view = store.message_view(store.set_pinned(message.id, True), bob.id)
    assert [(r.user_id, r.emoji) for r in view.reactions] == [
        (bob.id, "👍"),
        (bob.id, "👍"),
        (alice.id, "🎉"),
    ]
    assert view.is_pinned is True

    with pytest.raises(NotFoundError):
        store.react(999, bob.id, "👍")
