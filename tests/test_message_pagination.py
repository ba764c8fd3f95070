from datetime import datetime, timezone

from conversation_service.service import ConversationStore


def test_cursor_pagination_walks_history_backwards(db, make_user, clock):
    alice, bob = make_user("alice"), make_user("bob")
    store = ConversationStore(db, clock=clock)
    conv = store.create([alice.id, bob.id], created_by=alice.id)

    for i in range(1, 11):
        sender = alice if i % 2 else bob
        store.post_message(conv.id, sender.id, f"m{i}")

    first_page = store.list_messages(conv.id, alice.id, limit=4)
    assert [m.content for m in first_page] == ["m7", "m8", "m9", "m10"]

    second_page = store.list_messages(conv.id, alice.id, limit=4, before=first_page[0].created_at)
    assert [m.content for m in second_page] == ["m3", "m4", "m5", "m6"]

    third_page = store.list_messages(
        conv.id, alice.id, limit=4, before=second_page[0].created_at, before_id=second_page[0].id
    )
    assert [m.content for m in third_page] == ["m1", "m2"]

    assert store.list_messages(conv.id, alice.id, limit=4, before=third_page[0].created_at) == []


def test_equal_timestamps_are_paged_by_id(db, make_user):
    alice, bob = make_user("alice"), make_user("bob")
    frozen = datetime(2026, 3, 1, tzinfo=timezone.utc)

    store = ConversationStore(db, clock=lambda: frozen)
    conv = store.create([alice.id, bob.id], created_by=alice.id)
    for i in range(1, 6):
        store.post_message(conv.id, alice.id, f"same{i}")

    seen = []
    page = store.list_messages(conv.id, bob.id, limit=2)
    while page:
        seen = [m.content for m in page] + seen
        page = store.list_messages(
            conv.id, bob.id, limit=2, before=page[0].created_at, before_id=page[0].id
        )

    assert seen == ["same1", "same2", "same3", "same4", "same5"]


def test_cursor_pages_do_not_repeat_messages(db, make_user, clock):
    alice, bob = make_user("alice"), make_user("bob")
    store = ConversationStore(db, clock=clock)
    conv = store.create([alice.id, bob.id], created_by=alice.id)
    for i in range(1, 4):
        store.post_message(conv.id, alice.id, f"m{i}")

    first_page = store.list_messages(conv.id, bob.id, limit=2)
    second_page = store.list_messages(
        conv.id, bob.id, limit=2, before=first_page[0].created_at, before_id=first_page[0].id
    )
    assert [m.content for m in second_page] == ["m1"]
