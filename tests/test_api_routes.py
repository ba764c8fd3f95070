import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db_service.base import Base
from db_service.session import get_db
from main import create_app
from token_service.api.rate_limit import auth_rate_limit
from user_service.core.security import create_identity_token

API = "/api/v1"


@pytest.fixture
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    auth_rate_limit.reset()
    # Sans "with" : le lifespan (init_db sur l'engine global) n'est pas déclenché
    yield TestClient(app)
    engine.dispose()


def auth(subject, email, name="Tester"):
    token = create_identity_token(subject, {"email": email, "name": name})
    return {"Authorization": f"Bearer {token}"}


ALICE = auth("firebase-alice", "alice@example.com", "Alice")
BOB = auth("firebase-bob", "bob@example.com", "Bob")


def me(client, headers):
    response = client.get(f"{API}/users/me", headers=headers)
    assert response.status_code == 200
    return response.json()


# ============================================================================
# UTILISATEURS
# ============================================================================

def test_root_is_public(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_requests_without_token_are_rejected(client):
    assert client.get(f"{API}/users/me").status_code == 401
    bad = {"Authorization": "Bearer not-a-jwt"}
    assert client.get(f"{API}/users/me", headers=bad).status_code == 401


def test_me_resolves_identity_on_first_call(client):
    profile = me(client, ALICE)
    assert profile["username"] == "alice"
    assert profile["email"] == "alice@example.com"
    assert profile["avatar"].startswith("https://api.dicebear.com/9.x/adventurer/svg?seed=")
    assert me(client, ALICE)["id"] == profile["id"]


def test_username_endpoints(client):
    me(client, ALICE)
    me(client, BOB)

    check = client.get(f"{API}/users/check-username/ALICE", headers=BOB).json()
    assert check == {"username": "ALICE", "available": False}

    suggestions = client.get(f"{API}/users/suggestions/alice", headers=BOB).json()
    assert suggestions["suggestions"] == ["alice1", "alice2", "alice3"]

    found = client.get(f"{API}/users/search", params={"q": "ali"}, headers=BOB).json()
    assert [u["username"] for u in found] == ["alice"]
    assert "email" not in found[0]


def test_update_and_delete_me(client):
    me(client, BOB)
    alice = me(client, ALICE)

    response = client.put(f"{API}/users/me", json={"username": "bob"}, headers=ALICE)
    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"

    response = client.put(f"{API}/users/me", json={"bio": "hi"}, headers=ALICE)
    assert response.json()["bio"] == "hi"

    assert client.delete(f"{API}/users/me", headers=ALICE).json()["is_deleted"] is True
    assert client.get(f"{API}/users/me", headers=ALICE).status_code == 403
    assert client.get(f"{API}/users/{alice['id']}", headers=BOB).status_code == 404


# ============================================================================
# CONVERSATIONS ET MESSAGES
# ============================================================================

def test_conversation_flow(client):
    me(client, ALICE)
    bob = me(client, BOB)

    created = client.post(f"{API}/conversations", json={"participant_ids": [bob["id"]]}, headers=ALICE)
    assert created.status_code == 200
    conv = created.json()
    assert conv["is_group"] is False
    assert [p["username"] for p in conv["participants"]] == ["bob"]

    reused = client.post(f"{API}/conversations", json={"participant_ids": [bob["id"]]}, headers=ALICE)
    assert reused.json()["id"] == conv["id"]

    posted = client.post(
        f"{API}/conversations/{conv['id']}/messages", json={"content": "hello bob"}, headers=ALICE
    )
    assert posted.status_code == 200
    assert posted.json()["status"] == "delivered"

    listing = client.get(f"{API}/conversations", headers=BOB).json()
    assert listing[0]["unread_count"] == 1
    assert listing[0]["last_message"]["content"] == "hello bob"

    messages = client.get(f"{API}/conversations/{conv['id']}/messages", headers=BOB).json()
    assert "status" not in messages[0]

    read = client.post(f"{API}/conversations/{conv['id']}/read", headers=BOB).json()
    assert read == {"updated": 1}

    mine = client.get(f"{API}/conversations/{conv['id']}/messages", headers=ALICE).json()
    assert mine[0]["status"] == "seen"

    message_id = mine[0]["id"]
    pinned = client.patch(f"{API}/messages/{message_id}/pin", json={"pinned": True}, headers=BOB)
    assert pinned.json()["is_pinned"] is True
    reacted = client.post(f"{API}/messages/{message_id}/reactions", json={"emoji": "👍"}, headers=BOB)
    assert [r["emoji"] for r in reacted.json()["reactions"]] == ["👍"]


def test_messages_of_foreign_conversation_are_forbidden(client):
    me(client, ALICE)
    bob = me(client, BOB)
    carol_headers = auth("firebase-carol", "carol@example.com")
    conv = client.post(f"{API}/conversations", json={"participant_ids": [bob["id"]]}, headers=ALICE).json()

    response = client.get(f"{API}/conversations/{conv['id']}/messages", headers=carol_headers)
    assert response.status_code == 403
    assert response.json()["error_code"] == "ACCESS_DENIED"


# ============================================================================
# INVITATIONS
# ============================================================================

def test_invite_flow(client):
    alice = me(client, ALICE)
    me(client, BOB)

    invite = client.post(f"{API}/invites/generate", headers=ALICE).json()
    assert invite["uses"] == 0 and invite["max_uses"] == 1

    preview = client.get(f"{API}/invites/{invite['code']}")
    assert preview.status_code == 200
    assert preview.json()["creator"]["id"] == alice["id"]

    own = client.post(f"{API}/invites/{invite['code']}/accept", headers=ALICE)
    assert own.status_code == 400

    accepted = client.post(f"{API}/invites/{invite['code']}/accept", headers=BOB)
    assert accepted.status_code == 200
    conversation_id = accepted.json()["conversation_id"]

    exhausted = client.post(f"{API}/invites/{invite['code']}/accept", headers=BOB)
    assert exhausted.status_code == 409

    notes = client.get(f"{API}/notifications", headers=ALICE).json()
    assert notes[0]["type"] == "match"
    assert notes[0]["related_id"] == str(conversation_id)


def test_unknown_invite_is_404(client):
    me(client, BOB)
    missing = client.post(f"{API}/invites/cafebabe/accept", headers=BOB)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Invite not found or expired"
    assert client.get(f"{API}/invites/cafebabe").status_code == 404


# ============================================================================
# OTP
# ============================================================================

def test_otp_flow(client):
    me(client, ALICE)

    mismatch = client.post(f"{API}/auth/send-otp", json={"email": "other@example.com"}, headers=ALICE)
    assert mismatch.status_code == 403

    sent = client.post(f"{API}/auth/send-otp", headers=ALICE).json()
    code = sent["otp"]

    wrong = "000000" if code != "000000" else "111111"
    response = client.post(
        f"{API}/auth/verify-otp", json={"email": "alice@example.com", "otp": wrong}, headers=ALICE
    )
    assert response.status_code == 400
    assert response.json()["details"]["remaining_attempts"] == 4

    response = client.post(
        f"{API}/auth/verify-otp", json={"email": "alice@example.com", "otp": code}, headers=ALICE
    )
    assert response.json() == {"verified": True, "message": "Email verified successfully"}
    assert me(client, ALICE)["is_email_verified"] is True

    again = client.post(
        f"{API}/auth/verify-otp", json={"email": "alice@example.com", "otp": code}, headers=ALICE
    )
    assert again.status_code == 409


def test_otp_routes_are_rate_limited_per_caller(client):
    me(client, ALICE)
    me(client, BOB)

    statuses = []
    for _ in range(3):
        statuses.append(client.post(f"{API}/auth/resend-otp", headers=ALICE).status_code)
        statuses.append(
            client.post(
                f"{API}/auth/verify-otp", json={"email": "alice@example.com", "otp": "!!!!!!"}, headers=ALICE
            ).status_code
        )
    assert statuses == [200, 400, 200, 400, 200, 429]

    blocked = client.post(f"{API}/auth/send-otp", headers=ALICE)
    assert blocked.status_code == 429
    assert blocked.json()["error_code"] == "RATE_LIMITED"
    assert blocked.json()["details"]["retry_after"] >= 1

    assert client.post(f"{API}/auth/send-otp", headers=BOB).status_code == 200


# ============================================================================
# RÉUNIONS ET NOTIFICATIONS
# ============================================================================

def test_meeting_routes(client):
    bob = me(client, BOB)
    me(client, ALICE)

    created = client.post(
        f"{API}/meetings",
        json={"title": "Kickoff", "room_id": "kick-off", "participant_ids": [bob["id"]]},
        headers=ALICE,
    )
    assert created.status_code == 200
    meeting = created.json()
    assert meeting["settings"]["maxParticipants"] == 6

    validation = client.get(f"{API}/meetings/validate/kick-off").json()
    assert validation["exists"] is True
    assert client.get(f"{API}/meetings/validate/nope").json() == {"exists": False, "meeting": None}

    assert [m["id"] for m in client.get(f"{API}/meetings", headers=BOB).json()] == [meeting["id"]]

    bad = client.patch(f"{API}/meetings/{meeting['id']}/status", json={"status": "paused"}, headers=ALICE)
    assert bad.status_code == 400
    ended = client.patch(f"{API}/meetings/{meeting['id']}/status", json={"status": "ended"}, headers=ALICE)
    assert ended.json()["end_time"] is not None

    removed = client.delete(f"{API}/meetings/{meeting['id']}/participants/{bob['id']}", headers=ALICE)
    assert removed.json()["participant_ids"] == []

    recording = client.post(
        f"{API}/meetings/{meeting['id']}/recordings",
        json={"url": "https://cdn.example.com/r.webm", "duration": 12},
        headers=ALICE,
    )
    assert recording.json()["duration"] == 12


def test_meeting_mutations_by_outsider_are_forbidden(client):
    me(client, ALICE)
    carol_headers = auth("firebase-carol", "carol@example.com")
    meeting = client.post(f"{API}/meetings", json={"title": "Board"}, headers=ALICE).json()

    response = client.patch(
        f"{API}/meetings/{meeting['id']}/status", json={"status": "ended"}, headers=carol_headers
    )
    assert response.status_code == 403
    assert response.json()["error_code"] == "ACCESS_DENIED"
    assert client.get(f"{API}/meetings/{meeting['id']}", headers=ALICE).json()["status"] == "scheduled"


def test_notification_routes(client):
    me(client, ALICE)
    me(client, BOB)
    client.post(f"{API}/invites/generate", headers=ALICE)
    code = client.post(f"{API}/invites/generate", json={"max_uses": 2}, headers=ALICE).json()["code"]
    client.post(f"{API}/invites/{code}/accept", headers=BOB)

    [note] = client.get(f"{API}/notifications", headers=ALICE).json()
    assert client.put(f"{API}/notifications/{note['id']}/read", headers=BOB).status_code == 404
    assert client.put(f"{API}/notifications/{note['id']}/read", headers=ALICE).json()["is_read"] is True
    assert client.put(f"{API}/notifications/read-all", headers=ALICE).json() == {"updated": 0}
