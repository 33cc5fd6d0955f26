"""
samta/tests/test_api_interests.py
HTTP flow: registration, interests, chat and entitlements over the API.
"""

from fastapi.testclient import TestClient

from samta.main import app

client = TestClient(app)


def _register(user_id, **profile):
    resp = client.post("/v1/users", json={"user_id": user_id, "profile": profile})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _as(user_id):
    return {"X-User-Id": user_id}


def test_register_and_fetch_me():
    created = _register("asha", name="Asha", city="Pune")
    assert created["subscription"]["plan"] == "Free"
    assert created["subscription"]["interests_sent_count"] == 0
    assert created["role"] == "user"

    resp = client.get("/v1/users/me", headers=_as("asha"))
    assert resp.status_code == 200
    assert resp.json()["data"]["profile"]["name"] == "Asha"


def test_public_profile_hides_email():
    _register("asha", name="Asha", email="asha@example.com")
    _register("ravi")

    resp = client.get("/v1/users/asha", headers=_as("ravi"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["display_name"] == "Asha"
    assert "email" not in data["profile"]


def test_missing_user_header_is_401():
    resp = client.get("/v1/users/me")
    assert resp.status_code == 401


def test_interest_accept_unlocks_chat():
    _register("u1")
    _register("u2")

    proposed = client.post("/v1/interests", headers=_as("u1"), json={"receiver_id": "u2"})
    assert proposed.status_code == 201
    interest = proposed.json()["data"]
    assert interest["status"] == "pending"
    assert interest["direction"] == "sent"
    assert interest["chat_unlocked"] is False

    locked = client.get("/v1/conversations/u1/eligibility", headers=_as("u2"))
    assert locked.json()["data"]["chat_unlocked"] is False

    accepted = client.post(f"/v1/interests/{interest['interest_id']}/accept", headers=_as("u2"))
    assert accepted.status_code == 200
    assert accepted.json()["data"]["status"] == "accepted"
    assert accepted.json()["data"]["direction"] == "received"

    sent = client.post("/v1/conversations/u2/messages", headers=_as("u1"), json={"text": " Hello "})
    assert sent.status_code == 201
    assert sent.json()["data"]["text"] == "Hello"
    assert sent.json()["data"]["conversation_id"] == interest["interest_id"]

    thread = client.get("/v1/conversations/u1", headers=_as("u2")).json()
    assert thread["chat_unlocked"] is True
    assert [m["text"] for m in thread["data"]] == ["Hello"]

    convs = client.get("/v1/conversations", headers=_as("u2")).json()
    assert convs["count"] == 1
    assert convs["data"][0]["counterpart_id"] == "u1"


def test_list_interests_by_role():
    _register("u1")
    _register("u2")
    _register("u3")
    client.post("/v1/interests", headers=_as("u1"), json={"receiver_id": "u2"})
    client.post("/v1/interests", headers=_as("u3"), json={"receiver_id": "u1"})

    received = client.get("/v1/interests", headers=_as("u1"), params={"role": "receiver"}).json()
    assert received["count"] == 1
    assert received["data"][0]["counterpart_id"] == "u3"

    every = client.get("/v1/interests", headers=_as("u1")).json()
    assert every["count"] == 2

    pending = client.get("/v1/interests", headers=_as("u1"), params={"status": "accepted"}).json()
    assert pending["count"] == 0


def test_interest_with_other_member():
    _register("u1")
    _register("u2")
    assert client.get("/v1/interests/with/u2", headers=_as("u1")).json()["data"] is None

    client.post("/v1/interests", headers=_as("u2"), json={"receiver_id": "u1"})
    data = client.get("/v1/interests/with/u2", headers=_as("u1")).json()["data"]
    assert data["sender_id"] == "u2"
    assert data["direction"] == "received"


def test_quota_then_upgrade():
    for uid in ("u1", "u2", "u3", "u4"):
        _register(uid)
    client.post("/v1/interests", headers=_as("u1"), json={"receiver_id": "u2"})
    client.post("/v1/interests", headers=_as("u1"), json={"receiver_id": "u3"})

    summary = client.get("/v1/users/me/entitlements", headers=_as("u1")).json()["data"]
    assert summary["interests_remaining"] == 0
    assert summary["can_send_interest"] is False

    blocked = client.post("/v1/interests", headers=_as("u1"), json={"receiver_id": "u4"})
    assert blocked.status_code == 403
    assert blocked.json()["error"]["code"] == "interest_quota_exceeded"

    upgraded = client.post("/v1/users/me/plan", headers=_as("u1"), json={"plan": "Gold"})
    assert upgraded.status_code == 200
    assert upgraded.json()["plan"]["price_inr"] == 399
    assert upgraded.json()["data"]["subscription"]["expiry_date"] is not None

    summary = client.get("/v1/users/me/entitlements", headers=_as("u1")).json()["data"]
    assert summary["interests_remaining"] == "unlimited"
    assert client.post("/v1/interests", headers=_as("u1"), json={"receiver_id": "u4"}).status_code == 201


def test_free_plan_cannot_be_rebought_to_reset_quota():
    for uid in ("u1", "u2", "u3", "u4"):
        _register(uid)
    client.post("/v1/interests", headers=_as("u1"), json={"receiver_id": "u2"})
    client.post("/v1/interests", headers=_as("u1"), json={"receiver_id": "u3"})

    resp = client.post("/v1/users/me/plan", headers=_as("u1"), json={"plan": "Free"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"

    blocked = client.post("/v1/interests", headers=_as("u1"), json={"receiver_id": "u4"})
    assert blocked.status_code == 403
    assert blocked.json()["error"]["code"] == "interest_quota_exceeded"


def test_unknown_plan_rejected_by_schema():
    _register("u1")
    resp = client.post("/v1/users/me/plan", headers=_as("u1"), json={"plan": "Diamond"})
    assert resp.status_code == 422


def test_healthz():
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/readyz").json()["store"] == "memory"
