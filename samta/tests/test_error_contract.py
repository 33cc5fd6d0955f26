"""Tests for normalized error responses."""

import pytest
from fastapi.testclient import TestClient

from samta.core.errors import (
    ERROR_DESCRIPTIONS,
    AppError,
    ConversationNotUnlockedError,
    InterestQuotaExceededError,
    QuotaExceededError,
    UserNotFoundError,
    describe_error,
)
from samta.main import app

client = TestClient(app)


def _register(*user_ids):
    for uid in user_ids:
        assert client.post("/v1/users", json={"user_id": uid}).status_code == 201


def _assert_envelope(resp, status, code):
    assert resp.status_code == status
    body = resp.json()
    rid = resp.headers.get("x-request-id")
    assert rid
    assert body["error"]["code"] == code
    assert body["error"]["request_id"] == rid
    assert body["detail"] == body["error"]["message"]
    return body


def test_self_interest_is_400():
    _register("u1")
    resp = client.post("/v1/interests", headers={"X-User-Id": "u1"}, json={"receiver_id": "u1"})
    body = _assert_envelope(resp, 400, "self_interest_forbidden")
    assert body["error"]["kind"] == "validation"


def test_unknown_receiver_is_404():
    _register("u1")
    resp = client.post("/v1/interests", headers={"X-User-Id": "u1"}, json={"receiver_id": "ghost"})
    _assert_envelope(resp, 404, "user_not_found")


def test_duplicate_interest_is_409():
    _register("u1", "u2")
    client.post("/v1/interests", headers={"X-User-Id": "u1"}, json={"receiver_id": "u2"})
    resp = client.post("/v1/interests", headers={"X-User-Id": "u2"}, json={"receiver_id": "u1"})
    body = _assert_envelope(resp, 409, "interest_already_exists")
    assert body["error"]["kind"] == "state_conflict"


def test_sender_resolving_is_403():
    _register("u1", "u2")
    created = client.post("/v1/interests", headers={"X-User-Id": "u1"}, json={"receiver_id": "u2"})
    interest_id = created.json()["data"]["interest_id"]

    resp = client.post(f"/v1/interests/{interest_id}/accept", headers={"X-User-Id": "u1"})
    body = _assert_envelope(resp, 403, "not_authorized_to_resolve")
    assert body["error"]["kind"] == "authorization"


def test_resolving_twice_is_409():
    _register("u1", "u2")
    created = client.post("/v1/interests", headers={"X-User-Id": "u1"}, json={"receiver_id": "u2"})
    interest_id = created.json()["data"]["interest_id"]
    client.post(f"/v1/interests/{interest_id}/reject", headers={"X-User-Id": "u2"})

    resp = client.post(f"/v1/interests/{interest_id}/accept", headers={"X-User-Id": "u2"})
    _assert_envelope(resp, 409, "interest_not_pending")


def test_unknown_interest_is_404():
    _register("u2")
    resp = client.post("/v1/interests/nope/accept", headers={"X-User-Id": "u2"})
    _assert_envelope(resp, 404, "interest_not_found")


def test_locked_chat_is_409():
    _register("u1", "u2")
    resp = client.post("/v1/conversations/u2/messages", headers={"X-User-Id": "u1"}, json={"text": "hi"})
    _assert_envelope(resp, 409, "conversation_not_unlocked")


def test_blank_message_is_400():
    _register("u1", "u2")
    resp = client.post("/v1/conversations/u2/messages", headers={"X-User-Id": "u1"}, json={"text": "   "})
    _assert_envelope(resp, 400, "empty_message")


def test_invalid_status_filter_is_400():
    _register("u1")
    resp = client.get("/v1/interests", headers={"X-User-Id": "u1"}, params={"status": "maybe"})
    _assert_envelope(resp, 400, "validation_error")


def test_incoming_request_id_is_echoed():
    resp = client.get("/v1/users/me", headers={"X-User-Id": "ghost", "x-request-id": "req-123"})
    body = _assert_envelope(resp, 404, "user_not_found")
    assert body["error"]["request_id"] == "req-123"


def test_quota_error_is_an_entitlement_kind():
    exc = InterestQuotaExceededError("cap reached")
    assert isinstance(exc, QuotaExceededError)
    assert exc.status_code == 403
    assert exc.kind == "entitlement"


def test_every_code_has_a_distinct_description():
    assert len(set(ERROR_DESCRIPTIONS.values())) == len(ERROR_DESCRIPTIONS)
    assert describe_error(ConversationNotUnlockedError("x")) == ERROR_DESCRIPTIONS["conversation_not_unlocked"]
    assert describe_error(UserNotFoundError("u9")) == ERROR_DESCRIPTIONS["user_not_found"]


def test_describe_falls_back_to_message():
    assert describe_error(AppError("something odd", code="mystery")) == "something odd"


@pytest.mark.parametrize("path", ["/v1/users/me", "/v1/interests", "/v1/conversations"])
def test_routes_require_acting_user(path):
    resp = client.get(path)
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "http_error"
