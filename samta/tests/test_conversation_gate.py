"""
samta/tests/test_conversation_gate.py
Chat gating on accepted interests, message ordering and conversation lists.
"""

import pytest

from samta.core.errors import (
    AccountSuspendedError,
    ConversationNotUnlockedError,
    EmptyMessageError,
    UserNotFoundError,
)
from samta.features.analytics.service import MESSAGE_SENT, get_events
from samta.models.user import UserStatus


@pytest.fixture
def matched(services):
    """u1 and u2 with an accepted interest; u3 unrelated."""
    for uid in ("u1", "u2", "u3"):
        services.users.register_user(uid)
    interest = services.interests.propose("u1", "u2")
    services.interests.accept(interest.interest_id, "u2")
    return interest


def test_not_eligible_without_interest(services):
    services.users.register_user("u1")
    services.users.register_user("u2")
    assert services.conversations.is_eligible("u1", "u2") is False


def test_not_eligible_while_pending(services):
    services.users.register_user("u1")
    services.users.register_user("u2")
    services.interests.propose("u1", "u2")
    assert services.conversations.is_eligible("u1", "u2") is False
    with pytest.raises(ConversationNotUnlockedError):
        services.conversations.send("u1", "u2", "hi")


def test_eligible_both_directions_after_accept(services, matched):
    assert services.conversations.is_eligible("u1", "u2") is True
    assert services.conversations.is_eligible("u2", "u1") is True


def test_both_members_can_send(services, matched):
    first = services.conversations.send("u1", "u2", "Hello")
    second = services.conversations.send("u2", "u1", "Namaste")

    assert first.conversation_id == matched.interest_id
    assert second.conversation_id == matched.interest_id
    assert [m.text for m in services.conversations.get_conversation("u2", "u1")] == ["Hello", "Namaste"]


def test_message_text_is_trimmed(services, matched):
    message = services.conversations.send("u1", "u2", "  Hello there \n")
    assert message.text == "Hello there"


@pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
def test_empty_message_rejected(services, matched, text):
    with pytest.raises(EmptyMessageError):
        services.conversations.send("u1", "u2", text)
    assert services.store.list_messages() == []


def test_empty_check_precedes_unlock_check(services):
    services.users.register_user("u1")
    services.users.register_user("u3")
    with pytest.raises(EmptyMessageError):
        services.conversations.send("u1", "u3", " ")


def test_unknown_receiver(services, matched):
    with pytest.raises(UserNotFoundError):
        services.conversations.send("u1", "ghost", "hi")


def test_unrelated_pair_locked(services, matched):
    with pytest.raises(ConversationNotUnlockedError):
        services.conversations.send("u1", "u3", "hi")
    assert services.conversations.get_conversation("u1", "u3") == []


def test_rejected_pair_stays_locked(services):
    services.users.register_user("u1")
    services.users.register_user("u2")
    interest = services.interests.propose("u1", "u2")
    services.interests.reject(interest.interest_id, "u2")

    with pytest.raises(ConversationNotUnlockedError):
        services.conversations.send("u2", "u1", "sorry")
    assert services.store.list_messages() == []


def test_suspended_sender_cannot_chat(services, matched):
    services.users.create_admin("root")
    services.admin.set_user_status("root", "u1", UserStatus.SUSPENDED)
    with pytest.raises(AccountSuspendedError):
        services.conversations.send("u1", "u2", "hi")


def test_conversation_is_ordered_and_scoped_to_pair(services, matched):
    interest = services.interests.propose("u3", "u1")
    services.interests.accept(interest.interest_id, "u1")

    services.conversations.send("u1", "u2", "one")
    services.conversations.send("u3", "u1", "other pair")
    services.conversations.send("u2", "u1", "two")
    services.conversations.send("u1", "u2", "three")

    thread = services.conversations.get_conversation("u1", "u2")
    assert [m.text for m in thread] == ["one", "two", "three"]
    assert all({m.sender_id, m.receiver_id} == {"u1", "u2"} for m in thread)
    timestamps = [m.created_at for m in thread]
    assert timestamps == sorted(timestamps)


def test_send_tracks_message_event(services, matched):
    services.conversations.send("u1", "u2", "hello there friend")
    events = get_events(MESSAGE_SENT, user_id="u1")
    assert events[0].properties == {"receiverId": "u2", "wordCount": 3}


def test_list_conversations_most_recent_first(services, matched):
    interest = services.interests.propose("u3", "u1")
    services.interests.accept(interest.interest_id, "u1")
    services.conversations.send("u1", "u2", "older")
    services.conversations.send("u3", "u1", "newer")

    summaries = services.conversations.list_conversations("u1")
    assert [s.counterpart_id for s in summaries] == ["u3", "u2"]
    assert summaries[0].last_message.text == "newer"
    assert summaries[1].message_count == 1


def test_list_conversations_skips_locked_pairs(services, matched):
    services.interests.propose("u3", "u2")
    assert [s.counterpart_id for s in services.conversations.list_conversations("u2")] == ["u1"]
    assert services.conversations.list_conversations("u3") == []
