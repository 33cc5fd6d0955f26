"""
samta/features/conversations/service.py

Conversation gate: chat between two members opens only once an interest
between them has been accepted. Eligibility is recomputed from the stored
interest on every call.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import uuid4

from samta.core.errors import (
    AccountSuspendedError,
    ConversationNotUnlockedError,
    EmptyMessageError,
    UserNotFoundError,
)
from samta.core.logging import log_event
from samta.features.analytics.service import MESSAGE_SENT, track
from samta.features.entitlements.service import EntitlementService
from samta.features.store.base import MatchStore
from samta.models.interest import Interest, InterestStatus
from samta.models.message import ConversationSummary, Message
from samta.models.user import UserStatus

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationService:
    def __init__(
        self,
        store: MatchStore,
        entitlements: EntitlementService,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.entitlements = entitlements
        self.clock = clock or _utcnow

    def _unlocking_interest(self, store: MatchStore, user_a: str, user_b: str) -> Optional[Interest]:
        interest = store.find_interest_between(user_a, user_b)
        if interest is not None and interest.status == InterestStatus.ACCEPTED:
            return interest
        return None

    def is_eligible(self, user_a: str, user_b: str) -> bool:
        """True iff the pair's interest exists and is accepted."""
        return self._unlocking_interest(self.store, user_a, user_b) is not None

    def send(self, sender_id: str, receiver_id: str, text: Optional[str]) -> Message:
        """
        Post a message from sender to receiver.

        Raises, in order of checking:
            EmptyMessageError: text is blank after trimming
            UserNotFoundError: receiver (or sender) does not exist
            AccountSuspendedError: sender account is not active
            ConversationNotUnlockedError: no accepted interest for the pair
        """
        body = (text or "").strip()
        if not body:
            raise EmptyMessageError("Message cannot be empty")

        with self.store.transaction() as tx:
            if tx.get_user(receiver_id) is None:
                raise UserNotFoundError(receiver_id)
            sender = tx.get_user(sender_id)
            if sender is None:
                raise UserNotFoundError(sender_id)
            if sender.status != UserStatus.ACTIVE:
                raise AccountSuspendedError(f"Account is {sender.status.value}")

            interest = self._unlocking_interest(tx, sender_id, receiver_id)
            if interest is None:
                log_event(
                    "warning",
                    "message.denied",
                    user_id=sender_id,
                    target_user_id=receiver_id,
                    error_code=ConversationNotUnlockedError.code,
                )
                raise ConversationNotUnlockedError(
                    "Chat is only available after interest is accepted"
                )

            message = Message(
                message_id=str(uuid4()),
                sender_id=sender_id,
                receiver_id=receiver_id,
                conversation_id=interest.interest_id,
                text=body,
                created_at=self.clock(),
            )
            tx.add_message(message)

        track(
            MESSAGE_SENT,
            sender_id,
            {"receiverId": receiver_id, "wordCount": len(body.split())},
            now=message.created_at,
        )
        log_event(
            "info",
            "message.sent",
            user_id=sender_id,
            target_user_id=receiver_id,
            interest_id=interest.interest_id,
            event_type=MESSAGE_SENT,
        )
        return message

    def get_conversation(self, user_a: str, user_b: str) -> List[Message]:
        """Messages exchanged by the pair, oldest first. Empty when none exist."""
        interest = self.store.find_interest_between(user_a, user_b)
        if interest is None:
            return []
        pair = {user_a, user_b}
        return [
            m for m in self.store.list_messages(interest.interest_id)
            if {m.sender_id, m.receiver_id} == pair
        ]

    def list_conversations(self, user_id: str) -> List[ConversationSummary]:
        """Unlocked conversations of a user, most recently active first."""
        summaries = []
        for interest in self.store.list_interests(user_id):
            if interest.status != InterestStatus.ACCEPTED:
                continue
            thread = self.store.list_messages(interest.interest_id)
            summaries.append(
                ConversationSummary(
                    conversation_id=interest.interest_id,
                    counterpart_id=interest.counterpart(user_id),
                    message_count=len(thread),
                    last_message=thread[-1] if thread else None,
                )
            )

        def last_activity(summary: ConversationSummary) -> datetime:
            if summary.last_message is not None:
                return summary.last_message.created_at
            return datetime.min.replace(tzinfo=timezone.utc)

        return sorted(summaries, key=last_activity, reverse=True)
