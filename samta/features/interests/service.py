"""
samta/features/interests/service.py

Interest lifecycle: propose, accept/reject, lookups.

State machine:

    [none] --propose--> [pending] --accept--> [accepted]  (terminal)
                            |
                            +------reject--> [rejected]  (terminal)

At most one interest exists per unordered pair, in any status, forever: a
rejected pair cannot be proposed again.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union
from uuid import uuid4

from samta.core.errors import (
    AccountSuspendedError,
    AdminNotAParticipantError,
    AppError,
    InterestAlreadyExistsError,
    InterestNotFoundError,
    InterestNotPendingError,
    InterestQuotaExceededError,
    NotAuthorizedToResolveError,
    SelfInterestForbiddenError,
    UserNotFoundError,
    ValidationError,
)
from samta.core.logging import log_event
from samta.features.analytics.service import INTEREST_SENT, INTEREST_STATUS_UPDATE, track
from samta.features.entitlements.service import EntitlementService
from samta.features.store.base import MatchStore
from samta.models.interest import Interest, InterestRole, InterestStatus
from samta.models.user import UserStatus

logger = logging.getLogger(__name__)

_ROLES = ("sender", "receiver", "either")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _deny(exc: AppError, **fields) -> AppError:
    """Log a refused transition and hand the error back for raising."""
    log_event("warning", "interest.denied", error_code=exc.code, **fields)
    return exc


class InterestService:
    def __init__(
        self,
        store: MatchStore,
        entitlements: EntitlementService,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.entitlements = entitlements
        self.clock = clock or _utcnow

    def propose(self, sender_id: str, receiver_id: str) -> Interest:
        """
        Send an interest from sender to receiver.

        Preconditions, checked in order:
            1. sender != receiver              (SelfInterestForbiddenError)
            2. both users exist                (UserNotFoundError)
            3. neither user is an admin        (AdminNotAParticipantError)
            4. sender account is active        (AccountSuspendedError)
            5. no interest for the pair yet    (InterestAlreadyExistsError)
            6. sender has quota left           (InterestQuotaExceededError)

        The new record and the sender's counter increment commit together.
        """
        if sender_id == receiver_id:
            raise _deny(
                SelfInterestForbiddenError("Cannot send interest to yourself"),
                user_id=sender_id,
            )

        with self.store.transaction() as tx:
            sender = tx.get_user(sender_id, for_update=True)
            if sender is None:
                raise _deny(UserNotFoundError(sender_id), user_id=sender_id, target_user_id=receiver_id)
            receiver = tx.get_user(receiver_id)
            if receiver is None:
                raise _deny(UserNotFoundError(receiver_id), user_id=sender_id, target_user_id=receiver_id)

            if self.entitlements.is_admin(sender):
                raise _deny(
                    AdminNotAParticipantError("Admins cannot send interests"),
                    user_id=sender_id,
                    target_user_id=receiver_id,
                )
            if self.entitlements.is_admin(receiver):
                raise _deny(
                    AdminNotAParticipantError("Admins cannot receive interests"),
                    user_id=sender_id,
                    target_user_id=receiver_id,
                )

            if sender.status != UserStatus.ACTIVE:
                raise _deny(
                    AccountSuspendedError(f"Account is {sender.status.value}"),
                    user_id=sender_id,
                    target_user_id=receiver_id,
                )

            existing = tx.find_interest_between(sender_id, receiver_id)
            if existing is not None:
                raise _deny(
                    InterestAlreadyExistsError("Interest already exists between these users"),
                    user_id=sender_id,
                    target_user_id=receiver_id,
                    interest_id=existing.interest_id,
                )

            now = self.clock()
            if not self.entitlements.can_send_interest(sender, now):
                raise _deny(
                    InterestQuotaExceededError(
                        f"Free plan allows {self.entitlements.free_tier_cap} interests; upgrade to send more"
                    ),
                    user_id=sender_id,
                    target_user_id=receiver_id,
                )

            interest = Interest(
                interest_id=str(uuid4()),
                sender_id=sender_id,
                receiver_id=receiver_id,
                status=InterestStatus.PENDING,
                created_at=now,
            )
            # Unique pair constraint: a racing duplicate fails here
            tx.add_interest(interest)
            self.entitlements.record_interest_sent(sender)

        track(INTEREST_SENT, sender_id, {"targetId": receiver_id}, now=interest.created_at)
        log_event(
            "info",
            "interest.proposed",
            user_id=sender_id,
            target_user_id=receiver_id,
            interest_id=interest.interest_id,
            event_type=INTEREST_SENT,
        )
        return interest

    def resolve(
        self,
        interest_id: str,
        acting_user_id: str,
        decision: Union[InterestStatus, str],
    ) -> Interest:
        """
        Accept or reject a pending interest.

        Checks, in order: the interest exists (InterestNotFoundError), it is
        still pending (InterestNotPendingError), and the acting user is its
        receiver (NotAuthorizedToResolveError).
        """
        try:
            decision = InterestStatus(decision)
        except ValueError:
            raise ValidationError(f"Unknown decision: {decision}")
        if decision == InterestStatus.PENDING:
            raise ValidationError("Decision must be accepted or rejected")

        with self.store.transaction() as tx:
            interest = tx.get_interest(interest_id)
            if interest is None:
                raise _deny(InterestNotFoundError(interest_id), user_id=acting_user_id, interest_id=interest_id)
            if interest.status.is_terminal:
                raise _deny(
                    InterestNotPendingError(f"Interest is already {interest.status.value}"),
                    user_id=acting_user_id,
                    interest_id=interest_id,
                )
            if acting_user_id != interest.receiver_id:
                raise _deny(
                    NotAuthorizedToResolveError("Only the receiver can respond to this interest"),
                    user_id=acting_user_id,
                    interest_id=interest_id,
                )

            resolved = interest.model_copy(update={"status": decision, "resolved_at": self.clock()})
            tx.save_interest(resolved)

        track(
            INTEREST_STATUS_UPDATE,
            acting_user_id,
            {"interestId": interest_id, "status": decision.value},
            now=resolved.resolved_at,
        )
        log_event(
            "info",
            "interest.resolved",
            user_id=acting_user_id,
            target_user_id=resolved.sender_id,
            interest_id=interest_id,
            event_type=INTEREST_STATUS_UPDATE,
            extra={"decision": decision.value},
        )
        return resolved

    def accept(self, interest_id: str, acting_user_id: str) -> Interest:
        return self.resolve(interest_id, acting_user_id, InterestStatus.ACCEPTED)

    def reject(self, interest_id: str, acting_user_id: str) -> Interest:
        return self.resolve(interest_id, acting_user_id, InterestStatus.REJECTED)

    def get(self, interest_id: str) -> Interest:
        interest = self.store.get_interest(interest_id)
        if interest is None:
            raise InterestNotFoundError(interest_id)
        return interest

    def find_between(self, user_a: str, user_b: str) -> Optional[Interest]:
        """The interest for the unordered pair, whichever direction it was sent."""
        return self.store.find_interest_between(user_a, user_b)

    def list_for(
        self,
        user_id: str,
        role: InterestRole = "either",
        status: Optional[Union[InterestStatus, str]] = None,
        *,
        descending: bool = False,
    ) -> List[Interest]:
        """
        Interests involving `user_id`, oldest first unless `descending`.

        role: "sender" (sent by user), "receiver" (received), or "either".
        Each call reads the store afresh.
        """
        if role not in _ROLES:
            raise ValidationError(f"role must be one of {', '.join(_ROLES)}")
        try:
            wanted = InterestStatus(status) if status is not None else None
        except ValueError:
            raise ValidationError(f"Unknown status filter: {status}")

        items = self.store.list_interests(user_id)
        if role == "sender":
            items = [i for i in items if i.sender_id == user_id]
        elif role == "receiver":
            items = [i for i in items if i.receiver_id == user_id]
        if wanted is not None:
            items = [i for i in items if i.status == wanted]
        if descending:
            items = list(reversed(items))
        return items
