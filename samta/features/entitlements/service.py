"""
samta/features/entitlements/service.py

Identity & entitlement resolver.

Handles:
- User resolution (UserNotFoundError when absent)
- The interest-sending quota, the one rule that varies by tier
- Plan upgrades and the entitlement summary shown on the dashboard
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from samta.core.config import settings
from samta.core.errors import UserNotFoundError, ValidationError
from samta.core.logging import log_event
from samta.features.analytics.service import PLAN_UPGRADED, track
from samta.features.store.base import MatchStore
from samta.models.plan import get_plan
from samta.models.user import EntitlementSummary, PlanType, Subscription, User, UserRole

logger = logging.getLogger(__name__)

UNLIMITED = "unlimited"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_now(now: Optional[datetime]) -> Optional[datetime]:
    if now is not None and now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


class EntitlementService:
    """
    Answers "who is this and what may they do" for the other services.

    `free_tier_cap` defaults to settings.FREE_TIER_INTEREST_CAP, read at call
    time so configuration changes apply without rebuilding the service.
    """

    def __init__(
        self,
        store: MatchStore,
        *,
        free_tier_cap: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self._free_tier_cap = free_tier_cap
        self.clock = clock or _utcnow

    @property
    def free_tier_cap(self) -> int:
        if self._free_tier_cap is not None:
            return self._free_tier_cap
        return settings.FREE_TIER_INTEREST_CAP

    def resolve_user(self, user_id: str) -> User:
        """Fetch a user or raise UserNotFoundError."""
        user = self.store.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def is_admin(self, user: User) -> bool:
        return user.role == UserRole.ADMIN

    def has_active_subscription(self, user: User, now: Optional[datetime] = None) -> bool:
        """Paid plan whose expiry lies in the future."""
        return user.subscription.is_active_paid(_normalize_now(now) or self.clock())

    def can_send_interest(self, user: User, now: Optional[datetime] = None) -> bool:
        """
        Pure quota predicate.

        Admins and active paid subscribers are unlimited. Everyone else
        (Free, or a paid plan past its expiry) may send while their count for
        the period is below the free-tier cap.
        """
        if self.is_admin(user):
            return True
        if self.has_active_subscription(user, now):
            return True
        return user.subscription.interests_sent_count < self.free_tier_cap

    def remaining_interests(self, user: User, now: Optional[datetime] = None) -> int | str:
        if self.is_admin(user) or self.has_active_subscription(user, now):
            return UNLIMITED
        return max(0, self.free_tier_cap - user.subscription.interests_sent_count)

    def record_interest_sent(self, user: User) -> User:
        """
        Increment the sender's counter and return the updated snapshot.

        Reads the stored row (locked where the store supports it) rather than
        trusting `user`, so two increments in a row never collapse into one.
        Callers must invoke this exactly once per created interest.
        """
        with self.store.transaction() as tx:
            current = tx.get_user(user.user_id, for_update=True)
            if current is None:
                raise UserNotFoundError(user.user_id)
            subscription = current.subscription.model_copy(
                update={"interests_sent_count": current.subscription.interests_sent_count + 1}
            )
            updated = current.model_copy(update={"subscription": subscription})
            tx.save_user(updated)

        logger.info(
            "[entitlements] interest recorded",
            extra={
                "user_id": user.user_id,
                "plan": updated.subscription.plan.value,
                "interests_sent_count": updated.subscription.interests_sent_count,
            },
        )
        return updated

    def upgrade_plan(self, user_id: str, plan: PlanType, now: Optional[datetime] = None) -> User:
        """
        Move a user onto `plan`, starting a new billing period.

        Paid plans expire `months` x 30 days from now. The interest counter
        resets because the period restarts. Free is the default tier and
        cannot be bought, so it raises ValidationError.
        """
        plan_def = get_plan(plan)
        if not plan_def.is_paid:
            raise ValidationError(f"{plan_def.plan_type.value} is not a purchasable plan")
        now = _normalize_now(now) or self.clock()
        with self.store.transaction() as tx:
            current = tx.get_user(user_id, for_update=True)
            if current is None:
                raise UserNotFoundError(user_id)
            subscription = Subscription(
                plan=plan_def.plan_type,
                expiry_date=now + plan_def.duration,
                interests_sent_count=0,
            )
            updated = current.model_copy(update={"subscription": subscription})
            tx.save_user(updated)

        track(
            PLAN_UPGRADED,
            user_id,
            {"plan": plan_def.plan_type.value, "amount": plan_def.price_inr, "months": plan_def.months},
            now=now,
        )
        log_event(
            "info",
            "plan.upgraded",
            user_id=user_id,
            event_type=PLAN_UPGRADED,
            extra={"plan": plan_def.plan_type.value, "expiry": subscription.expiry_date},
        )
        return updated

    def entitlement_summary(self, user: User, now: Optional[datetime] = None) -> EntitlementSummary:
        return EntitlementSummary(
            user_id=user.user_id,
            plan=user.subscription.plan,
            is_admin=self.is_admin(user),
            subscription_active=self.has_active_subscription(user, now),
            expiry_date=user.subscription.expiry_date,
            interests_sent=user.subscription.interests_sent_count,
            interests_remaining=self.remaining_interests(user, now),
            can_send_interest=self.can_send_interest(user, now),
        )
