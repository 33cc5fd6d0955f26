"""
samta/features/admin/service.py

Back-office operations: account status, profile moderation, platform stats
and the audit trail of admin actions.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict

from samta.core.config import settings
from samta.core.errors import PermissionError, UserNotFoundError, ValidationError
from samta.core.logging import log_event
from samta.features.analytics.service import count_events, INTEREST_SENT
from samta.features.entitlements.service import EntitlementService
from samta.features.store.base import MatchStore
from samta.models.audit import AuditLogEntry
from samta.models.interest import InterestStatus
from samta.models.plan import get_plan
from samta.models.user import ModerationStatus, User, UserStatus

logger = logging.getLogger(__name__)


class ConversionFunnel(BaseModel):
    model_config = ConfigDict(frozen=True)

    registrations: int
    engaged_users: int  # sent at least one interest
    paid_users: int


class PlatformStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_users: int
    active_users: int
    suspended_users: int
    banned_users: int
    paid_users: int
    verified_users: int
    pending_moderation: int
    total_interests: int
    accepted_interests: int
    interests_sent_events: int
    total_messages: int
    revenue_inr: int
    funnel: ConversionFunnel
    computed_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdminService:
    def __init__(
        self,
        store: MatchStore,
        entitlements: EntitlementService,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.entitlements = entitlements
        self.clock = clock or _utcnow

    def _require_admin(self, admin_id: str, key_verified: bool = False) -> Optional[User]:
        """Admin role check. Holders of a verified admin key skip the user lookup."""
        if key_verified:
            return None
        admin = self.entitlements.resolve_user(admin_id)
        if not self.entitlements.is_admin(admin):
            raise PermissionError("Admin role required")
        return admin

    def _audit(self, tx: MatchStore, admin_id: str, action: str, target_id: str, details: str) -> None:
        if not settings.AUDIT_ENABLED:
            return
        tx.add_audit_entry(
            AuditLogEntry(
                audit_id=str(uuid4()),
                admin_id=admin_id,
                action=action,
                target_id=target_id,
                details=details,
                created_at=self.clock(),
            )
        )

    def set_user_status(
        self,
        admin_id: str,
        user_id: str,
        status: Union[UserStatus, str],
        *,
        key_verified: bool = False,
    ) -> User:
        """Activate, suspend or ban a member. Admins cannot change their own status."""
        try:
            status = UserStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown user status: {status}")
        self._require_admin(admin_id, key_verified)
        if admin_id == user_id:
            raise PermissionError("Admins cannot change their own status")

        with self.store.transaction() as tx:
            user = tx.get_user(user_id, for_update=True)
            if user is None:
                raise UserNotFoundError(user_id)
            previous = user.status
            updated = user.model_copy(update={"status": status})
            tx.save_user(updated)
            self._audit(tx, admin_id, "user_status_changed", user_id, f"{previous.value} -> {status.value}")

        log_event(
            "info",
            "admin.user_status_changed",
            user_id=admin_id,
            target_user_id=user_id,
            extra={"from": previous.value, "to": status.value},
        )
        return updated

    def set_moderation_status(
        self,
        admin_id: str,
        user_id: str,
        status: Union[ModerationStatus, str],
        *,
        key_verified: bool = False,
    ) -> User:
        try:
            status = ModerationStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown moderation status: {status}")
        self._require_admin(admin_id, key_verified)

        with self.store.transaction() as tx:
            user = tx.get_user(user_id, for_update=True)
            if user is None:
                raise UserNotFoundError(user_id)
            updated = user.model_copy(update={"moderation_status": status})
            tx.save_user(updated)
            self._audit(tx, admin_id, "profile_moderated", user_id, status.value)

        log_event(
            "info",
            "admin.profile_moderated",
            user_id=admin_id,
            target_user_id=user_id,
            extra={"moderation_status": status.value},
        )
        return updated

    def list_users(
        self,
        admin_id: str,
        status: Optional[Union[UserStatus, str]] = None,
        query: Optional[str] = None,
        *,
        key_verified: bool = False,
    ) -> List[User]:
        """Members filtered by status and a case-insensitive id/name/email search."""
        self._require_admin(admin_id, key_verified)
        try:
            wanted = UserStatus(status) if status else None
        except ValueError:
            raise ValidationError(f"Unknown user status: {status}")
        needle = (query or "").strip().lower()

        result = []
        for user in self.store.list_users():
            if wanted is not None and user.status != wanted:
                continue
            if needle:
                haystack = " ".join(
                    filter(None, [user.user_id, user.profile.name, user.profile.email])
                ).lower()
                if needle not in haystack:
                    continue
            result.append(user)
        return result

    def platform_stats(
        self, admin_id: str, now: Optional[datetime] = None, *, key_verified: bool = False
    ) -> PlatformStats:
        self._require_admin(admin_id, key_verified)
        now = now or self.clock()

        members = [u for u in self.store.list_users() if not self.entitlements.is_admin(u)]
        interests = self.store.list_interests()
        by_status: Dict[UserStatus, int] = {s: 0 for s in UserStatus}
        for u in members:
            by_status[u.status] += 1

        paid = [u for u in members if self.entitlements.has_active_subscription(u, now)]
        engaged = {i.sender_id for i in interests}

        return PlatformStats(
            total_users=len(members),
            active_users=by_status[UserStatus.ACTIVE],
            suspended_users=by_status[UserStatus.SUSPENDED],
            banned_users=by_status[UserStatus.BANNED],
            paid_users=len(paid),
            verified_users=sum(1 for u in members if u.profile.is_verified),
            pending_moderation=sum(1 for u in members if u.moderation_status == ModerationStatus.PENDING),
            total_interests=len(interests),
            accepted_interests=sum(1 for i in interests if i.status == InterestStatus.ACCEPTED),
            interests_sent_events=count_events(INTEREST_SENT),
            total_messages=len(self.store.list_messages()),
            revenue_inr=sum(get_plan(u.subscription.plan).price_inr for u in paid),
            funnel=ConversionFunnel(
                registrations=len(members),
                engaged_users=len(engaged),
                paid_users=len(paid),
            ),
            computed_at=now,
        )

    def audit_log(
        self, admin_id: str, limit: int = 100, *, key_verified: bool = False
    ) -> List[AuditLogEntry]:
        self._require_admin(admin_id, key_verified)
        return self.store.list_audit_entries(limit=limit)
