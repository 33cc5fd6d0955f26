"""
User domain service.
- register_user(user_id, profile)
- create_admin(user_id)
- get_user(user_id)
- search_profiles(viewer_id, ...) and match_candidates(viewer_id)
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from samta.core.errors import UserNotFoundError
from samta.core.logging import log_event
from samta.features.analytics.service import USER_REGISTERED, track
from samta.features.store.base import MatchStore
from samta.models.profile import Profile
from samta.models.user import ModerationStatus, User, UserRole, UserStatus

logger = logging.getLogger(__name__)

# Filter value the search form sends for "no filter"
ANY = "All"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserService:
    def __init__(self, store: MatchStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or _utcnow

    def get_user(self, user_id: str) -> Optional[User]:
        return self.store.get_user(user_id)

    def register_user(self, user_id: str, profile: Optional[Profile] = None) -> User:
        """Create a member on the Free plan with no interests sent.

        Raises:
            ConflictError: user_id already registered
        """
        user = User(
            user_id=user_id,
            role=UserRole.USER,
            profile=profile or Profile(),
            created_at=self.clock(),
        )
        with self.store.transaction() as tx:
            tx.add_user(user)

        track(USER_REGISTERED, user_id, {"gender": user.profile.gender}, now=user.created_at)
        log_event("info", "user.registered", user_id=user_id, event_type=USER_REGISTERED)
        return user

    def create_admin(self, user_id: str, name: str = "Admin") -> User:
        """Provision a back-office account. Admins never enter matchmaking."""
        user = User(
            user_id=user_id,
            role=UserRole.ADMIN,
            moderation_status=ModerationStatus.APPROVED,
            profile=Profile(name=name),
            created_at=self.clock(),
        )
        with self.store.transaction() as tx:
            tx.add_user(user)
        log_event("info", "user.admin_created", user_id=user_id)
        return user

    def search_profiles(
        self,
        viewer_id: str,
        religion: Optional[str] = None,
        keyword: Optional[str] = None,
        mother_tongue: Optional[str] = None,
        marital_status: Optional[str] = None,
    ) -> List[User]:
        """
        Member-facing profile search.

        Only active, non-demo members other than the viewer are returned;
        admins are never listed. Exact-match filters skip when empty or "All".
        The keyword matches name or occupation, case-insensitively.

        Raises:
            UserNotFoundError: viewer is not registered
        """
        if self.store.get_user(viewer_id) is None:
            raise UserNotFoundError(viewer_id)

        exact = {
            "religion": religion,
            "mother_tongue": mother_tongue,
            "marital_status": marital_status,
        }
        exact = {k: v for k, v in exact.items() if v and v != ANY}
        needle = (keyword or "").strip().lower()

        result = []
        for user in self.store.list_users():
            profile = user.profile
            if user.user_id == viewer_id or user.role == UserRole.ADMIN:
                continue
            if profile.is_demo or user.status != UserStatus.ACTIVE:
                continue
            if any(_field_value(profile, k) != v for k, v in exact.items()):
                continue
            if needle and not any(needle in (v or "").lower() for v in (profile.name, profile.occupation)):
                continue
            result.append(user)
        return result

    def match_candidates(self, viewer_id: str) -> List[User]:
        """Searchable members of a different gender than the viewer (any, if unset)."""
        viewer = self.store.get_user(viewer_id)
        if viewer is None:
            raise UserNotFoundError(viewer_id)
        gender = viewer.profile.gender
        return [
            u for u in self.search_profiles(viewer_id)
            if gender is None or u.profile.gender != gender
        ]


def _field_value(profile, name: str) -> Optional[str]:
    value = getattr(profile, name)
    return value.value if isinstance(value, Enum) else value
