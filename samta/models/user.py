"""
samta/models/user.py

User identity and entitlement snapshot.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from samta.models.profile import Profile


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class PlanType(str, Enum):
    """Subscription tiers, cheapest first."""

    FREE = "Free"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"


class UserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    BANNED = "banned"


class ModerationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Subscription(BaseModel):
    """Plan, expiry and the interest counter for the current billing period."""

    model_config = ConfigDict(frozen=True)

    plan: PlanType = PlanType.FREE
    expiry_date: Optional[datetime] = Field(
        default=None, description="None means no active paid tier"
    )
    interests_sent_count: int = Field(default=0, ge=0)

    def is_active_paid(self, now: datetime) -> bool:
        if self.plan == PlanType.FREE or self.expiry_date is None:
            return False
        expiry = self.expiry_date
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return expiry > now


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole = UserRole.USER
    subscription: Subscription = Field(default_factory=Subscription)
    status: UserStatus = UserStatus.ACTIVE
    moderation_status: ModerationStatus = ModerationStatus.PENDING
    profile: Profile = Field(default_factory=Profile)
    created_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        return self.profile.display_name(self.user_id)


class RegisterUserRequest(BaseModel):
    """Request to register a member (admins are provisioned, not registered)"""

    user_id: str = Field(min_length=1, max_length=100)
    profile: Profile = Field(default_factory=Profile)


class UpgradePlanRequest(BaseModel):
    plan: PlanType


class EntitlementSummary(BaseModel):
    """What the acting user may do right now"""

    model_config = ConfigDict(frozen=True)

    user_id: str
    plan: PlanType
    is_admin: bool
    subscription_active: bool
    expiry_date: Optional[datetime] = None
    interests_sent: int
    interests_remaining: int | str = Field(description="int, or 'unlimited'")
    can_send_interest: bool
