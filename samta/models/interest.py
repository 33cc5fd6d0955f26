"""
samta/models/interest.py

Interest models: a directed proposal between two members.
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class InterestStatus(str, Enum):
    """Interest lifecycle: pending -> accepted OR rejected (both terminal)"""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self != InterestStatus.PENDING


InterestRole = Literal["sender", "receiver", "either"]


def pair_key(user_a: str, user_b: str) -> str:
    """
    Canonical key for the unordered pair {user_a, user_b}.

    The first id is length-prefixed, so ids containing the separator can
    never make two different pairs share a key.
    """
    low, high = sorted((user_a, user_b))
    return f"{len(low)}:{low}|{high}"


class Interest(BaseModel):
    model_config = ConfigDict(frozen=True)

    interest_id: str = Field(description="UUID")
    sender_id: str
    receiver_id: str
    status: InterestStatus = Field(default=InterestStatus.PENDING)
    created_at: datetime
    resolved_at: Optional[datetime] = None

    @property
    def pair_key(self) -> str:
        return pair_key(self.sender_id, self.receiver_id)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.sender_id, self.receiver_id)

    def counterpart(self, user_id: str) -> str:
        return self.receiver_id if user_id == self.sender_id else self.sender_id


class ProposeInterestRequest(BaseModel):
    """Request to send an interest"""

    receiver_id: str = Field(min_length=1)


class InterestView(BaseModel):
    """Interest as seen by one of its two members"""

    model_config = ConfigDict(frozen=True)

    interest_id: str
    sender_id: str
    receiver_id: str
    status: InterestStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None
    direction: Literal["sent", "received"]
    counterpart_id: str
    chat_unlocked: bool

    @classmethod
    def for_user(cls, interest: Interest, user_id: str) -> "InterestView":
        return cls(
            **interest.model_dump(),
            direction="sent" if interest.sender_id == user_id else "received",
            counterpart_id=interest.counterpart(user_id),
            chat_unlocked=interest.status == InterestStatus.ACCEPTED,
        )
