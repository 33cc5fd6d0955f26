"""
samta/models/profile.py

Member profile record. Every field is explicit with a default resolved at
construction, so readers never have to guess whether a key is present.
"""

import hashlib
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class MaritalStatus(str, Enum):
    NEVER_MARRIED = "Never Married"
    DIVORCED = "Divorced"
    WIDOWED = "Widowed"
    AWAITING_DIVORCE = "Awaiting Divorce"


class NRIStatus(str, Enum):
    RESIDENT = "Resident"
    NRI = "NRI"
    GREEN_CARD_HOLDER = "Green Card Holder"
    CITIZEN = "Citizen"


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: Optional[str] = None
    gender: Optional[Gender] = None
    age: Optional[int] = Field(default=None, ge=18, le=120)
    date_of_birth: Optional[str] = None
    height: Optional[str] = None
    marital_status: MaritalStatus = MaritalStatus.NEVER_MARRIED
    religion: Optional[str] = None
    caste: Optional[str] = None
    mother_tongue: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: str = "India"
    education: Optional[str] = None
    occupation: Optional[str] = None
    income: Optional[str] = None
    nri_status: NRIStatus = NRIStatus.RESIDENT
    lifestyle: List[str] = Field(default_factory=list)
    bio: str = ""
    photo_url: Optional[str] = None
    is_verified: bool = False
    is_demo: bool = False
    declaration_accepted: bool = False
    declaration_timestamp: Optional[datetime] = None

    def display_name(self, user_id: str) -> str:
        if self.name and self.name.strip():
            return self.name.strip()
        # Deterministic fallback handle
        h = hashlib.sha1(user_id.encode("utf-8")).hexdigest()
        return f"@u_{h[-6:]}"
