"""
samta/models/plan.py

Plan catalogue: duration and price of each subscription tier.
"""

from datetime import timedelta
from typing import Dict

from pydantic import BaseModel, ConfigDict

from samta.models.user import PlanType


# Billing months are counted as 30 days
DAYS_PER_MONTH = 30


class Plan(BaseModel):
    """
    Plan represents a subscription tier.

    Free never expires. Paid tiers last `months` billing months and carry
    unlimited interests while active.
    """
    model_config = ConfigDict(frozen=True)

    plan_type: PlanType
    name: str
    months: int
    price_inr: int

    @property
    def is_paid(self) -> bool:
        return self.plan_type != PlanType.FREE

    @property
    def duration(self) -> timedelta:
        return timedelta(days=self.months * DAYS_PER_MONTH)


PLANS: Dict[PlanType, Plan] = {
    PlanType.FREE: Plan(plan_type=PlanType.FREE, name="Free", months=0, price_inr=0),
    PlanType.SILVER: Plan(plan_type=PlanType.SILVER, name="Silver", months=1, price_inr=149),
    PlanType.GOLD: Plan(plan_type=PlanType.GOLD, name="Gold", months=3, price_inr=399),
    PlanType.PLATINUM: Plan(plan_type=PlanType.PLATINUM, name="Platinum", months=6, price_inr=699),
}


def get_plan(plan_type: PlanType) -> Plan:
    return PLANS[PlanType(plan_type)]
