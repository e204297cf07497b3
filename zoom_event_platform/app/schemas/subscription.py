"""
Pydantic models for subscription plans and usage.
"""

from typing import List, Optional

from pydantic import BaseModel, validator

from ..services.subscription_limits import SubscriptionTier

SUBSCRIPTION_STATUSES = {"ACTIVE", "INACTIVE"}


class PlanRead(BaseModel):
    tier: SubscriptionTier
    max_events: int
    max_attendees: int
    max_duration_minutes: int


class PlanList(BaseModel):
    plans: List[PlanRead]


class UsageRead(BaseModel):
    tier: SubscriptionTier
    status: str
    limits: PlanRead
    event_count: int
    # ``None`` when the tier has no event limit.
    events_remaining: Optional[int] = None


class SubscriptionUpdate(BaseModel):
    subscription_tier: Optional[SubscriptionTier] = None
    subscription_status: Optional[str] = None

    @validator("subscription_status")
    def check_status(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.upper()
        if value not in SUBSCRIPTION_STATUSES:
            raise ValueError(f"subscription_status must be one of {sorted(SUBSCRIPTION_STATUSES)}")
        return value
