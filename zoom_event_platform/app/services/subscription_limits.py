"""
Subscription tiers and the limit policy applied to new events.

Each :class:`SubscriptionTier` maps to an immutable :class:`TierLimits`.
:func:`evaluate_tier_limits` is a pure function: given a tier and the
shape of a proposed event it returns a :class:`Decision` without
touching the database or Zoom.  Rules are evaluated in a fixed order
and the first failing rule decides the outcome.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..core.errors import LimitExceededError

UNLIMITED = -1


class SubscriptionTier(str, Enum):
    TRIAL = "TRIAL"
    STANDARD = "STANDARD"
    PRO = "PRO"


@dataclass(frozen=True)
class TierLimits:
    max_events: int
    max_attendees: int
    max_duration_minutes: int


TIER_LIMITS: Mapping[SubscriptionTier, TierLimits] = MappingProxyType(
    {
        SubscriptionTier.TRIAL: TierLimits(max_events=3, max_attendees=12, max_duration_minutes=60),
        SubscriptionTier.STANDARD: TierLimits(max_events=10, max_attendees=250, max_duration_minutes=240),
        SubscriptionTier.PRO: TierLimits(max_events=UNLIMITED, max_attendees=500, max_duration_minutes=UNLIMITED),
    }
)


def limits_for(tier: SubscriptionTier | str) -> TierLimits:
    """Return the limits of ``tier``; unknown tier names raise ``ValueError``."""
    return TIER_LIMITS[SubscriptionTier(tier)]


@dataclass(frozen=True)
class Decision:
    """Outcome of a tier evaluation.

    ``kind`` and ``details`` are only set on denial.
    """

    allowed: bool
    kind: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    tier: Optional[SubscriptionTier] = None

    @classmethod
    def allow(cls, tier: SubscriptionTier) -> "Decision":
        return cls(allowed=True, tier=tier)

    @classmethod
    def deny(cls, tier: SubscriptionTier, kind: str, **details: Any) -> "Decision":
        return cls(allowed=False, kind=kind, details=details, tier=tier)

    @property
    def message(self) -> str:
        if self.allowed:
            return "allowed"
        tier_name = self.tier.value if self.tier else "current"
        limit = self.details.get("limit")
        if self.kind == "EventLimitExceeded":
            return f"Your {tier_name} subscription allows maximum {limit} events"
        if self.kind == "AttendeeLimitExceeded":
            return f"Your {tier_name} subscription allows maximum {limit} attendees"
        return f"Your {tier_name} subscription allows maximum {limit} minutes"

    def raise_for_denial(self) -> None:
        """Raise :class:`LimitExceededError` if this decision is a denial."""
        if not self.allowed:
            raise LimitExceededError(self.message, kind=self.kind, details=dict(self.details))


def duration_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between ``start`` and ``end``, rounded up.

    60.5 minutes counts as 61 so that boundary cases are never billed
    under the tier cap.
    """
    return math.ceil((end - start).total_seconds() / 60)


def evaluate_tier_limits(
    tier: SubscriptionTier | str,
    existing_event_count: int,
    requested_attendees: int,
    requested_duration_minutes: int,
) -> Decision:
    """Decide whether a proposed event fits the subscription tier.

    Rules, first failure wins:

    1. event count must stay below ``max_events`` (unless unlimited);
    2. requested attendees must not exceed ``max_attendees``;
    3. duration must not exceed ``max_duration_minutes`` (unless unlimited).
    """
    tier = SubscriptionTier(tier)
    limits = TIER_LIMITS[tier]

    if limits.max_events != UNLIMITED and existing_event_count >= limits.max_events:
        return Decision.deny(
            tier, "EventLimitExceeded", limit=limits.max_events, currentCount=existing_event_count
        )
    return _evaluate_shape(tier, limits, requested_attendees, requested_duration_minutes)


def evaluate_event_shape(
    tier: SubscriptionTier | str,
    requested_attendees: Optional[int] = None,
    requested_duration_minutes: Optional[int] = None,
) -> Decision:
    """Apply the attendee and duration rules to an existing event being changed.

    The event count rule does not apply: the event already exists.
    Arguments left as ``None`` are not checked.
    """
    tier = SubscriptionTier(tier)
    return _evaluate_shape(tier, TIER_LIMITS[tier], requested_attendees, requested_duration_minutes)


def _evaluate_shape(
    tier: SubscriptionTier,
    limits: TierLimits,
    requested_attendees: Optional[int],
    requested_duration_minutes: Optional[int],
) -> Decision:
    if (
        requested_attendees is not None
        and limits.max_attendees != UNLIMITED
        and requested_attendees > limits.max_attendees
    ):
        return Decision.deny(
            tier, "AttendeeLimitExceeded", limit=limits.max_attendees, requested=requested_attendees
        )

    if (
        requested_duration_minutes is not None
        and limits.max_duration_minutes != UNLIMITED
        and requested_duration_minutes > limits.max_duration_minutes
    ):
        return Decision.deny(
            tier,
            "DurationLimitExceeded",
            limit=limits.max_duration_minutes,
            requested=requested_duration_minutes,
        )

    return Decision.allow(tier)
