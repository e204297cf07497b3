"""Tests for the subscription tier policy."""

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from zoom_event_platform.app.core.errors import LimitExceededError
from zoom_event_platform.app.services.subscription_limits import (
    TIER_LIMITS,
    UNLIMITED,
    SubscriptionTier,
    TierLimits,
    duration_minutes,
    evaluate_event_shape,
    evaluate_tier_limits,
    limits_for,
)


def test_tier_table():
    assert limits_for("TRIAL") == TierLimits(max_events=3, max_attendees=12, max_duration_minutes=60)
    assert limits_for(SubscriptionTier.STANDARD) == TierLimits(10, 250, 240)
    assert limits_for("PRO") == TierLimits(UNLIMITED, 500, UNLIMITED)


def test_tier_table_is_immutable():
    with pytest.raises(TypeError):
        TIER_LIMITS[SubscriptionTier.TRIAL] = TierLimits(100, 100, 100)
    with pytest.raises(dataclasses.FrozenInstanceError):
        TIER_LIMITS[SubscriptionTier.TRIAL].max_events = 100


def test_unknown_tier_rejected():
    with pytest.raises(ValueError):
        limits_for("GOLD")


def test_trial_at_limits_allowed():
    decision = evaluate_tier_limits("TRIAL", 2, 12, 60)
    assert decision.allowed
    assert decision.kind is None


def test_trial_event_count_denied():
    decision = evaluate_tier_limits("TRIAL", 3, 5, 30)
    assert not decision.allowed
    assert decision.kind == "EventLimitExceeded"
    assert decision.details == {"limit": 3, "currentCount": 3}
    assert decision.message == "Your TRIAL subscription allows maximum 3 events"


def test_attendees_over_limit_denied():
    decision = evaluate_tier_limits("TRIAL", 0, 13, 30)
    assert decision.kind == "AttendeeLimitExceeded"
    assert decision.details == {"limit": 12, "requested": 13}
    assert decision.message == "Your TRIAL subscription allows maximum 12 attendees"


def test_duration_over_limit_denied():
    decision = evaluate_tier_limits("STANDARD", 0, 100, 241)
    assert decision.kind == "DurationLimitExceeded"
    assert decision.details == {"limit": 240, "requested": 241}
    assert decision.message == "Your STANDARD subscription allows maximum 240 minutes"


def test_first_failing_rule_wins():
    # Every rule fails; the event count rule is reported.
    decision = evaluate_tier_limits("TRIAL", 3, 1000, 1000)
    assert decision.kind == "EventLimitExceeded"

    decision = evaluate_tier_limits("TRIAL", 0, 1000, 1000)
    assert decision.kind == "AttendeeLimitExceeded"


def test_pro_has_no_event_or_duration_limit():
    assert evaluate_tier_limits("PRO", 10_000, 500, 24 * 60).allowed
    decision = evaluate_tier_limits("PRO", 10_000, 501, 30)
    assert decision.kind == "AttendeeLimitExceeded"
    assert decision.details["limit"] == 500


def test_duration_rounds_up():
    start = datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert duration_minutes(start, start + timedelta(minutes=60)) == 60
    assert duration_minutes(start, start + timedelta(minutes=60, seconds=1)) == 61
    # 240.2 minutes counts as 241 and breaks the STANDARD cap.
    minutes = duration_minutes(start, start + timedelta(minutes=240, seconds=12))
    assert minutes == 241
    assert not evaluate_tier_limits("STANDARD", 0, 10, minutes).allowed


def test_raise_for_denial():
    evaluate_tier_limits("TRIAL", 0, 1, 1).raise_for_denial()

    with pytest.raises(LimitExceededError) as exc_info:
        evaluate_tier_limits("TRIAL", 3, 1, 1).raise_for_denial()
    error = exc_info.value
    assert error.status_code == 403
    assert error.to_dict() == {
        "error": "EventLimitExceeded",
        "message": "Your TRIAL subscription allows maximum 3 events",
        "limit": 3,
        "currentCount": 3,
    }


def test_event_shape_skips_event_count():
    assert evaluate_event_shape("TRIAL").allowed
    assert evaluate_event_shape("TRIAL", requested_attendees=12).allowed
    assert evaluate_event_shape("TRIAL", requested_duration_minutes=61).kind == "DurationLimitExceeded"
    assert evaluate_event_shape("STANDARD", requested_attendees=251).kind == "AttendeeLimitExceeded"
