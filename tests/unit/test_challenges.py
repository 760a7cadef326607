"""Unit tests for Challenge System (mindwell/gamification/challenges.py)"""
import pytest
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from mindwell.exceptions import ChallengeNotClaimableError, ValidationError
from mindwell.gamification.catalog import CHALLENGES
from mindwell.gamification.challenges import (
    challenge_expires_at,
    claim_challenge,
    evaluate_challenge_progress,
    evaluate_challenges,
    get_challenge_status,
    period_start_for,
)
from mindwell.models.progression import (
    ChallengeDefinition,
    ExpiryRule,
    PeriodKind,
    UserCounters,
)


def _challenge(challenge_id):
    return next(c for c in CHALLENGES if c.id == challenge_id)


MONTHLY = ChallengeDefinition(
    id="weekly-mindfulness",
    title="Monthly Mindfulness",
    period_kind=PeriodKind.MONTHLY,
    target_value=300,
    xp_reward=500,
    expiry_rule=ExpiryRule.END_OF_MONTH,
)


# ============================================================================
# Progress
# ============================================================================

def test_daily_mood_progress():
    result = evaluate_challenge_progress(_challenge("daily-mood"), UserCounters(moods_logged_today=2))

    assert result.progress == 1
    assert result.is_complete


def test_daily_mindfulness_needs_five_minutes():
    challenge = _challenge("daily-mindfulness")

    assert not evaluate_challenge_progress(challenge, UserCounters(mindfulness_minutes_today=4)).is_complete
    assert evaluate_challenge_progress(challenge, UserCounters(mindfulness_minutes_today=5)).is_complete


def test_daily_gratitude_counts_entries():
    result = evaluate_challenge_progress(_challenge("daily-gratitude"), UserCounters(gratitude_entries_today=2))

    assert result.progress == 2
    assert not result.is_complete


def test_weekly_assessments_progress():
    result = evaluate_challenge_progress(
        _challenge("weekly-assessments"), UserCounters(assessments_this_period=3)
    )
    assert result.is_complete


def test_weekly_community_has_no_progress_source():
    result = evaluate_challenge_progress(_challenge("weekly-community"), UserCounters(community_help_count=50))

    assert result.progress == 0
    assert not result.is_complete


def test_unknown_challenge_id_raises():
    unknown = ChallengeDefinition(
        id="daily-pushups",
        title="Pushups",
        period_kind=PeriodKind.DAILY,
        target_value=1,
        xp_reward=10,
        expiry_rule=ExpiryRule.END_OF_DAY,
    )

    with pytest.raises(ValidationError):
        evaluate_challenge_progress(unknown, UserCounters())


def test_monthly_challenge_on_weekly_counters_is_rejected():
    """Test a monthly challenge can't read counters that reset every week"""
    counters = UserCounters(mindfulness_minutes_this_period=400)

    with pytest.raises(ValidationError) as exc_info:
        evaluate_challenge_progress(MONTHLY, counters)

    assert exc_info.value.field == "period_kind"

    with pytest.raises(ValidationError):
        get_challenge_status(MONTHLY, counters, [], datetime(2024, 3, 13, tzinfo=timezone.utc), "UTC")


# ============================================================================
# Periods & Expiry
# ============================================================================

def test_period_start_for(today):
    """Test daily = today, weekly = ISO Monday, monthly = the 1st"""
    assert period_start_for(_challenge("daily-mood"), today) == date(2024, 3, 13)
    assert period_start_for(_challenge("weekly-assessments"), today) == date(2024, 3, 11)
    assert period_start_for(MONTHLY, today) == date(2024, 3, 1)


def test_expiry_end_of_day():
    expires = challenge_expires_at(_challenge("daily-mood"), date(2024, 3, 13), "UTC")
    assert expires == datetime(2024, 3, 13, 23, 59, 59, tzinfo=timezone.utc)


def test_expiry_rolling_week():
    expires = challenge_expires_at(_challenge("weekly-assessments"), date(2024, 3, 11), "UTC")
    assert expires == datetime(2024, 3, 18, 0, 0, tzinfo=timezone.utc)


def test_expiry_end_of_month_rolls_year():
    expires = challenge_expires_at(MONTHLY, date(2024, 12, 1), "UTC")
    assert expires == datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


def test_expiry_uses_local_timezone():
    expires = challenge_expires_at(_challenge("daily-mood"), date(2024, 3, 13), "Europe/Stockholm")
    assert expires == datetime(2024, 3, 13, 23, 59, 59, tzinfo=ZoneInfo("Europe/Stockholm"))


def test_status_uses_local_day():
    """Test late evening UTC is already tomorrow in Tokyo"""
    now = datetime(2024, 3, 13, 23, 30, tzinfo=timezone.utc)
    status = get_challenge_status(_challenge("daily-mood"), UserCounters(), [], now, "Asia/Tokyo")

    assert status.period_start == date(2024, 3, 14)
    assert status.claim_key == "daily-mood@2024-03-14"


def test_evaluate_challenges_keeps_catalog_order(now):
    statuses = evaluate_challenges(CHALLENGES, UserCounters(moods_logged_today=1), [], now, "UTC")

    assert [s.challenge.id for s in statuses] == [c.id for c in CHALLENGES]
    assert statuses[0].claimable
    assert not statuses[1].claimable


# ============================================================================
# Claims
# ============================================================================

def test_claim_completed_challenge(now):
    claim = claim_challenge(_challenge("daily-mood"), UserCounters(moods_logged_today=1), [], now, "UTC")

    assert claim.challenge_id == "daily-mood"
    assert claim.claim_key == "daily-mood@2024-03-13"
    assert claim.xp_reward == 25


def test_claim_incomplete_challenge(now):
    with pytest.raises(ChallengeNotClaimableError) as exc_info:
        claim_challenge(_challenge("daily-gratitude"), UserCounters(gratitude_entries_today=1), [], now, "UTC")

    assert exc_info.value.reason == "incomplete"


def test_claim_twice_in_same_period(now):
    challenge = _challenge("daily-mood")
    counters = UserCounters(moods_logged_today=1)
    claim = claim_challenge(challenge, counters, [], now, "UTC")

    with pytest.raises(ChallengeNotClaimableError) as exc_info:
        claim_challenge(challenge, counters, [claim.claim_key], now, "UTC")

    assert exc_info.value.reason == "already_claimed"


def test_claim_again_next_period(now):
    """Test yesterday's claim doesn't block today's"""
    claim = claim_challenge(
        _challenge("daily-mood"), UserCounters(moods_logged_today=1), ["daily-mood@2024-03-12"], now, "UTC"
    )
    assert claim.claim_key == "daily-mood@2024-03-13"


def test_claim_expired_period(now):
    with pytest.raises(ChallengeNotClaimableError) as exc_info:
        claim_challenge(
            _challenge("daily-mood"),
            UserCounters(moods_logged_today=1),
            [],
            now,
            "UTC",
            period_start=date(2024, 3, 12),
        )

    assert exc_info.value.reason == "expired"
