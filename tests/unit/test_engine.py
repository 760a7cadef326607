"""Unit tests for the progression engine (mindwell/gamification/engine.py)"""
import pytest
from datetime import date

from mindwell.exceptions import ChallengeNotClaimableError, ValidationError
from mindwell.gamification.engine import (
    evaluate_progression,
    plan_challenge_claim,
    plan_game_session,
    record_activity,
    roll_period_counters,
)
from mindwell.gamification.xp_system import LinearBlockCurve
from mindwell.models.progression import UserProfile
from mindwell.store.base import apply_update_to_document


def _persist(profile, result):
    """Apply a result's write the way a store would"""
    document = apply_update_to_document(profile.model_dump(mode="json"), result.document_update)
    return UserProfile.model_validate(document)


# ============================================================================
# Period Counters
# ============================================================================

def test_roll_period_counters_current(active_profile, today):
    assert roll_period_counters(active_profile, today) == {}


def test_roll_period_counters_new_week(test_user_id, today):
    profile = UserProfile(
        user_id=test_user_id,
        daily_counters_date=today,
        weekly_counters_start=date(2024, 3, 4),
        assessments_this_period=4,
    )

    updates = roll_period_counters(profile, today)

    assert updates == {
        "assessments_this_period": 0,
        "mindfulness_minutes_this_period": 0,
        "weekly_counters_start": "2024-03-11",
    }


# ============================================================================
# evaluate_progression
# ============================================================================

def test_evaluate_fresh_profile(profile, catalog, now):
    result = evaluate_progression(profile, catalog, now)

    assert result.level_progress.level == 1
    assert result.rank == "Beginner"
    assert result.achievements.newly_unlocked == []
    assert result.rewards.newly_applied == []
    assert len(result.challenges) == len(catalog.challenges)


def test_evaluate_is_idempotent(profile, catalog, now):
    """Test re-evaluating a persisted result writes nothing"""
    first = evaluate_progression(profile, catalog, now)
    second = evaluate_progression(_persist(profile, first), catalog, now)

    assert not second.has_changes


def test_stored_level_is_ignored(test_user_id, catalog, now):
    """Test level comes from total_xp, not the cached level field"""
    profile = UserProfile(user_id=test_user_id, total_xp=250, level=9)
    result = evaluate_progression(profile, catalog, now)

    assert result.level_progress.level == 3
    assert result.document_update.set_fields["level"] == 3


def test_evaluate_unlocks_pending_achievements(test_user_id, catalog, now):
    profile = UserProfile(user_id=test_user_id, assessments_completed=1)
    result = evaluate_progression(profile, catalog, now)

    assert result.achievements.newly_unlocked_ids == ["first-step"]
    assert result.profile_after.total_xp == 50
    assert result.profile_after.unlocked_achievement_ids == ["first-step"]


# ============================================================================
# record_activity
# ============================================================================

def test_first_assessment(profile, catalog, now):
    """Test activity XP, streak start and the first-step unlock land together"""
    result = record_activity(profile, catalog, "assessment", now)
    after = result.profile_after

    assert result.streak.new_streak_count == 1
    assert after.streak_count == 1
    assert after.best_streak == 1
    assert after.last_activity_date == date(2024, 3, 13)
    assert after.assessments_completed == 1
    assert after.assessments_this_period == 1
    assert after.total_xp == 70
    assert after.unlocked_achievement_ids == ["first-step"]


def test_streak_continues(active_profile, catalog, now):
    result = record_activity(active_profile, catalog, "mood", now)

    assert result.profile_after.streak_count == 4
    assert result.profile_after.best_streak == 5
    assert result.profile_after.moods_logged_today == 1

    daily_mood = next(s for s in result.challenges if s.challenge.id == "daily-mood")
    assert daily_mood.is_complete
    assert daily_mood.claimable


def test_seventh_day_unlocks_week_warrior(test_user_id, catalog, now):
    profile = UserProfile(user_id=test_user_id, streak_count=6, last_activity_date=date(2024, 3, 12))
    result = record_activity(profile, catalog, "mood", now)

    assert result.achievements.newly_unlocked_ids == ["week-warrior"]
    assert result.profile_after.total_xp == 210
    assert result.level_progress.level == 3


def test_daily_counters_reset_on_new_day(test_user_id, catalog, now):
    profile = UserProfile(
        user_id=test_user_id,
        daily_counters_date=date(2024, 3, 12),
        moods_logged_today=2,
        gratitude_entries_today=3,
    )
    result = record_activity(profile, catalog, "mood", now)

    assert result.profile_after.moods_logged_today == 1
    assert result.profile_after.gratitude_entries_today == 0
    assert result.profile_after.daily_counters_date == date(2024, 3, 13)


def test_mindfulness_minutes(profile, catalog, now):
    result = record_activity(profile, catalog, "mindfulness", now, minutes=10)
    after = result.profile_after

    assert after.total_mindfulness_minutes == 10
    assert after.mindfulness_minutes_today == 10
    assert after.mindfulness_minutes_this_period == 10
    assert after.total_xp == 100
    assert result.level_progress.level == 2


def test_level_up_applies_reward(test_user_id, catalog, now):
    profile = UserProfile(
        user_id=test_user_id,
        total_xp=390,
        assessments_completed=1,
        unlocked_achievement_ids=["first-step"],
    )
    result = record_activity(profile, catalog, "assessment", now)

    assert result.leveled_up
    assert result.level_progress.level == 5
    assert result.rank == "Intermediate"
    assert result.rewards.newly_applied_levels == [5]
    assert result.profile_after.unlocked_app_icons == ["neon"]
    assert result.profile_after.unlocked_reward_levels == [5]


def test_reward_checked_after_achievement_xp(profile, catalog, now):
    """Test achievement XP that crosses a reward level applies the reward in the same cycle"""
    profile = profile.model_copy(update={"total_xp": 340})
    result = record_activity(profile, catalog, "assessment", now)

    assert result.profile_after.total_xp == 410
    assert result.rewards.newly_applied_levels == [5]


def test_unknown_activity(profile, catalog, now):
    with pytest.raises(ValidationError):
        record_activity(profile, catalog, "jogging", now)


def test_naive_now_is_rejected(profile, catalog, now):
    with pytest.raises(ValidationError):
        record_activity(profile, catalog, "mood", now.replace(tzinfo=None))


# ============================================================================
# plan_challenge_claim
# ============================================================================

def test_claim_daily_mood(active_profile, catalog, now):
    profile = active_profile.model_copy(update={"moods_logged_today": 1})
    result = plan_challenge_claim(profile, catalog, "daily-mood", now)

    assert result.claim.xp_reward == 25
    assert result.profile_after.total_xp == 275
    assert result.profile_after.completed_challenge_ids == ["daily-mood@2024-03-13"]

    with pytest.raises(ChallengeNotClaimableError):
        plan_challenge_claim(_persist(profile, result), catalog, "daily-mood", now)


def test_claim_uses_rolled_counters(test_user_id, catalog, now):
    """Test yesterday's mood log doesn't complete today's challenge"""
    profile = UserProfile(user_id=test_user_id, daily_counters_date=date(2024, 3, 12), moods_logged_today=1)

    with pytest.raises(ChallengeNotClaimableError) as exc_info:
        plan_challenge_claim(profile, catalog, "daily-mood", now)

    assert exc_info.value.reason == "incomplete"


def test_claim_unknown_challenge(profile, catalog, now):
    with pytest.raises(ValidationError):
        plan_challenge_claim(profile, catalog, "daily-pushups", now)


# ============================================================================
# plan_game_session
# ============================================================================

def test_game_session_does_not_touch_account_xp(profile, catalog, now):
    result = plan_game_session(profile, catalog, "forest", 120, now)
    stats = result.profile_after.game_stats

    assert result.game_session.leveled_up
    assert stats.tracks["forest"].level == 2
    assert stats.player_xp == 120
    assert stats.last_played == date(2024, 3, 13)
    assert result.profile_after.total_xp == 0


def test_game_session_uses_account_curve(test_user_id, catalog, now):
    """Test rewards after a game session are judged on the account curve, not the default"""
    profile = UserProfile(user_id=test_user_id, total_xp=450)
    result = plan_game_session(
        profile, catalog, "memory", 10, now, curve=LinearBlockCurve(block_size=200)
    )

    assert result.level_progress.level == 3
    assert result.rewards.newly_applied_levels == []
    assert result.profile_after.unlocked_app_icons == []
    assert result.profile_after.game_stats.tracks["memory"].total_xp == 10
