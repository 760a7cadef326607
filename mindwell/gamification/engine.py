"""
Progression Engine

Pure orchestration over one profile snapshot. Each entry point returns a
ProgressionUpdate describing what changed plus the single DocumentUpdate
that persists it; nothing here performs I/O or mutates its inputs.

Entry points:
- evaluate_progression: page load / manual refresh
- record_activity: a qualifying activity (assessment, mood, gratitude, mindfulness)
- plan_challenge_claim: explicit claim of a completed challenge
- plan_game_session: a finished mini-game session
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from mindwell.exceptions import ValidationError
from mindwell.gamification.achievement_system import AchievementEvaluation, evaluate_achievements
from mindwell.gamification.catalog import ProgressionCatalog
from mindwell.gamification.challenges import ChallengeClaim, ChallengeStatus, claim_challenge, evaluate_challenges
from mindwell.gamification.game_tracks import GameSessionResult, record_game_session
from mindwell.gamification.rewards import RewardApplication, apply_level_rewards, reward_document_update
from mindwell.gamification.streak_system import StreakDelta, resolve_streak_delta, update_best_streak
from mindwell.gamification.xp_system import LevelCurve, get_xp_for_activity, resolve_level, resolve_rank
from mindwell.models.progression import LevelProgress, UserProfile
from mindwell.store.base import DocumentUpdate, GuardedUnlock, apply_update_to_document
from mindwell.utils.datetime_helpers import today_in_timezone

logger = logging.getLogger(__name__)


DAILY_COUNTER_FIELDS: Tuple[str, ...] = (
    "moods_logged_today",
    "mindfulness_minutes_today",
    "gratitude_entries_today",
)

WEEKLY_COUNTER_FIELDS: Tuple[str, ...] = (
    "assessments_this_period",
    "mindfulness_minutes_this_period",
)

# Activity kind -> counters incremented by one occurrence ("minutes" = per minute)
ACTIVITY_COUNTERS: Dict[str, Dict[str, str]] = {
    "assessment": {
        "assessments_completed": "count",
        "assessments_this_period": "count",
    },
    "mood": {
        "moods_logged_today": "count",
    },
    "gratitude": {
        "gratitude_entries_today": "count",
    },
    "mindfulness": {
        "total_mindfulness_minutes": "minutes",
        "mindfulness_minutes_today": "minutes",
        "mindfulness_minutes_this_period": "minutes",
    },
}


@dataclass(frozen=True)
class ProgressionUpdate:
    """Everything one evaluate cycle decided, plus the write that records it"""
    level_progress: LevelProgress
    rank: str
    achievements: AchievementEvaluation
    rewards: RewardApplication
    challenges: List[ChallengeStatus]
    document_update: DocumentUpdate
    profile_after: UserProfile
    streak: Optional[StreakDelta] = None
    claim: Optional[ChallengeClaim] = None
    game_session: Optional[GameSessionResult] = None
    leveled_up: bool = False

    @property
    def has_changes(self) -> bool:
        return not self.document_update.is_empty


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def roll_period_counters(profile: UserProfile, today: date) -> Dict[str, Any]:
    """
    Field values that zero period counters left over from an earlier period

    Returns:
        set_fields for the store (empty when the counters are current)
    """
    updates: Dict[str, Any] = {}

    if profile.daily_counters_date != today:
        updates.update({name: 0 for name in DAILY_COUNTER_FIELDS})
        updates["daily_counters_date"] = today.isoformat()

    week_start = _week_start(today)
    if profile.weekly_counters_start != week_start:
        updates.update({name: 0 for name in WEEKLY_COUNTER_FIELDS})
        updates["weekly_counters_start"] = week_start.isoformat()

    return updates


def _apply(profile: UserProfile, update: DocumentUpdate) -> UserProfile:
    document = apply_update_to_document(profile.model_dump(mode="json"), update)
    return UserProfile.model_validate(document)


def _evaluate(
    profile: UserProfile,
    pending: DocumentUpdate,
    catalog: ProgressionCatalog,
    now: datetime,
    curve: Optional[LevelCurve],
    **extra: Any
) -> ProgressionUpdate:
    """Evaluate unlocks on `profile` after `pending` is applied, and merge the writes"""
    today = today_in_timezone(profile.timezone, now)
    old_level = resolve_level(profile.total_xp, curve).level

    pending = pending.merge(DocumentUpdate(set_fields=roll_period_counters(_apply(profile, pending), today)))
    current = _apply(profile, pending)
    counters = current.counters()

    achievements = evaluate_achievements(catalog.achievements, counters, current.unlocked_achievement_ids)
    achievement_update = DocumentUpdate(unlocks=[
        GuardedUnlock(
            field="unlocked_achievement_ids",
            item=definition.id,
            increments={"total_xp": definition.xp_reward},
        )
        for definition in achievements.newly_unlocked
    ])

    level_progress = resolve_level(current.total_xp + achievements.total_xp_awarded, curve)
    rewards = apply_level_rewards(level_progress.level, catalog.rewards, current.unlocked_reward_levels)

    document_update = pending.merge(achievement_update).merge(reward_document_update(rewards.newly_applied))
    if level_progress.level != current.level or not document_update.is_empty:
        document_update = document_update.merge(DocumentUpdate(set_fields={"level": level_progress.level}))

    profile_after = _apply(profile, document_update)
    challenges = evaluate_challenges(
        catalog.challenges,
        profile_after.counters(),
        profile_after.completed_challenge_ids,
        now,
        profile.timezone,
    )

    if level_progress.level > old_level:
        logger.info(f"User {profile.user_id} leveled up from {old_level} to {level_progress.level}")

    return ProgressionUpdate(
        level_progress=level_progress,
        rank=resolve_rank(level_progress.level),
        achievements=achievements,
        rewards=rewards,
        challenges=challenges,
        document_update=document_update,
        profile_after=profile_after,
        leveled_up=level_progress.level > old_level,
        **extra
    )


def evaluate_progression(
    profile: UserProfile,
    catalog: ProgressionCatalog,
    now: datetime,
    curve: Optional[LevelCurve] = None
) -> ProgressionUpdate:
    """
    Recompute level and rank, and collect achievements and rewards now due

    The stored `level` is ignored; level always derives from `total_xp`.
    Rewards are checked against the level reached after achievement XP.

    Args:
        profile: Current snapshot of the user document
        catalog: Achievement, challenge and reward catalogs
        now: Timezone-aware current instant
        curve: Growth curve for the account level (default linear)
    """
    return _evaluate(profile, DocumentUpdate(), catalog, now, curve)


def record_activity(
    profile: UserProfile,
    catalog: ProgressionCatalog,
    activity_type: str,
    now: datetime,
    minutes: float = 0,
    curve: Optional[LevelCurve] = None
) -> ProgressionUpdate:
    """
    Apply one qualifying activity: streak, counters, activity XP, then unlocks

    Raises:
        ValidationError: Unknown activity type or negative minutes
    """
    if activity_type not in ACTIVITY_COUNTERS:
        raise ValidationError(
            f"Unknown activity type: '{activity_type}'",
            field="activity_type",
            value=activity_type,
        )

    xp = get_xp_for_activity(activity_type, minutes=minutes)
    today = today_in_timezone(profile.timezone, now)

    streak = resolve_streak_delta(profile.last_activity_date, today, profile.streak_count)

    # Counters roll over before this activity's increments land
    set_fields: Dict[str, Any] = roll_period_counters(profile, today)
    set_fields.update({
        "streak_count": streak.new_streak_count,
        "best_streak": update_best_streak(profile.best_streak, streak.new_streak_count),
        "last_activity_date": today.isoformat(),
    })

    increments: Dict[str, float] = {}
    for counter, unit in ACTIVITY_COUNTERS[activity_type].items():
        increments[counter] = minutes if unit == "minutes" else 1
    if xp:
        increments["total_xp"] = xp

    logger.info(
        f"Activity {activity_type} for user {profile.user_id}: +{xp} XP, "
        f"streak {profile.streak_count} -> {streak.new_streak_count}"
    )

    pending = DocumentUpdate(set_fields=set_fields, increments=increments)
    return _evaluate(profile, pending, catalog, now, curve, streak=streak)


def plan_challenge_claim(
    profile: UserProfile,
    catalog: ProgressionCatalog,
    challenge_id: str,
    now: datetime,
    curve: Optional[LevelCurve] = None
) -> ProgressionUpdate:
    """
    Claim a completed challenge and evaluate what its XP unlocks

    Raises:
        ValidationError: Unknown challenge id
        ChallengeNotClaimableError: Incomplete, expired or already claimed
    """
    challenge = catalog.challenge(challenge_id)
    today = today_in_timezone(profile.timezone, now)
    current = _apply(profile, DocumentUpdate(set_fields=roll_period_counters(profile, today)))

    claim = claim_challenge(
        challenge,
        current.counters(),
        current.completed_challenge_ids,
        now,
        profile.timezone,
    )
    pending = DocumentUpdate(unlocks=[
        GuardedUnlock(
            field="completed_challenge_ids",
            item=claim.claim_key,
            increments={"total_xp": claim.xp_reward},
        )
    ])
    return _evaluate(profile, pending, catalog, now, curve, claim=claim)


def plan_game_session(
    profile: UserProfile,
    catalog: ProgressionCatalog,
    track_name: str,
    xp_amount: int,
    now: datetime,
    curve: Optional[LevelCurve] = None,
    track_curve: Optional[LevelCurve] = None
) -> ProgressionUpdate:
    """
    Apply a finished mini-game session to the user's game tracks

    Game XP levels the track and the player total only; it does not feed
    the account level.

    Args:
        curve: Account growth curve, used for the level cache and rewards
        track_curve: Growth curve for the game track (default geometric)
    """
    today = today_in_timezone(profile.timezone, now)
    session = record_game_session(profile.game_stats, track_name, xp_amount, played_on=today, curve=track_curve)
    pending = DocumentUpdate(set_fields={"game_stats": session.stats.model_dump(mode="json")})
    return _evaluate(profile, pending, catalog, now, curve, game_session=session)
