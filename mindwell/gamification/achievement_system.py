"""
Achievement System

Evaluates the achievement catalog against a user's aggregate counters.

Categories and the counter each one reads:
- assessment  -> assessments_completed
- streak      -> current_streak_days
- mindfulness -> total_mindfulness_minutes
- special     -> per-achievement counter (SPECIAL_COUNTERS)
- community   -> none yet; community achievements stay locked until
                 community-help tracking exists

Unlocks are one-time and sticky: an id already unlocked is never
re-evaluated, so repeated evaluation yields nothing new.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence
import logging

from mindwell.exceptions import ValidationError
from mindwell.models.progression import (
    AchievementCategory,
    AchievementDefinition,
    UserCounters,
)

logger = logging.getLogger(__name__)


# Category -> counter field. None means no counter is wired yet.
CATEGORY_COUNTERS: Dict[AchievementCategory, Optional[str]] = {
    AchievementCategory.ASSESSMENT: "assessments_completed",
    AchievementCategory.STREAK: "current_streak_days",
    AchievementCategory.MINDFULNESS: "total_mindfulness_minutes",
    AchievementCategory.COMMUNITY: None,
}

# Special achievements each read their own counter
SPECIAL_COUNTERS: Dict[str, str] = {
    "wellness-champion": "wellness_score_percent",
}


@dataclass(frozen=True)
class AchievementEvaluation:
    """Achievements newly satisfied by one evaluation"""
    newly_unlocked: List[AchievementDefinition] = field(default_factory=list)
    total_xp_awarded: int = 0

    @property
    def newly_unlocked_ids(self) -> List[str]:
        return [a.id for a in self.newly_unlocked]


def counter_field_for(definition: AchievementDefinition) -> Optional[str]:
    """
    Counter field an achievement is measured against

    Returns:
        Field name on UserCounters, or None for deferred categories

    Raises:
        ValidationError: Special achievement with no counter binding
    """
    if definition.category == AchievementCategory.SPECIAL:
        try:
            return SPECIAL_COUNTERS[definition.id]
        except KeyError:
            raise ValidationError(
                f"No counter bound to special achievement '{definition.id}'",
                field="achievement_id",
                value=definition.id,
            )
    return CATEGORY_COUNTERS[definition.category]


def _counter_value(definition: AchievementDefinition, counters: UserCounters) -> Optional[float]:
    counter_field = counter_field_for(definition)
    if counter_field is None:
        return None
    return getattr(counters, counter_field)


def evaluate_achievements(
    catalog: Sequence[AchievementDefinition],
    counters: UserCounters,
    already_unlocked: Iterable[str]
) -> AchievementEvaluation:
    """
    Find achievements whose threshold the counters now meet

    Iterates the catalog in declaration order, so output is deterministic.
    A counter exactly equal to the threshold unlocks.

    Args:
        catalog: Achievement definitions
        counters: Current aggregate counters
        already_unlocked: Ids unlocked previously (skipped)

    Returns:
        AchievementEvaluation(newly_unlocked, total_xp_awarded)

    Caller contract: persist `already_unlocked | newly_unlocked` and add
    `total_xp_awarded` to total XP as one update.
    """
    unlocked = set(already_unlocked)
    newly_unlocked: List[AchievementDefinition] = []

    for definition in catalog:
        if definition.id in unlocked:
            continue

        value = _counter_value(definition, counters)
        if value is None:
            logger.debug(f"Achievement {definition.id} has no counter yet; stays locked")
            continue

        if value >= definition.requirement_threshold:
            newly_unlocked.append(definition)
            unlocked.add(definition.id)
            logger.info(
                f"Achievement unlocked: {definition.id} ({definition.title}) +{definition.xp_reward} XP"
            )

    return AchievementEvaluation(
        newly_unlocked=newly_unlocked,
        total_xp_awarded=sum(a.xp_reward for a in newly_unlocked),
    )


def get_achievement_progress(
    definition: AchievementDefinition,
    counters: UserCounters,
    already_unlocked: Iterable[str] = ()
) -> Dict[str, object]:
    """
    Progress toward a single achievement

    Returns:
        {
            'achievement_id': str,
            'current': float,
            'requirement': float,
            'percent': float (0-100),
            'unlocked': bool
        }
    """
    value = _counter_value(definition, counters)
    current = value if value is not None else 0
    threshold = definition.requirement_threshold

    if threshold <= 0:
        percent = 100.0
    else:
        percent = min(current / threshold * 100, 100.0)

    return {
        "achievement_id": definition.id,
        "current": current,
        "requirement": threshold,
        "percent": percent,
        "unlocked": definition.id in set(already_unlocked),
    }
