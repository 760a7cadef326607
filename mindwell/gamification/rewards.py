"""
Level Rewards

One-time unlocks granted when the account reaches a level. Each reward's
effect maps to exactly one profile-field mutation through EFFECT_MUTATIONS.
Applied levels are recorded so a reward is never applied twice.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence
import logging

from mindwell.exceptions import ValidationError
from mindwell.models.progression import RewardDefinition, RewardEffect
from mindwell.store.base import DocumentUpdate, GuardedUnlock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldMutation:
    """Profile change: append `value` to a list field, or set the field to it"""
    field: str
    value: Any
    append: bool = False


EFFECT_MUTATIONS: Dict[RewardEffect, FieldMutation] = {
    RewardEffect.APP_ICON: FieldMutation("unlocked_app_icons", "neon", append=True),
    RewardEffect.THEME: FieldMutation("unlocked_themes", "mindful_master", append=True),
    RewardEffect.EARLY_ACCESS: FieldMutation("early_access", True),
    RewardEffect.PREMIUM_MEDITATION: FieldMutation("premium_meditation_unlocked", True),
    RewardEffect.LEGENDARY_BADGE: FieldMutation("legendary_badge", True),
}


@dataclass(frozen=True)
class RewardApplication:
    """Rewards newly applied at a level"""
    newly_applied: List[RewardDefinition] = field(default_factory=list)

    @property
    def newly_applied_levels(self) -> List[int]:
        return [r.unlock_level for r in self.newly_applied]


def apply_level_rewards(
    level: int,
    catalog: Sequence[RewardDefinition],
    already_applied_levels: Iterable[int]
) -> RewardApplication:
    """
    Select rewards unlocked at or below `level` that were not applied yet

    Args:
        level: Current account level (>= 1)
        catalog: Reward definitions
        already_applied_levels: Levels whose rewards were applied before

    Returns:
        RewardApplication(newly_applied), in catalog order
    """
    if isinstance(level, bool) or not isinstance(level, int) or level < 1:
        raise ValidationError("Level must be an integer >= 1", field="level", value=level)

    applied = set(already_applied_levels)
    newly_applied: List[RewardDefinition] = []

    for reward in catalog:
        if reward.unlock_level <= level and reward.unlock_level not in applied:
            newly_applied.append(reward)
            applied.add(reward.unlock_level)
            logger.info(f"Level {reward.unlock_level} reward unlocked: {reward.title}")

    return RewardApplication(newly_applied=newly_applied)


def reward_document_update(rewards: Sequence[RewardDefinition]) -> DocumentUpdate:
    """
    Store write that records `rewards` as applied and performs their effects

    Each applied level and each appended cosmetic is a guarded unlock, so
    replaying the write changes nothing.
    """
    set_fields: Dict[str, Any] = {}
    unlocks: List[GuardedUnlock] = []

    for reward in rewards:
        unlocks.append(GuardedUnlock(field="unlocked_reward_levels", item=reward.unlock_level))

        mutation = EFFECT_MUTATIONS[reward.effect_kind]
        if mutation.append:
            unlocks.append(GuardedUnlock(field=mutation.field, item=mutation.value))
        else:
            set_fields[mutation.field] = mutation.value

    return DocumentUpdate(set_fields=set_fields, unlocks=unlocks)
