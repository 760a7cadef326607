"""
Default achievement, challenge and reward catalogs

Catalogs are built once at startup and passed explicitly into the
evaluators. They are tuples of frozen models and are never mutated.
"""

from dataclasses import dataclass
from typing import Tuple
import logging

from mindwell.exceptions import ValidationError
from mindwell.models.progression import (
    AchievementCategory,
    AchievementDefinition,
    ChallengeDefinition,
    ExpiryRule,
    PeriodKind,
    RarityTier,
    RewardDefinition,
    RewardEffect,
)

logger = logging.getLogger(__name__)


GAME_TRACKS: Tuple[str, ...] = ("forest", "memory", "breathing", "gratitude", "whack")


ACHIEVEMENTS: Tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        id="first-step",
        title="First Step",
        description="Complete your first assessment",
        category=AchievementCategory.ASSESSMENT,
        requirement_threshold=1,
        xp_reward=50,
        rarity=RarityTier.COMMON,
    ),
    AchievementDefinition(
        id="week-warrior",
        title="Week Warrior",
        description="Maintain a 7-day streak",
        category=AchievementCategory.STREAK,
        requirement_threshold=7,
        xp_reward=200,
        rarity=RarityTier.RARE,
    ),
    AchievementDefinition(
        id="mindful-master",
        title="Mindful Master",
        description="Complete 50 mindfulness sessions",
        category=AchievementCategory.MINDFULNESS,
        requirement_threshold=50,
        xp_reward=500,
        rarity=RarityTier.EPIC,
    ),
    AchievementDefinition(
        id="wellness-champion",
        title="Wellness Champion",
        description="Reach wellness score of 90%",
        category=AchievementCategory.SPECIAL,
        requirement_threshold=90,
        xp_reward=1000,
        rarity=RarityTier.LEGENDARY,
    ),
    # Stays locked: community-help tracking doesn't exist yet
    AchievementDefinition(
        id="community-helper",
        title="Community Helper",
        description="Help 10 community members",
        category=AchievementCategory.COMMUNITY,
        requirement_threshold=10,
        xp_reward=300,
        rarity=RarityTier.RARE,
    ),
    AchievementDefinition(
        id="assessment-ace",
        title="Assessment Ace",
        description="Complete 25 assessments",
        category=AchievementCategory.ASSESSMENT,
        requirement_threshold=25,
        xp_reward=400,
        rarity=RarityTier.EPIC,
    ),
    AchievementDefinition(
        id="month-master",
        title="Month Master",
        description="Maintain a 30-day streak",
        category=AchievementCategory.STREAK,
        requirement_threshold=30,
        xp_reward=1500,
        rarity=RarityTier.LEGENDARY,
    ),
    AchievementDefinition(
        id="zen-seeker",
        title="Zen Seeker",
        description="Complete 100 hours of mindfulness",
        category=AchievementCategory.MINDFULNESS,
        requirement_threshold=6000,
        xp_reward=2000,
        rarity=RarityTier.LEGENDARY,
    ),
)


CHALLENGES: Tuple[ChallengeDefinition, ...] = (
    # ========== DAILY ==========
    ChallengeDefinition(
        id="daily-mood",
        title="Daily Mood Check",
        description="Log your mood for today",
        period_kind=PeriodKind.DAILY,
        target_value=1,
        xp_reward=25,
        expiry_rule=ExpiryRule.END_OF_DAY,
    ),
    ChallengeDefinition(
        id="daily-mindfulness",
        title="Mindful Moment",
        description="Complete a 5-minute mindfulness session",
        period_kind=PeriodKind.DAILY,
        target_value=1,
        xp_reward=30,
        expiry_rule=ExpiryRule.END_OF_DAY,
    ),
    ChallengeDefinition(
        id="daily-gratitude",
        title="Gratitude Practice",
        description="Write 3 things you're grateful for",
        period_kind=PeriodKind.DAILY,
        target_value=3,
        xp_reward=20,
        expiry_rule=ExpiryRule.END_OF_DAY,
    ),
    # ========== WEEKLY ==========
    ChallengeDefinition(
        id="weekly-assessments",
        title="Weekly Wellness Check",
        description="Complete 3 assessments this week",
        period_kind=PeriodKind.WEEKLY,
        target_value=3,
        xp_reward=150,
        expiry_rule=ExpiryRule.ROLLING_WEEK,
    ),
    ChallengeDefinition(
        id="weekly-mindfulness",
        title="Mindfulness Marathon",
        description="Complete 60 minutes of mindfulness",
        period_kind=PeriodKind.WEEKLY,
        target_value=60,
        xp_reward=200,
        expiry_rule=ExpiryRule.ROLLING_WEEK,
    ),
    ChallengeDefinition(
        id="weekly-community",
        title="Community Contributor",
        description="Engage with community 5 times",
        period_kind=PeriodKind.WEEKLY,
        target_value=5,
        xp_reward=100,
        expiry_rule=ExpiryRule.ROLLING_WEEK,
    ),
)


LEVEL_REWARDS: Tuple[RewardDefinition, ...] = (
    RewardDefinition(
        unlock_level=5,
        title="New App Icon",
        description="Unlock a new exclusive app icon to customize your home screen.",
        effect_kind=RewardEffect.APP_ICON,
    ),
    RewardDefinition(
        unlock_level=10,
        title="Mindful Master Theme",
        description="Access a new calming theme for the entire application.",
        effect_kind=RewardEffect.THEME,
    ),
    RewardDefinition(
        unlock_level=20,
        title="Early Feature Access",
        description="Get a sneak peek at new features before anyone else.",
        effect_kind=RewardEffect.EARLY_ACCESS,
    ),
    RewardDefinition(
        unlock_level=30,
        title="Premium Meditation Pack",
        description="Unlock a pack of premium guided meditation sessions.",
        effect_kind=RewardEffect.PREMIUM_MEDITATION,
    ),
    RewardDefinition(
        unlock_level=50,
        title="Legendary Profile Badge",
        description="Display a prestigious 'Legendary' badge on your profile.",
        effect_kind=RewardEffect.LEGENDARY_BADGE,
    ),
)


@dataclass(frozen=True)
class ProgressionCatalog:
    """The three catalogs, validated together"""
    achievements: Tuple[AchievementDefinition, ...]
    challenges: Tuple[ChallengeDefinition, ...]
    rewards: Tuple[RewardDefinition, ...]

    def __post_init__(self):
        _require_unique("achievement_id", [a.id for a in self.achievements])
        _require_unique("challenge_id", [c.id for c in self.challenges])
        _require_unique("unlock_level", [r.unlock_level for r in self.rewards])

    def challenge(self, challenge_id: str) -> ChallengeDefinition:
        """Look up a challenge by id"""
        for challenge in self.challenges:
            if challenge.id == challenge_id:
                return challenge
        raise ValidationError(
            f"Unknown challenge id: '{challenge_id}'",
            field="challenge_id",
            value=challenge_id,
        )


def _require_unique(field: str, values: list) -> None:
    seen = set()
    for value in values:
        if value in seen:
            raise ValidationError(f"Duplicate {field} in catalog: {value!r}", field=field, value=value)
        seen.add(value)


def load_default_catalog() -> ProgressionCatalog:
    """Catalog shipped with the app"""
    catalog = ProgressionCatalog(
        achievements=ACHIEVEMENTS,
        challenges=CHALLENGES,
        rewards=LEVEL_REWARDS,
    )
    logger.debug(
        f"Loaded catalog: {len(catalog.achievements)} achievements, "
        f"{len(catalog.challenges)} challenges, {len(catalog.rewards)} rewards"
    )
    return catalog
