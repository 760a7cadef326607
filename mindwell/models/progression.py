"""Progression models for gamification"""
from enum import Enum
from typing import Optional
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator
import pytz


class AchievementCategory(str, Enum):
    """Achievement categories, each bound to one aggregate counter"""
    STREAK = "streak"
    ASSESSMENT = "assessment"
    MINDFULNESS = "mindfulness"
    COMMUNITY = "community"
    SPECIAL = "special"


class RarityTier(str, Enum):
    """Achievement rarity"""
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class PeriodKind(str, Enum):
    """Challenge reset period"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ExpiryRule(str, Enum):
    """How a challenge period's end is computed from its start day"""
    END_OF_DAY = "end_of_day"
    ROLLING_WEEK = "rolling_week"
    END_OF_MONTH = "end_of_month"


class RewardEffect(str, Enum):
    """Profile side effect applied once when a level reward unlocks"""
    APP_ICON = "app_icon"
    THEME = "theme"
    EARLY_ACCESS = "early_access"
    PREMIUM_MEDITATION = "premium_meditation"
    LEGENDARY_BADGE = "legendary_badge"


# ==========================================
# Static catalog definitions
# ==========================================

class AchievementDefinition(BaseModel):
    """Achievement definition (immutable catalog entry)"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    description: str = ""
    category: AchievementCategory
    requirement_threshold: float = Field(ge=0)
    xp_reward: int = Field(ge=0)
    rarity: RarityTier = RarityTier.COMMON


class ChallengeDefinition(BaseModel):
    """Challenge definition (immutable catalog entry)"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    description: str = ""
    period_kind: PeriodKind
    target_value: float = Field(gt=0)
    xp_reward: int = Field(ge=0)
    expiry_rule: ExpiryRule


class RewardDefinition(BaseModel):
    """Level reward definition (immutable catalog entry)"""
    model_config = ConfigDict(frozen=True)

    unlock_level: int = Field(ge=1)
    title: str
    description: str = ""
    effect_kind: RewardEffect


# ==========================================
# Derived values
# ==========================================

class LevelProgress(BaseModel):
    """Level derived from a cumulative XP total"""
    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1)
    xp_into_level: int = Field(ge=0)
    xp_to_next_level: int = Field(gt=0)

    @property
    def percent(self) -> float:
        """Progress within the current level, 0-100"""
        return self.xp_into_level / self.xp_to_next_level * 100


class UserCounters(BaseModel):
    """Aggregate counters consumed by achievement and challenge predicates"""
    model_config = ConfigDict(frozen=True)

    assessments_completed: int = Field(default=0, ge=0)
    current_streak_days: int = Field(default=0, ge=0)
    total_mindfulness_minutes: float = Field(default=0, ge=0)
    wellness_score_percent: float = Field(default=0, ge=0)
    community_help_count: int = Field(default=0, ge=0)

    # Period counters (daily and weekly, zeroed at each period boundary)
    moods_logged_today: int = Field(default=0, ge=0)
    mindfulness_minutes_today: float = Field(default=0, ge=0)
    gratitude_entries_today: int = Field(default=0, ge=0)
    assessments_this_period: int = Field(default=0, ge=0)
    mindfulness_minutes_this_period: float = Field(default=0, ge=0)


# ==========================================
# Per-activity leveling
# ==========================================

class GameTrack(BaseModel):
    """Independent leveling track for one mini-game"""
    total_xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)  # display cache, recomputed from total_xp
    xp_into_level: int = Field(default=0, ge=0)
    xp_to_next_level: int = Field(default=100, gt=0)
    prestige_count: int = Field(default=0, ge=0)


class GameStats(BaseModel):
    """All game tracks for one user plus player-wide totals"""
    tracks: dict[str, GameTrack] = Field(default_factory=dict)
    player_xp: int = Field(default=0, ge=0)
    total_games_played: int = Field(default=0, ge=0)
    last_played: Optional[date] = None


# ==========================================
# User document
# ==========================================

class UserProfile(BaseModel):
    """
    Snapshot of a user's progression document

    `level` is a display cache only; every read recomputes it from
    `total_xp`. The unlocked/applied/claimed lists are append-only sets.
    """
    user_id: str
    timezone: str = "UTC"  # IANA timezone (e.g., "Europe/Stockholm")

    total_xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)

    streak_count: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    last_activity_date: Optional[date] = None

    unlocked_achievement_ids: list[str] = Field(default_factory=list)
    unlocked_reward_levels: list[int] = Field(default_factory=list)
    completed_challenge_ids: list[str] = Field(default_factory=list)

    # Aggregate counters
    # Daily counters belong to daily_counters_date, weekly ones to the week
    # starting weekly_counters_start; older values are rolled to zero on read.
    daily_counters_date: Optional[date] = None
    weekly_counters_start: Optional[date] = None
    assessments_completed: int = Field(default=0, ge=0)
    total_mindfulness_minutes: float = Field(default=0, ge=0)
    wellness_score_percent: float = Field(default=0, ge=0)
    community_help_count: int = Field(default=0, ge=0)
    moods_logged_today: int = Field(default=0, ge=0)
    mindfulness_minutes_today: float = Field(default=0, ge=0)
    gratitude_entries_today: int = Field(default=0, ge=0)
    assessments_this_period: int = Field(default=0, ge=0)
    mindfulness_minutes_this_period: float = Field(default=0, ge=0)

    # Reward side effects
    unlocked_app_icons: list[str] = Field(default_factory=list)
    unlocked_themes: list[str] = Field(default_factory=list)
    early_access: bool = False
    premium_meditation_unlocked: bool = False
    legendary_badge: bool = False

    game_stats: GameStats = Field(default_factory=GameStats)

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure valid IANA timezone"""
        try:
            pytz.timezone(v)
        except pytz.exceptions.UnknownTimeZoneError:
            raise ValueError(
                f"Invalid timezone: '{v}'. "
                f"Use IANA timezone (e.g., 'Europe/Stockholm', 'America/New_York')"
            )
        return v

    def counters(self) -> UserCounters:
        """Project the counter fields consumed by the evaluators"""
        return UserCounters(
            assessments_completed=self.assessments_completed,
            current_streak_days=self.streak_count,
            total_mindfulness_minutes=self.total_mindfulness_minutes,
            wellness_score_percent=self.wellness_score_percent,
            community_help_count=self.community_help_count,
            moods_logged_today=self.moods_logged_today,
            mindfulness_minutes_today=self.mindfulness_minutes_today,
            gratitude_entries_today=self.gratitude_entries_today,
            assessments_this_period=self.assessments_this_period,
            mindfulness_minutes_this_period=self.mindfulness_minutes_this_period,
        )
