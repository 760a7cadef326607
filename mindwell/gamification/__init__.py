"""
Gamification system for MindWell

Progression engine for a wellness app:
- XP and leveling (linear account curve, geometric game-track curve)
- Daily activity streaks
- Threshold achievements
- Daily, weekly and monthly challenges
- One-time level rewards

Everything except ProgressionService is pure; the service persists
results through a DocumentStore.
"""

from mindwell.gamification.xp_system import resolve_level, resolve_rank, award_xp, get_xp_for_activity
from mindwell.gamification.streak_system import resolve_streak_delta
from mindwell.gamification.achievement_system import evaluate_achievements, get_achievement_progress
from mindwell.gamification.challenges import evaluate_challenge_progress, evaluate_challenges, claim_challenge
from mindwell.gamification.rewards import apply_level_rewards
from mindwell.gamification.catalog import ProgressionCatalog, load_default_catalog
from mindwell.gamification.engine import evaluate_progression, record_activity
from mindwell.gamification.integrations import ProgressionService

__all__ = [
    "resolve_level",
    "resolve_rank",
    "award_xp",
    "get_xp_for_activity",
    "resolve_streak_delta",
    "evaluate_achievements",
    "get_achievement_progress",
    "evaluate_challenge_progress",
    "evaluate_challenges",
    "claim_challenge",
    "apply_level_rewards",
    "ProgressionCatalog",
    "load_default_catalog",
    "evaluate_progression",
    "record_activity",
    "ProgressionService",
]
