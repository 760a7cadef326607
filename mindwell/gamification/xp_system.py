"""
XP and Leveling System

Converts cumulative XP into levels and rank labels.

Leveling Curves:
- Linear block (primary account level): every level costs B XP (default 100)
- Geometric (mini-game tracks): level k costs floor(B0 * r^(k-1)) XP,
  so with B0=100, r=1.5 the thresholds are 0, 100, 250, 475, 812, ...

Rank Tiers (by level):
- Beginner (1+), Intermediate (5+), Advanced (10+), Expert (20+),
  Master (30+), Legendary (50+)

XP Award Rules:
- Assessment completed: 20 XP
- Mood logged: 10 XP
- Gratitude entry: 5 XP
- Mindfulness: 10 XP per minute
- Game session: score-derived XP passed by the caller
- Achievement unlocks: 50-2000 XP (from the catalog)
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple
from fractions import Fraction
import logging
import math

from mindwell.config import PRIMARY_XP_BLOCK_SIZE, TRACK_XP_BASE, TRACK_XP_GROWTH
from mindwell.exceptions import ValidationError
from mindwell.models.progression import LevelProgress

logger = logging.getLogger(__name__)


RANK_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (1, "Beginner"),
    (5, "Intermediate"),
    (10, "Advanced"),
    (20, "Expert"),
    (30, "Master"),
    (50, "Legendary"),
)


class LevelCurve(Protocol):
    """Growth curve strategy"""

    def threshold(self, level: int) -> int:
        """Cumulative XP required to reach `level`"""
        ...

    def resolve(self, total_xp: int) -> LevelProgress:
        ...


@dataclass(frozen=True)
class LinearBlockCurve:
    """Fixed-size blocks: level = floor(xp / B) + 1"""
    block_size: int = 100

    def __post_init__(self):
        if self.block_size <= 0:
            raise ValidationError("Block size must be positive", field="block_size", value=self.block_size)

    def threshold(self, level: int) -> int:
        return (level - 1) * self.block_size

    def resolve(self, total_xp: int) -> LevelProgress:
        return LevelProgress(
            level=total_xp // self.block_size + 1,
            xp_into_level=total_xp % self.block_size,
            xp_to_next_level=self.block_size,
        )


@dataclass(frozen=True)
class GeometricCurve:
    """Blocks growing by `ratio` per level, starting at `base`"""
    base: int = 100
    ratio: float = 1.5

    def __post_init__(self):
        if self.base <= 0:
            raise ValidationError("Curve base must be positive", field="base", value=self.base)
        if self.ratio <= 1.0:
            raise ValidationError("Curve ratio must be greater than 1", field="ratio", value=self.ratio)

    def _exact_ratio(self) -> Fraction:
        # Exact ratio; float powers overflow past level ~1700
        return Fraction(str(self.ratio))

    def block(self, level: int) -> int:
        """XP needed to go from `level` to `level + 1`"""
        return math.floor(self.base * self._exact_ratio() ** (level - 1))

    def threshold(self, level: int) -> int:
        return sum(self.block(k) for k in range(1, level))

    def resolve(self, total_xp: int) -> LevelProgress:
        ratio = self._exact_ratio()
        exact_block = Fraction(self.base)
        level = 1
        floor_xp = 0
        block = math.floor(exact_block)

        while total_xp >= floor_xp + block:
            floor_xp += block
            level += 1
            exact_block *= ratio
            block = math.floor(exact_block)

        return LevelProgress(
            level=level,
            xp_into_level=total_xp - floor_xp,
            xp_to_next_level=block,
        )


PRIMARY_CURVE = LinearBlockCurve(block_size=PRIMARY_XP_BLOCK_SIZE)
TRACK_CURVE = GeometricCurve(base=TRACK_XP_BASE, ratio=TRACK_XP_GROWTH)


def _require_xp(total_xp: int, field: str = "total_xp") -> None:
    if isinstance(total_xp, bool) or not isinstance(total_xp, int):
        raise ValidationError("XP must be an integer", field=field, value=total_xp)
    if total_xp < 0:
        raise ValidationError("XP cannot be negative", field=field, value=total_xp)


def resolve_level(total_xp: int, curve: Optional[LevelCurve] = None) -> LevelProgress:
    """
    Calculate level and in-level progress from total XP

    Args:
        total_xp: Cumulative XP (non-negative integer)
        curve: Growth curve (defaults to the primary linear curve)

    Returns:
        LevelProgress(level, xp_into_level, xp_to_next_level)

    Raises:
        ValidationError: If total_xp is negative or not an integer
    """
    _require_xp(total_xp)
    return (curve or PRIMARY_CURVE).resolve(total_xp)


def resolve_rank(level: int) -> str:
    """
    Map a level to its rank label

    Scans RANK_THRESHOLDS in order and keeps the highest tier whose lower
    bound the level meets.
    """
    if isinstance(level, bool) or not isinstance(level, int) or level < 1:
        raise ValidationError("Level must be an integer >= 1", field="level", value=level)

    rank = RANK_THRESHOLDS[0][1]
    for min_level, name in RANK_THRESHOLDS:
        if level >= min_level:
            rank = name
        else:
            break
    return rank


@dataclass(frozen=True)
class XpAward:
    """Result of adding XP to a total"""
    old_total_xp: int
    new_total_xp: int
    old_level: int
    new_level: int
    progress: LevelProgress

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level

    @property
    def levels_gained(self) -> List[int]:
        return list(range(self.old_level + 1, self.new_level + 1))


def award_xp(total_xp: int, amount: int, curve: Optional[LevelCurve] = None) -> XpAward:
    """
    Add XP to a total and report level changes

    Args:
        total_xp: Current cumulative XP
        amount: XP to add (non-negative)
        curve: Growth curve (defaults to the primary linear curve)
    """
    _require_xp(total_xp)
    _require_xp(amount, field="amount")

    curve = curve or PRIMARY_CURVE
    old_level = curve.resolve(total_xp).level
    new_total = total_xp + amount
    progress = curve.resolve(new_total)

    if progress.level > old_level:
        logger.info(f"Level up: {old_level} -> {progress.level} ({new_total} XP)")

    return XpAward(
        old_total_xp=total_xp,
        new_total_xp=new_total,
        old_level=old_level,
        new_level=progress.level,
        progress=progress,
    )


def get_xp_for_activity(activity_type: str, **kwargs) -> int:
    """
    Calculate XP amount for different activity types

    Args:
        activity_type: assessment, mood, gratitude, mindfulness or game
        **kwargs: minutes (mindfulness), xp (game)

    Returns:
        XP amount to award

    Raises:
        ValidationError: For unknown activity types, negative minutes or invalid game XP
    """
    base_xp = {
        "assessment": 20,
        "mood": 10,
        "gratitude": 5,
    }

    if activity_type == "mindfulness":
        minutes = kwargs.get("minutes", 0)
        if minutes < 0:
            raise ValidationError("Minutes cannot be negative", field="minutes", value=minutes)
        return int(minutes) * 10

    if activity_type == "game":
        xp = kwargs.get("xp", 0)
        if isinstance(xp, bool) or not isinstance(xp, int) or xp < 0:
            raise ValidationError("Game XP must be a non-negative integer", field="xp", value=xp)
        return xp

    if activity_type not in base_xp:
        raise ValidationError(
            f"Unknown activity type: '{activity_type}'",
            field="activity_type",
            value=activity_type,
        )

    return base_xp[activity_type]
