"""
Daily Streak System

A streak counts consecutive calendar days with at least one qualifying
activity (assessment, mood log, mindfulness session).

Rules (days between last activity and today):
- no previous activity: streak starts at 1
- 0 days: already counted today, unchanged
- 1 day: streak continues (+1)
- >1 days: gap breaks the chain, restart at 1
- <0 days (clock skew, stale cache): no-op, never decrement
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union
import logging

from mindwell.exceptions import ValidationError
from mindwell.utils.datetime_helpers import days_between, to_calendar_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakDelta:
    """Outcome of one streak evaluation"""
    new_streak_count: int
    did_increment: bool


def resolve_streak_delta(
    last_activity_date: Optional[Union[date, datetime]],
    today: Union[date, datetime],
    previous_streak_count: int = 0
) -> StreakDelta:
    """
    Compute the streak after an activity on `today`

    Args:
        last_activity_date: Date of the previous qualifying activity, or None
        today: The user's local "today"
        previous_streak_count: Stored streak before this activity

    Returns:
        StreakDelta(new_streak_count, did_increment)

    Raises:
        ValidationError: On non-date input or a negative stored streak
    """
    if isinstance(previous_streak_count, bool) or not isinstance(previous_streak_count, int) \
            or previous_streak_count < 0:
        raise ValidationError(
            "Streak count must be a non-negative integer",
            field="previous_streak_count",
            value=previous_streak_count,
        )

    today = to_calendar_date(today, field="today")

    if last_activity_date is None:
        return StreakDelta(new_streak_count=1, did_increment=True)

    last_date = to_calendar_date(last_activity_date, field="last_activity_date")
    day_delta = days_between(last_date, today)

    if day_delta == 0:
        return StreakDelta(new_streak_count=previous_streak_count, did_increment=False)

    if day_delta == 1:
        return StreakDelta(new_streak_count=previous_streak_count + 1, did_increment=True)

    if day_delta > 1:
        logger.info(
            f"Streak broken after {day_delta} days. "
            f"Was {previous_streak_count}, restarting at 1"
        )
        return StreakDelta(new_streak_count=1, did_increment=True)

    logger.warning(
        f"Last activity {last_date} is after today {today}; leaving streak at {previous_streak_count}"
    )
    return StreakDelta(new_streak_count=previous_streak_count, did_increment=False)


def update_best_streak(best_streak: int, current_streak: int) -> int:
    """Longest streak seen so far"""
    return max(best_streak, current_streak)


def format_streak_display(current_streak: int, best_streak: int) -> str:
    """Short human-readable streak summary"""
    if current_streak <= 0:
        return "No active streak yet. Check in today to start one!"

    line = f"🔥 {current_streak} day streak"
    if best_streak > current_streak:
        line += f" (best: {best_streak})"
    return line
