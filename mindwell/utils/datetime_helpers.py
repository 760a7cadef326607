"""
Date/Time Handling Utilities

Streaks and challenge periods are measured in the user's local calendar
days. These helpers turn aware datetimes and timezone names into those days.

RULES:
- Never mix naive and aware datetimes
- "Today" always comes from a timezone, never from the host clock's zone
"""

import logging
from datetime import datetime, date
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from mindwell.config import DEFAULT_TIMEZONE
from mindwell.exceptions import ValidationError

logger = logging.getLogger(__name__)


def get_zone(tz_name: Optional[str]) -> ZoneInfo:
    """Resolve an IANA timezone name, falling back to DEFAULT_TIMEZONE"""
    if not tz_name:
        return ZoneInfo(DEFAULT_TIMEZONE)
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Invalid timezone '{tz_name}': {e}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def now_utc() -> datetime:
    """Current datetime in UTC (timezone-aware)"""
    return datetime.now(ZoneInfo("UTC"))


def today_in_timezone(tz_name: Optional[str], now: Optional[datetime] = None) -> date:
    """
    Calendar date in the given timezone

    Args:
        tz_name: IANA timezone name
        now: Aware reference instant (defaults to now_utc())

    Returns:
        Local calendar date
    """
    reference = now or now_utc()
    if reference.tzinfo is None:
        raise ValidationError("Reference time must be timezone-aware", field="now", value=reference)
    return reference.astimezone(get_zone(tz_name)).date()


def to_calendar_date(value: Union[date, datetime], field: str = "date") -> date:
    """
    Normalize a date or datetime to its calendar date (midnight truncation)

    Raises:
        ValidationError: If value is not a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise ValidationError(f"Expected a date, got {type(value).__name__}", field=field, value=value)


def days_between(earlier: date, later: date) -> int:
    """Whole calendar days from earlier to later (negative if reversed)"""
    return (later - earlier).days
