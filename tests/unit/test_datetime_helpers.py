"""Unit tests for date/time helpers"""
import pytest
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from mindwell.exceptions import ValidationError
from mindwell.utils.datetime_helpers import (
    days_between,
    get_zone,
    now_utc,
    to_calendar_date,
    today_in_timezone,
)


def test_get_zone():
    assert get_zone("Europe/Stockholm") == ZoneInfo("Europe/Stockholm")


def test_get_zone_falls_back_to_default():
    assert get_zone(None) == ZoneInfo("UTC")
    assert get_zone("Not/AZone") == ZoneInfo("UTC")


def test_now_utc_is_aware():
    assert now_utc().utcoffset().total_seconds() == 0


def test_today_in_timezone_crosses_midnight():
    """Test the same instant is a different date in different zones"""
    instant = datetime(2024, 3, 13, 23, 30, tzinfo=timezone.utc)

    assert today_in_timezone("UTC", instant) == date(2024, 3, 13)
    assert today_in_timezone("Asia/Tokyo", instant) == date(2024, 3, 14)
    assert today_in_timezone("America/New_York", instant) == date(2024, 3, 13)


def test_today_in_timezone_rejects_naive():
    with pytest.raises(ValidationError):
        today_in_timezone("UTC", datetime(2024, 3, 13, 12, 0))


def test_to_calendar_date():
    assert to_calendar_date(date(2024, 3, 13)) == date(2024, 3, 13)
    assert to_calendar_date(datetime(2024, 3, 13, 18, 45)) == date(2024, 3, 13)

    with pytest.raises(ValidationError):
        to_calendar_date("2024-03-13")


def test_days_between():
    assert days_between(date(2024, 3, 12), date(2024, 3, 13)) == 1
    assert days_between(date(2024, 3, 13), date(2024, 3, 13)) == 0
    assert days_between(date(2024, 3, 14), date(2024, 3, 13)) == -1
