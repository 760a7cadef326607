"""Global test fixtures for mindwell tests"""
import pytest
from datetime import datetime, date, timezone

from mindwell.gamification.catalog import load_default_catalog
from mindwell.models.progression import UserCounters, UserProfile
from mindwell.store.base import StaticIdentityProvider
from mindwell.store.memory import InMemoryDocumentStore


# ============================================================================
# Clock Fixtures
# ============================================================================

@pytest.fixture
def now():
    """Fixed reference instant: Wednesday 2024-03-13 12:00 UTC"""
    return datetime(2024, 3, 13, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def today(now):
    return now.date()


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def profile(test_user_id):
    """Fresh profile with no progress"""
    return UserProfile(user_id=test_user_id)


@pytest.fixture
def active_profile(test_user_id, today):
    """Profile with some history, counters current for `today`"""
    return UserProfile(
        user_id=test_user_id,
        total_xp=250,
        level=3,
        streak_count=3,
        best_streak=5,
        last_activity_date=date(2024, 3, 12),
        assessments_completed=2,
        total_mindfulness_minutes=30,
        daily_counters_date=today,
        weekly_counters_start=date(2024, 3, 11),
        unlocked_achievement_ids=["first-step"],
    )


@pytest.fixture
def counters():
    """Empty counters"""
    return UserCounters()


# ============================================================================
# Catalog & Store Fixtures
# ============================================================================

@pytest.fixture
def catalog():
    return load_default_catalog()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def identity(test_user_id):
    return StaticIdentityProvider(test_user_id)
