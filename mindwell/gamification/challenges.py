"""
Challenge System

Daily, weekly and monthly goals whose progress is recomputed from live
counters on every evaluation.

Completion alone never grants XP. The caller claims a completed challenge
once per period; the claim is recorded under a period-scoped key
("<challenge_id>@<period_start>") so a refresh can't award it twice and the
next period starts fresh. Expired challenges can't be claimed.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from mindwell.exceptions import ChallengeNotClaimableError, ValidationError
from mindwell.models.progression import (
    ChallengeDefinition,
    ExpiryRule,
    PeriodKind,
    UserCounters,
)
from mindwell.utils.datetime_helpers import get_zone, today_in_timezone

logger = logging.getLogger(__name__)


ProgressSource = Callable[[UserCounters], float]


# Challenge id -> progress source. None marks a challenge with no counter
# wired yet (progress stays 0).
PROGRESS_SOURCES: Dict[str, Optional[ProgressSource]] = {
    "daily-mood": lambda c: 1 if c.moods_logged_today > 0 else 0,
    "daily-mindfulness": lambda c: 1 if c.mindfulness_minutes_today >= 5 else 0,
    "daily-gratitude": lambda c: c.gratitude_entries_today,
    "weekly-assessments": lambda c: c.assessments_this_period,
    "weekly-mindfulness": lambda c: c.mindfulness_minutes_this_period,
    "weekly-community": None,
}


# Period each source's counters cover. The "_this_period" counters reset
# every ISO week, so no source backs a monthly challenge yet.
SOURCE_PERIODS: Dict[str, PeriodKind] = {
    "daily-mood": PeriodKind.DAILY,
    "daily-mindfulness": PeriodKind.DAILY,
    "daily-gratitude": PeriodKind.DAILY,
    "weekly-assessments": PeriodKind.WEEKLY,
    "weekly-mindfulness": PeriodKind.WEEKLY,
    "weekly-community": PeriodKind.WEEKLY,
}


@dataclass(frozen=True)
class ChallengeProgress:
    """Progress of one challenge against its target"""
    progress: float
    is_complete: bool


@dataclass(frozen=True)
class ChallengeStatus:
    """Display and claim state of one challenge in the current period"""
    challenge: ChallengeDefinition
    progress: float
    is_complete: bool
    period_start: date
    expires_at: datetime
    is_expired: bool
    is_claimed: bool

    @property
    def claim_key(self) -> str:
        return challenge_claim_key(self.challenge, self.period_start)

    @property
    def claimable(self) -> bool:
        return self.is_complete and not self.is_expired and not self.is_claimed


@dataclass(frozen=True)
class ChallengeClaim:
    """A successful claim: record `claim_key` and award `xp_reward` together"""
    challenge_id: str
    claim_key: str
    xp_reward: int


def evaluate_challenge_progress(
    challenge: ChallengeDefinition,
    counters: UserCounters
) -> ChallengeProgress:
    """
    Compute progress toward a challenge

    Raises:
        ValidationError: If no progress source is registered for the id, or
            the source's counters cover a different period than the challenge
    """
    if challenge.id not in PROGRESS_SOURCES:
        raise ValidationError(
            f"Unknown challenge id: '{challenge.id}'",
            field="challenge_id",
            value=challenge.id,
        )

    source_period = SOURCE_PERIODS[challenge.id]
    if challenge.period_kind != source_period:
        raise ValidationError(
            f"Challenge '{challenge.id}' is {challenge.period_kind.value} but its "
            f"counters are {source_period.value}",
            field="period_kind",
            value=challenge.period_kind.value,
        )

    source = PROGRESS_SOURCES[challenge.id]
    progress = source(counters) if source is not None else 0

    return ChallengeProgress(
        progress=progress,
        is_complete=progress >= challenge.target_value,
    )


def period_start_for(challenge: ChallengeDefinition, today: date) -> date:
    """First day of the challenge period containing `today`"""
    if challenge.period_kind == PeriodKind.DAILY:
        return today
    if challenge.period_kind == PeriodKind.WEEKLY:
        return today - timedelta(days=today.weekday())
    return today.replace(day=1)


def challenge_expires_at(
    challenge: ChallengeDefinition,
    period_start: date,
    tz_name: Optional[str] = None
) -> datetime:
    """
    Instant at which the period starting on `period_start` ends

    - END_OF_DAY: 23:59:59 local on the start day
    - ROLLING_WEEK: start + 7 days, local midnight
    - END_OF_MONTH: first day of the next month, local midnight
    """
    zone = get_zone(tz_name)

    if challenge.expiry_rule == ExpiryRule.END_OF_DAY:
        return datetime.combine(period_start, time(23, 59, 59), tzinfo=zone)

    if challenge.expiry_rule == ExpiryRule.ROLLING_WEEK:
        return datetime.combine(period_start + timedelta(days=7), time.min, tzinfo=zone)

    if period_start.month == 12:
        next_month = date(period_start.year + 1, 1, 1)
    else:
        next_month = date(period_start.year, period_start.month + 1, 1)
    return datetime.combine(next_month, time.min, tzinfo=zone)


def challenge_claim_key(challenge: ChallengeDefinition, period_start: date) -> str:
    return f"{challenge.id}@{period_start.isoformat()}"


def get_challenge_status(
    challenge: ChallengeDefinition,
    counters: UserCounters,
    claimed_keys: Iterable[str],
    now: datetime,
    tz_name: Optional[str] = None,
    period_start: Optional[date] = None
) -> ChallengeStatus:
    """
    Evaluate progress, expiry and claim state for the period containing `now`

    Pass `period_start` to check a specific (possibly past) period.
    """
    if period_start is None:
        period_start = period_start_for(challenge, today_in_timezone(tz_name, now))

    result = evaluate_challenge_progress(challenge, counters)
    expires_at = challenge_expires_at(challenge, period_start, tz_name)

    return ChallengeStatus(
        challenge=challenge,
        progress=result.progress,
        is_complete=result.is_complete,
        period_start=period_start,
        expires_at=expires_at,
        is_expired=now >= expires_at,
        is_claimed=challenge_claim_key(challenge, period_start) in set(claimed_keys),
    )


def evaluate_challenges(
    catalog: Sequence[ChallengeDefinition],
    counters: UserCounters,
    claimed_keys: Iterable[str],
    now: datetime,
    tz_name: Optional[str] = None
) -> List[ChallengeStatus]:
    """Status of every challenge in catalog order"""
    claimed = set(claimed_keys)
    return [
        get_challenge_status(challenge, counters, claimed, now, tz_name)
        for challenge in catalog
    ]


def claim_challenge(
    challenge: ChallengeDefinition,
    counters: UserCounters,
    claimed_keys: Iterable[str],
    now: datetime,
    tz_name: Optional[str] = None,
    period_start: Optional[date] = None
) -> ChallengeClaim:
    """
    Claim a completed challenge for its period

    Raises:
        ChallengeNotClaimableError: If incomplete, expired or already claimed
    """
    status = get_challenge_status(challenge, counters, claimed_keys, now, tz_name, period_start)

    if status.is_expired:
        raise ChallengeNotClaimableError(
            f"Challenge '{challenge.id}' expired at {status.expires_at.isoformat()}",
            challenge_id=challenge.id,
            reason="expired",
        )
    if status.is_claimed:
        raise ChallengeNotClaimableError(
            f"Challenge '{challenge.id}' already claimed for period {status.period_start}",
            challenge_id=challenge.id,
            reason="already_claimed",
        )
    if not status.is_complete:
        raise ChallengeNotClaimableError(
            f"Challenge '{challenge.id}' incomplete: {status.progress}/{challenge.target_value}",
            challenge_id=challenge.id,
            reason="incomplete",
        )

    logger.info(f"Challenge claimed: {status.claim_key} +{challenge.xp_reward} XP")

    return ChallengeClaim(
        challenge_id=challenge.id,
        claim_key=status.claim_key,
        xp_reward=challenge.xp_reward,
    )
