"""
Gamification Integration Service

Connects the pure progression engine to the document store and identity
provider. Call these methods at the app's trigger points (page load,
manual refresh, activity completed, challenge claimed, game finished).

Each call is one evaluate-then-persist cycle:
1. read the user's document snapshot
2. evaluate with the pure engine
3. apply the resulting DocumentUpdate in one atomic store write

Cycles for the same user run one at a time through a per-user lock, so two
rapid actions in one process can't interleave their writes. Across
processes the store is last-writer-wins; guarded unlocks keep XP grants
idempotent. Retryable store failures re-run the whole cycle.

Usage:
    service = ProgressionService(store, identity, load_default_catalog())
    update = await service.record_activity("mindfulness", minutes=10)
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Set

from mindwell.exceptions import AuthenticationError
from mindwell.gamification.catalog import ProgressionCatalog, load_default_catalog
from mindwell.gamification.engine import (
    ProgressionUpdate,
    evaluate_progression,
    plan_challenge_claim,
    plan_game_session,
    record_activity,
)
from mindwell.gamification.xp_system import LevelCurve
from mindwell.models.progression import UserProfile
from mindwell.resilience.retry import MAX_RETRIES, retry_with_backoff
from mindwell.store.base import Document, DocumentStore, IdentityProvider
from mindwell.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)


Planner = Callable[[UserProfile, datetime], ProgressionUpdate]


class ProgressionService:
    """Evaluate-then-persist cycles for the signed-in user"""

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        catalog: Optional[ProgressionCatalog] = None,
        curve: Optional[LevelCurve] = None,
        clock: Callable[[], datetime] = now_utc,
        max_retries: int = MAX_RETRIES
    ):
        self.store = store
        self.identity = identity
        self.catalog = catalog or load_default_catalog()
        self.curve = curve
        self.clock = clock
        self.max_retries = max_retries
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending_refresh: Set[str] = set()

    def _require_user(self) -> str:
        user_id = self.identity.current_user_id()
        if not user_id:
            raise AuthenticationError(operation="progression_cycle")
        return user_id

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def load_profile(self, user_id: Optional[str] = None) -> UserProfile:
        """Current profile snapshot (a fresh profile if no document exists)"""
        user_id = user_id or self._require_user()
        document = await self.store.get(user_id)
        return profile_from_document(user_id, document)

    async def _cycle_once(self, user_id: str, planner: Planner, operation: str) -> ProgressionUpdate:
        profile = await self.load_profile(user_id)
        result = planner(profile, self.clock())

        if result.has_changes:
            await self.store.apply_update(user_id, result.document_update)
            logger.info(
                f"[PROGRESSION] {operation} for user {user_id}: "
                f"level {result.level_progress.level} ({result.rank}), "
                f"+{result.achievements.total_xp_awarded} achievement XP, "
                f"{len(result.achievements.newly_unlocked)} achievements, "
                f"{len(result.rewards.newly_applied)} rewards"
            )
        else:
            logger.debug(f"[PROGRESSION] {operation} for user {user_id}: nothing to persist")

        return result

    async def _run_cycle(self, planner: Planner, operation: str) -> ProgressionUpdate:
        user_id = self._require_user()
        try:
            async with self._lock_for(user_id):
                return await retry_with_backoff(
                    self._cycle_once,
                    user_id,
                    planner,
                    operation,
                    max_retries=self.max_retries,
                )
        finally:
            if user_id in self._pending_refresh:
                self._pending_refresh.discard(user_id)
                await self._refresh_after_change(user_id)

    async def refresh(self) -> ProgressionUpdate:
        """Recompute level/rank and persist any unlocks now due"""
        return await self._run_cycle(
            lambda profile, now: evaluate_progression(profile, self.catalog, now, self.curve),
            "refresh",
        )

    async def record_activity(self, activity_type: str, minutes: float = 0) -> ProgressionUpdate:
        """Record a qualifying activity (streak, counters, XP) and persist unlocks"""
        return await self._run_cycle(
            lambda profile, now: record_activity(
                profile, self.catalog, activity_type, now, minutes=minutes, curve=self.curve
            ),
            f"record_activity:{activity_type}",
        )

    async def claim_challenge(self, challenge_id: str) -> ProgressionUpdate:
        """Claim a completed challenge for the current period"""
        return await self._run_cycle(
            lambda profile, now: plan_challenge_claim(profile, self.catalog, challenge_id, now, self.curve),
            f"claim_challenge:{challenge_id}",
        )

    async def award_game_xp(self, track_name: str, xp_amount: int) -> ProgressionUpdate:
        """Record a finished mini-game session"""
        return await self._run_cycle(
            lambda profile, now: plan_game_session(
                profile, self.catalog, track_name, xp_amount, now, curve=self.curve
            ),
            f"game_session:{track_name}",
        )

    async def _refresh_after_change(self, user_id: str) -> None:
        """Refresh triggered by a store notification; failures are logged, not raised"""
        if self.identity.current_user_id() != user_id:
            logger.debug(f"[PROGRESSION] Ignoring change for user {user_id}: not the signed-in user")
            return

        try:
            await self.refresh()
        except Exception as e:
            logger.error(
                f"[PROGRESSION] ERROR in refresh after store change for user {user_id}: "
                f"{type(e).__name__}: {e}",
                exc_info=True
            )

    def watch(self) -> Callable[[], None]:
        """
        Re-run refresh whenever the signed-in user's document changes

        A change that lands while a cycle for the user is running (the
        cycle's own write included) is evaluated by one more refresh once
        that cycle releases the lock; that refresh is a no-op unless another
        writer changed the document. Refresh errors are logged and never reach
        the writer that caused the notification.

        Returns:
            Function that stops watching
        """
        user_id = self._require_user()

        async def on_change(changed_user_id: str, document: Document) -> None:
            if self._lock_for(changed_user_id).locked():
                self._pending_refresh.add(changed_user_id)
                return
            await self._refresh_after_change(changed_user_id)

        return self.store.subscribe(user_id, on_change)


def profile_from_document(user_id: str, document: Optional[Document]) -> UserProfile:
    """Build a UserProfile from a stored document (stored level is a cache)"""
    data = dict(document or {})
    data["user_id"] = user_id
    return UserProfile.model_validate(data)
