"""
Statistics Service - фасад статистики Reader на одну сессию приложения.

Объединяет:
- StatsAggregator: кэшируемые чтения (через StatsCache)
- BaselineDeltaCounter x2: общий счётчик и счётчик за неделю
- QuoteEventReactor: реакция на ``quotes:changed``

Публикация: снапшоты пишутся в state (``stats``, ``diary_stats``) и
рассылаются на шину (``stats:updated``, ``diary-stats:updated``).

Usage:
    >>> service = StatisticsService(api=client, state=app_state, bus=bus)
    >>> await service.warmup_initial_stats()
    >>> service.stats.total_quotes
    42
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Union

from loguru import logger

from src.cache.cache_keys import activity_percent_key, user_stats_keys
from src.cache.memory_cache import StatsCache
from src.core.enums import StatsTopic
from src.core.errors import UserNotReadyError
from src.core.events import EventBus
from src.core.state import StateStore
from src.services.stats.aggregator import StatsAggregator, local_now, summarize_quotes
from src.services.stats.contracts import StatsApi
from src.services.stats.counter import BaselineDeltaCounter
from src.services.stats.reactor import QuoteEventReactor
from src.services.stats.schemas import (
    DEFAULT_ACTIVITY_PERCENT,
    NO_AUTHOR,
    DetailedQuoteStats,
    DiaryStats,
    MainStats,
    Quote,
    StatsSnapshot,
    TopAnalysis,
    UserProgress,
)


STATS_STATE_KEY = "stats"
DIARY_STATS_STATE_KEY = "diary_stats"

# Snapshot fields owned by the two counters
_COUNTER_FIELDS = {
    "baseline_total",
    "pending_adds",
    "pending_deletes",
    "baseline_weekly",
    "pending_weekly_adds",
    "pending_weekly_deletes",
}


class StatisticsService:
    """
    Client-side statistics core for one session

    Construct once per session and pass it where mutation events are wired;
    binding to the bus is idempotent.
    """

    def __init__(
        self,
        api: StatsApi,
        state: StateStore,
        bus: Optional[EventBus] = None,
        cache: Optional[StatsCache] = None,
        now: Callable[[], datetime] = local_now,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            api: Reader backend client
            state: State store (current user, local quotes, published stats)
            bus: Event bus for ``*:updated`` broadcasts and ``quotes:changed``
            cache: Stats cache (a fresh one when omitted)
            now: Wall-clock datetime source for the 7/30-day windows
            clock: Epoch seconds source for ``loaded_at``
        """
        self.api = api
        self.state = state
        self.bus = bus
        self.cache = cache if cache is not None else StatsCache()
        self.aggregator = StatsAggregator(api, state, self.cache, now=now)
        self.reactor = QuoteEventReactor(self)
        self._now = now
        self._clock = clock

        # Baseline = whatever total the app already shows, deltas start at 0
        prior = state.get(STATS_STATE_KEY) or {}
        self.total = BaselineDeltaCounter(baseline_total=prior.get("total_quotes", 0))
        self.weekly = BaselineDeltaCounter(baseline_total=prior.get("weekly_quotes", 0))
        self._details: dict = {
            name: value
            for name, value in prior.items()
            if name in StatsSnapshot.model_fields and name not in _COUNTER_FIELDS
        }
        self._diary = DiaryStats.model_validate(state.get(DIARY_STATS_STATE_KEY) or {})

        if bus is not None:
            self.bind_events(bus)

    # =========================================================================
    # Snapshots
    # =========================================================================

    @property
    def stats(self) -> StatsSnapshot:
        """Current main-page snapshot (counts always derived from the counters)."""
        return StatsSnapshot.model_validate(
            {
                **self._details,
                "baseline_total": self.total.baseline_total,
                "pending_adds": self.total.pending_adds,
                "pending_deletes": self.total.pending_deletes,
                "baseline_weekly": self.weekly.baseline_total,
                "pending_weekly_adds": self.weekly.pending_adds,
                "pending_weekly_deletes": self.weekly.pending_deletes,
            }
        )

    @property
    def diary_stats(self) -> DiaryStats:
        return self._diary

    def _publish_stats(self) -> StatsSnapshot:
        snapshot = self.stats
        payload = snapshot.model_dump()
        self.state.set(STATS_STATE_KEY, payload)
        if self.bus is not None:
            self.bus.publish(StatsTopic.STATS_UPDATED, payload)
        return snapshot

    def _publish_diary(self) -> DiaryStats:
        payload = self._diary.model_dump()
        self.state.set(DIARY_STATS_STATE_KEY, payload)
        if self.bus is not None:
            self.bus.publish(StatsTopic.DIARY_STATS_UPDATED, payload)
        return self._diary

    def _sync_diary_counts(self) -> None:
        self._diary = self._diary.model_copy(
            update={
                "total_quotes": self.total.effective_total,
                "weekly_quotes": self.weekly.effective_total,
            }
        )

    def _publish_counts(self) -> StatsSnapshot:
        self._sync_diary_counts()
        self._publish_diary()
        return self._publish_stats()

    # =========================================================================
    # Reads (delegated to the aggregator)
    # =========================================================================

    async def get_main_stats(self) -> MainStats:
        return await self.aggregator.get_main_stats()

    async def get_user_progress(self) -> UserProgress:
        return await self.aggregator.get_user_progress()

    async def get_detailed_quote_stats(self) -> DetailedQuoteStats:
        return await self.aggregator.get_detailed_quote_stats()

    async def get_activity_percent(self) -> Union[int, float]:
        return await self.aggregator.get_activity_percent()

    async def get_diary_stats(self) -> DiaryStats:
        return await self.aggregator.get_diary_stats()

    async def get_latest_quotes(self, limit: int = 3) -> list[Quote]:
        return await self.aggregator.get_latest_quotes(limit)

    async def get_top_analyses(self, limit: int = 3) -> list[TopAnalysis]:
        return await self.aggregator.get_top_analyses(limit)

    def days_in_app(self) -> int:
        return int(self._details.get("days_in_app") or 0)

    # =========================================================================
    # Optimistic updates (synchronous, published immediately)
    # =========================================================================

    def apply_local_add(self) -> StatsSnapshot:
        self.total.on_local_add()
        self.weekly.on_local_add()
        return self._publish_counts()

    def apply_local_delete(self) -> StatsSnapshot:
        if self.total.effective_total == 0:
            logger.debug("Optimistic delete skipped: total is already 0")
            return self.stats
        self.total.on_local_delete_optimistic()
        self.weekly.on_local_delete_optimistic()
        return self._publish_counts()

    def revert_local_delete(self) -> StatsSnapshot:
        self.total.on_local_delete_reverted()
        self.weekly.on_local_delete_reverted()
        return self._publish_counts()

    def apply_local_edit(self, quotes: Optional[Iterable[Any]] = None) -> StatsSnapshot:
        """
        Recompute author, streak and favorites from the local quote list

        Edits never change counts, so totals stay with the counters.
        """
        quotes = self.aggregator.local_quotes() if quotes is None else quotes
        summary = summarize_quotes(quotes, now=self._now())
        backend_streak = int(self._details.get("backend_streak") or 0)

        self._details.update(
            current_streak=max(summary.computed_streak, backend_streak),
            computed_streak=summary.computed_streak,
            streak_to_yesterday=summary.streak_to_yesterday,
            is_awaiting_today=summary.is_awaiting_today,
            favorite_author=summary.favorite_author,
            activity_level=summary.activity_level,
        )
        self._diary = self._diary.model_copy(
            update={
                "monthly_quotes": summary.monthly_quotes,
                "favorites_count": summary.favorites_count,
                "favorite_author": summary.favorite_author,
            }
        )
        return self._publish_counts()

    # =========================================================================
    # Refreshes (never raise)
    # =========================================================================

    def _reconcile(self, main: MainStats, fallback_weekly: int) -> None:
        self.total.reconcile_with_server(main.total_quotes)
        server_weekly = main.weekly_quotes if main.weekly_quotes is not None else fallback_weekly
        self.weekly.reconcile_with_server(server_weekly)

    async def _refresh_main(self) -> StatsSnapshot:
        main = await self.aggregator.get_main_stats()
        progress = await self.aggregator.get_user_progress()

        self._reconcile(main, progress.weekly_quotes)
        self._details.update(
            current_streak=progress.current_streak,
            computed_streak=progress.computed_streak,
            backend_streak=progress.backend_streak,
            streak_to_yesterday=progress.streak_to_yesterday,
            is_awaiting_today=progress.is_awaiting_today,
            favorite_author=progress.favorite_author or NO_AUTHOR,
            activity_level=progress.activity_level,
            days_in_app=main.days_in_app,
            loaded_at=self._clock(),
            is_fresh=True,
            loading=False,
        )
        snapshot = self._publish_stats()
        logger.debug(
            f"Main stats refreshed: total={snapshot.total_quotes}, "
            f"weekly={snapshot.weekly_quotes}, streak={snapshot.current_streak}"
        )
        return snapshot

    async def refresh_main_stats_silent(self) -> Optional[StatsSnapshot]:
        """Background refresh: no loading flag, failures only logged."""
        try:
            return await self._refresh_main()
        except Exception as e:
            logger.debug(f"Silent main stats refresh failed: {e}")
            return None

    async def refresh_main_stats(self) -> Optional[StatsSnapshot]:
        """User-initiated refresh: toggles ``stats.loading`` around the fetch."""
        set_loading = getattr(self.state, "set_loading", None)
        if callable(set_loading):
            set_loading(True, STATS_STATE_KEY)
        try:
            return await self._refresh_main()
        except Exception as e:
            logger.warning(f"Main stats refresh failed: {e}")
            return None
        finally:
            if callable(set_loading):
                set_loading(False, STATS_STATE_KEY)

    async def refresh_diary_stats_silent(self) -> Optional[DiaryStats]:
        """
        Background diary refresh

        Counts are reconciled against the same server numbers as the main
        refresh, so both views show the same effective totals.
        """
        try:
            diary = await self.aggregator.get_diary_stats()
            main = await self.aggregator.get_main_stats()
        except Exception as e:
            logger.debug(f"Silent diary stats refresh failed: {e}")
            return None

        self._reconcile(main, diary.weekly_quotes)
        self._diary = diary.model_copy(
            update={"loaded_at": self._clock(), "is_fresh": True, "loading": False}
        )
        self._sync_diary_counts()
        return self._publish_diary()

    async def refresh_activity_percent(self) -> Union[int, float]:
        """Drop the cached percent, re-fetch it and merge it into both views."""
        try:
            user_id = self.aggregator.require_user_id()
            self.cache.invalidate([activity_percent_key(user_id)])
            percent = await self.aggregator.get_activity_percent()
        except Exception as e:
            logger.debug(f"Activity percent refresh failed: {e}")
            return DEFAULT_ACTIVITY_PERCENT

        self._details["activity_percent"] = percent
        self._diary = self._diary.model_copy(update={"activity_percent": percent})
        self._publish_stats()
        self._publish_diary()
        return percent

    async def warmup_initial_stats(self) -> None:
        """Fill the cache and publish both views once the user is known."""
        try:
            self.aggregator.require_user_id()
        except UserNotReadyError:
            logger.debug("Stats warmup skipped: user not ready")
            return

        await self.refresh_main_stats_silent()
        await self.refresh_diary_stats_silent()

        results = await asyncio.gather(
            self.aggregator.get_latest_quotes(3),
            self.aggregator.get_top_analyses(3),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.debug(f"Stats warmup prefetch failed: {result}")

    # =========================================================================
    # Invalidation / events
    # =========================================================================

    def invalidate(self, keys: Optional[Iterable[str]] = None) -> None:
        """Listed keys only; no keys clears the whole value cache."""
        self.cache.invalidate(keys)

    def invalidate_all(self) -> None:
        logger.debug("Invalidating all stats cache")
        self.cache.invalidate_all()

    def invalidate_for_user(self, user_id: Any = None) -> None:
        """Drop every user-scoped key of user_id (current user by default)."""
        if user_id is None:
            user_id = self.aggregator.require_user_id()
        self.cache.invalidate(user_stats_keys(user_id))

    def bind_events(self, bus: EventBus) -> bool:
        """Subscribe the reactor to ``quotes:changed`` (idempotent)."""
        self.bus = self.bus or bus
        return self.reactor.subscribe(bus)
