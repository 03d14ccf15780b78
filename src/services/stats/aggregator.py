"""
Stats Aggregator - кэшируемые загрузки статистики Reader.

Каждое чтение привязано к текущему пользователю и идёт через StatsCache:
- get_main_stats: /stats (total, backend streak, days in app)
- get_user_progress: неделя, любимый автор за 30 дней, серии
- get_detailed_quote_stats: месяц и избранное
- get_activity_percent: процент активности (fallback 1)
- get_diary_stats: всё выше одним параллельным запросом

Quote fetches fall back to the locally held list in the state store when the
API is unavailable, so progress and detailed stats never fail on a transient
network error. Cached values are shared between callers and must be treated
as read-only.
"""

import asyncio
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from loguru import logger

from config.cache_config import CacheTTL
from src.cache.cache_keys import (
    activity_percent_key,
    detailed_stats_key,
    latest_quotes_key,
    main_stats_key,
    top_analyses_key,
    user_progress_key,
)
from src.cache.memory_cache import StatsCache
from src.core.enums import ActivityLevel
from src.core.errors import UserNotReadyError
from src.core.state import StateStore
from src.services.stats.adapters import (
    ensure_aware,
    to_quotes,
    unwrap_activity_percent,
    unwrap_main_stats,
    unwrap_quotes,
    unwrap_top_analyses,
)
from src.services.stats.contracts import StatsApi
from src.services.stats.schemas import (
    DEFAULT_ACTIVITY_PERCENT,
    NO_AUTHOR,
    DetailedQuoteStats,
    DiaryStats,
    LocalSummary,
    MainStats,
    Quote,
    TopAnalysis,
    UserProgress,
)
from src.services.stats.streaks import compute_streak, compute_streak_to_yesterday


WEEK = timedelta(days=7)
MONTH = timedelta(days=30)


def local_now() -> datetime:
    return datetime.now().astimezone()


def top_author(frequencies: Mapping[str, int]) -> Optional[str]:
    """
    Most frequent author

    Ties go to the author that reached the maximum first (strict ``>``), so
    insertion order of frequencies decides.
    """
    best, best_count = None, -1
    for author, count in frequencies.items():
        if count > best_count:
            best, best_count = author, count
    return best


def count_since(quotes: Iterable[Quote], since: datetime) -> int:
    """Quotes created at or after since (undated quotes are not counted)."""
    return sum(
        1 for q in quotes if q.created_at is not None and ensure_aware(q.created_at) >= since
    )


def author_frequencies(quotes: Iterable[Quote], since: datetime) -> Counter:
    """Author histogram over quotes created at or after since, in first-seen order."""
    frequencies: Counter = Counter()
    for q in quotes:
        if q.author and q.created_at is not None and ensure_aware(q.created_at) >= since:
            frequencies[q.author] += 1
    return frequencies


def summarize_quotes(
    quotes: Iterable[Union[Quote, Mapping[str, Any]]],
    now: Optional[datetime] = None,
) -> LocalSummary:
    """
    Recompute every quote-derived stat from a local quote list

    Used wholesale after edits (author/date changes) and as the shared core
    of ``get_user_progress``.
    """
    quotes = to_quotes(quotes)
    now = ensure_aware(now) if now else local_now()
    today = now.astimezone().date()

    weekly = count_since(quotes, now - WEEK)
    computed = compute_streak(quotes, today=today)
    to_yesterday = compute_streak_to_yesterday(quotes, computed, today=today)

    return LocalSummary(
        weekly_quotes=weekly,
        monthly_quotes=count_since(quotes, now - MONTH),
        favorites_count=sum(1 for q in quotes if q.is_favorite),
        favorite_author=top_author(author_frequencies(quotes, now - MONTH)) or NO_AUTHOR,
        activity_level=ActivityLevel.classify(weekly),
        computed_streak=computed,
        streak_to_yesterday=to_yesterday.streak_to_yesterday,
        is_awaiting_today=to_yesterday.is_awaiting_today,
    )


class StatsAggregator:
    """
    User-scoped statistics composed from cached API calls

    Usage:
        >>> aggregator = StatsAggregator(api, state, StatsCache())
        >>> diary = await aggregator.get_diary_stats()
        >>> diary.favorite_author
        'Эрих Фромм'
    """

    PROGRESS_QUOTES_LIMIT = 200
    DETAILED_QUOTES_LIMIT = 500

    def __init__(
        self,
        api: StatsApi,
        state: StateStore,
        cache: StatsCache,
        now: Callable[[], datetime] = local_now,
    ):
        """
        Args:
            api: Reader backend client
            state: State store (current user, local quotes)
            cache: Shared stats cache
            now: Wall-clock source for the 7/30-day windows (injectable for tests)
        """
        self.api = api
        self.state = state
        self.cache = cache
        self._now = now

    def require_user_id(self) -> Any:
        """Current user id or UserNotReadyError."""
        getter = getattr(self.state, "get_current_user_id", None)
        user_id = getter() if callable(getter) else None
        if not user_id:
            raise UserNotReadyError()
        return user_id

    def local_quotes(self) -> list[Quote]:
        """Quote list held in the state store."""
        return to_quotes(self.state.get("quotes.items") or [])

    async def _fetch_quotes(self, limit: int, user_id: Any) -> list[Quote]:
        try:
            resp = await self.api.get_quotes({"limit": limit}, user_id)
            return unwrap_quotes(resp)
        except Exception as e:
            logger.warning(f"Quotes fetch failed for user {user_id}, using local quotes: {e}")
            return self.local_quotes()

    # =========================================================================
    # Cached reads
    # =========================================================================

    async def get_main_stats(self) -> MainStats:
        user_id = self.require_user_id()

        async def load() -> MainStats:
            return unwrap_main_stats(await self.api.get_stats(user_id))

        return await self.cache.cached(main_stats_key(user_id), load, CacheTTL.SHORT)

    async def get_user_progress(self) -> UserProgress:
        """
        Weekly count, favorite author, activity level and streaks

        ``current_streak`` is the larger of the locally computed and the
        backend streak: the backend may not have seen today's quote yet.
        """
        user_id = self.require_user_id()

        async def load() -> UserProgress:
            quotes = await self._fetch_quotes(self.PROGRESS_QUOTES_LIMIT, user_id)
            summary = summarize_quotes(quotes, now=self._now())
            main = await self.get_main_stats()

            return UserProgress(
                weekly_quotes=summary.weekly_quotes,
                favorite_author=(
                    summary.favorite_author if summary.favorite_author != NO_AUTHOR else None
                ),
                activity_level=summary.activity_level,
                current_streak=max(summary.computed_streak, main.current_streak),
                computed_streak=summary.computed_streak,
                backend_streak=main.current_streak,
                streak_to_yesterday=summary.streak_to_yesterday,
                is_awaiting_today=summary.is_awaiting_today,
            )

        return await self.cache.cached(user_progress_key(user_id), load, CacheTTL.PROGRESS)

    async def get_detailed_quote_stats(self) -> DetailedQuoteStats:
        user_id = self.require_user_id()

        async def load() -> DetailedQuoteStats:
            quotes = await self._fetch_quotes(self.DETAILED_QUOTES_LIMIT, user_id)
            return DetailedQuoteStats(
                monthly_quotes=count_since(quotes, ensure_aware(self._now()) - MONTH),
                favorites_count=sum(1 for q in quotes if q.is_favorite),
                total_quotes=len(quotes),
            )

        return await self.cache.cached(detailed_stats_key(user_id), load, CacheTTL.SHORT)

    async def get_activity_percent(self) -> Union[int, float]:
        """Activity percent; 1 when the backend cannot answer (the fallback is not cached)."""
        user_id = self.require_user_id()

        async def load() -> Union[int, float]:
            value = unwrap_activity_percent(await self.api.get_activity_percent(user_id))
            return value if value is not None else DEFAULT_ACTIVITY_PERCENT

        try:
            return await self.cache.cached(
                activity_percent_key(user_id), load, CacheTTL.DEFAULT
            )
        except Exception as e:
            logger.warning(f"Activity percent unavailable for user {user_id}: {e}")
            return DEFAULT_ACTIVITY_PERCENT

    async def get_diary_stats(self) -> DiaryStats:
        """The four reads above, issued concurrently and merged."""
        self.require_user_id()

        main, progress, detailed, activity_percent = await asyncio.gather(
            self.get_main_stats(),
            self.get_user_progress(),
            self.get_detailed_quote_stats(),
            self.get_activity_percent(),
        )

        return DiaryStats(
            total_quotes=main.total_quotes,
            weekly_quotes=progress.weekly_quotes,
            monthly_quotes=detailed.monthly_quotes,
            favorites_count=detailed.favorites_count,
            favorite_author=progress.favorite_author or NO_AUTHOR,
            activity_percent=(
                activity_percent if activity_percent is not None else DEFAULT_ACTIVITY_PERCENT
            ),
        )

    async def get_latest_quotes(self, limit: int = 3) -> list[Quote]:
        user_id = self.require_user_id()

        async def load() -> list[Quote]:
            return unwrap_quotes(await self.api.get_recent_quotes(limit, user_id))

        return await self.cache.cached(latest_quotes_key(limit, user_id), load, CacheTTL.SHORT)

    async def get_top_analyses(self, limit: int = 3) -> list[TopAnalysis]:
        """Most clicked book analyses of the week (global, [] when unavailable)."""

        async def load() -> list[TopAnalysis]:
            resp = await self.api.get_top_books(period="7d")
            return unwrap_top_analyses(resp, limit)

        try:
            return await self.cache.cached(top_analyses_key(limit), load, CacheTTL.DEFAULT)
        except Exception as e:
            logger.warning(f"Top analyses unavailable: {e}")
            return []
