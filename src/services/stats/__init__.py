"""
Stats Service Module - client-side statistics core of the Reader Mini App.

Provides:
- StatisticsService: per-session facade (reads, optimistic updates, refreshes)
- StatsAggregator: cached user-scoped reads
- BaselineDeltaCounter: instant counter reconciled with the server
- QuoteEventReactor: reaction to ``quotes:changed`` events
- Pydantic view models for everything published

Usage:
    from src.services.stats import StatisticsService

    service = StatisticsService(api=client, state=app_state, bus=bus)
    await service.warmup_initial_stats()
"""

from src.services.stats.aggregator import StatsAggregator, summarize_quotes, top_author
from src.services.stats.contracts import StatsApi
from src.services.stats.counter import BaselineDeltaCounter
from src.services.stats.reactor import QuoteEventReactor
from src.services.stats.service import StatisticsService
from src.services.stats.streaks import (
    StreakToYesterday,
    compute_streak,
    compute_streak_to_yesterday,
)
from src.services.stats.schemas import (
    # Inputs
    Quote,
    TopAnalysis,
    # Loader results
    MainStats,
    UserProgress,
    DetailedQuoteStats,
    # Published views
    DiaryStats,
    StatsSnapshot,
    LocalSummary,
)

__all__ = [
    # Service
    "StatisticsService",
    "StatsAggregator",
    "BaselineDeltaCounter",
    "QuoteEventReactor",
    "StatsApi",
    # Pure helpers
    "summarize_quotes",
    "top_author",
    "compute_streak",
    "compute_streak_to_yesterday",
    "StreakToYesterday",
    # Models
    "Quote",
    "TopAnalysis",
    "MainStats",
    "UserProgress",
    "DetailedQuoteStats",
    "DiaryStats",
    "StatsSnapshot",
    "LocalSummary",
]
