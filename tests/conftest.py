"""
Pytest configuration and fixtures for Reader Stats tests
"""

from datetime import datetime, timedelta
from itertools import count
from unittest.mock import AsyncMock

import pytest

from src.cache.memory_cache import StatsCache
from src.core.events import EventBus
from src.core.state import AppState
from src.services.stats.aggregator import StatsAggregator


USER_ID = "user-42"

# Fixed "now" in the local timezone (midday keeps day keys stable across DST)
NOW = datetime(2025, 3, 14, 12, 0).astimezone()


class FakeClock:
    """Monotonic clock the tests move by hand"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_quote():
    """
    Factory for raw API quotes

    Usage:
        make_quote(days_ago=1, author="Фромм", favorite=True)
    """
    ids = count(1)

    def factory(days_ago: float = 0, author: str = "Эрих Фромм", favorite: bool = False) -> dict:
        quote_id = next(ids)
        return {
            "_id": f"q{quote_id}",
            "text": f"Цитата {quote_id}",
            "author": author,
            "createdAt": (NOW - timedelta(days=days_ago)).isoformat(),
            "isFavorite": favorite,
        }

    return factory


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return StatsCache(clock=clock)


@pytest.fixture
def state():
    """State store with a logged-in user"""
    app_state = AppState()
    app_state.set_current_user(USER_ID, first_name="Анна")
    return app_state


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def api(make_quote):
    """Stats API double answering in the backend's usual shapes"""
    mock_api = AsyncMock()
    mock_api.get_stats.return_value = {
        "success": True,
        "stats": {"totalQuotes": 5, "currentStreak": 1, "daysSinceRegistration": 12},
    }
    mock_api.get_quotes.return_value = {
        "quotes": [
            make_quote(0, author="Эрих Фромм"),
            make_quote(1, author="Эрих Фромм", favorite=True),
            make_quote(2, author="Марина Цветаева"),
            make_quote(12, author="Марина Цветаева"),
            make_quote(40, author="Лев Толстой", favorite=True),
        ],
        "pagination": {"total": 5},
    }
    mock_api.get_recent_quotes.return_value = {"quotes": [make_quote(0)]}
    mock_api.get_top_books.return_value = {
        "data": [
            {"_id": "b1", "title": "Искусство любить", "author": "Эрих Фромм", "clicksCount": 7},
            {"id": "b2", "title": "", "author": "Лев Толстой", "salesCount": 3},
        ]
    }
    mock_api.get_activity_percent.return_value = {"activityPercent": 42}
    return mock_api


@pytest.fixture
def aggregator(api, state, cache):
    return StatsAggregator(api, state, cache, now=lambda: NOW)
