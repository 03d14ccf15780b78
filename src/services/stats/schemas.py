"""
Stats Schemas - Pydantic модели статистики Reader.

Определяет:
- Quote: нормализованная цитата (read-only для статистики)
- MainStats / UserProgress / DetailedQuoteStats: результаты кэшируемых загрузок
- DiaryStats / StatsSnapshot: view-модели, которые публикуются в state и на шину
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, computed_field

from src.core.enums import ActivityLevel


NO_AUTHOR = "—"
DEFAULT_ACTIVITY_PERCENT = 1


# =============================================================================
# Inputs
# =============================================================================


class Quote(BaseModel):
    """Цитата пользователя после нормализации ответа API."""

    id: Optional[str] = None
    text: str = ""
    author: str = ""
    created_at: Optional[datetime] = None  # createdAt / dateAdded
    is_favorite: bool = False


class TopAnalysis(BaseModel):
    """Популярный разбор книги из каталога."""

    id: str
    title: str = "Разбор"
    author: str = ""
    clicks: int = 0


# =============================================================================
# Cached loader results
# =============================================================================


class MainStats(BaseModel):
    """Основная статистика с бэкенда (/stats)."""

    total_quotes: int = 0
    current_streak: int = 0
    days_in_app: int = 0  # daysSinceRegistration / daysInApp
    weekly_quotes: Optional[int] = None  # не все версии бэкенда отдают


class UserProgress(BaseModel):
    """Прогресс пользователя: неделя, любимый автор, серии."""

    model_config = ConfigDict(use_enum_values=True)

    weekly_quotes: int = 0
    favorite_author: Optional[str] = None
    activity_level: ActivityLevel = ActivityLevel.LOW
    current_streak: int = 0  # max(computed, backend)
    computed_streak: int = 0
    backend_streak: int = 0
    streak_to_yesterday: int = 0
    is_awaiting_today: bool = False


class DetailedQuoteStats(BaseModel):
    """Месячные цитаты и избранное."""

    monthly_quotes: int = 0
    favorites_count: int = 0
    total_quotes: int = 0  # размер загруженной выборки


# =============================================================================
# Published view models
# =============================================================================


class DiaryStats(BaseModel):
    """Статистика для дневника (блоки "добавить" и "мои цитаты")."""

    total_quotes: int = 0
    weekly_quotes: int = 0
    monthly_quotes: int = 0
    favorites_count: int = 0
    favorite_author: str = NO_AUTHOR
    activity_percent: Union[int, float] = DEFAULT_ACTIVITY_PERCENT

    loaded_at: Optional[float] = None
    is_fresh: bool = False
    loading: bool = False


class StatsSnapshot(BaseModel):
    """Плоский объект статистики для главной страницы.

    ``total_quotes`` and ``weekly_quotes`` are computed from the baseline and
    pending deltas on every access and dump; they are never stored.
    """

    model_config = ConfigDict(use_enum_values=True)

    baseline_total: int = 0
    pending_adds: int = 0
    pending_deletes: int = 0

    baseline_weekly: int = 0
    pending_weekly_adds: int = 0
    pending_weekly_deletes: int = 0

    current_streak: int = 0
    computed_streak: int = 0
    backend_streak: int = 0
    streak_to_yesterday: int = 0
    is_awaiting_today: bool = False

    favorite_author: str = NO_AUTHOR
    activity_level: ActivityLevel = ActivityLevel.LOW
    activity_percent: Union[int, float] = DEFAULT_ACTIVITY_PERCENT
    days_in_app: int = 0

    loaded_at: Optional[float] = None
    is_fresh: bool = False
    loading: bool = False

    @computed_field
    @property
    def total_quotes(self) -> int:
        return self.baseline_total + self.pending_adds - self.pending_deletes

    @computed_field
    @property
    def weekly_quotes(self) -> int:
        return self.baseline_weekly + self.pending_weekly_adds - self.pending_weekly_deletes


class LocalSummary(BaseModel):
    """Статистика, пересчитанная целиком из локального списка цитат."""

    model_config = ConfigDict(use_enum_values=True)

    weekly_quotes: int = 0
    monthly_quotes: int = 0
    favorites_count: int = 0
    favorite_author: str = NO_AUTHOR
    activity_level: ActivityLevel = ActivityLevel.LOW
    computed_streak: int = 0
    streak_to_yesterday: int = 0
    is_awaiting_today: bool = False
