"""
Core Enums - единые типы для статистики Reader.

Определяет:
- ActivityLevel: уровень активности за неделю
- MutationType: тип изменения цитаты (quotes:changed)
- StatsTopic: имена топиков шины событий
"""

from enum import Enum


class ActivityLevel(str, Enum):
    """Weekly activity classification shown on the profile card."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def classify(cls, weekly_quotes: int) -> "ActivityLevel":
        """Classify by quotes saved in the trailing 7 days.

        >= 15 → HIGH, >= 5 → MEDIUM, otherwise LOW.
        """
        if weekly_quotes >= 15:
            return cls.HIGH
        if weekly_quotes >= 5:
            return cls.MEDIUM
        return cls.LOW


class MutationType(str, Enum):
    """Kinds of quote mutations announced on the ``quotes:changed`` topic."""

    ADDED = "added"
    DELETED = "deleted"
    EDITED = "edited"


class StatsTopic(str, Enum):
    """Event bus topics used by the stats core."""

    STATS_UPDATED = "stats:updated"  # produced
    DIARY_STATS_UPDATED = "diary-stats:updated"  # produced
    QUOTES_CHANGED = "quotes:changed"  # consumed
