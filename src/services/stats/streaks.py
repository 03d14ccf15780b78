"""
Streaks - серии дней подряд с хотя бы одной цитатой.

Pure functions, local calendar:
- compute_streak: серия, заканчивающаяся сегодня (0 если сегодня пусто)
- compute_streak_to_yesterday: серия до вчера, если сегодня ещё нет цитаты
  ("не потеряйте серию")
"""

from datetime import date, datetime, timedelta
from typing import Iterable, NamedTuple, Optional

from src.services.stats.schemas import Quote


class StreakToYesterday(NamedTuple):
    streak_to_yesterday: int
    is_awaiting_today: bool


def day_key(moment: datetime) -> str:
    """``YYYY-MM-DD`` of moment in the local calendar.

    Aware datetimes are converted to local time first; naive ones are
    taken as local already.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime("%Y-%m-%d")


def quote_days(quotes: Iterable[Quote]) -> set[str]:
    """Distinct calendar-day keys present among quotes (undated quotes skipped)."""
    return {day_key(q.created_at) for q in quotes if q.created_at is not None}


def _count_back(days: set[str], start: date) -> int:
    streak = 0
    cursor = start
    while cursor.strftime("%Y-%m-%d") in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def compute_streak(quotes: Iterable[Quote], today: Optional[date] = None) -> int:
    """Consecutive days with a quote ending today."""
    today = today or date.today()
    return _count_back(quote_days(quotes), today)


def compute_streak_to_yesterday(
    quotes: Iterable[Quote],
    computed_streak: int,
    today: Optional[date] = None,
) -> StreakToYesterday:
    """Streak ending yesterday, only when today's streak is still 0.

    ``is_awaiting_today`` is True when there is a live streak through
    yesterday that today's quote would continue.
    """
    if computed_streak > 0:
        return StreakToYesterday(0, False)

    today = today or date.today()
    streak = _count_back(quote_days(quotes), today - timedelta(days=1))
    return StreakToYesterday(streak, streak > 0)
