"""
Response adapters - единственное место, где терпим разные формы ответов API.

Backend versions answer with ``{"quotes": [...]}``, ``{"data": {"quotes": [...]}}``,
``{"items": [...]}`` or a bare list; stats arrive as ``{"stats": {...}}`` or
flat. Everything past this module works with the strict models from
``schemas``.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Union

from loguru import logger

from src.services.stats.schemas import MainStats, Quote, TopAnalysis


def _first(mapping: Mapping, *names: str, default: Any = None) -> Any:
    """First truthy value among names (JS ``a || b`` semantics)."""
    for name in names:
        value = mapping.get(name)
        if value:
            return value
    return default


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def ensure_aware(moment: datetime) -> datetime:
    """Naive datetimes are taken as local time."""
    return moment if moment.tzinfo is not None else moment.astimezone()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse createdAt-like values into aware datetimes

    Accepts datetimes, ISO-8601 strings (``Z`` suffix included) and unix
    timestamps in seconds or milliseconds. Unparseable values give None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return ensure_aware(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            logger.debug(f"Unparseable quote timestamp: {value!r}")
            return None
    return None


def to_quote(raw: Union[Quote, Mapping[str, Any]]) -> Quote:
    if isinstance(raw, Quote):
        return raw

    quote_id = _first(raw, "id", "_id")
    return Quote(
        id=str(quote_id) if quote_id is not None else None,
        text=raw.get("text") or "",
        author=raw.get("author") or "",
        created_at=parse_timestamp(_first(raw, "createdAt", "dateAdded", "created_at")),
        is_favorite=bool(_first(raw, "isFavorite", "favorite", "is_favorite", default=False)),
    )


def to_quotes(items: Optional[Iterable[Any]]) -> list[Quote]:
    """Normalize a list of raw quotes, skipping entries that are not objects."""
    if not items:
        return []
    return [to_quote(item) for item in items if isinstance(item, (Mapping, Quote))]


def unwrap_quotes(resp: Any) -> list[Quote]:
    """Quotes from any of the known response shapes ([] when none match)."""
    items: Any = None

    if isinstance(resp, list):
        items = resp
    elif isinstance(resp, Mapping):
        data = resp.get("data")
        if isinstance(resp.get("quotes"), list):
            items = resp["quotes"]
        elif isinstance(data, Mapping) and isinstance(data.get("quotes"), list):
            items = data["quotes"]
        elif isinstance(data, list):
            items = data
        elif isinstance(resp.get("items"), list):
            items = resp["items"]

    return to_quotes(items)


def unwrap_main_stats(resp: Any) -> MainStats:
    raw = resp if isinstance(resp, Mapping) else {}
    nested = raw.get("stats") or raw.get("data")
    if isinstance(nested, Mapping):
        raw = nested

    # 0 is a real weekly count, so only a missing key falls through
    weekly = next(
        (raw[name] for name in ("weeklyQuotes", "thisWeek", "weekly_quotes") if raw.get(name) is not None),
        None,
    )
    return MainStats(
        total_quotes=_as_int(_first(raw, "totalQuotes", "total_quotes")),
        current_streak=_as_int(_first(raw, "currentStreak", "current_streak")),
        days_in_app=_as_int(
            _first(raw, "daysSinceRegistration", "daysInApp", "days_since_registration", "days_in_app")
        ),
        weekly_quotes=_as_int(weekly) if weekly is not None else None,
    )


def unwrap_activity_percent(resp: Any) -> Optional[Union[int, float]]:
    """Activity percent from a bare number or ``{"activityPercent": n}``."""
    if isinstance(resp, bool):
        return None
    if isinstance(resp, (int, float)):
        return resp
    if isinstance(resp, Mapping):
        data = resp.get("data")
        source = data if isinstance(data, Mapping) else resp
        value = source.get("activityPercent", source.get("percent"))
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
    return None


def unwrap_top_analyses(resp: Any, limit: int) -> list[TopAnalysis]:
    if isinstance(resp, Mapping):
        items = resp.get("data") or resp.get("items") or []
    else:
        items = resp or []
    if not isinstance(items, list):
        return []

    analyses = []
    for index, book in enumerate(items[:limit]):
        if not isinstance(book, Mapping):
            continue
        analyses.append(
            TopAnalysis(
                id=str(_first(book, "id", "_id", default=index)),
                title=book.get("title") or "Разбор",
                author=book.get("author") or "",
                clicks=_as_int(_first(book, "clicksCount", "salesCount", "clicks")),
            )
        )
    return analyses
