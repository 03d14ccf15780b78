"""
Unit tests for API response adapters
"""
from datetime import datetime, timezone

import pytest

from src.services.stats.adapters import (
    parse_timestamp,
    to_quote,
    unwrap_activity_percent,
    unwrap_main_stats,
    unwrap_quotes,
    unwrap_top_analyses,
)


RAW = {"_id": "abc", "text": "Жизнь", "author": "Фромм", "createdAt": "2025-03-14T09:30:00Z"}


@pytest.mark.parametrize(
    "resp",
    [
        {"quotes": [RAW]},
        {"data": {"quotes": [RAW]}},
        {"data": [RAW]},
        {"items": [RAW]},
        [RAW],
    ],
)
def test_unwrap_quotes_known_shapes(resp):
    quotes = unwrap_quotes(resp)

    assert len(quotes) == 1
    assert quotes[0].id == "abc"
    assert quotes[0].author == "Фромм"


@pytest.mark.parametrize("resp", [None, {}, {"success": False}, "oops", {"quotes": None}])
def test_unwrap_quotes_unknown_shapes_give_empty_list(resp):
    assert unwrap_quotes(resp) == []


def test_to_quote_field_aliases():
    quote = to_quote({"id": 5, "dateAdded": 1710408600000, "favorite": True})

    assert quote.id == "5"
    assert quote.text == ""
    assert quote.is_favorite is True
    assert quote.created_at == datetime(2024, 3, 14, 9, 30, tzinfo=timezone.utc)


def test_parse_timestamp_variants():
    utc = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

    assert parse_timestamp("2025-03-14T09:30:00Z") == utc
    assert parse_timestamp(utc.timestamp()) == utc
    assert parse_timestamp(utc.timestamp() * 1000) == utc
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp(True) is None


def test_parse_timestamp_naive_is_local():
    parsed = parse_timestamp("2025-03-14T09:30:00")

    assert parsed.tzinfo is not None
    assert parsed.replace(tzinfo=None) == datetime(2025, 3, 14, 9, 30)


def test_unwrap_main_stats_nested_and_flat():
    nested = unwrap_main_stats(
        {"success": True, "stats": {"totalQuotes": 7, "currentStreak": 2, "daysSinceRegistration": 30}}
    )
    flat = unwrap_main_stats({"totalQuotes": 7, "currentStreak": 2, "daysInApp": 30, "thisWeek": 3})

    assert (nested.total_quotes, nested.current_streak, nested.days_in_app) == (7, 2, 30)
    assert nested.weekly_quotes is None
    assert flat.days_in_app == 30
    assert flat.weekly_quotes == 3


def test_unwrap_main_stats_snake_case():
    stats = unwrap_main_stats(
        {"data": {"total_quotes": 4, "current_streak": 1, "days_in_app": 9, "weekly_quotes": 0}}
    )

    assert (stats.total_quotes, stats.current_streak, stats.days_in_app) == (4, 1, 9)
    assert stats.weekly_quotes == 0


def test_unwrap_main_stats_garbage():
    stats = unwrap_main_stats(None)

    assert stats.total_quotes == 0
    assert stats.current_streak == 0


@pytest.mark.parametrize(
    "resp, expected",
    [
        (42, 42),
        ({"activityPercent": 12.5}, 12.5),
        ({"success": True, "data": {"activityPercent": 3}}, 3),
        ({"percent": 9}, 9),
        ({"success": False}, None),
        (None, None),
        (False, None),
    ],
)
def test_unwrap_activity_percent(resp, expected):
    assert unwrap_activity_percent(resp) == expected


def test_unwrap_top_analyses_mapping():
    resp = {
        "data": [
            {"_id": "b1", "title": "Искусство любить", "author": "Фромм", "clicksCount": 7},
            {"title": "", "salesCount": 3},
            {"id": "b3", "title": "Лишний"},
        ]
    }

    analyses = unwrap_top_analyses(resp, limit=2)

    assert [a.id for a in analyses] == ["b1", "1"]
    assert analyses[0].clicks == 7
    assert analyses[1].title == "Разбор"
    assert analyses[1].clicks == 3
