"""
Unit tests for the quote event reactor
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.enums import StatsTopic
from src.services.stats.reactor import QuoteEventReactor


REFRESH_TAIL = [
    "invalidate_all",
    "refresh_main_stats_silent",
    "refresh_diary_stats_silent",
    "refresh_activity_percent",
]


@pytest.fixture
def service():
    """Stats service double recording the order of calls"""
    mock_service = MagicMock()
    mock_service.refresh_main_stats_silent = AsyncMock()
    mock_service.refresh_diary_stats_silent = AsyncMock()
    mock_service.refresh_activity_percent = AsyncMock(return_value=1)
    return mock_service


@pytest.fixture
def reactor(service):
    return QuoteEventReactor(service)


def call_names(service) -> list:
    return [name for name, _args, _kwargs in service.mock_calls]


@pytest.mark.asyncio
async def test_added_runs_optimistic_step_then_refresh(reactor, service):
    await reactor.on_added({"type": "added"})

    assert call_names(service) == ["apply_local_add"] + REFRESH_TAIL


@pytest.mark.asyncio
async def test_optimistic_delete(reactor, service):
    await reactor.on_deleted({"type": "deleted", "optimistic": True})

    assert call_names(service) == ["apply_local_delete"] + REFRESH_TAIL


@pytest.mark.asyncio
async def test_reverted_delete(reactor, service):
    await reactor.on_deleted({"type": "deleted", "reverted": True})

    assert call_names(service) == ["revert_local_delete"] + REFRESH_TAIL


@pytest.mark.asyncio
async def test_confirmed_delete_skips_optimistic_step(reactor, service):
    await reactor.on_deleted({"type": "deleted"})

    assert call_names(service) == REFRESH_TAIL


@pytest.mark.asyncio
async def test_edited_recomputes_locally_then_refreshes(reactor, service):
    await reactor.on_edited({"type": "edited"})

    assert call_names(service) == ["apply_local_edit"] + REFRESH_TAIL


@pytest.mark.asyncio
async def test_handler_errors_are_swallowed(reactor, service):
    service.apply_local_add.side_effect = RuntimeError("boom")
    service.refresh_main_stats_silent.side_effect = RuntimeError("boom")

    await reactor.on_added()
    await reactor.on_deleted({"optimistic": False})

    assert call_names(service) == ["apply_local_add", "invalidate_all", "refresh_main_stats_silent"]
    service.refresh_diary_stats_silent.assert_not_awaited()


@pytest.mark.parametrize(
    "detail, expected",
    [
        ({"type": "added"}, "apply_local_add"),
        ({"type": "deleted", "optimistic": True}, "apply_local_delete"),
        ({"type": "edited", "quote": {"id": "q1"}}, "apply_local_edit"),
    ],
)
@pytest.mark.asyncio
async def test_handle_dispatches_by_type(reactor, service, detail, expected):
    await reactor.handle(detail)

    assert call_names(service)[0] == expected


@pytest.mark.parametrize("detail", [{"type": "archived"}, {}, None])
@pytest.mark.asyncio
async def test_handle_ignores_unknown_events(reactor, service, detail):
    await reactor.handle(detail)

    assert service.mock_calls == []


def test_subscribe_is_idempotent(reactor, bus):
    assert reactor.subscribe(bus) is True
    assert reactor.subscribe(bus) is False
    assert bus.handler_count(StatsTopic.QUOTES_CHANGED) == 1

    reactor.unsubscribe()
    reactor.unsubscribe()

    assert not reactor.is_subscribed
    assert bus.handler_count(StatsTopic.QUOTES_CHANGED) == 0


@pytest.mark.asyncio
async def test_bus_event_reaches_reactor(reactor, service, bus):
    reactor.subscribe(bus)

    bus.publish(StatsTopic.QUOTES_CHANGED, {"type": "deleted", "reverted": True})
    await bus.drain()

    assert call_names(service) == ["revert_local_delete"] + REFRESH_TAIL


def test_optimistic_step_runs_before_refresh_is_awaited(reactor, service):
    refresh = reactor.handle({"type": "added"})

    assert call_names(service) == ["apply_local_add"]

    refresh.close()


@pytest.mark.asyncio
async def test_publish_applies_optimistic_step_synchronously(reactor, service, bus):
    reactor.subscribe(bus)

    bus.publish(StatsTopic.QUOTES_CHANGED, {"type": "deleted", "optimistic": True})
    assert call_names(service) == ["apply_local_delete"]

    await bus.drain()
    assert call_names(service) == ["apply_local_delete"] + REFRESH_TAIL


@pytest.mark.asyncio
async def test_known_events_leave_a_breadcrumb(reactor):
    with patch("src.services.stats.reactor.quote_breadcrumb") as breadcrumb:
        await reactor.handle({"type": "deleted", "reverted": True})
        await reactor.handle({"type": "archived"})

    breadcrumb.assert_called_once_with("deleted", optimistic=False, reverted=True)
