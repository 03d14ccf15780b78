"""
Quote Event Reactor - реакция статистики на изменения цитат.

Каждая мутация проходит одну и ту же цепочку:
    optimistic update → invalidate all → silent refresh (main, diary) → activity percent

The optimistic update is applied synchronously while the event is published;
only the refresh tail runs later as a task.

``quotes:changed`` payloads look like ``{"type": "added"}``,
``{"type": "deleted", "optimistic": True}``, ``{"type": "deleted", "reverted": True}``
or ``{"type": "edited", "quote": {...}}``.
"""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional

from loguru import logger

from config.sentry import quote_breadcrumb
from src.core.enums import MutationType, StatsTopic
from src.core.events import EventBus

if TYPE_CHECKING:
    from src.services.stats.service import StatisticsService


class QuoteEventReactor:
    """
    Drives the stats service from quote mutation events

    Handlers never raise: a failed refresh leaves the optimistic numbers on
    screen. Distinct mutations are not serialized against each other.
    """

    def __init__(self, service: "StatisticsService"):
        self.service = service
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_subscribed(self) -> bool:
        return self._unsubscribe is not None

    # =========================================================================
    # Subscription
    # =========================================================================

    def subscribe(self, bus: EventBus) -> bool:
        """
        Subscribe to ``quotes:changed`` once

        Returns:
            True if a subscription was made, False if already subscribed
        """
        if self._unsubscribe is not None:
            logger.debug("Quote events already bound for this stats service")
            return False

        self._unsubscribe = bus.subscribe(StatsTopic.QUOTES_CHANGED, self.handle)
        return True

    def unsubscribe(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # =========================================================================
    # Dispatch
    # =========================================================================

    def handle(self, detail: Optional[Mapping[str, Any]]) -> Awaitable[None]:
        """
        Route one ``quotes:changed`` payload by its ``type``

        The optimistic step runs before this returns; the returned awaitable
        is the refresh tail (the bus schedules it as a task).
        """
        detail = detail or {}
        try:
            mutation = MutationType(detail.get("type"))
        except ValueError:
            logger.debug(f"Ignoring quote event with unknown type: {detail.get('type')!r}")
            return _nothing()

        quote_breadcrumb(
            mutation.value,
            optimistic=bool(detail.get("optimistic")),
            reverted=bool(detail.get("reverted")),
        )

        if mutation is MutationType.ADDED:
            return self.on_added(detail)
        if mutation is MutationType.DELETED:
            return self.on_deleted(detail)
        return self.on_edited(detail)

    def on_added(self, detail: Optional[Mapping[str, Any]] = None) -> Awaitable[None]:
        logger.info("Quote added, refreshing stats")
        return self._apply_then_refresh(self.service.apply_local_add, "add")

    def on_deleted(self, detail: Optional[Mapping[str, Any]] = None) -> Awaitable[None]:
        """
        ``optimistic`` applies the delete now, ``reverted`` undoes it; without
        either flag the delete is confirmed and only the refresh runs.
        """
        detail = detail or {}
        if detail.get("optimistic"):
            logger.info("Quote deleted (optimistic), refreshing stats")
            step = self.service.apply_local_delete
        elif detail.get("reverted"):
            logger.info("Quote delete reverted, refreshing stats")
            step = self.service.revert_local_delete
        else:
            logger.info("Quote delete confirmed, refreshing stats")
            step = None
        return self._apply_then_refresh(step, "delete")

    def on_edited(self, detail: Optional[Mapping[str, Any]] = None) -> Awaitable[None]:
        logger.info("Quote edited, refreshing stats")
        return self._apply_then_refresh(self.service.apply_local_edit, "edit")

    def _apply_then_refresh(
        self, step: Optional[Callable[[], Any]], action: str
    ) -> Awaitable[None]:
        if step is not None:
            try:
                step()
            except Exception as e:
                logger.warning(f"Stats update after quote {action} failed: {e}")
                return _nothing()
        return self._refresh(action)

    async def _refresh(self, action: str) -> None:
        try:
            await self._reconcile()
        except Exception as e:
            logger.warning(f"Stats update after quote {action} failed: {e}")

    async def _reconcile(self) -> None:
        self.service.invalidate_all()
        await self.service.refresh_main_stats_silent()
        await self.service.refresh_diary_stats_silent()
        await self.service.refresh_activity_percent()


async def _nothing() -> None:
    return None
