"""
Event Bus - in-process pub/sub с именованными топиками.

Заменяет DOM CustomEvent из Mini App:
- ``stats:updated`` / ``diary-stats:updated`` для UI подписчиков
- ``quotes:changed`` для реакции статистики на изменения цитат

Any awaitable a handler returns (a coroutine handler's result included) is
scheduled as a task on the running loop; ``drain()`` awaits them.
"""

import asyncio
import inspect
from collections import defaultdict
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from loguru import logger


Handler = Callable[[Any], Union[None, Awaitable[None]]]


def _topic_name(topic: Union[str, Enum]) -> str:
    return topic.value if isinstance(topic, Enum) else str(topic)


class EventBus:
    """Named-topic publish/subscribe for one application session."""

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, topic: Union[str, Enum], handler: Handler) -> Callable[[], None]:
        """
        Subscribe handler to topic

        Returns:
            Unsubscribe callable (safe to call more than once)
        """
        name = _topic_name(topic)
        self._handlers[name].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(name)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._handlers[name]

        return unsubscribe

    def publish(self, topic: Union[str, Enum], payload: Any = None) -> int:
        """
        Deliver payload to every handler of topic

        A failing handler is logged and does not stop delivery to the others.

        Returns:
            Number of handlers invoked
        """
        name = _topic_name(topic)
        handlers = list(self._handlers.get(name, ()))

        for handler in handlers:
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._pending.add(task)
                    task.add_done_callback(self._on_task_done)
            except Exception as e:
                logger.exception(f"Event handler for '{name}' failed: {e}")

        return len(handlers)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error(f"Async event handler failed: {exc}")

    async def drain(self) -> None:
        """Wait for all scheduled coroutine handlers (including ones they schedule)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def handler_count(self, topic: Union[str, Enum]) -> int:
        return len(self._handlers.get(_topic_name(topic), ()))
