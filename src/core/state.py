"""
App State - key/value хранилище состояния Mini App с подписками.

Пути в точечной нотации (``stats``, ``quotes.items``, ``user.profile``).
``update`` делает shallow-merge словаря, ``set`` заменяет значение целиком.
Подписчики пути и его родительских путей уведомляются после каждой записи.
"""

import copy
from collections import defaultdict
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from loguru import logger

from src.core.enums import MutationType, StatsTopic
from src.core.events import EventBus


Subscriber = Callable[[Any, Any, str], None]


@runtime_checkable
class StateStore(Protocol):
    """Minimal store contract consumed by the stats core."""

    def get(self, path: str) -> Any: ...

    def set(self, path: str, value: Any) -> None: ...

    def update(self, path: str, updates: dict) -> None: ...

    def get_current_user_id(self) -> Optional[Any]: ...


class AppState:
    """In-memory implementation of :class:`StateStore`."""

    def __init__(self, initial: Optional[dict] = None, bus: Optional[EventBus] = None):
        """
        Args:
            initial: Initial state tree (deep-copied)
            bus: When given, the quote helpers publish ``quotes:changed`` on it
        """
        self._store: dict = copy.deepcopy(initial) if initial else {}
        self.bus = bus
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, path: str, callback: Subscriber) -> Callable[[], None]:
        """Subscribe to changes of path (and of any nested path below it)."""
        self._subscribers[path].append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(path)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._subscribers[path]

        return unsubscribe

    def _notify(self, path: str, new_value: Any, old_value: Any) -> None:
        for callback in list(self._subscribers.get(path, ())):
            try:
                callback(new_value, old_value, path)
            except Exception as e:
                logger.error(f"State subscriber for '{path}' failed: {e}")

        # Parent paths get the fresh parent value
        parts = path.split(".")
        for i in range(len(parts) - 1, 0, -1):
            parent = ".".join(parts[:i])
            if parent not in self._subscribers:
                continue
            parent_value = self.get(parent)
            for callback in list(self._subscribers[parent]):
                try:
                    callback(parent_value, None, parent)
                except Exception as e:
                    logger.error(f"State subscriber for '{parent}' failed: {e}")

    # =========================================================================
    # Read / write
    # =========================================================================

    def get(self, path: str, default: Any = None) -> Any:
        node: Any = self._store
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, path: str, value: Any) -> None:
        old_value = self.get(path)
        parts = path.split(".")
        node = self._store
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
        self._notify(path, value, old_value)

    def update(self, path: str, updates: dict) -> None:
        """Shallow-merge updates into the dict stored at path."""
        current = self.get(path)
        merged = dict(current) if isinstance(current, dict) else {}
        merged.update(updates)
        self.set(path, merged)

    def set_loading(self, is_loading: bool, path: str = "ui") -> None:
        self.set(f"{path}.loading", is_loading)

    # =========================================================================
    # User
    # =========================================================================

    def set_current_user(self, user_id: Any, **profile) -> None:
        self.set("user.profile", {"id": user_id, **profile})

    def get_current_user_id(self) -> Optional[Any]:
        profile = self.get("user.profile") or {}
        user_id = profile.get("id") or profile.get("user_id")
        return user_id or None

    # =========================================================================
    # Quotes (local copy used as fallback by the stats core)
    # =========================================================================

    def _quotes_changed(self, detail: dict) -> None:
        if self.bus is not None:
            self.bus.publish(StatsTopic.QUOTES_CHANGED, detail)

    def add_quote(self, quote: dict) -> None:
        items = list(self.get("quotes.items") or [])
        items.append(quote)
        self.set("quotes.items", items)
        self._quotes_changed({"type": MutationType.ADDED.value, "quote": quote})

    def update_quote(self, quote_id: Any, updates: dict) -> None:
        items = [
            {**q, **updates} if q.get("id") == quote_id else q
            for q in self.get("quotes.items") or []
        ]
        self.set("quotes.items", items)
        self._quotes_changed(
            {"type": MutationType.EDITED.value, "quote_id": quote_id, "updates": updates}
        )

    def remove_quote(self, quote_id: Any) -> None:
        items = [q for q in self.get("quotes.items") or [] if q.get("id") != quote_id]
        self.set("quotes.items", items)
        self._quotes_changed({"type": MutationType.DELETED.value, "quote_id": quote_id})
