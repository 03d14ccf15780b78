"""
Core module - базовые типы, ошибки, шина событий и хранилище состояния.
"""

from src.core.enums import ActivityLevel, MutationType, StatsTopic
from src.core.errors import ReaderApiError, UserNotReadyError
from src.core.events import EventBus
from src.core.state import AppState, StateStore

__all__ = [
    "ActivityLevel",
    "MutationType",
    "StatsTopic",
    "ReaderApiError",
    "UserNotReadyError",
    "EventBus",
    "AppState",
    "StateStore",
]
