"""
Contracts - что статистике нужно от внешнего мира.

The concrete client lives in ``src.services.reader_api``; tests pass
``AsyncMock`` doubles that follow the same method names.
"""

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class StatsApi(Protocol):
    """Reader backend calls used by the stats core.

    Every method returns decoded JSON in whatever shape the backend version
    sends; ``adapters`` turns it into strict models.
    """

    async def get_stats(self, user_id: Any) -> Any: ...

    async def get_recent_quotes(self, limit: int, user_id: Any) -> Any: ...

    async def get_top_books(self, **opts: Any) -> Any: ...

    async def get_quotes(self, opts: Optional[dict], user_id: Any) -> Any: ...

    async def get_activity_percent(self, user_id: Any = None) -> Any: ...
