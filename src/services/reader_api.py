# coding: utf-8
"""
Reader API client for the Reader Bot backend (/api/reader)

Provides the calls the stats core depends on:
- /stats: total quotes, backend streak, days since registration
- /quotes, /quotes/recent: user quotes
- /top-books: most clicked book analyses
- /activity-percent: user activity among the community

Authenticates with Telegram WebApp initData (``Authorization: tma <initData>``).
"""
import logging  # Needed for tenacity before_sleep_log level constants
from typing import Any, Dict, Optional

import aiohttp
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from loguru import logger
from config.config import (
    READER_API_BASE_URL,
    READER_API_RETRIES,
    READER_API_TIMEOUT,
    READER_INIT_DATA,
)
from src.core.errors import ReaderApiError


class ReaderApiClient:
    """
    Async client for the Reader backend

    Features:
    - One lazily created aiohttp session per client
    - Telegram initData authentication
    - Automatic retries on network failures (not on HTTP errors)

    Usage:
        >>> async with ReaderApiClient() as api:
        ...     stats = await api.get_stats(user_id)
    """

    def __init__(
        self,
        base_url: str = READER_API_BASE_URL,
        init_data: str = READER_INIT_DATA,
        timeout: float = READER_API_TIMEOUT,
    ):
        """
        Args:
            base_url: Backend base URL including ``/api/reader``
            init_data: Telegram WebApp initData string (empty = anonymous)
            timeout: Total request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.init_data = init_data
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    # =========================================================================
    # Session
    # =========================================================================

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.init_data:
            headers["Authorization"] = f"tma {self.init_data}"
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._headers(), timeout=self.timeout
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "ReaderApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # =========================================================================
    # Transport
    # =========================================================================

    @retry(
        retry=retry_if_exception_type((aiohttp.ClientError, TimeoutError)),
        stop=stop_after_attempt(READER_API_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Perform a request and decode the JSON body

        Args:
            method: HTTP method
            endpoint: Path below base_url (e.g. '/stats')
            params: Query parameters (None values dropped)

        Returns:
            Decoded JSON

        Raises:
            ReaderApiError: Non-2xx response
            aiohttp.ClientError: Network failure after all retries
        """
        session = await self._get_session()
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}
        url = f"{self.base_url}{endpoint}"

        async with session.request(method, url, params=query) as response:
            if response.status >= 400:
                text = await response.text()
                logger.error(f"Reader API error {response.status} on {endpoint}: {text[:200]}")
                raise ReaderApiError(
                    f"Reader API request failed: {text[:200] or response.reason}",
                    status=response.status,
                    endpoint=endpoint,
                )
            return await response.json(content_type=None)

    # =========================================================================
    # Endpoints
    # =========================================================================

    async def get_stats(self, user_id: Any) -> Any:
        return await self._request("GET", "/stats", {"userId": user_id})

    async def get_recent_quotes(self, limit: int, user_id: Any) -> Any:
        return await self._request(
            "GET", "/quotes/recent", {"limit": limit, "userId": user_id}
        )

    async def get_top_books(self, **opts: Any) -> Any:
        """Top analyses; opts are passed as query params (e.g. period='7d')."""
        return await self._request("GET", "/top-books", opts)

    async def get_quotes(self, opts: Optional[Dict[str, Any]], user_id: Any) -> Any:
        return await self._request("GET", "/quotes", {**(opts or {}), "userId": user_id})

    async def get_activity_percent(self, user_id: Any = None) -> Any:
        return await self._request("GET", "/activity-percent", {"userId": user_id})
