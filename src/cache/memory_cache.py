# coding: utf-8
"""
In-memory cache-aside layer for derived user statistics

Provides:
- Zero-latency hits for live (non-expired) entries
- De-duplication of concurrent loads for the same key (one loader call,
  every caller awaits the same task)
- Per-call TTL: staleness is judged with the TTL of the current caller
- No negative caching: a failed load propagates to all waiters and leaves
  the cache untouched

Invalidation is versioned: every key carries a version and the cache a
generation. A load that started before its key (or the whole cache) was
invalidated still resolves for its waiters, but does not write its
pre-invalidation result back.

Runs on a single event loop. Lookups and bookkeeping are synchronous, so no
locks are needed around the maps.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

from loguru import logger

from config.cache_config import CacheConfig


@dataclass(frozen=True)
class CacheEntry:
    """One stored loader result"""

    value: Any
    time: float  # clock() reading when stored

    def is_live(self, now: float, ttl: float) -> bool:
        return now - self.time < ttl


class StatsCache:
    """
    Cache-aside + in-flight de-duplication with TTL expiry

    Usage:
        >>> cache = StatsCache()
        >>> stats = await cache.cached("reader:stats:main:42", load_stats, ttl=15)
        >>> cache.invalidate(["reader:stats:main:42"])
        >>> cache.invalidate_all()
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, asyncio.Task] = {}
        self._versions: dict[str, int] = {}
        self._generation = 0
        self._stats = {
            "hits": 0,
            "misses": 0,
            "deduplicated": 0,
            "errors": 0,
            "invalidations": 0,
        }

    async def cached(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: float,
    ) -> Any:
        """
        Return the cached value for key, loading it when missing or stale

        Args:
            key: Cache key
            loader: Zero-argument coroutine function producing the value
            ttl: Time-to-live in seconds for this call

        Returns:
            Cached or freshly loaded value

        Raises:
            Whatever loader raises (not cached, not retried)
        """
        entry = self._entries.get(key)
        if entry is not None and entry.is_live(self._clock(), ttl):
            self._stats["hits"] += 1
            if CacheConfig.CACHE_LOG_HITS:
                logger.debug(f"Cache HIT: {key}")
            return entry.value

        task = self._in_flight.get(key)
        if task is not None:
            self._stats["deduplicated"] += 1
            logger.debug(f"Cache JOIN in-flight load: {key}")
        else:
            self._stats["misses"] += 1
            if CacheConfig.CACHE_LOG_MISSES:
                logger.debug(f"Cache MISS: {key} - calling loader")
            task = asyncio.ensure_future(
                self._load(key, loader, self._generation, self._versions.get(key, 0))
            )
            self._in_flight[key] = task

        # A cancelled waiter must not cancel the load other callers share
        return await asyncio.shield(task)

    async def _load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        generation: int,
        version: int,
    ) -> Any:
        try:
            value = await loader()
        except Exception as e:
            self._stats["errors"] += 1
            logger.debug(f"Cache load failed for {key}: {e}")
            raise
        else:
            if generation == self._generation and version == self._versions.get(key, 0):
                self._entries[key] = CacheEntry(value=value, time=self._clock())
            else:
                logger.debug(f"Cache load for {key} finished after invalidation - not stored")
            return value
        finally:
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]

    def invalidate(self, keys: Optional[Iterable[str]] = None) -> None:
        """
        Remove cache entries

        Args:
            keys: Keys to remove. Empty or None clears the WHOLE value cache,
                so callers wanting a targeted wipe must pass explicit keys.
        """
        keys = list(keys or [])
        self._stats["invalidations"] += 1

        if not keys:
            self._entries.clear()
            self._generation += 1
            return

        for key in keys:
            self._entries.pop(key, None)
            self._versions[key] = self._versions.get(key, 0) + 1

    def invalidate_all(self) -> None:
        """Clear both the value cache and the in-flight registry"""
        logger.debug(
            f"Invalidating all stats cache ({len(self._entries)} entries, "
            f"{len(self._in_flight)} in flight)"
        )
        self._stats["invalidations"] += 1
        self._entries.clear()
        self._in_flight.clear()
        self._generation += 1

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry (live or stale) without loading"""
        return self._entries.get(key)

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def get_stats(self) -> dict:
        """
        Get cache statistics

        Returns:
            Counters plus hit rate and current sizes
        """
        lookups = self._stats["hits"] + self._stats["misses"] + self._stats["deduplicated"]
        return {
            **self._stats,
            "hit_rate": round(self._stats["hits"] / lookups, 3) if lookups else 0.0,
            "entries": len(self._entries),
            "in_flight": len(self._in_flight),
        }

    def __len__(self) -> int:
        return len(self._entries)
