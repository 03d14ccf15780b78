# coding: utf-8
"""
Cache configuration for the in-memory stats cache

Defines expiration times (seconds) for the derived statistics based on:
- How often the backend numbers change
- How expensive the underlying quote fetches are
- How quickly the UI must reflect a fresh quote
"""
import os


class CacheTTL:
    """
    Time-to-live (TTL) settings for stats cache entries in seconds

    TTL is evaluated per call: the same key may be read with different TTLs
    at different call sites, and staleness is judged with the TTL of the
    current caller.
    """

    # ===========================
    # Stats TTLs
    # ===========================

    SHORT = float(os.getenv("CACHE_TTL_SHORT", "15"))
    """Main stats, detailed quote stats, latest quotes - 15s"""

    DEFAULT = float(os.getenv("CACHE_TTL_DEFAULT", "30"))
    """Activity percent, top analyses - 30s"""

    PROGRESS = float(os.getenv("CACHE_TTL_PROGRESS", "25"))
    """User progress (weekly count, streaks, favorite author) - 25s"""


class CacheConfig:
    """
    Key layout and logging behaviour of the stats cache
    """

    CACHE_NAMESPACE = os.getenv("CACHE_NAMESPACE", "reader")
    """Namespace prefix for all cache keys"""

    CACHE_KEY_SEPARATOR = ":"
    """Separator for cache key components"""

    # Monitoring
    CACHE_LOG_HITS = os.getenv("CACHE_LOG_HITS", "false").lower() == "true"
    """Log cache hits (verbose, useful for debugging)"""

    CACHE_LOG_MISSES = os.getenv("CACHE_LOG_MISSES", "true").lower() == "true"
    """Log cache misses (important for monitoring)"""

