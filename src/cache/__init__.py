# coding: utf-8
"""
Cache module for the stats core

Provides the in-memory cache-aside layer and its key builders.
"""

from src.cache.memory_cache import CacheEntry, StatsCache
from src.cache.cache_keys import CacheKeyBuilder

__all__ = ["CacheEntry", "StatsCache", "CacheKeyBuilder"]
