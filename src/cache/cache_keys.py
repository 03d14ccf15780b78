# coding: utf-8
"""
Cache key generation utilities

Provides consistent, namespaced, user-scoped keys for the stats cache.
"""
from typing import Any

from config.cache_config import CacheConfig


class CacheKeyBuilder:
    """
    Utility class for building consistent cache keys

    Key format: {namespace}:{service}:{method}[:{user_id}]

    Examples:
        reader:stats:main:12345
        reader:stats:latest_quotes_3:12345
        reader:stats:top_analyses_3
    """

    SEPARATOR = CacheConfig.CACHE_KEY_SEPARATOR
    NAMESPACE = CacheConfig.CACHE_NAMESPACE

    @classmethod
    def build(cls, service: str, method: str, scope: Any = None) -> str:
        """
        Build a cache key from components

        Args:
            service: Service name (e.g., 'stats')
            method: Method name (e.g., 'main', 'progress')
            scope: User id for user-scoped keys, None for global ones

        Examples:
            >>> CacheKeyBuilder.build('stats', 'main', 12345)
            'reader:stats:main:12345'
        """
        key_parts = [cls.NAMESPACE, service, method]

        if scope is not None and scope != "":
            key_parts.append(str(scope))

        return cls.SEPARATOR.join(key_parts)


# Convenience functions for the stats service


def stats_key(method: str, user_id: Any = None) -> str:
    """Build stats cache key (user-scoped when user_id is given)"""
    return CacheKeyBuilder.build("stats", method, user_id)


def main_stats_key(user_id: Any) -> str:
    return stats_key("main", user_id)


def user_progress_key(user_id: Any) -> str:
    return stats_key("progress", user_id)


def detailed_stats_key(user_id: Any) -> str:
    return stats_key("detailed", user_id)


def activity_percent_key(user_id: Any) -> str:
    return stats_key("activity_percent", user_id)


def latest_quotes_key(limit: int, user_id: Any) -> str:
    return stats_key(f"latest_quotes_{limit}", user_id)


def top_analyses_key(limit: int) -> str:
    """Top analyses are global, not user-scoped"""
    return stats_key(f"top_analyses_{limit}")


def user_stats_keys(user_id: Any) -> list[str]:
    """All user-scoped keys (latest quotes for the limits the UI uses: 3 and 5)"""
    return [
        main_stats_key(user_id),
        user_progress_key(user_id),
        detailed_stats_key(user_id),
        activity_percent_key(user_id),
        latest_quotes_key(3, user_id),
        latest_quotes_key(5, user_id),
    ]
