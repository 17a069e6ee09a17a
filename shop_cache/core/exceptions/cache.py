"""
Cache-Related Exceptions

All exceptions related to the distributed key-value cache and its payloads.
"""

from shop_cache.core.exceptions.base import ShopCacheError


class CacheError(ShopCacheError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to connect to cache (Redis).

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Incorrect host/port configuration
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a cache key operation fails.

    Common causes:
    - Operation timeout
    - Memory limit exceeded
    - Wrong value type at key
    """
    pass


class DecodeError(CacheError):
    """
    Raised when a cached payload is not a well-formed shop entry.

    Readers treat this as a cache miss; it never reaches the caller.
    """
    pass
