"""
Cache Rebuild Exceptions

Raised by the mutex rebuild path and the background rebuild scheduler.
Plain lock contention is not an error and has no exception here.
"""

from shop_cache.core.exceptions.base import ShopCacheError


class RebuildError(ShopCacheError):
    """Base exception for cache rebuild errors."""
    pass


class LockRetryExhaustedError(RebuildError):
    """
    Raised when a mutex read gives up waiting for a competing rebuild.

    Only reachable after MUTEX_MAX_RETRIES attempts under sustained contention.
    """
    pass


class RebuildRejectedError(RebuildError):
    """Raised when the rebuild scheduler is not running and cannot take jobs."""
    pass
