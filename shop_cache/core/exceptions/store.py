"""
Primary Store Exceptions

All exceptions related to the relational primary store.
"""

from shop_cache.core.exceptions.base import ShopCacheError


class StoreError(ShopCacheError):
    """
    Raised when a primary store query or update fails.

    Propagates out of rebuild jobs and request paths as an internal failure;
    any rebuild lock held at the time is released before it propagates.
    """
    pass


class StoreConnectionError(StoreError):
    """Raised when the store connection pool cannot be created or used."""
    pass
