"""
Validation Exceptions

Raised for malformed requests on the write path.
"""

from shop_cache.core.exceptions.base import ShopCacheError


class ValidationError(ShopCacheError):
    """
    Raised when request validation fails.

    Surfaced to the caller as a failure result; never retried.
    """
    pass


class InvalidShopIdError(ValidationError):
    """Raised when an update carries no shop identifier."""
    pass
