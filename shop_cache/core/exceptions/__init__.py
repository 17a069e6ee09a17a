"""
Exception Module

Structured exception hierarchy for the shop cache service, organized by theme.

Module Structure:
-----------------
- **base.py**: ShopCacheError base class + ConfigurationError
- **cache.py**: Cache exceptions (Redis, payload decoding)
- **store.py**: Primary store exceptions
- **rebuild.py**: Mutex retry and rebuild scheduler exceptions
- **validation.py**: Request validation exceptions

Usage:
------
```python
from shop_cache.core.exceptions import DecodeError, StoreError
from shop_cache.core.exceptions.cache import CacheKeyError
```
"""

from shop_cache.core.exceptions.base import ConfigurationError, ShopCacheError
from shop_cache.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    DecodeError,
)
from shop_cache.core.exceptions.rebuild import (
    LockRetryExhaustedError,
    RebuildError,
    RebuildRejectedError,
)
from shop_cache.core.exceptions.store import StoreConnectionError, StoreError
from shop_cache.core.exceptions.validation import InvalidShopIdError, ValidationError

__all__ = [
    # Base
    "ShopCacheError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "DecodeError",
    # Store
    "StoreError",
    "StoreConnectionError",
    # Rebuild
    "RebuildError",
    "LockRetryExhaustedError",
    "RebuildRejectedError",
    # Validation
    "ValidationError",
    "InvalidShopIdError",
]
