"""
Core Interfaces

Protocols for the two external collaborators of the cache consistency engine,
plus in-memory implementations for tests and local development.

Usage:
------
```python
from shop_cache.core.interfaces import CacheBackend, ShopStore

async def read(cache: CacheBackend, store: ShopStore, shop_id: int):
    raw = await cache.get(f"cache:shop:{shop_id}")
    ...
```
"""

from shop_cache.core.interfaces.cache import CacheBackend, InMemoryCache
from shop_cache.core.interfaces.store import InMemoryShopStore, ShopStore, ShopUnitOfWork

__all__ = [
    # Cache interfaces
    "CacheBackend",
    "InMemoryCache",
    # Store interfaces
    "ShopStore",
    "ShopUnitOfWork",
    "InMemoryShopStore",
]
