"""
Cache Backend Protocol

Abstract protocol for the distributed key-value cache, enabling dependency
injection and substitution with an in-memory fake in tests.

Architectural Decision: Protocol-based abstraction
- The cache is an injected capability, never ambient global state
- Every component that touches the cache receives it explicitly
- Type-safe interface with runtime checking
"""

import time
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CacheBackend(Protocol):
    """
    Protocol defining the operations the cache consistency engine consumes.

    Implementations:
    - RedisClient: Production Redis-backed cache
    - InMemoryCache: Testing/development in-memory cache

    The backend may return stale or absent data at any time; callers must
    tolerate both.
    """

    async def connect(self) -> None:
        """
        Establish connection to the cache backend.

        Raises:
            CacheConnectionError: If connection fails
        """
        ...

    async def disconnect(self) -> None:
        """Close connection to the cache backend."""
        ...

    async def ping(self) -> bool:
        """Return True if the backend answers."""
        ...

    async def get(self, key: str) -> str | None:
        """
        Get value from cache.

        Returns:
            The stored string (possibly empty) or None when the key is absent

        Raises:
            CacheKeyError: If operation fails
        """
        ...

    async def set(
        self,
        key: str,
        value: str,
        ttl: int | None = None,
        nx: bool = False,
        xx: bool = False
    ) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to store
            ttl: Time-to-live in seconds; None stores without expiry
            nx: Only set if key doesn't exist
            xx: Only set if key exists

        Returns:
            bool: True if set successfully
        """
        ...

    async def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        """
        Atomically set key with a TTL only if it does not already exist.

        Returns:
            bool: True iff this call created the key
        """
        ...

    async def delete(self, *keys: str) -> int:
        """
        Delete keys from cache.

        Returns:
            int: Number of keys deleted
        """
        ...

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """
        Atomically delete key only if it currently holds value.

        Returns:
            bool: True if the key was deleted
        """
        ...

    async def expire(self, key: str, ttl: int) -> bool:
        """Set TTL on a key."""
        ...

    async def ttl(self, key: str) -> int:
        """
        Get TTL of a key.

        Returns:
            int: TTL in seconds, -1 if no TTL, -2 if key doesn't exist
        """
        ...

    async def health_check(self) -> dict[str, Any]:
        """Perform health check and return status and metrics."""
        ...


class InMemoryCache:
    """
    In-memory cache implementation for tests and local development.

    Implements the CacheBackend protocol without external dependencies.
    TTLs are enforced lazily on read against an injectable clock so tests can
    move time forward without sleeping.

    Note: Not distributed. Atomicity of set_if_absent holds within one event
    loop because no operation awaits between its check and its write.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._store: dict[str, str] = {}
        self._expires_at: dict[str, float] = {}
        self._connected = False
        self.operations: list[tuple[str, str]] = []

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False
        self._store.clear()
        self._expires_at.clear()

    async def ping(self) -> bool:
        return self._connected

    def _evict_if_expired(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._store.pop(key, None)
            self._expires_at.pop(key, None)

    async def get(self, key: str) -> str | None:
        self.operations.append(("get", key))
        self._evict_if_expired(key)
        return self._store.get(key)

    async def set(
        self,
        key: str,
        value: str,
        ttl: int | None = None,
        nx: bool = False,
        xx: bool = False
    ) -> bool:
        self.operations.append(("set", key))
        self._evict_if_expired(key)
        if nx and key in self._store:
            return False
        if xx and key not in self._store:
            return False

        self._store[key] = value
        if ttl:
            self._expires_at[key] = self._clock() + ttl
        else:
            self._expires_at.pop(key, None)
        return True

    async def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        return await self.set(key, value, ttl=ttl, nx=True)

    async def delete(self, *keys: str) -> int:
        count = 0
        for key in keys:
            self.operations.append(("delete", key))
            self._evict_if_expired(key)
            if key in self._store:
                del self._store[key]
                self._expires_at.pop(key, None)
                count += 1
        return count

    async def delete_if_equals(self, key: str, value: str) -> bool:
        self.operations.append(("delete_if_equals", key))
        self._evict_if_expired(key)
        if self._store.get(key) == value:
            del self._store[key]
            self._expires_at.pop(key, None)
            return True
        return False

    async def expire(self, key: str, ttl: int) -> bool:
        self._evict_if_expired(key)
        if key in self._store:
            self._expires_at[key] = self._clock() + ttl
            return True
        return False

    async def ttl(self, key: str) -> int:
        self._evict_if_expired(key)
        if key not in self._store:
            return -2
        deadline = self._expires_at.get(key)
        if deadline is None:
            return -1
        return max(int(deadline - self._clock()), 0)

    async def health_check(self) -> dict[str, Any]:
        return {
            "status": "healthy" if self._connected else "unhealthy",
            "connected": self._connected,
            "keys_count": len(self._store),
        }

    def count(self, operation: str, key: str) -> int:
        """Number of recorded calls of `operation` on `key` (test helper)."""
        return sum(1 for op, k in self.operations if op == operation and k == key)
