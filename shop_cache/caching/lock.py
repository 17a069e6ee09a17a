"""
Distributed Rebuild Lock

Short-TTL mutual exclusion per shop id, built on the cache's atomic
SET NX EX. The lock key lives under `lock:shop:<id>`, disjoint from the data
namespace, so lock traffic never touches a cached entry.

Holders release explicitly; a holder that crashes is evicted when the TTL
elapses. With ownership checks enabled each acquisition stores a random token
and release is a compare-and-delete, so a slow holder whose lock already
expired cannot delete a newer holder's lock.
"""

import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from shop_cache.core.config.constants import LOCK_SENTINEL, LOCK_SHOP_KEY, LOCK_SHOP_TTL, Stage
from shop_cache.core.exceptions import CacheError
from shop_cache.core.interfaces.cache import CacheBackend
from shop_cache.core.logging.logger import get_logger, log_stage
from shop_cache.infrastructure.monitoring.metrics_collector import (
    MetricsCollector,
    get_metrics_collector,
)

logger = get_logger(__name__)


def lock_key(shop_id: int) -> str:
    return f"{LOCK_SHOP_KEY}{shop_id}"


class DistributedLock:
    """
    Per-id rebuild lock.

    Usage:
        lock = DistributedLock(cache)

        token = lock.new_token()
        if await lock.try_acquire(shop_id, token):
            try:
                ...
            finally:
                await lock.release(shop_id, token)

        # or
        async with lock.held(shop_id) as acquired:
            if acquired:
                ...
    """

    def __init__(
        self,
        cache: CacheBackend,
        ttl: int = LOCK_SHOP_TTL,
        ownership_check: bool = True,
        metrics: MetricsCollector | None = None,
    ):
        if ttl <= 0:
            raise ValueError("lock ttl must be positive")
        self._cache = cache
        self.ttl = ttl
        self.ownership_check = ownership_check
        self._metrics = metrics or get_metrics_collector()

    def new_token(self) -> str | None:
        """Random per-acquisition token, or None when ownership checks are off."""
        if not self.ownership_check:
            return None
        return secrets.token_hex(16)

    async def try_acquire(self, shop_id: int, token: str | None = None) -> bool:
        """
        Attempt SET NX EX on lock:shop:<id>.

        Returns:
            True iff this caller became the holder. Contention is not an error.
        """
        acquired = await self._cache.set_if_absent(
            lock_key(shop_id), token or LOCK_SENTINEL, self.ttl
        )
        self._metrics.record_lock_attempt(acquired)

        if acquired:
            log_stage(logger, Stage.LOCK_ACQUIRED, "Rebuild lock acquired", level="debug", shop_id=shop_id)
        else:
            log_stage(logger, Stage.LOCK_BUSY, "Rebuild lock busy", level="debug", shop_id=shop_id)
        return acquired

    async def release(self, shop_id: int, token: str | None = None) -> bool:
        """
        Release the lock.

        Without a token the key is deleted unconditionally; with a token it is
        deleted only while it still holds that token. A failed delete is
        logged and left to the TTL.

        Returns:
            True if a lock key was removed
        """
        key = lock_key(shop_id)
        try:
            if token is not None and self.ownership_check:
                released = await self._cache.delete_if_equals(key, token)
            else:
                released = await self._cache.delete(key) > 0
        except CacheError as e:
            log_stage(
                logger,
                Stage.LOCK_RELEASED,
                "Rebuild lock release failed; TTL will evict it",
                level="warning",
                shop_id=shop_id,
                error=str(e),
            )
            return False

        log_stage(
            logger, Stage.LOCK_RELEASED, "Rebuild lock released", level="debug",
            shop_id=shop_id, released=released,
        )
        return released

    @asynccontextmanager
    async def held(self, shop_id: int) -> AsyncIterator[bool]:
        """
        Try the lock once and yield whether it was acquired.

        The lock is released on every exit path when this call acquired it.
        """
        token = self.new_token()
        acquired = await self.try_acquire(shop_id, token)
        try:
            yield acquired
        finally:
            if acquired:
                await self.release(shop_id, token)
