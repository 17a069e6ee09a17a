"""
Write-Invalidation Path

Update the primary store, then delete the cached entry, in that order.

The store update runs inside a transaction; the cache delete is issued only
after that transaction commits, so a failed update never leaves the cache
emptied for a row that did not change. The delete itself is best-effort: if
the cache is unreachable the error is logged and the update still stands.
No entry is written back; the next read repopulates it.
"""

from shop_cache.caching.base import cache_key
from shop_cache.core.config.constants import Stage
from shop_cache.core.exceptions import CacheError, InvalidShopIdError
from shop_cache.core.interfaces.cache import CacheBackend
from shop_cache.core.interfaces.store import ShopStore
from shop_cache.core.logging.logger import get_logger, log_stage
from shop_cache.infrastructure.monitoring.metrics_collector import (
    MetricsCollector,
    get_metrics_collector,
)
from shop_cache.models import Shop

logger = get_logger(__name__)


class ShopInvalidator:
    def __init__(
        self,
        store: ShopStore,
        cache: CacheBackend,
        metrics: MetricsCollector | None = None,
    ):
        self._store = store
        self._cache = cache
        self._metrics = metrics or get_metrics_collector()

    async def update(self, shop: Shop) -> bool:
        """
        Apply an update and invalidate the cached copy.

        Returns:
            True if a row was updated

        Raises:
            InvalidShopIdError: if shop.id is missing
            StoreError: if the update fails (the cache is left untouched)
        """
        if shop.id is None:
            raise InvalidShopIdError("Shop id must not be empty")

        async with self._store.transaction() as uow:
            updated = await uow.update_by_id(shop)
        log_stage(logger, Stage.STORE_UPDATE, "Shop update committed", shop_id=shop.id, updated=updated)

        await self._invalidate(shop.id)
        return updated

    async def _invalidate(self, shop_id: int) -> None:
        key = cache_key(shop_id)
        try:
            await self._cache.delete(key)
        except CacheError as e:
            self._metrics.record_invalidation(False)
            log_stage(
                logger, Stage.INVALIDATE_FAILED,
                "Cache invalidation failed; entry will age out", level="warning",
                shop_id=shop_id, key=key, error=str(e),
            )
            return

        self._metrics.record_invalidation(True)
        log_stage(logger, Stage.INVALIDATE, "Shop cache invalidated", shop_id=shop_id, key=key)
