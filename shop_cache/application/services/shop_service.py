"""
Shop Service

Entry point from the HTTP layer into the cache consistency engine. Routes
hand it a shop id or an update; it returns a Result envelope.

"Not found" and "missing id" are business failures and come back as
`Result.fail`. Internal failures (cache or store down, mutex retries
exhausted) are raised and mapped to 5xx by the application's exception
handlers, so the two can never be confused.
"""

from shop_cache.caching.invalidation import ShopInvalidator
from shop_cache.caching.rebuild import RebuildScheduler
from shop_cache.caching.strategies import ReadStrategy
from shop_cache.core.exceptions import InvalidShopIdError
from shop_cache.core.logging.logger import get_logger
from shop_cache.models import Result, Shop

logger = get_logger(__name__)

SHOP_NOT_FOUND = "shop not found"


class ShopService:
    def __init__(
        self,
        read_strategy: ReadStrategy,
        invalidator: ShopInvalidator,
        scheduler: RebuildScheduler,
    ):
        self.read_strategy = read_strategy
        self._invalidator = invalidator
        self._scheduler = scheduler

    async def query_by_id(self, shop_id: int) -> Result:
        shop = await self.read_strategy.read(shop_id)
        if shop is None:
            return Result.fail(SHOP_NOT_FOUND)
        return Result.ok(shop)

    async def update(self, shop: Shop) -> Result:
        """Update the store row and invalidate its cache entry."""
        try:
            updated = await self._invalidator.update(shop)
        except InvalidShopIdError as e:
            logger.info("Rejected shop update", reason=e.message)
            return Result.fail(e.message)

        if not updated:
            return Result.fail(SHOP_NOT_FOUND)
        return Result.ok()

    async def warm(self, shop_id: int, expire_seconds: int | None = None) -> Result:
        """Preload a logically-expiring entry for shop_id."""
        shop = await self._scheduler.warm(shop_id, expire_seconds)
        if shop is None:
            return Result.fail(SHOP_NOT_FOUND)
        return Result.ok(shop)
