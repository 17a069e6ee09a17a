"""
Shared pieces of the shop read path: key layout, timed store reads and the
ReadStrategy base class.
"""

import time
from abc import ABC, abstractmethod

from shop_cache.caching.codec import CacheEntryCodec, is_null_marker
from shop_cache.core.config.constants import (
    CACHE_NULL_TTL,
    CACHE_SHOP_KEY,
    CACHE_SHOP_TTL,
    NULL_MARKER,
    CacheOutcome,
    ReadStrategyName,
    Stage,
)
from shop_cache.core.exceptions import DecodeError
from shop_cache.core.interfaces.cache import CacheBackend
from shop_cache.core.interfaces.store import ShopStore
from shop_cache.core.logging.logger import get_logger, log_stage
from shop_cache.infrastructure.monitoring.metrics_collector import (
    MetricsCollector,
    get_metrics_collector,
)
from shop_cache.models import Shop

logger = get_logger(__name__)


def cache_key(shop_id: int) -> str:
    return f"{CACHE_SHOP_KEY}{shop_id}"


async def fetch_shop(
    store: ShopStore, shop_id: int, source: str, metrics: MetricsCollector
) -> Shop | None:
    """Read one shop from the primary store, recording latency by source."""
    start = time.perf_counter()
    try:
        return await store.get_by_id(shop_id)
    finally:
        elapsed = time.perf_counter() - start
        metrics.record_store_query(source, elapsed)
        log_stage(
            logger, Stage.STORE_QUERY, "Primary store queried", level="debug",
            shop_id=shop_id, source=source, duration_ms=round(elapsed * 1000, 2),
        )


class ReadStrategy(ABC):
    """
    Base class for the shop read strategies.

    A process configures exactly one strategy; `read` returns the shop or
    None for "not found". Internal failures (cache or store unreachable)
    propagate as exceptions and are never folded into None.
    """

    name: ReadStrategyName

    def __init__(
        self,
        cache: CacheBackend,
        store: ShopStore,
        codec: CacheEntryCodec | None = None,
        shop_ttl: int = CACHE_SHOP_TTL,
        null_ttl: int = CACHE_NULL_TTL,
        metrics: MetricsCollector | None = None,
    ):
        if null_ttl >= shop_ttl:
            raise ValueError("null_ttl must be shorter than shop_ttl")
        self._cache = cache
        self._store = store
        self._codec = codec or CacheEntryCodec()
        self.shop_ttl = shop_ttl
        self.null_ttl = null_ttl
        self._metrics = metrics or get_metrics_collector()

    @abstractmethod
    async def read(self, shop_id: int) -> Shop | None:
        """Read a shop by id, populating the cache as the strategy requires."""

    def _record(self, outcome: CacheOutcome, shop_id: int) -> None:
        self._metrics.record_cache_lookup(self.name, outcome)
        stage = {
            CacheOutcome.HIT: Stage.CACHE_HIT,
            CacheOutcome.NULL_HIT: Stage.CACHE_NULL_HIT,
            CacheOutcome.MISS: Stage.CACHE_MISS,
            CacheOutcome.STALE: Stage.CACHE_STALE,
            CacheOutcome.CORRUPT: Stage.CACHE_CORRUPT,
        }[outcome]
        level = "warning" if outcome == CacheOutcome.CORRUPT else "debug"
        log_stage(
            logger, stage, "Shop cache lookup", level=level,
            shop_id=shop_id, outcome=outcome.value, strategy=self.name.value,
        )

    async def _lookup(self, shop_id: int) -> tuple[CacheOutcome, Shop | None]:
        """
        Look up a plain entry.

        A payload that fails to decode is reported as CORRUPT and handled by
        callers exactly like a miss.
        """
        raw = await self._cache.get(cache_key(shop_id))
        if raw is None:
            outcome, shop = CacheOutcome.MISS, None
        elif is_null_marker(raw):
            outcome, shop = CacheOutcome.NULL_HIT, None
        else:
            try:
                outcome, shop = CacheOutcome.HIT, self._codec.decode(raw)
            except DecodeError:
                outcome, shop = CacheOutcome.CORRUPT, None
        self._record(outcome, shop_id)
        return outcome, shop

    async def _load_and_populate(self, shop_id: int) -> Shop | None:
        """
        Query the primary store and write the result back.

        Found shops are cached with the standard TTL; absent ids get a null
        marker with the short TTL.
        """
        shop = await fetch_shop(self._store, shop_id, self.name.value, self._metrics)
        key = cache_key(shop_id)
        if shop is None:
            await self._cache.set(key, NULL_MARKER, ttl=self.null_ttl)
            log_stage(logger, Stage.CACHE_POPULATE, "Null marker cached", shop_id=shop_id, ttl=self.null_ttl)
            return None

        await self._cache.set(key, self._codec.encode(shop), ttl=self.shop_ttl)
        log_stage(logger, Stage.CACHE_POPULATE, "Shop cached", shop_id=shop_id, ttl=self.shop_ttl)
        return shop
