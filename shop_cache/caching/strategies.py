"""
Shop Read Strategies

Three interchangeable ways to read a shop through the cache:

    PassThroughStrategy     miss -> store -> cache (null marker for absent ids)
    MutexStrategy           single-flight rebuild under a per-id lock
    LogicalExpireStrategy   never blocks; stale entries rebuilt in background

Exactly one strategy is configured per process (CACHE_READ_STRATEGY).
"""

from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_result
from tenacity import stop_after_attempt, wait_exponential_jitter

from shop_cache.caching.base import ReadStrategy, cache_key
from shop_cache.caching.codec import CacheEntryCodec, is_null_marker
from shop_cache.caching.lock import DistributedLock
from shop_cache.caching.rebuild import RebuildScheduler
from shop_cache.core.config.constants import (
    CACHE_NULL_TTL,
    CACHE_SHOP_TTL,
    MUTEX_MAX_RETRIES,
    MUTEX_RETRY_INTERVAL_MS,
    MUTEX_RETRY_MAX_INTERVAL_MS,
    CacheOutcome,
    ReadStrategyName,
    Stage,
)
from shop_cache.core.exceptions import (
    ConfigurationError,
    DecodeError,
    LockRetryExhaustedError,
    RebuildRejectedError,
)
from shop_cache.core.interfaces.cache import CacheBackend
from shop_cache.core.interfaces.store import ShopStore
from shop_cache.core.logging.logger import get_logger, log_stage
from shop_cache.infrastructure.monitoring.metrics_collector import MetricsCollector
from shop_cache.models import Shop

logger = get_logger(__name__)

# Returned by a mutex attempt that lost the lock race
_LOCK_BUSY = object()


class PassThroughStrategy(ReadStrategy):
    """
    Cache-aside read with null caching.

    Repeated reads of an id that does not exist reach the store at most once
    per null marker TTL. A shop created inside that window reads as absent
    until the marker expires.
    """

    name = ReadStrategyName.PASS_THROUGH

    async def read(self, shop_id: int) -> Shop | None:
        outcome, shop = await self._lookup(shop_id)
        if outcome == CacheOutcome.HIT:
            return shop
        if outcome == CacheOutcome.NULL_HIT:
            return None
        return await self._load_and_populate(shop_id)


class MutexStrategy(ReadStrategy):
    """
    Mutex-guarded rebuild.

    On a miss only the lock holder queries the store; everyone else sleeps
    with bounded exponential backoff and re-reads from the top. The holder
    re-checks the cache after acquiring, since another holder may have
    populated it between the first miss and the acquisition.

    Raises:
        LockRetryExhaustedError: after max_retries sleeps under sustained contention
    """

    name = ReadStrategyName.MUTEX

    def __init__(
        self,
        cache: CacheBackend,
        store: ShopStore,
        lock: DistributedLock,
        codec: CacheEntryCodec | None = None,
        shop_ttl: int = CACHE_SHOP_TTL,
        null_ttl: int = CACHE_NULL_TTL,
        retry_interval_ms: int = MUTEX_RETRY_INTERVAL_MS,
        retry_max_interval_ms: int = MUTEX_RETRY_MAX_INTERVAL_MS,
        max_retries: int = MUTEX_MAX_RETRIES,
        metrics: MetricsCollector | None = None,
    ):
        super().__init__(cache, store, codec, shop_ttl, null_ttl, metrics)
        if max_retries <= 0:
            raise ValueError("max_retries must be positive")
        self._lock = lock
        self.retry_interval = retry_interval_ms / 1000
        self.retry_max_interval = max(retry_max_interval_ms, retry_interval_ms) / 1000
        self.max_retries = max_retries

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_result(lambda result: result is _LOCK_BUSY),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential_jitter(
                initial=self.retry_interval,
                max=self.retry_max_interval,
                jitter=self.retry_interval,
            ),
            before_sleep=self._before_sleep,
        )

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        self._metrics.record_mutex_retry()
        log_stage(
            logger,
            Stage.LOCK_BUSY,
            "Rebuild in progress elsewhere, retrying read",
            level="debug",
            shop_id=retry_state.args[0] if retry_state.args else None,
            attempt=retry_state.attempt_number,
            sleep_ms=round(retry_state.next_action.sleep * 1000, 1),
        )

    async def read(self, shop_id: int) -> Shop | None:
        try:
            return await self._retrying()(self._attempt, shop_id)
        except RetryError as e:
            raise LockRetryExhaustedError(
                "Gave up waiting for a competing shop rebuild",
                details={
                    "shop_id": shop_id,
                    "attempts": e.last_attempt.attempt_number,
                },
            ) from e

    async def _attempt(self, shop_id: int):
        """One pass of lookup, lock and rebuild; returns _LOCK_BUSY on contention."""
        outcome, shop = await self._lookup(shop_id)
        if outcome == CacheOutcome.HIT:
            return shop
        if outcome == CacheOutcome.NULL_HIT:
            return None

        token = self._lock.new_token()
        if not await self._lock.try_acquire(shop_id, token):
            return _LOCK_BUSY

        try:
            outcome, shop = await self._lookup(shop_id)
            if outcome == CacheOutcome.HIT:
                return shop
            if outcome == CacheOutcome.NULL_HIT:
                return None
            return await self._load_and_populate(shop_id)
        finally:
            await self._lock.release(shop_id, token)


class LogicalExpireStrategy(ReadStrategy):
    """
    Logical expiration with background rebuild.

    Entries are wrapped with an expireTime and stored without a physical TTL
    (see RebuildScheduler.warm). Reads never touch the store: an expired
    entry is returned as-is while at most one rebuild per id is handed to
    the scheduler. An id with no entry reads as not found.
    """

    name = ReadStrategyName.LOGICAL_EXPIRE

    def __init__(
        self,
        cache: CacheBackend,
        store: ShopStore,
        lock: DistributedLock,
        scheduler: RebuildScheduler,
        codec: CacheEntryCodec | None = None,
        metrics: MetricsCollector | None = None,
    ):
        super().__init__(cache, store, codec, metrics=metrics)
        self._lock = lock
        self._scheduler = scheduler

    async def _lookup_wrapped(self, shop_id: int) -> tuple[Shop, float] | None:
        raw = await self._cache.get(cache_key(shop_id))
        if raw is None or is_null_marker(raw):
            return None
        try:
            return self._codec.decode_wrapped(raw)
        except DecodeError:
            self._record(CacheOutcome.CORRUPT, shop_id)
            return None

    async def read(self, shop_id: int) -> Shop | None:
        entry = await self._lookup_wrapped(shop_id)
        if entry is None:
            self._record(CacheOutcome.MISS, shop_id)
            return None

        shop, expire_at = entry
        if not self._codec.is_expired(expire_at):
            self._record(CacheOutcome.HIT, shop_id)
            return shop

        self._record(CacheOutcome.STALE, shop_id)
        token = self._lock.new_token()
        if not await self._lock.try_acquire(shop_id, token):
            # A rebuild is already in flight
            return shop

        handed_off = False
        try:
            # Another holder may have refreshed the entry since the first read
            current = await self._lookup_wrapped(shop_id)
            if current is not None and not self._codec.is_expired(current[1]):
                return current[0]

            # The scheduler owns the lock from here, accepted or not
            handed_off = True
            try:
                await self._scheduler.submit(shop_id, token)
            except RebuildRejectedError as e:
                # Lock already released by the scheduler; the next stale read retries
                logger.warning("Stale shop served without rebuild", shop_id=shop_id, reason=e.message)
            return shop
        finally:
            if not handed_off:
                await self._lock.release(shop_id, token)


def build_read_strategy(
    name: str | ReadStrategyName,
    cache: CacheBackend,
    store: ShopStore,
    lock: DistributedLock,
    scheduler: RebuildScheduler | None = None,
    codec: CacheEntryCodec | None = None,
    settings=None,
    metrics: MetricsCollector | None = None,
) -> ReadStrategy:
    """
    Build the configured read strategy.

    Raises:
        ConfigurationError: unknown name, or logical_expire without a scheduler
    """
    try:
        strategy_name = ReadStrategyName(name)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown read strategy: {name}",
            details={"allowed": [s.value for s in ReadStrategyName]},
        ) from e

    ttls = {}
    retry = {}
    if settings is not None:
        ttls = {
            "shop_ttl": settings.cache.CACHE_SHOP_TTL,
            "null_ttl": settings.cache.CACHE_NULL_TTL,
        }
        retry = {
            "retry_interval_ms": settings.lock.MUTEX_RETRY_INTERVAL_MS,
            "retry_max_interval_ms": settings.lock.MUTEX_RETRY_MAX_INTERVAL_MS,
            "max_retries": settings.lock.MUTEX_MAX_RETRIES,
        }

    if strategy_name == ReadStrategyName.PASS_THROUGH:
        return PassThroughStrategy(cache, store, codec, metrics=metrics, **ttls)
    if strategy_name == ReadStrategyName.MUTEX:
        return MutexStrategy(cache, store, lock, codec, metrics=metrics, **ttls, **retry)

    if scheduler is None:
        raise ConfigurationError("logical_expire strategy requires a rebuild scheduler")
    return LogicalExpireStrategy(cache, store, lock, scheduler, codec, metrics=metrics)
