"""
Background Rebuild Scheduler

Bounded worker pool that refreshes logically-expired cache entries.

Architecture:
    LogicalExpireStrategy --submit(id, token)--> asyncio.Queue (bounded)
                                                      |
                                     worker-0 .. worker-N (asyncio tasks)
                                                      |
                          store.get_by_id -> encode_with_expiry -> cache.set

Each job carries the rebuild lock acquired by the reader that submitted it,
and the job releases that lock on every exit path. Submission never blocks:
when the backlog is full the job is rejected, its lock is released right
away, and the next stale read triggers a new attempt. Failed jobs are logged
and counted, never retried.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from shop_cache.caching.base import cache_key, fetch_shop
from shop_cache.caching.codec import CacheEntryCodec
from shop_cache.caching.lock import DistributedLock
from shop_cache.core.config.constants import (
    LOGICAL_EXPIRE_SECONDS,
    REBUILD_QUEUE_SIZE,
    REBUILD_SHUTDOWN_TIMEOUT,
    REBUILD_WORKERS,
    Stage,
)
from shop_cache.core.exceptions import RebuildRejectedError
from shop_cache.core.interfaces.cache import CacheBackend
from shop_cache.core.interfaces.store import ShopStore
from shop_cache.core.logging.logger import get_logger, log_stage
from shop_cache.infrastructure.monitoring.metrics_collector import (
    MetricsCollector,
    get_metrics_collector,
)
from shop_cache.models import Shop

logger = get_logger(__name__)


@dataclass
class RebuildJob:
    shop_id: int
    token: str | None = None
    submitted_at: float = field(default_factory=time.monotonic)


class RebuildScheduler:
    """
    Fixed pool of worker tasks draining a bounded job queue.

    Usage:
        scheduler = RebuildScheduler(store, cache, lock)
        await scheduler.start()

        accepted = await scheduler.submit(shop_id, token)

        await scheduler.stop()
    """

    def __init__(
        self,
        store: ShopStore,
        cache: CacheBackend,
        lock: DistributedLock,
        codec: CacheEntryCodec | None = None,
        workers: int = REBUILD_WORKERS,
        queue_size: int = REBUILD_QUEUE_SIZE,
        expire_seconds: int = LOGICAL_EXPIRE_SECONDS,
        metrics: MetricsCollector | None = None,
    ):
        if workers <= 0 or queue_size <= 0:
            raise ValueError("workers and queue_size must be positive")
        if expire_seconds <= 0:
            raise ValueError("expire_seconds must be positive")

        self._store = store
        self._cache = cache
        self._lock = lock
        self._codec = codec or CacheEntryCodec()
        self.worker_count = workers
        self.queue_size = queue_size
        self.expire_seconds = expire_seconds
        self._metrics = metrics or get_metrics_collector()

        self._queue: asyncio.Queue[RebuildJob] = asyncio.Queue(maxsize=queue_size)
        self._workers: list[asyncio.Task] = []
        self._running = False
        self._counts = {
            "submitted": 0,
            "rejected": 0,
            "completed": 0,
            "missing": 0,
            "failed": 0,
        }

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Spawn the worker tasks. Calling start twice is a no-op."""
        if self._running:
            return
        self._running = True
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"shop-rebuild-{index}")
            for index in range(self.worker_count)
        ]
        logger.info(
            "Rebuild scheduler started",
            stage=Stage.REBUILD_LIFECYCLE.value,
            workers=self.worker_count,
            queue_size=self.queue_size,
            expire_seconds=self.expire_seconds,
        )

    async def stop(self, timeout: float = REBUILD_SHUTDOWN_TIMEOUT) -> None:
        """
        Stop accepting jobs, give the backlog up to `timeout` seconds to
        drain, then cancel the workers. Locks of jobs that never ran are
        released.
        """
        if not self._running:
            return
        self._running = False

        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Rebuild backlog not drained before shutdown",
                stage=Stage.REBUILD_LIFECYCLE.value,
                remaining=self._queue.qsize(),
                timeout_seconds=timeout,
            )

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        while not self._queue.empty():
            job = self._queue.get_nowait()
            self._queue.task_done()
            await self._lock.release(job.shop_id, job.token)

        self._metrics.record_rebuild_queue_depth(0)
        logger.info("Rebuild scheduler stopped", stage=Stage.REBUILD_LIFECYCLE.value, **self._counts)

    async def submit(self, shop_id: int, token: str | None = None) -> bool:
        """
        Queue a rebuild for shop_id without waiting.

        The caller must hold the rebuild lock for shop_id; ownership of it
        passes to the scheduler whether or not the job is accepted.

        Returns:
            True if queued, False if rejected because the backlog is full

        Raises:
            RebuildRejectedError: if the scheduler is not running
        """
        if not self._running:
            await self._lock.release(shop_id, token)
            self._reject(shop_id, "stopped")
            raise RebuildRejectedError(
                "Rebuild scheduler is not running", details={"shop_id": shop_id}
            )

        try:
            self._queue.put_nowait(RebuildJob(shop_id=shop_id, token=token))
        except asyncio.QueueFull:
            await self._lock.release(shop_id, token)
            self._reject(shop_id, "saturated")
            return False

        self._counts["submitted"] += 1
        self._metrics.record_rebuild("submitted")
        self._metrics.record_rebuild_queue_depth(self._queue.qsize())
        log_stage(
            logger, Stage.REBUILD_SUBMITTED, "Rebuild job queued", level="debug",
            shop_id=shop_id, queue_depth=self._queue.qsize(),
        )
        return True

    def _reject(self, shop_id: int, reason: str) -> None:
        self._counts["rejected"] += 1
        self._metrics.record_rebuild("rejected")
        log_stage(
            logger, Stage.REBUILD_REJECTED, "Rebuild job rejected", level="warning",
            shop_id=shop_id, reason=reason, queue_depth=self._queue.qsize(),
        )

    async def wait_idle(self) -> None:
        """Wait until every queued job has finished."""
        await self._queue.join()

    def stats(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "workers": self.worker_count,
            "queue_size": self.queue_size,
            "queue_depth": self._queue.qsize(),
            "expire_seconds": self.expire_seconds,
            **self._counts,
        }

    async def warm(self, shop_id: int, expire_seconds: int | None = None) -> Shop | None:
        """
        Load a shop from the store and write a logically-expiring entry now.

        Used to pre-warm hot ids before traffic arrives. The entry is stored
        without a physical TTL. When the shop does not exist any stale entry
        is removed and None is returned.
        """
        expire_seconds = expire_seconds or self.expire_seconds
        shop = await fetch_shop(self._store, shop_id, "warm", self._metrics)
        key = cache_key(shop_id)
        if shop is None:
            await self._cache.delete(key)
            log_stage(logger, Stage.CACHE_POPULATE, "Warm skipped, shop not found", shop_id=shop_id)
            return None

        await self._cache.set(key, self._codec.encode_with_expiry(shop, expire_seconds))
        log_stage(
            logger, Stage.CACHE_POPULATE, "Shop cache warmed",
            shop_id=shop_id, expire_seconds=expire_seconds,
        )
        return shop

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._run_job(job)
            finally:
                self._queue.task_done()
                self._metrics.record_rebuild_queue_depth(self._queue.qsize())

    async def _run_job(self, job: RebuildJob) -> None:
        """Refresh one entry; the job's lock is released on every exit path."""
        try:
            shop = await fetch_shop(self._store, job.shop_id, "rebuild", self._metrics)
            key = cache_key(job.shop_id)
            if shop is None:
                await self._cache.delete(key)
                outcome = "missing"
            else:
                await self._cache.set(key, self._codec.encode_with_expiry(shop, self.expire_seconds))
                outcome = "completed"
        except Exception as e:
            self._counts["failed"] += 1
            self._metrics.record_rebuild("failed")
            log_stage(
                logger, Stage.REBUILD_FAILED, "Rebuild job failed", level="error",
                shop_id=job.shop_id, error=str(e), error_type=type(e).__name__,
            )
            return
        finally:
            await self._lock.release(job.shop_id, job.token)

        self._counts[outcome] += 1
        self._metrics.record_rebuild(outcome)
        log_stage(
            logger, Stage.REBUILD_COMPLETED, "Rebuild job finished",
            shop_id=job.shop_id, outcome=outcome,
            duration_ms=round((time.monotonic() - job.submitted_at) * 1000, 2),
        )
