"""
Unit Tests for RebuildScheduler

Tests the bounded worker pool: saturation rejects without blocking, every
job releases the lock it was handed, and shutdown leaves no lock behind.
"""

import orjson
import pytest

from shop_cache.caching.base import cache_key
from shop_cache.caching.lock import lock_key
from shop_cache.caching.rebuild import RebuildScheduler
from shop_cache.core.exceptions import RebuildRejectedError, StoreError
from tests.test_fixtures import ShopFactory


def make_scheduler(store, cache, lock, codec, metrics, **overrides):
    options = {"workers": 1, "queue_size": 1, "expire_seconds": 20}
    options.update(overrides)
    return RebuildScheduler(store, cache, lock, codec, metrics=metrics, **options)


async def acquire(lock, shop_id):
    token = lock.new_token()
    assert await lock.try_acquire(shop_id, token)
    return token


@pytest.mark.unit
class TestRebuildJobs:
    """Test job execution."""

    @pytest.mark.asyncio
    async def test_job_rewrites_entry_and_releases_lock(self, scheduler, lock, cache, codec, fake_clock):
        """Test that a completed job writes a wrapped entry without a physical TTL."""
        token = await acquire(lock, 7)

        assert await scheduler.submit(7, token) is True
        await scheduler.wait_idle()

        shop, expire_at = codec.decode_wrapped(await cache.get(cache_key(7)))
        assert shop.name == "Tea House"
        assert expire_at == fake_clock.now + 20
        assert await cache.ttl(cache_key(7)) == -1
        assert await cache.get(lock_key(7)) is None
        assert scheduler.stats()["completed"] == 1

    @pytest.mark.asyncio
    async def test_failed_job_releases_lock_and_keeps_entry(self, scheduler, lock, cache, codec, store, metrics):
        """Test that a store failure is counted, logged and not retried."""
        await scheduler.warm(7)
        before = await cache.get(cache_key(7))
        store.fail_with = StoreError("Shop query failed")
        token = await acquire(lock, 7)

        await scheduler.submit(7, token)
        await scheduler.wait_idle()

        assert await cache.get(cache_key(7)) == before
        assert await cache.get(lock_key(7)) is None
        assert scheduler.stats()["failed"] == 1
        metrics.record_rebuild.assert_any_call("failed")

    @pytest.mark.asyncio
    async def test_missing_shop_removes_entry(self, scheduler, lock, cache, codec):
        """Test that a rebuild of a deleted shop drops the stale entry."""
        await cache.set(cache_key(99), codec.encode_with_expiry(ShopFactory.basic(99), 20))
        token = await acquire(lock, 99)

        await scheduler.submit(99, token)
        await scheduler.wait_idle()

        assert await cache.get(cache_key(99)) is None
        assert await cache.get(lock_key(99)) is None
        assert scheduler.stats()["missing"] == 1


@pytest.mark.unit
class TestRebuildSubmission:
    """Test admission control."""

    @pytest.mark.asyncio
    async def test_saturated_queue_rejects_and_releases_lock(self, store, cache, lock, codec, metrics):
        """Test that a full backlog rejects immediately and frees the submitter's lock."""
        pool = make_scheduler(store, cache, lock, codec, metrics)
        await pool.start()
        try:
            first = await acquire(lock, 1)
            second = await acquire(lock, 7)

            assert await pool.submit(1, first) is True
            assert await pool.submit(7, second) is False

            assert await cache.get(lock_key(7)) is None
            assert pool.stats()["rejected"] == 1
            metrics.record_rebuild.assert_any_call("rejected")
        finally:
            await pool.stop(timeout=1.0)

        assert await cache.get(lock_key(1)) is None

    @pytest.mark.asyncio
    async def test_submit_to_stopped_scheduler_raises(self, store, cache, lock, codec, metrics):
        """Test that a scheduler that is not running refuses work and frees the lock."""
        pool = make_scheduler(store, cache, lock, codec, metrics)
        token = await acquire(lock, 1)

        with pytest.raises(RebuildRejectedError):
            await pool.submit(1, token)

        assert await cache.get(lock_key(1)) is None
        assert pool.stats()["rejected"] == 1


@pytest.mark.unit
class TestRebuildLifecycle:
    """Test start/stop behavior."""

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, store, cache, lock, codec, metrics):
        pool = make_scheduler(store, cache, lock, codec, metrics, workers=3)
        await pool.start()
        await pool.start()
        try:
            assert pool.running is True
            assert len(pool._workers) == 3
        finally:
            await pool.stop()

        assert pool.running is False

    @pytest.mark.asyncio
    async def test_stop_releases_locks_of_unfinished_jobs(self, store, cache, lock, codec, metrics):
        """Test that shutdown with a backlog leaves no lock behind."""
        store.latency = 0.2
        pool = make_scheduler(store, cache, lock, codec, metrics, queue_size=5)
        await pool.start()

        for shop_id in (1, 7, 3):
            assert await pool.submit(shop_id, await acquire(lock, shop_id)) is True

        await pool.stop(timeout=0.01)

        for shop_id in (1, 7, 3):
            assert await cache.get(lock_key(shop_id)) is None
        assert pool.stats()["queue_depth"] == 0

    def test_stats_shape(self, store, cache, lock, codec, metrics):
        """Test the fields reported by stats()."""
        stats = make_scheduler(store, cache, lock, codec, metrics, workers=4, queue_size=8).stats()

        assert stats == {
            "running": False,
            "workers": 4,
            "queue_size": 8,
            "queue_depth": 0,
            "expire_seconds": 20,
            "submitted": 0,
            "rejected": 0,
            "completed": 0,
            "missing": 0,
            "failed": 0,
        }

    @pytest.mark.parametrize(
        "overrides",
        [{"workers": 0}, {"queue_size": 0}, {"expire_seconds": 0}],
    )
    def test_invalid_sizes_rejected(self, store, cache, lock, codec, metrics, overrides):
        with pytest.raises(ValueError):
            make_scheduler(store, cache, lock, codec, metrics, **overrides)


@pytest.mark.unit
class TestWarm:
    """Test pre-warming."""

    @pytest.mark.asyncio
    async def test_warm_writes_wrapped_entry_without_ttl(self, scheduler, cache, fake_clock):
        """Test that warm stores expireTime = now + expire_seconds and no physical TTL."""
        shop = await scheduler.warm(1, expire_seconds=60)

        payload = orjson.loads(await cache.get(cache_key(1)))
        assert shop.id == 1
        assert payload["data"]["id"] == 1
        assert payload["expireTime"] == fake_clock.now + 60
        assert await cache.ttl(cache_key(1)) == -1

    @pytest.mark.asyncio
    async def test_warm_defaults_to_configured_expiry(self, scheduler, cache, fake_clock):
        await scheduler.warm(1)

        payload = orjson.loads(await cache.get(cache_key(1)))
        assert payload["expireTime"] == fake_clock.now + 20

    @pytest.mark.asyncio
    async def test_warm_missing_shop_removes_entry(self, scheduler, cache):
        """Test that warming an id with no row returns None and clears the key."""
        await cache.set(cache_key(404), '{"data": {"id": 404}, "expireTime": 0}')

        assert await scheduler.warm(404) is None
        assert await cache.get(cache_key(404)) is None
