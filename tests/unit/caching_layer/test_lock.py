"""
Unit Tests for DistributedLock

Tests mutual exclusion, token-checked release, TTL expiry and failure
handling of the per-shop rebuild lock.
"""

import asyncio

import pytest

from shop_cache.caching.lock import DistributedLock, lock_key
from shop_cache.core.config.constants import LOCK_SENTINEL
from tests.test_fixtures import CacheTestFactory


@pytest.mark.unit
class TestLockAcquisition:
    """Test try_acquire semantics."""

    def test_lock_key_namespace(self):
        assert lock_key(42) == "lock:shop:42"

    @pytest.mark.asyncio
    async def test_second_acquire_fails_while_held(self, lock):
        """Test that a held lock cannot be acquired again."""
        assert await lock.try_acquire(1, "token-a") is True
        assert await lock.try_acquire(1, "token-b") is False

    @pytest.mark.asyncio
    async def test_locks_are_per_id(self, lock):
        """Test that different ids do not contend."""
        assert await lock.try_acquire(1) is True
        assert await lock.try_acquire(2) is True

    @pytest.mark.asyncio
    async def test_concurrent_acquire_has_single_winner(self, lock):
        """Test that exactly one of many concurrent callers wins."""
        results = await asyncio.gather(*(lock.try_acquire(5, f"t{i}") for i in range(20)))
        assert results.count(True) == 1

    @pytest.mark.asyncio
    async def test_lock_is_stored_with_ttl(self, lock, cache):
        """Test that the lock key carries the fuse TTL."""
        await lock.try_acquire(1, "token-a")

        assert await cache.get("lock:shop:1") == "token-a"
        assert await cache.ttl("lock:shop:1") == 10

    @pytest.mark.asyncio
    async def test_sentinel_value_without_token(self, lock, cache):
        """Test that an untokened acquisition stores the sentinel."""
        await lock.try_acquire(1)
        assert await cache.get("lock:shop:1") == LOCK_SENTINEL

    @pytest.mark.asyncio
    async def test_ttl_evicts_crashed_holder(self, lock, fake_clock):
        """Test that the lock frees itself once the TTL elapses."""
        assert await lock.try_acquire(1, "crashed-holder") is True

        fake_clock.advance(10)

        assert await lock.try_acquire(1, "next-holder") is True

    @pytest.mark.asyncio
    async def test_attempts_are_recorded(self, lock, metrics):
        """Test that wins and contention are both counted."""
        await lock.try_acquire(1)
        await lock.try_acquire(1)

        assert [c.args[0] for c in metrics.record_lock_attempt.call_args_list] == [True, False]

    def test_non_positive_ttl_rejected(self, cache, metrics):
        with pytest.raises(ValueError):
            DistributedLock(cache, ttl=0, metrics=metrics)


@pytest.mark.unit
class TestLockRelease:
    """Test release semantics."""

    @pytest.mark.asyncio
    async def test_release_with_owner_token(self, lock):
        """Test that the holder can release and the lock becomes free."""
        token = lock.new_token()
        await lock.try_acquire(1, token)

        assert await lock.release(1, token) is True
        assert await lock.try_acquire(1) is True

    @pytest.mark.asyncio
    async def test_release_with_foreign_token_keeps_lock(self, lock, fake_clock):
        """Test that a slow holder cannot delete a newer holder's lock."""
        await lock.try_acquire(1, "old-holder")
        fake_clock.advance(10)
        await lock.try_acquire(1, "new-holder")

        assert await lock.release(1, "old-holder") is False
        assert await lock.try_acquire(1, "third") is False

    @pytest.mark.asyncio
    async def test_release_without_ownership_check_is_unconditional(self, cache, metrics):
        """Test that ownership checks can be disabled."""
        lock = DistributedLock(cache, ttl=10, ownership_check=False, metrics=metrics)
        assert lock.new_token() is None

        await lock.try_acquire(1)
        assert await lock.release(1, "anything") is True
        assert await cache.get("lock:shop:1") is None

    @pytest.mark.asyncio
    async def test_release_of_free_lock(self, lock):
        """Test that releasing a lock nobody holds is harmless."""
        assert await lock.release(99) is False

    @pytest.mark.asyncio
    async def test_release_failure_is_left_to_ttl(self, metrics, fake_clock):
        """Test that a cache error on release is logged, not raised."""
        cache = await CacheTestFactory.flaky("delete_if_equals", clock=fake_clock)
        lock = DistributedLock(cache, ttl=10, metrics=metrics)
        await lock.try_acquire(1, "token-a")

        assert await lock.release(1, "token-a") is False

        fake_clock.advance(10)
        assert await lock.try_acquire(1, "token-b") is True

    def test_tokens_are_unique(self, lock):
        assert lock.new_token() != lock.new_token()


@pytest.mark.unit
class TestHeldContextManager:
    """Test the held() helper."""

    @pytest.mark.asyncio
    async def test_held_releases_on_exit(self, lock, cache):
        """Test that the lock is released after the block."""
        async with lock.held(1) as acquired:
            assert acquired is True
            assert await cache.get("lock:shop:1") is not None

        assert await cache.get("lock:shop:1") is None

    @pytest.mark.asyncio
    async def test_held_releases_on_exception(self, lock, cache):
        """Test that the lock is released when the block raises."""
        with pytest.raises(RuntimeError):
            async with lock.held(1):
                raise RuntimeError("rebuild failed")

        assert await cache.get("lock:shop:1") is None

    @pytest.mark.asyncio
    async def test_held_does_not_release_foreign_lock(self, lock, cache):
        """Test that a caller that lost the race leaves the holder's lock alone."""
        await lock.try_acquire(1, "holder")

        async with lock.held(1) as acquired:
            assert acquired is False

        assert await cache.get("lock:shop:1") == "holder"
