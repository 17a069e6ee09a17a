"""
Unit Tests for PassThroughStrategy

Tests cache-aside reads with null caching: hits never reach the store,
misses populate the cache, and ids that do not exist are remembered for the
null marker TTL.
"""

import pytest

from shop_cache.caching.base import cache_key
from shop_cache.caching.strategies import PassThroughStrategy
from shop_cache.core.config.constants import CacheOutcome
from shop_cache.core.exceptions import StoreError
from tests.test_fixtures import ShopFactory


@pytest.fixture
def strategy(cache, store, codec, metrics):
    return PassThroughStrategy(cache, store, codec, shop_ttl=1800, null_ttl=120, metrics=metrics)


@pytest.mark.unit
class TestPassThroughReads:
    """Test the read path."""

    @pytest.mark.asyncio
    async def test_miss_populates_cache_with_shop_ttl(self, strategy, cache, store, codec):
        """Test that a miss reads the store and caches the shop for 30 minutes."""
        shop = await strategy.read(1)

        assert shop.id == 1
        assert store.query_count == 1
        assert codec.decode(await cache.get(cache_key(1))) == shop
        assert await cache.ttl(cache_key(1)) == 1800

    @pytest.mark.asyncio
    async def test_hit_does_not_query_store(self, strategy, store):
        """Test that a second read is served from the cache."""
        first = await strategy.read(1)
        second = await strategy.read(1)

        assert first == second
        assert store.query_count == 1

    @pytest.mark.asyncio
    async def test_absent_id_is_cached_as_null_marker(self, strategy, cache, store):
        """Test that a missing shop is cached as the empty string with the short TTL."""
        assert await strategy.read(404) is None

        assert await cache.get(cache_key(404)) == ""
        assert await cache.ttl(cache_key(404)) == 120
        assert store.query_count == 1

    @pytest.mark.asyncio
    async def test_null_hit_does_not_query_store(self, strategy, store):
        """Test that repeated reads of a missing id stay off the store."""
        for _ in range(5):
            assert await strategy.read(404) is None

        assert store.queries == [404]

    @pytest.mark.asyncio
    async def test_shop_created_after_null_marker_appears_when_marker_expires(
        self, strategy, store, fake_clock
    ):
        """Test that a new shop reads as absent until the null marker expires."""
        assert await strategy.read(42) is None
        assert store.query_count == 1

        store.put(ShopFactory.basic(42))
        assert await strategy.read(42) is None
        assert store.query_count == 1

        fake_clock.advance(120)

        shop = await strategy.read(42)
        assert shop is not None and shop.id == 42
        assert store.query_count == 2

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_treated_as_miss_and_overwritten(self, strategy, cache, codec, store):
        """Test that an undecodable payload is replaced by a fresh entry."""
        await cache.set(cache_key(1), "{not json", ttl=1800)

        shop = await strategy.read(1)

        assert shop.id == 1
        assert store.query_count == 1
        assert codec.decode(await cache.get(cache_key(1))) == shop

    @pytest.mark.asyncio
    async def test_store_error_propagates_and_caches_nothing(self, strategy, cache, store):
        """Test that a store failure is raised, never folded into not-found."""
        store.fail_with = StoreError("Shop query failed")

        with pytest.raises(StoreError):
            await strategy.read(1)

        assert await cache.get(cache_key(1)) is None

    @pytest.mark.asyncio
    async def test_outcomes_are_recorded(self, strategy, metrics):
        """Test that each lookup outcome is reported to metrics."""
        await strategy.read(1)
        await strategy.read(1)
        await strategy.read(404)
        await strategy.read(404)

        outcomes = [c.args[1] for c in metrics.record_cache_lookup.call_args_list]
        assert outcomes == [
            CacheOutcome.MISS,
            CacheOutcome.HIT,
            CacheOutcome.MISS,
            CacheOutcome.NULL_HIT,
        ]


@pytest.mark.unit
class TestPassThroughConfiguration:
    """Test constructor validation."""

    def test_null_ttl_must_be_shorter(self, cache, store, metrics):
        with pytest.raises(ValueError):
            PassThroughStrategy(cache, store, shop_ttl=60, null_ttl=60, metrics=metrics)
