"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys
from unittest.mock import MagicMock

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from shop_cache.caching.codec import CacheEntryCodec  # noqa: E402
from shop_cache.caching.lock import DistributedLock  # noqa: E402
from shop_cache.caching.rebuild import RebuildScheduler  # noqa: E402
from shop_cache.core.interfaces.cache import InMemoryCache  # noqa: E402
from shop_cache.core.interfaces.store import InMemoryShopStore  # noqa: E402
from shop_cache.infrastructure.monitoring.metrics_collector import MetricsCollector  # noqa: E402
from tests.test_fixtures import FakeClock, ShopFactory  # noqa: E402


# ============================================================================
# Clock and Metrics Fixtures
# ============================================================================


@pytest.fixture
def fake_clock():
    """
    Manually advanced clock shared by the cache TTLs and the entry codec.

    Starts at a fixed epoch so logical expire times are predictable.
    """
    return FakeClock()


@pytest.fixture
def metrics():
    """Mock MetricsCollector so tests can assert on recorded events."""
    return MagicMock(spec=MetricsCollector)


# ============================================================================
# Cache and Store Fixtures
# ============================================================================


@pytest.fixture
async def cache(fake_clock):
    """Connected in-memory cache whose TTLs follow fake_clock."""
    backend = InMemoryCache(clock=fake_clock)
    await backend.connect()
    yield backend
    await backend.disconnect()


@pytest.fixture
def store():
    """In-memory primary store seeded with shops 1 and 7."""
    return InMemoryShopStore([ShopFactory.basic(1), ShopFactory.basic(7, name="Tea House")])


@pytest.fixture
def codec(fake_clock):
    return CacheEntryCodec(clock=fake_clock)


@pytest.fixture
def lock(cache, metrics):
    return DistributedLock(cache, ttl=10, metrics=metrics)


@pytest.fixture
async def scheduler(store, cache, lock, codec, metrics):
    """
    Running rebuild scheduler over the shared cache and store.

    Stopped with a short drain timeout after each test.
    """
    pool = RebuildScheduler(
        store, cache, lock, codec, workers=2, queue_size=10, expire_seconds=20, metrics=metrics
    )
    await pool.start()
    yield pool
    await pool.stop(timeout=1.0)
