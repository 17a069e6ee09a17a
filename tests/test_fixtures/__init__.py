"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .cache_factory import CacheTestFactory, FakeClock, FlakyCache
from .shop_factory import ShopFactory

__all__ = ["CacheTestFactory", "FakeClock", "FlakyCache", "ShopFactory"]
