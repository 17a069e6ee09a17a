"""
Caching Module

The shop cache consistency engine: rebuild lock, entry codec, read
strategies, background rebuild scheduler and write invalidation.
"""

from .base import ReadStrategy, cache_key
from .codec import CacheEntryCodec, is_null_marker
from .invalidation import ShopInvalidator
from .lock import DistributedLock, lock_key
from .rebuild import RebuildJob, RebuildScheduler
from .strategies import (
    LogicalExpireStrategy,
    MutexStrategy,
    PassThroughStrategy,
    build_read_strategy,
)

__all__ = [
    "CacheEntryCodec",
    "DistributedLock",
    "LogicalExpireStrategy",
    "MutexStrategy",
    "PassThroughStrategy",
    "ReadStrategy",
    "RebuildJob",
    "RebuildScheduler",
    "ShopInvalidator",
    "build_read_strategy",
    "cache_key",
    "is_null_marker",
    "lock_key",
]
