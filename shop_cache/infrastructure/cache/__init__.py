"""
Cache Module

Redis-backed implementation of the CacheBackend protocol.
"""

from .redis_client import (
    RedisClient,
    close_redis,
    init_redis,
)

__all__ = [
    "RedisClient",
    "init_redis",
    "close_redis",
]
