"""
Redis Client with Connection Pooling

Architecture:
    RedisClient (Public API, implements CacheBackend)
        ├── ConnectionManager (Connection lifecycle)
        ├── OperationExecutor (Command execution with error handling)
        └── HealthMonitor (Health checks and pool metrics)

The cache consistency engine only needs GET, SET (with and without TTL),
SET NX EX for locks, DEL, a compare-and-delete for owned lock release,
and EXPIRE/TTL.
"""

import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from shop_cache.core.config.settings import get_settings
from shop_cache.core.exceptions import CacheConnectionError, CacheKeyError
from shop_cache.core.logging.logger import get_logger

logger = get_logger(__name__)

# Deletes KEYS[1] only while it still holds ARGV[1]; returns 1 on delete.
COMPARE_AND_DELETE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
else
    return 0
end
"""


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# Handles connection lifecycle and pooling
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Pool Configuration:
    - Max connections: REDIS_MAX_CONNECTIONS
    - Socket timeout: REDIS_SOCKET_TIMEOUT
    - Health check interval: REDIS_HEALTH_CHECK_INTERVAL
    - Decoded responses (str, not bytes)
    """

    def __init__(self, settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.2: Connection establishment

        Raises:
            CacheConnectionError: If connection fails
        """
        if self._is_connected and self._client:
            return self._client

        try:
            self._pool = ConnectionPool(
                host=self._settings.redis.REDIS_HOST,
                port=self._settings.redis.REDIS_PORT,
                db=self._settings.redis.REDIS_DB,
                password=self._settings.redis.REDIS_PASSWORD,
                max_connections=self._settings.redis.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=self._settings.redis.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=self._settings.redis.REDIS_SOCKET_TIMEOUT,
                retry_on_timeout=True,
                health_check_interval=self._settings.redis.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,
            )

            self._client = redis.Redis(connection_pool=self._pool)

            # Verify the pool actually reaches a server
            await self._client.ping()

            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage="REDIS.2",
                host=self._settings.redis.REDIS_HOST,
                port=self._settings.redis.REDIS_PORT,
                max_connections=self._settings.redis.REDIS_MAX_CONNECTIONS,
            )

            return self._client

        except (ConnectionError, TimeoutError) as e:
            logger.error("Failed to connect to Redis", stage="REDIS.2", error=str(e))
            raise CacheConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={
                    "host": self._settings.redis.REDIS_HOST,
                    "port": self._settings.redis.REDIS_PORT,
                },
            ) from e

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        if self._client:
            await self._client.aclose()

        if self._pool:
            await self._pool.disconnect()

        self._is_connected = False

        logger.info("Redis disconnected", stage="REDIS.3")

    async def ping(self) -> bool:
        try:
            if self._client and self._is_connected:
                await self._client.ping()
                return True
        except (ConnectionError, TimeoutError):
            pass
        return False

    def get_client(self) -> redis.Redis | None:
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        return self._pool

    def is_connected(self) -> bool:
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# Executes Redis commands with error handling and logging
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Error Handling Strategy:
    - Catch RedisError exceptions
    - Log error with context (stage, key)
    - Raise CacheKeyError with details
    """

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client
        self._compare_and_delete = redis_client.register_script(COMPARE_AND_DELETE_SCRIPT)

    async def get(self, key: str) -> str | None:
        """
        Get value from Redis.

        STAGE-REDIS.GET: Redis GET operation

        Returns:
            Value (possibly the empty string) or None if not found
        """
        try:
            return await self._redis.get(key)
        except RedisError as e:
            logger.error("Redis GET failed", stage="REDIS.GET", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis GET failed: {e}", details={"key": key}) from e

    async def set(
        self, key: str, value: str, ttl: int | None = None, nx: bool = False, xx: bool = False
    ) -> bool:
        """
        Set value in Redis.

        STAGE-REDIS.SET: Redis SET operation

        Args:
            key: Redis key
            value: Value to set
            ttl: Time-to-live in seconds; None stores without expiry
            nx: Only set if key doesn't exist (SET NX)
            xx: Only set if key exists (SET XX)

        Returns:
            True if set successfully
        """
        try:
            result = await self._redis.set(key, value, ex=ttl, nx=nx, xx=xx)
            return bool(result)
        except RedisError as e:
            logger.error("Redis SET failed", stage="REDIS.SET", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis SET failed: {e}", details={"key": key}) from e

    async def delete(self, *keys: str) -> int:
        """
        Delete keys from Redis.

        STAGE-REDIS.DEL: Redis DELETE operation
        """
        try:
            return await self._redis.delete(*keys)
        except RedisError as e:
            logger.error("Redis DELETE failed", stage="REDIS.DEL", keys=keys, error=str(e))
            raise CacheKeyError(message=f"Redis DELETE failed: {e}", details={"keys": keys}) from e

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """
        Delete key only while it holds value (atomic Lua script).

        STAGE-REDIS.CAD: Compare-and-delete
        """
        try:
            return bool(await self._compare_and_delete(keys=[key], args=[value]))
        except RedisError as e:
            logger.error("Redis compare-and-delete failed", stage="REDIS.CAD", key=key, error=str(e))
            raise CacheKeyError(
                message=f"Redis compare-and-delete failed: {e}", details={"key": key}
            ) from e

    async def expire(self, key: str, ttl: int) -> bool:
        try:
            return bool(await self._redis.expire(key, ttl))
        except RedisError as e:
            logger.error("Redis EXPIRE failed", stage="REDIS.EXPIRE", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis EXPIRE failed: {e}", details={"key": key}) from e

    async def ttl(self, key: str) -> int:
        try:
            return await self._redis.ttl(key)
        except RedisError as e:
            logger.error("Redis TTL failed", stage="REDIS.TTL", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis TTL failed: {e}", details={"key": key}) from e


# =============================================================================
# LAYER 3: HEALTH MONITORING
# Health checks and connection pool metrics
# =============================================================================


class HealthMonitor:
    """
    Monitors Redis health and connection pool metrics.

    Metrics Tracked:
    - Connection status
    - Ping latency
    - Pool size and utilization (warning above 80%)
    """

    def __init__(self, connection_manager: ConnectionManager, settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on Redis connection.

        STAGE-REDIS.HEALTH: Redis health check
        """
        health = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "host": self._settings.redis.REDIS_HOST,
            "port": self._settings.redis.REDIS_PORT,
            "pool_size": 0,
            "pool_utilization_pct": 0,
            "pool_warning": False,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)
            return health

        pool = self._conn_mgr.get_pool()
        if pool:
            health["pool_size"] = pool.max_connections
            if hasattr(pool, "_available_connections"):
                available = len(pool._available_connections)
                in_use = len(getattr(pool, "_in_use_connections", ()))
                utilization = 100.0 * in_use / pool.max_connections
                health["pool_available"] = available
                health["pool_utilization_pct"] = round(utilization, 1)

                if utilization > 80:
                    health["pool_warning"] = True
                    logger.warning(
                        "Redis pool utilization high",
                        pool_utilization=utilization,
                        max_connections=pool.max_connections,
                    )

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# Clean interface that coordinates all layers
# =============================================================================


class RedisClient:
    """
    Async Redis client implementing the CacheBackend protocol.

    Usage:
        client = RedisClient()
        await client.connect()

        await client.set("cache:shop:1", payload, ttl=1800)
        acquired = await client.set_if_absent("lock:shop:1", "1", ttl=10)

        await client.disconnect()

    Architecture:
        RedisClient (this class)
            ├── ConnectionManager (connection lifecycle)
            ├── OperationExecutor (command execution)
            └── HealthMonitor (health checks)
    """

    def __init__(self, settings=None):
        """
        Initialize Redis client.

        STAGE-REDIS.1: Client initialization
        """
        self._settings = settings or get_settings()

        self._conn_mgr = ConnectionManager(self._settings)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)

        logger.info(
            "Redis client initialized",
            stage="REDIS.1",
            host=self._settings.redis.REDIS_HOST,
            port=self._settings.redis.REDIS_PORT,
        )

    async def connect(self) -> None:
        """
        Establish connection to Redis with connection pooling.

        Raises:
            CacheConnectionError: If connection fails
        """
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client)

    async def disconnect(self) -> None:
        await self._conn_mgr.disconnect()
        self._executor = None

    async def ping(self) -> bool:
        return await self._conn_mgr.ping()

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise CacheConnectionError("Redis client is not connected")
        return self._executor

    # -------------------------------------------------------------------------
    # Delegate to OperationExecutor
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """Get value from Redis."""
        return await self._require_executor().get(key)

    async def set(
        self, key: str, value: str, ttl: int | None = None, nx: bool = False, xx: bool = False
    ) -> bool:
        """Set value in Redis."""
        return await self._require_executor().set(key, value, ttl, nx, xx)

    async def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        """SET key value NX EX ttl."""
        return await self._require_executor().set(key, value, ttl=ttl, nx=True)

    async def delete(self, *keys: str) -> int:
        """Delete keys from Redis."""
        return await self._require_executor().delete(*keys)

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """Delete key only while it holds value."""
        return await self._require_executor().delete_if_equals(key, value)

    async def expire(self, key: str, ttl: int) -> bool:
        """Set TTL on a key."""
        return await self._require_executor().expire(key, ttl)

    async def ttl(self, key: str) -> int:
        """Get TTL of a key."""
        return await self._require_executor().ttl(key)

    async def health_check(self) -> dict[str, Any]:
        """Perform health check on Redis connection."""
        return await self._health_monitor.health_check()


# =============================================================================
# GLOBAL INSTANCE (SINGLETON PATTERN)
# =============================================================================

_redis_client: RedisClient | None = None


def get_redis_client() -> RedisClient:
    """
    Get the global Redis client instance (singleton).

    Returns:
        RedisClient: Global Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = RedisClient()

    return _redis_client


async def init_redis() -> RedisClient:
    """
    Initialize and connect the global Redis client.

    Returns:
        RedisClient: Connected Redis client
    """
    client = get_redis_client()
    await client.connect()
    return client


async def close_redis() -> None:
    """Close the global Redis client."""
    global _redis_client

    if _redis_client:
        await _redis_client.disconnect()
        _redis_client = None
