#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

Type-safe, environment-based configuration for the shop cache service.
All configuration is centralized here so the read strategies, the rebuild
scheduler and the HTTP layer agree on TTLs and key layouts.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Easy testing with override mechanisms
"""

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shop_cache.core.config.constants import (
    CACHE_NULL_TTL,
    CACHE_SHOP_TTL,
    LOCK_SHOP_TTL,
    LOGICAL_EXPIRE_SECONDS,
    MUTEX_MAX_RETRIES,
    MUTEX_RETRY_INTERVAL_MS,
    MUTEX_RETRY_MAX_INTERVAL_MS,
    REBUILD_QUEUE_SIZE,
    REBUILD_SHUTDOWN_TIMEOUT,
    REBUILD_WORKERS,
)


class RedisSettings(BaseSettings):
    """
    Redis configuration for the distributed cache.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=100, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class DatabaseSettings(BaseSettings):
    """
    Primary store configuration.

    STAGE-0.2: Database connection configuration

    An empty DATABASE_URL selects the in-memory store (development only).
    """

    DATABASE_URL: str | None = Field(default=None, description="PostgreSQL DSN")
    DATABASE_MIN_POOL_SIZE: int = Field(default=2, description="Minimum pool connections")
    DATABASE_MAX_POOL_SIZE: int = Field(default=20, description="Maximum pool connections")
    DATABASE_COMMAND_TIMEOUT: float = Field(default=10.0, description="Per-statement timeout")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Cache population and read strategy configuration.

    STAGE-2: Cache TTL configuration
    """

    CACHE_READ_STRATEGY: Literal["pass_through", "mutex", "logical_expire"] = Field(
        default="mutex", description="Read strategy used by the shop query path"
    )
    CACHE_SHOP_TTL: int = Field(default=CACHE_SHOP_TTL, description="Shop entry TTL (seconds)")
    CACHE_NULL_TTL: int = Field(default=CACHE_NULL_TTL, description="Null marker TTL (seconds)")
    LOGICAL_EXPIRE_SECONDS: int = Field(
        default=LOGICAL_EXPIRE_SECONDS, description="Logical expiry applied on rebuild"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LockSettings(BaseSettings):
    """
    Distributed lock and mutex retry configuration.

    STAGE-LOCK: Lock fuse and retry policy
    """

    LOCK_SHOP_TTL: int = Field(default=LOCK_SHOP_TTL, description="Lock TTL (seconds)")
    LOCK_OWNERSHIP_CHECK: bool = Field(
        default=True, description="Release with compare-and-delete on a per-acquisition token"
    )
    MUTEX_RETRY_INTERVAL_MS: int = Field(default=MUTEX_RETRY_INTERVAL_MS)
    MUTEX_RETRY_MAX_INTERVAL_MS: int = Field(default=MUTEX_RETRY_MAX_INTERVAL_MS)
    MUTEX_MAX_RETRIES: int = Field(default=MUTEX_MAX_RETRIES)

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class RebuildSettings(BaseSettings):
    """
    Background rebuild pool configuration.

    STAGE-REBUILD: Worker pool sizing
    """

    REBUILD_WORKERS: int = Field(default=REBUILD_WORKERS, description="Worker task count")
    REBUILD_QUEUE_SIZE: int = Field(default=REBUILD_QUEUE_SIZE, description="Bounded backlog")
    REBUILD_SHUTDOWN_TIMEOUT: float = Field(default=REBUILD_SHUTDOWN_TIMEOUT)

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    APP_NAME: str = Field(default="Shop Cache Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8080, description="API port")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from shop_cache.core.config.settings import get_settings

        settings = get_settings()
        ttl = settings.cache.CACHE_SHOP_TTL
        strategy = settings.cache.CACHE_READ_STRATEGY
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=100, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    # Database settings
    DATABASE_URL: str | None = Field(default=None, description="PostgreSQL DSN")
    DATABASE_MIN_POOL_SIZE: int = Field(default=2, description="Minimum pool connections")
    DATABASE_MAX_POOL_SIZE: int = Field(default=20, description="Maximum pool connections")
    DATABASE_COMMAND_TIMEOUT: float = Field(default=10.0, description="Per-statement timeout")

    # Cache settings
    CACHE_READ_STRATEGY: Literal["pass_through", "mutex", "logical_expire"] = Field(
        default="mutex", description="Read strategy used by the shop query path"
    )
    CACHE_SHOP_TTL: int = Field(default=CACHE_SHOP_TTL, description="Shop entry TTL (seconds)")
    CACHE_NULL_TTL: int = Field(default=CACHE_NULL_TTL, description="Null marker TTL (seconds)")
    LOGICAL_EXPIRE_SECONDS: int = Field(
        default=LOGICAL_EXPIRE_SECONDS, description="Logical expiry applied on rebuild"
    )

    # Lock settings
    LOCK_SHOP_TTL: int = Field(default=LOCK_SHOP_TTL, description="Lock TTL (seconds)")
    LOCK_OWNERSHIP_CHECK: bool = Field(default=True, description="Compare-and-delete lock release")
    MUTEX_RETRY_INTERVAL_MS: int = Field(default=MUTEX_RETRY_INTERVAL_MS)
    MUTEX_RETRY_MAX_INTERVAL_MS: int = Field(default=MUTEX_RETRY_MAX_INTERVAL_MS)
    MUTEX_MAX_RETRIES: int = Field(default=MUTEX_MAX_RETRIES)

    # Rebuild pool settings
    REBUILD_WORKERS: int = Field(default=REBUILD_WORKERS, description="Worker task count")
    REBUILD_QUEUE_SIZE: int = Field(default=REBUILD_QUEUE_SIZE, description="Bounded backlog")
    REBUILD_SHUTDOWN_TIMEOUT: float = Field(default=REBUILD_SHUTDOWN_TIMEOUT)

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    APP_NAME: str = Field(default="Shop Cache Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8080, description="API port")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_ttls(self):
        """
        Enforce TTL relationships the cache layer depends on.

        The null marker must expire well before a real entry, and the lock
        fuse must be a positive number of seconds.
        """
        if self.CACHE_NULL_TTL <= 0 or self.CACHE_SHOP_TTL <= 0:
            raise ValueError("CACHE_NULL_TTL and CACHE_SHOP_TTL must be positive")
        if self.CACHE_NULL_TTL >= self.CACHE_SHOP_TTL:
            raise ValueError("CACHE_NULL_TTL must be shorter than CACHE_SHOP_TTL")
        if self.LOCK_SHOP_TTL <= 0:
            raise ValueError("LOCK_SHOP_TTL must be positive")
        if self.LOGICAL_EXPIRE_SECONDS <= 0:
            raise ValueError("LOGICAL_EXPIRE_SECONDS must be positive")
        if self.REBUILD_WORKERS <= 0 or self.REBUILD_QUEUE_SIZE <= 0:
            raise ValueError("REBUILD_WORKERS and REBUILD_QUEUE_SIZE must be positive")
        if self.MUTEX_MAX_RETRIES <= 0:
            raise ValueError("MUTEX_MAX_RETRIES must be positive")
        return self

    # Nested configuration views
    @property
    def redis(self) -> "RedisSettings":
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
        )

    @property
    def database(self) -> "DatabaseSettings":
        """Get primary store settings."""
        return DatabaseSettings(
            DATABASE_URL=self.DATABASE_URL,
            DATABASE_MIN_POOL_SIZE=self.DATABASE_MIN_POOL_SIZE,
            DATABASE_MAX_POOL_SIZE=self.DATABASE_MAX_POOL_SIZE,
            DATABASE_COMMAND_TIMEOUT=self.DATABASE_COMMAND_TIMEOUT,
        )

    @property
    def cache(self) -> "CacheSettings":
        """Get cache settings."""
        return CacheSettings(
            CACHE_READ_STRATEGY=self.CACHE_READ_STRATEGY,
            CACHE_SHOP_TTL=self.CACHE_SHOP_TTL,
            CACHE_NULL_TTL=self.CACHE_NULL_TTL,
            LOGICAL_EXPIRE_SECONDS=self.LOGICAL_EXPIRE_SECONDS,
        )

    @property
    def lock(self) -> "LockSettings":
        """Get lock settings."""
        return LockSettings(
            LOCK_SHOP_TTL=self.LOCK_SHOP_TTL,
            LOCK_OWNERSHIP_CHECK=self.LOCK_OWNERSHIP_CHECK,
            MUTEX_RETRY_INTERVAL_MS=self.MUTEX_RETRY_INTERVAL_MS,
            MUTEX_RETRY_MAX_INTERVAL_MS=self.MUTEX_RETRY_MAX_INTERVAL_MS,
            MUTEX_MAX_RETRIES=self.MUTEX_MAX_RETRIES,
        )

    @property
    def rebuild(self) -> "RebuildSettings":
        """Get rebuild pool settings."""
        return RebuildSettings(
            REBUILD_WORKERS=self.REBUILD_WORKERS,
            REBUILD_QUEUE_SIZE=self.REBUILD_QUEUE_SIZE,
            REBUILD_SHUTDOWN_TIMEOUT=self.REBUILD_SHUTDOWN_TIMEOUT,
        )

    @property
    def logging(self) -> "LoggingSettings":
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> "ApplicationSettings":
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
