#!/usr/bin/env python3
"""
FastAPI Application Entry Point

Configures the shop cache service: lifespan (logging, Redis, primary store,
rebuild scheduler), middleware and routes.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from shop_cache.application.api.middleware import setup_middleware
from shop_cache.application.api.routes import admin_router, health_router, shop_router
from shop_cache.application.services.shop_service import ShopService
from shop_cache.caching.codec import CacheEntryCodec
from shop_cache.caching.invalidation import ShopInvalidator
from shop_cache.caching.lock import DistributedLock
from shop_cache.caching.rebuild import RebuildScheduler
from shop_cache.caching.strategies import build_read_strategy
from shop_cache.core.config.settings import Settings, get_settings
from shop_cache.core.interfaces.cache import CacheBackend
from shop_cache.core.interfaces.store import InMemoryShopStore, ShopStore
from shop_cache.core.logging.logger import get_logger, setup_logging
from shop_cache.infrastructure.cache.redis_client import close_redis, init_redis
from shop_cache.infrastructure.database.postgres_store import (
    PostgresShopStore,
    close_store_pool,
    create_store_pool,
)

logger = get_logger(__name__)


def build_shop_service(
    cache: CacheBackend, store: ShopStore, settings: Settings | None = None
) -> tuple[ShopService, RebuildScheduler]:
    """
    Wire the cache consistency engine around one cache and one store.

    The scheduler is always built: it serves background rebuilds for the
    logical-expiration strategy and the admin warm endpoint for every
    strategy. The caller owns starting and stopping it.
    """
    settings = settings or get_settings()

    codec = CacheEntryCodec()
    lock = DistributedLock(
        cache,
        ttl=settings.lock.LOCK_SHOP_TTL,
        ownership_check=settings.lock.LOCK_OWNERSHIP_CHECK,
    )
    scheduler = RebuildScheduler(
        store,
        cache,
        lock,
        codec,
        workers=settings.rebuild.REBUILD_WORKERS,
        queue_size=settings.rebuild.REBUILD_QUEUE_SIZE,
        expire_seconds=settings.cache.LOGICAL_EXPIRE_SECONDS,
    )
    strategy = build_read_strategy(
        settings.cache.CACHE_READ_STRATEGY,
        cache,
        store,
        lock,
        scheduler=scheduler,
        codec=codec,
        settings=settings,
    )
    service = ShopService(strategy, ShopInvalidator(store, cache), scheduler)
    return service, scheduler


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    A cache or store placed on app.state before startup (tests, local runs)
    is used instead of Redis / PostgreSQL.
    """
    settings = get_settings()

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting Shop Cache Service",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
        read_strategy=settings.cache.CACHE_READ_STRATEGY,
    )

    cache: CacheBackend | None = getattr(app.state, "cache_override", None)
    store: ShopStore | None = getattr(app.state, "store_override", None)
    pool = None
    scheduler: RebuildScheduler | None = None

    try:
        if cache is None:
            cache = await init_redis()
            logger.info("Redis connected")
        else:
            await cache.connect()

        if store is None:
            if settings.database.DATABASE_URL:
                pool = await create_store_pool(settings)
                store = PostgresShopStore(pool)
            else:
                logger.warning("DATABASE_URL not set, using in-memory shop store")
                store = InMemoryShopStore()

        service, scheduler = build_shop_service(cache, store, settings)
        await scheduler.start()

        app.state.cache = cache
        app.state.store = store
        app.state.scheduler = scheduler
        app.state.shop_service = service

        logger.info("Application startup complete")

        yield

    finally:
        logger.info("Shutting down application")

        if scheduler is not None:
            await scheduler.stop(settings.rebuild.REBUILD_SHUTDOWN_TIMEOUT)
        await close_store_pool(pool)
        if getattr(app.state, "cache_override", None) is None:
            await close_redis()
        elif cache is not None:
            await cache.disconnect()

        logger.info("Application shutdown complete")


# ============================================================================
# Application Factory
# ============================================================================


def create_app(
    cache: CacheBackend | None = None, store: ShopStore | None = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        cache: Cache backend to use instead of Redis
        store: Shop store to use instead of PostgreSQL
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Shop read API backed by a cache consistency engine",
        lifespan=lifespan,
    )
    app.state.cache_override = cache
    app.state.store_override = store

    setup_middleware(app)

    app.include_router(health_router)
    app.include_router(shop_router)
    app.include_router(admin_router)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "read_strategy": settings.cache.CACHE_READ_STRATEGY,
            "health": "/health",
        }

    return app


# Create application instance
app = create_app()


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "shop_cache.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
