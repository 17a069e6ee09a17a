"""
FastAPI Dependency Injection

Reusable dependencies for the singletons the lifespan manager builds once at
startup and stores on `app.state`: the shop service, the rebuild scheduler
and the cache backend.

Example:
    @router.get("/shop/{shop_id}")
    async def query_shop(shop_id: int, service: ShopServiceDep):
        return await service.query_by_id(shop_id)
"""

from typing import Annotated

from fastapi import Depends, Request

from shop_cache.application.services.shop_service import ShopService
from shop_cache.caching.rebuild import RebuildScheduler
from shop_cache.core.interfaces.cache import CacheBackend
from shop_cache.infrastructure.monitoring.metrics_collector import (
    MetricsCollector,
    get_metrics_collector,
)


def _app_state(request: Request, name: str):
    try:
        return getattr(request.app.state, name)
    except AttributeError as e:
        raise RuntimeError(
            f"{name} not initialized in app.state. "
            "This indicates the application lifespan startup didn't complete properly."
        ) from e


def get_shop_service(request: Request) -> ShopService:
    return _app_state(request, "shop_service")


def get_rebuild_scheduler(request: Request) -> RebuildScheduler:
    return _app_state(request, "scheduler")


def get_cache(request: Request) -> CacheBackend:
    return _app_state(request, "cache")


ShopServiceDep = Annotated[ShopService, Depends(get_shop_service)]
SchedulerDep = Annotated[RebuildScheduler, Depends(get_rebuild_scheduler)]
CacheDep = Annotated[CacheBackend, Depends(get_cache)]
MetricsDep = Annotated[MetricsCollector, Depends(get_metrics_collector)]
