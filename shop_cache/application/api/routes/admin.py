"""
Admin Routes

Operational endpoints: cache pre-warming for the logical-expiration
strategy, rebuild pool statistics and Prometheus metrics.
"""

from fastapi import APIRouter, Query, Response

from shop_cache.application.api.dependencies import MetricsDep, SchedulerDep, ShopServiceDep
from shop_cache.models import Result

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/shop/{shop_id}/warm", response_model=Result)
async def warm_shop(
    shop_id: int,
    service: ShopServiceDep,
    expire_seconds: int | None = Query(default=None, gt=0),
) -> Result:
    """
    Load a shop from the store and write a logically-expiring cache entry.

    Defaults to LOGICAL_EXPIRE_SECONDS when expire_seconds is omitted.
    """
    return await service.warm(shop_id, expire_seconds)


@router.get("/rebuild/stats")
async def rebuild_stats(scheduler: SchedulerDep) -> dict:
    """Worker pool size, backlog depth and job counters."""
    return scheduler.stats()


@router.get("/metrics")
async def prometheus_metrics(metrics: MetricsDep) -> Response:
    """Prometheus text exposition."""
    return Response(content=metrics.get_prometheus_metrics(), media_type=metrics.get_content_type())
