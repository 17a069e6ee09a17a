"""
Health Check Routes

`GET /health` reports the cache backend (with ping latency where the backend
measures it) and the rebuild pool. Returns 503 when the cache is unhealthy so
load balancers stop routing to the instance.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from shop_cache.application.api.dependencies import CacheDep, SchedulerDep

router = APIRouter(prefix="/health", tags=["Health"])


class HealthResponse(BaseModel):
    status: str  # "healthy" or "unhealthy"
    timestamp: str
    components: dict | None = None


@router.get("", response_model=HealthResponse)
async def health_check(cache: CacheDep, scheduler: SchedulerDep):
    cache_health = await cache.health_check()
    rebuild = scheduler.stats()

    healthy = cache_health.get("status") == "healthy" and rebuild["running"]
    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        components={"cache": cache_health, "rebuild": rebuild},
    )
    return JSONResponse(status_code=200 if healthy else 503, content=body.model_dump())
