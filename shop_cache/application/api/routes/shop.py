"""
Shop Routes

Thin controllers: validate the path/body, hand the shop id or update to
ShopService and relay its Result.
"""

from fastapi import APIRouter

from shop_cache.application.api.dependencies import ShopServiceDep
from shop_cache.models import Result, Shop

router = APIRouter(prefix="/shop", tags=["Shop"])


@router.get("/{shop_id}", response_model=Result)
async def query_shop_by_id(shop_id: int, service: ShopServiceDep) -> Result:
    """
    Read a shop through the configured read strategy.

    A missing shop is `{"success": false, "error_msg": "shop not found"}`.
    """
    return await service.query_by_id(shop_id)


@router.put("", response_model=Result)
async def update_shop(shop: Shop, service: ShopServiceDep) -> Result:
    """Update a shop in the primary store and invalidate its cache entry."""
    return await service.update(shop)
