from .admin import router as admin_router
from .health import router as health_router
from .shop import router as shop_router

__all__ = ["admin_router", "health_router", "shop_router"]
