from .shop_service import SHOP_NOT_FOUND, ShopService

__all__ = ["SHOP_NOT_FOUND", "ShopService"]
