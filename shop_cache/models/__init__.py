from .shop import Result, Shop

__all__ = ["Result", "Shop"]
