"""
Database Module

asyncpg-backed implementation of the ShopStore protocol.
"""

from .postgres_store import (
    PostgresShopStore,
    PostgresUnitOfWork,
    close_store_pool,
    create_store_pool,
)

__all__ = [
    "PostgresShopStore",
    "PostgresUnitOfWork",
    "create_store_pool",
    "close_store_pool",
]
