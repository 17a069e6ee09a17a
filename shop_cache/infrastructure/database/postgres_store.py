"""
PostgreSQL Shop Store

asyncpg-backed implementation of the ShopStore protocol over the `tb_shop`
table. Reads and updates go through a shared connection pool; the write path
runs its update inside `transaction()` so the cache delete only happens after
the row change has committed.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from shop_cache.core.config.settings import get_settings
from shop_cache.core.exceptions import StoreConnectionError, StoreError
from shop_cache.core.logging.logger import get_logger
from shop_cache.models import Shop

logger = get_logger(__name__)

SHOP_TABLE = "tb_shop"

# Columns a caller may change through update_by_id
UPDATABLE_COLUMNS = (
    "name",
    "type_id",
    "images",
    "area",
    "address",
    "x",
    "y",
    "avg_price",
    "sold",
    "comments",
    "score",
    "open_hours",
)

SELECT_SHOP = f"""
    SELECT id, name, type_id, images, area, address, x, y, avg_price,
           sold, comments, score, open_hours, create_time, update_time
    FROM {SHOP_TABLE}
    WHERE id = $1
"""

STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def _row_to_shop(row: asyncpg.Record | None) -> Shop | None:
    return Shop.model_validate(dict(row)) if row is not None else None


def _build_update(shop: Shop) -> tuple[str, list[Any]] | None:
    """Build a partial UPDATE for the fields the caller provided."""
    fields = {
        column: value
        for column, value in shop.update_fields().items()
        if column in UPDATABLE_COLUMNS
    }
    if not fields:
        return None

    assignments = [f"{column} = ${index}" for index, column in enumerate(fields, start=2)]
    assignments.append("update_time = now()")
    query = f"UPDATE {SHOP_TABLE} SET {', '.join(assignments)} WHERE id = $1"
    return query, [shop.id, *fields.values()]


class PostgresUnitOfWork:
    """Shop reads and updates bound to one connection inside a transaction."""

    def __init__(self, connection: asyncpg.Connection):
        self._conn = connection

    async def get_by_id(self, shop_id: int) -> Shop | None:
        try:
            row = await self._conn.fetchrow(SELECT_SHOP, shop_id)
        except STORE_ERRORS as e:
            raise StoreError.from_exception(e, "Shop query failed", shop_id=shop_id) from e
        return _row_to_shop(row)

    async def update_by_id(self, shop: Shop) -> bool:
        statement = _build_update(shop)
        try:
            if statement is None:
                # Nothing to change; report whether the row exists
                row = await self._conn.fetchrow(f"SELECT 1 FROM {SHOP_TABLE} WHERE id = $1", shop.id)
                return row is not None
            query, args = statement
            status = await self._conn.execute(query, *args)
        except STORE_ERRORS as e:
            raise StoreError.from_exception(e, "Shop update failed", shop_id=shop.id) from e
        # asyncpg returns the command tag, e.g. "UPDATE 1"
        return status.split()[-1] != "0"


class PostgresShopStore:
    """
    PostgreSQL implementation of the ShopStore protocol.

    Usage:
        pool = await create_store_pool()
        store = PostgresShopStore(pool)

        shop = await store.get_by_id(1)
        async with store.transaction() as uow:
            await uow.update_by_id(shop)
    """

    def __init__(self, connection_pool: asyncpg.Pool):
        self.connection_pool = connection_pool

    async def get_by_id(self, shop_id: int) -> Shop | None:
        """Get shop by id; None when no row exists."""
        try:
            async with self.connection_pool.acquire() as conn:
                return await PostgresUnitOfWork(conn).get_by_id(shop_id)
        except STORE_ERRORS as e:
            raise StoreError.from_exception(e, "Shop query failed", shop_id=shop_id) from e

    async def update_by_id(self, shop: Shop) -> bool:
        """Apply the provided fields outside an explicit transaction."""
        try:
            async with self.connection_pool.acquire() as conn:
                return await PostgresUnitOfWork(conn).update_by_id(shop)
        except STORE_ERRORS as e:
            raise StoreError.from_exception(e, "Shop update failed", shop_id=shop.id) from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresUnitOfWork]:
        """Create a transaction context; commits on exit, rolls back on error."""
        try:
            async with self.connection_pool.acquire() as conn:
                async with conn.transaction():
                    yield PostgresUnitOfWork(conn)
        except STORE_ERRORS as e:
            raise StoreError.from_exception(e, "Shop transaction failed") from e


async def create_store_pool(settings=None) -> asyncpg.Pool:
    """
    Create the asyncpg connection pool for the primary store.

    Raises:
        StoreConnectionError: If DATABASE_URL is unset or the pool cannot be created
    """
    settings = settings or get_settings()
    db = settings.database
    if not db.DATABASE_URL:
        raise StoreConnectionError("DATABASE_URL is not configured")

    try:
        pool = await asyncpg.create_pool(
            dsn=db.DATABASE_URL,
            min_size=db.DATABASE_MIN_POOL_SIZE,
            max_size=db.DATABASE_MAX_POOL_SIZE,
            command_timeout=db.DATABASE_COMMAND_TIMEOUT,
        )
    except STORE_ERRORS as e:
        logger.error("Failed to create store pool", stage="STORE.0", error=str(e))
        raise StoreConnectionError.from_exception(e, "Failed to connect to primary store") from e

    logger.info(
        "Primary store pool created",
        stage="STORE.0",
        min_size=db.DATABASE_MIN_POOL_SIZE,
        max_size=db.DATABASE_MAX_POOL_SIZE,
    )
    return pool


async def close_store_pool(pool: asyncpg.Pool | None) -> None:
    """Close the primary store pool if one was created."""
    if pool is not None:
        await pool.close()
        logger.info("Primary store pool closed", stage="STORE.0")
