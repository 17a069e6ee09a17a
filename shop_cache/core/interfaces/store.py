"""
Primary Store Protocol

Abstract protocol for the relational store that owns shop records.
The cache consistency engine only reads by id and updates by id; schema and
transaction management belong to the store.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol, runtime_checkable

from shop_cache.models import Shop


@runtime_checkable
class ShopUnitOfWork(Protocol):
    """Store operations bound to one open transaction."""

    async def get_by_id(self, shop_id: int) -> Shop | None:
        ...

    async def update_by_id(self, shop: Shop) -> bool:
        ...


@runtime_checkable
class ShopStore(Protocol):
    """
    Protocol for the primary store.

    Implementations:
    - PostgresShopStore: asyncpg-backed production store
    - InMemoryShopStore: Testing/development store

    Raises:
        StoreError: on any driver failure
    """

    async def get_by_id(self, shop_id: int) -> Shop | None:
        """Return the shop or None when no row exists."""
        ...

    async def update_by_id(self, shop: Shop) -> bool:
        """Apply the provided fields to the row; True if a row changed."""
        ...

    def transaction(self):
        """
        Async context manager yielding a ShopUnitOfWork.

        Commits on normal exit and rolls back when the block raises.
        """
        ...


class InMemoryShopStore:
    """
    Dict-backed ShopStore for tests and local development.

    Tracks every query so tests can assert how often the store was hit, and
    supports artificial latency and failure injection.
    """

    def __init__(
        self,
        shops: list[Shop] | None = None,
        latency: float = 0.0,
    ):
        self._rows: dict[int, dict] = {}
        for shop in shops or []:
            self._rows[shop.id] = shop.model_dump()
        self.latency = latency
        self.fail_with: Exception | None = None
        self.query_count = 0
        self.queries: list[int] = []
        self._tx_lock = asyncio.Lock()

    def put(self, shop: Shop) -> None:
        """Insert or replace a row directly (seeding helper)."""
        self._rows[shop.id] = shop.model_dump()

    def remove(self, shop_id: int) -> None:
        self._rows.pop(shop_id, None)

    async def get_by_id(self, shop_id: int) -> Shop | None:
        self.query_count += 1
        self.queries.append(shop_id)
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.fail_with is not None:
            raise self.fail_with
        row = self._rows.get(shop_id)
        return Shop.model_validate(row) if row is not None else None

    async def update_by_id(self, shop: Shop) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        row = self._rows.get(shop.id)
        if row is None:
            return False
        row.update(shop.update_fields())
        return True

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryShopStore"]:
        """
        Serialize writers and restore a snapshot when the block raises.
        """
        async with self._tx_lock:
            snapshot = {shop_id: dict(row) for shop_id, row in self._rows.items()}
            try:
                yield self
            except BaseException:
                self._rows = snapshot
                raise
