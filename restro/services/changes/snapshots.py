"""
Snapshot loader for the change feed.

Opens its own session per load so deliveries never share a unit of work
with the request that triggered them. Rows are serialized exactly as the
REST endpoints serialize them.
"""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from restro.repositories import (
    MenuItemFilter,
    MenuItemRepository,
    OrderFilter,
    OrderRepository,
    TableFilter,
    TableRepository,
)
from restro.schemas import MenuItemResponse, OrderResponse
from restro.services.changes.base import Collection, Snapshot
from restro.services.qr import table_response

logger = logging.getLogger(__name__)


def serialize(collection: Collection, row: Any) -> dict[str, Any]:
    """One stored row as a camelCase JSON document."""
    collection = Collection(collection)
    if collection == Collection.ORDERS:
        model = OrderResponse.model_validate(row)
    elif collection == Collection.TABLES:
        model = table_response(row)
    else:
        model = MenuItemResponse.model_validate(row)
    return model.model_dump(mode="json", by_alias=True)


class StoreSnapshotLoader:
    """Callable ``(tenant_id, collection) -> Snapshot`` backed by the store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], timeout: Optional[float] = None):
        self.session_factory = session_factory
        self.timeout = timeout

    async def __call__(self, tenant_id: str, collection: Collection) -> Snapshot:
        collection = Collection(collection)
        async with self.session_factory() as session:
            if collection == Collection.ORDERS:
                rows = await OrderRepository(session, self.timeout).find(OrderFilter(restaurant_id=tenant_id))
            elif collection == Collection.TABLES:
                rows = await TableRepository(session, self.timeout).find(TableFilter(restaurant_id=tenant_id))
            else:
                rows = await MenuItemRepository(session, self.timeout).find(MenuItemFilter(restaurant_id=tenant_id))

        logger.debug(f"Loaded {len(rows)} {collection.value} for {tenant_id}")
        return [serialize(collection, row) for row in rows]
