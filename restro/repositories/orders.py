"""
Order Repository

Orders are single documents; every write touches exactly one row.
Status changes are compare-and-swap on the stored status.
"""

import logging
from typing import Optional

from sqlalchemy import select, update

from restro.core.errors import NotFoundError
from restro.models import Order, OrderStatus, PaymentMethod
from restro.repositories.base import BaseRepository
from restro.repositories.filters import OrderFilter

logger = logging.getLogger(__name__)


class OrderRepository(BaseRepository):

    async def find(self, criteria: OrderFilter) -> list[Order]:
        stmt = select(Order).order_by(Order.timestamp.desc(), Order.id.desc())
        if criteria.restaurant_id is not None:
            stmt = stmt.where(Order.restaurant_id == criteria.restaurant_id)
        if criteria.status is not None:
            stmt = stmt.where(Order.status == criteria.status)
        if criteria.table_number is not None:
            stmt = stmt.where(Order.table_number == criteria.table_number)
        if criteria.placed_from is not None:
            stmt = stmt.where(Order.timestamp >= criteria.placed_from)
        if criteria.placed_to is not None:
            stmt = stmt.where(Order.timestamp <= criteria.placed_to)
        return await self._scalars(stmt, "list orders")

    async def get(self, order_id: str, restaurant_id: Optional[str] = None) -> Optional[Order]:
        stmt = select(Order).where(Order.id == order_id)
        if restaurant_id is not None:
            stmt = stmt.where(Order.restaurant_id == restaurant_id)
        return await self._scalar_one_or_none(stmt, "get order")

    async def get_or_404(self, order_id: str, restaurant_id: Optional[str] = None) -> Order:
        order = await self.get(order_id, restaurant_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def create(self, order: Order) -> Order:
        """Insert a fully-built order. All or nothing."""
        return await self._insert(order, "create order", "Order with this ID already exists")

    async def compare_and_set_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
        payment_method: Optional[PaymentMethod] = None,
    ) -> Optional[Order]:
        """
        Set ``new_status`` only if the stored status is still ``expected``.

        Returns the refreshed order, or None when another writer got there
        first (or the order vanished).
        """
        values = {"status": new_status}
        if payment_method is not None:
            values["payment_method"] = payment_method

        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._guard(self.session.execute(stmt), "update order status")
        await self._commit("update order status")

        if result.rowcount != 1:
            logger.info(f"Status swap lost for {order_id}: expected {expected.value}")
            return None

        order = await self.get(order_id)
        if order is not None:
            await self._guard(self.session.refresh(order), "update order status")
        return order

    async def delete(self, order_id: str, restaurant_id: Optional[str] = None) -> None:
        order = await self.get_or_404(order_id, restaurant_id)
        await self._remove(order, "delete order")
