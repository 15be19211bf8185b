"""
Order Lifecycle Engine

Turns a raw order request into a persisted, correctly totaled and
correctly identified order, then moves it through
Placed -> Preparing -> Ready -> Completed one step at a time.

Status changes are compare-and-swap on the stored status: of two
concurrent writers racing the same transition exactly one wins, the other
gets ``ConflictError``.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Optional, Union

import pydantic
from sqlalchemy.ext.asyncio import AsyncSession

from restro.core.errors import ConflictError, ValidationError
from restro.core.security import Principal, require_restaurant_admin, require_role
from restro.models import Order, OrderStatus, PaymentMethod, UserRole
from restro.repositories import (
    OrderFilter,
    OrderRepository,
    RestaurantRepository,
    TableRepository,
)
from restro.schemas import OrderCreate
from restro.services.base import DomainService
from restro.services.changes import BaseChangeFeed, Collection

logger = logging.getLogger(__name__)


# =============================================================================
# IDENTIFIERS & TOTALS
# =============================================================================

class OrderIdGenerator:
    """
    ``ORD-<first 4 chars of restaurant id, upper>-<epoch ms>``.

    The millisecond part never repeats within a process: a second order in
    the same millisecond takes the next one.
    """

    def __init__(self):
        self._last_ms = 0
        self._lock = threading.Lock()

    def next_millis(self) -> int:
        with self._lock:
            now = int(time.time() * 1000)
            self._last_ms = max(now, self._last_ms + 1)
            return self._last_ms

    def __call__(self, restaurant_id: str) -> str:
        return f"ORD-{restaurant_id[:4].upper()}-{self.next_millis()}"


default_id_generator = OrderIdGenerator()


def compute_total(items: list[dict[str, Any]]) -> float:
    """Sum of unit price times quantity over stored line items."""
    return round(sum(item["unit_price"] * item["quantity"] for item in items), 2)


# =============================================================================
# ENGINE
# =============================================================================

class OrderLifecycleEngine(DomainService):

    def __init__(
        self,
        session: AsyncSession,
        feed: Optional[BaseChangeFeed] = None,
        timeout: Optional[float] = None,
        id_generator: Optional[OrderIdGenerator] = None,
    ):
        super().__init__(session, feed, timeout)
        self.orders = OrderRepository(session, timeout)
        self.restaurants = RestaurantRepository(session, timeout)
        self.tables = TableRepository(session, timeout)
        self.generate_id = id_generator or default_id_generator

    async def create_order(self, data: Union[OrderCreate, dict[str, Any]]) -> Order:
        """
        Validate, total, identify and persist a new order.

        Every invalid field is reported together. A client-supplied total is
        ignored; the stored total is computed from the line items.
        """
        if not isinstance(data, OrderCreate):
            try:
                data = OrderCreate.model_validate(data)
            except pydantic.ValidationError as e:
                raise ValidationError.from_pydantic(e)

        restaurant = await self.restaurants.get_or_404(data.restaurant_id)

        errors = []
        if not restaurant.is_active:
            errors.append({"field": "restaurantId", "message": "Restaurant is not accepting orders"})
        if await self.tables.get(data.restaurant_id, data.table_number) is None:
            errors.append({
                "field": "tableNumber",
                "message": f"Table {data.table_number} does not exist at this restaurant",
            })
        if errors:
            raise ValidationError(errors)

        items = [
            {
                "menu_item_id": line.menu_item_id,
                "name": line.name,
                "unit_price": line.unit_price,
                "quantity": line.quantity,
            }
            for line in data.items
        ]

        order = Order(
            id=self.generate_id(data.restaurant_id),
            restaurant_id=data.restaurant_id,
            table_number=data.table_number,
            items=items,
            total=compute_total(items),
            status=OrderStatus.PLACED,
            payment_method=data.payment_method,
            customer=data.customer.model_dump(),
            timestamp=datetime.now(timezone.utc),
        )
        order = await self.orders.create(order)

        logger.info(
            f"Order {order.id} placed at {order.restaurant_id} table {order.table_number}: "
            f"{len(items)} line(s), total {order.total:.2f}"
        )
        await self._announce(order.restaurant_id, Collection.ORDERS)
        return order

    async def update_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        principal: Optional[Principal],
        expected_status: Optional[OrderStatus] = None,
        payment_method: Optional[PaymentMethod] = None,
        override: bool = False,
    ) -> Order:
        """
        Advance an order by exactly one step.

        ``expected_status`` pins the status the caller last saw; ``override``
        lets the owning admin set any status. ``payment_method`` is only
        accepted on Ready -> Completed and is stored on the order.
        """
        new_status = OrderStatus(new_status)
        require_role(principal, UserRole.ADMIN)
        order = await self.orders.get_or_404(order_id)
        require_restaurant_admin(principal, order.restaurant_id)

        current = order.status
        if expected_status is not None and OrderStatus(expected_status) != current:
            raise ConflictError(
                f"Order {order_id} is {current.value}, not {OrderStatus(expected_status).value}"
            )

        if not override and new_status != current.next_status:
            if current.is_terminal:
                message = f"Order {order_id} is already {current.value}"
            else:
                message = (
                    f"Cannot move order from {current.value} to {new_status.value}; "
                    f"next status is {current.next_status.value}"
                )
            raise ValidationError.single("status", message)

        if payment_method is not None and new_status != OrderStatus.COMPLETED:
            raise ValidationError.single(
                "paymentMethod", "Payment can only be confirmed when completing an order"
            )

        updated = await self.orders.compare_and_set_status(order_id, current, new_status, payment_method)
        if updated is None:
            raise ConflictError(f"Order {order_id} was updated concurrently; reload and retry")

        if override:
            logger.warning(
                f"Order {order_id} status overridden {current.value} -> {new_status.value} "
                f"by user {principal.user_id}"
            )
        else:
            logger.info(f"Order {order_id}: {current.value} -> {new_status.value}")

        await self._announce(updated.restaurant_id, Collection.ORDERS)
        return updated

    async def list_orders(self, criteria: OrderFilter) -> list[Order]:
        return await self.orders.find(criteria)

    async def get_order(self, order_id: str, restaurant_id: Optional[str] = None) -> Order:
        return await self.orders.get_or_404(order_id, restaurant_id)

    async def delete_order(self, order_id: str, principal: Optional[Principal]) -> None:
        require_role(principal, UserRole.ADMIN)
        order = await self.orders.get_or_404(order_id)
        require_restaurant_admin(principal, order.restaurant_id)
        restaurant_id = order.restaurant_id

        await self.orders.delete(order_id, restaurant_id)
        logger.warning(f"Order {order_id} deleted by user {principal.user_id}")
        await self._announce(restaurant_id, Collection.ORDERS)
