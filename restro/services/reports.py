"""
Reports

Sales figures for one restaurant, computed from its stored orders.
Revenue counts Completed orders only and always uses the line snapshot
price. Category comes from the current menu; lines whose menu item no
longer exists count as Main Course.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from restro.models import MenuCategory, MenuItem, Order, OrderStatus, Table, TableStatus
from restro.repositories import (
    MenuItemFilter,
    MenuItemRepository,
    OrderFilter,
    OrderRepository,
    TableFilter,
    TableRepository,
)
from restro.schemas import CategorySales, DashboardSummary, ItemSales, SalesReport

logger = logging.getLogger(__name__)

TOP_ITEMS_LIMIT = 5


def sales_by_category(orders: Iterable[Order], menu: Iterable[MenuItem]) -> list[CategorySales]:
    categories = {item.id: item.category for item in menu}
    totals = {category: [0.0, 0] for category in MenuCategory}

    for order in orders:
        if order.status != OrderStatus.COMPLETED:
            continue
        for line in order.items:
            category = categories.get(line["menu_item_id"], MenuCategory.MAIN_COURSE)
            totals[category][0] += line["unit_price"] * line["quantity"]
            totals[category][1] += line["quantity"]

    return [
        CategorySales(name=category.value, value=round(value, 2), count=count)
        for category, (value, count) in totals.items()
    ]


def top_items(orders: Iterable[Order], limit: int = TOP_ITEMS_LIMIT) -> list[ItemSales]:
    quantity: dict[str, int] = defaultdict(int)
    revenue: dict[str, float] = defaultdict(float)
    names: dict[str, str] = {}

    for order in orders:
        if order.status != OrderStatus.COMPLETED:
            continue
        for line in order.items:
            key = line["menu_item_id"]
            quantity[key] += line["quantity"]
            revenue[key] += line["unit_price"] * line["quantity"]
            names.setdefault(key, line["name"])

    ranked = sorted(quantity, key=lambda k: (-quantity[k], -revenue[k], k))
    return [
        ItemSales(menu_item_id=k, name=names[k], quantity=quantity[k], revenue=round(revenue[k], 2))
        for k in ranked[:limit]
    ]


def summarize(restaurant_id: str, orders: list[Order], tables: list[Table]) -> DashboardSummary:
    completed = [o for o in orders if o.status == OrderStatus.COMPLETED]
    return DashboardSummary(
        restaurant_id=restaurant_id,
        completed_revenue=round(sum(o.total for o in completed), 2),
        active_orders=len(orders) - len(completed),
        total_orders=len(orders),
        occupied_tables=sum(1 for t in tables if t.status == TableStatus.OCCUPIED),
        total_tables=len(tables),
    )


class ReportService:

    def __init__(self, session: AsyncSession, timeout: Optional[float] = None):
        self.orders = OrderRepository(session, timeout)
        self.menu = MenuItemRepository(session, timeout)
        self.tables = TableRepository(session, timeout)

    async def sales_report(
        self,
        restaurant_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> SalesReport:
        orders = await self.orders.find(
            OrderFilter(restaurant_id=restaurant_id, placed_from=start, placed_to=end)
        )
        menu = await self.menu.find(MenuItemFilter(restaurant_id=restaurant_id))
        completed = [o for o in orders if o.status == OrderStatus.COMPLETED]

        logger.info(f"Sales report for {restaurant_id}: {len(orders)} orders, {len(completed)} completed")
        return SalesReport(
            restaurant_id=restaurant_id,
            start=start,
            end=end,
            total_orders=len(orders),
            completed_orders=len(completed),
            total_revenue=round(sum(o.total for o in completed), 2),
            sales_by_category=sales_by_category(completed, menu),
            top_items=top_items(completed),
        )

    async def dashboard(self, restaurant_id: str) -> DashboardSummary:
        orders = await self.orders.find(OrderFilter(restaurant_id=restaurant_id))
        tables = await self.tables.find(TableFilter(restaurant_id=restaurant_id))
        return summarize(restaurant_id, orders, tables)
