"""
Tenant Repository

Scoped CRUD for restaurants, menu items and tables. Every menu item and
table lookup is keyed by ``(restaurant_id, id)``.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select

from restro.core.errors import ConflictError, NotFoundError
from restro.models import MenuItem, Restaurant, Table, TableStatus
from restro.repositories.base import BaseRepository
from restro.repositories.filters import MenuItemFilter, RestaurantFilter, TableFilter

logger = logging.getLogger(__name__)


def _apply_changes(obj: Any, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        setattr(obj, key, value)


class RestaurantRepository(BaseRepository):

    async def find(self, criteria: Optional[RestaurantFilter] = None) -> list[Restaurant]:
        criteria = criteria or RestaurantFilter()
        stmt = select(Restaurant).order_by(Restaurant.name)
        if criteria.id is not None:
            stmt = stmt.where(Restaurant.id == criteria.id)
        if criteria.is_active is not None:
            stmt = stmt.where(Restaurant.is_active == criteria.is_active)
        return await self._scalars(stmt, "list restaurants")

    async def get(self, restaurant_id: str) -> Optional[Restaurant]:
        stmt = select(Restaurant).where(Restaurant.id == restaurant_id)
        return await self._scalar_one_or_none(stmt, "get restaurant")

    async def get_or_404(self, restaurant_id: str) -> Restaurant:
        restaurant = await self.get(restaurant_id)
        if restaurant is None:
            raise NotFoundError(f"Restaurant {restaurant_id} not found")
        return restaurant

    async def create(self, **values: Any) -> Restaurant:
        message = "Restaurant with this ID already exists"
        if await self.get(values["id"]) is not None:
            raise ConflictError(message)
        return await self._insert(Restaurant(**values), "create restaurant", message)

    async def update(self, restaurant_id: str, changes: dict[str, Any]) -> Restaurant:
        restaurant = await self.get_or_404(restaurant_id)
        _apply_changes(restaurant, changes)
        return await self._save(restaurant, "update restaurant")

    async def delete(self, restaurant_id: str) -> None:
        restaurant = await self.get_or_404(restaurant_id)
        await self._remove(restaurant, "delete restaurant")


class MenuItemRepository(BaseRepository):

    async def find(self, criteria: MenuItemFilter) -> list[MenuItem]:
        stmt = select(MenuItem).order_by(MenuItem.category, MenuItem.name)
        if criteria.restaurant_id is not None:
            stmt = stmt.where(MenuItem.restaurant_id == criteria.restaurant_id)
        if criteria.category is not None:
            stmt = stmt.where(MenuItem.category == criteria.category)
        if criteria.is_available is not None:
            stmt = stmt.where(MenuItem.is_available == criteria.is_available)
        return await self._scalars(stmt, "list menu items")

    async def get(self, restaurant_id: str, item_id: str) -> Optional[MenuItem]:
        stmt = select(MenuItem).where(
            MenuItem.restaurant_id == restaurant_id,
            MenuItem.id == item_id,
        )
        return await self._scalar_one_or_none(stmt, "get menu item")

    async def get_or_404(self, restaurant_id: str, item_id: str) -> MenuItem:
        item = await self.get(restaurant_id, item_id)
        if item is None:
            raise NotFoundError(f"Menu item {item_id} not found")
        return item

    async def create(self, **values: Any) -> MenuItem:
        message = "Menu item with this ID already exists for this restaurant"
        if await self.get(values["restaurant_id"], values["id"]) is not None:
            raise ConflictError(message)
        return await self._insert(MenuItem(**values), "create menu item", message)

    async def update(self, restaurant_id: str, item_id: str, changes: dict[str, Any]) -> MenuItem:
        item = await self.get_or_404(restaurant_id, item_id)
        _apply_changes(item, changes)
        return await self._save(item, "update menu item")

    async def delete(self, restaurant_id: str, item_id: str) -> None:
        item = await self.get_or_404(restaurant_id, item_id)
        await self._remove(item, "delete menu item")


class TableRepository(BaseRepository):

    async def find(self, criteria: TableFilter) -> list[Table]:
        stmt = select(Table).order_by(Table.restaurant_id, Table.id)
        if criteria.restaurant_id is not None:
            stmt = stmt.where(Table.restaurant_id == criteria.restaurant_id)
        if criteria.status is not None:
            stmt = stmt.where(Table.status == criteria.status)
        return await self._scalars(stmt, "list tables")

    async def get(self, restaurant_id: str, table_id: int) -> Optional[Table]:
        stmt = select(Table).where(
            Table.restaurant_id == restaurant_id,
            Table.id == table_id,
        )
        return await self._scalar_one_or_none(stmt, "get table")

    async def get_or_404(self, restaurant_id: str, table_id: int) -> Table:
        table = await self.get(restaurant_id, table_id)
        if table is None:
            raise NotFoundError(f"Table {table_id} not found")
        return table

    async def create(self, **values: Any) -> Table:
        message = "Table with this ID already exists for this restaurant"
        if await self.get(values["restaurant_id"], values["id"]) is not None:
            raise ConflictError(message)
        return await self._insert(Table(**values), "create table", message)

    async def update_status(self, restaurant_id: str, table_id: int, status: TableStatus) -> Table:
        table = await self.get_or_404(restaurant_id, table_id)
        table.status = status
        return await self._save(table, "update table status")

    async def delete(self, restaurant_id: str, table_id: int) -> None:
        table = await self.get_or_404(restaurant_id, table_id)
        await self._remove(table, "delete table")
