"""
Catalog Service

Restaurant, menu item and table management. Reads are open; every write
checks the caller's role and restaurant binding before touching the store,
then announces the change for ``menu`` or ``tables``.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from restro.core.security import Principal, require_restaurant_admin, require_role
from restro.models import MenuItem, Restaurant, Table, TableStatus, UserRole
from restro.repositories import (
    MenuItemFilter,
    MenuItemRepository,
    RestaurantFilter,
    RestaurantRepository,
    TableFilter,
    TableRepository,
)
from restro.schemas import (
    MenuItemCreate,
    MenuItemUpdate,
    RestaurantCreate,
    RestaurantUpdate,
    TableCreate,
)
from restro.services.base import DomainService
from restro.services.changes import BaseChangeFeed, Collection
from restro.services.qr import table_target_url

logger = logging.getLogger(__name__)


class CatalogService(DomainService):

    def __init__(
        self,
        session: AsyncSession,
        feed: Optional[BaseChangeFeed] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(session, feed, timeout)
        self.restaurants = RestaurantRepository(session, timeout)
        self.menu = MenuItemRepository(session, timeout)
        self.tables = TableRepository(session, timeout)

    # =========================================================================
    # RESTAURANTS
    # =========================================================================

    async def list_restaurants(self, criteria: Optional[RestaurantFilter] = None) -> list[Restaurant]:
        return await self.restaurants.find(criteria)

    async def get_restaurant(self, restaurant_id: str) -> Restaurant:
        return await self.restaurants.get_or_404(restaurant_id)

    async def create_restaurant(self, data: RestaurantCreate, principal: Optional[Principal]) -> Restaurant:
        require_role(principal, UserRole.ADMIN)
        restaurant = await self.restaurants.create(**data.model_dump(), is_active=True)
        logger.info(f"Restaurant {restaurant.id} created by user {principal.user_id}")
        return restaurant

    async def update_restaurant(
        self,
        restaurant_id: str,
        data: RestaurantUpdate,
        principal: Optional[Principal],
    ) -> Restaurant:
        require_restaurant_admin(principal, restaurant_id)
        restaurant = await self.restaurants.update(restaurant_id, data.model_dump(exclude_unset=True))
        logger.info(f"Restaurant {restaurant_id} updated")
        return restaurant

    async def delete_restaurant(
        self,
        restaurant_id: str,
        principal: Optional[Principal],
        hard: bool = False,
    ) -> Optional[Restaurant]:
        """
        Deactivate a restaurant. ``hard=True`` removes the record instead
        and returns None; its menu, tables and orders are left in place.
        """
        require_restaurant_admin(principal, restaurant_id)

        if not hard:
            restaurant = await self.restaurants.update(restaurant_id, {"is_active": False})
            logger.info(f"Restaurant {restaurant_id} deactivated by user {principal.user_id}")
            return restaurant

        await self.restaurants.delete(restaurant_id)
        logger.warning(f"AUDIT: restaurant {restaurant_id} hard-deleted by user {principal.user_id} ({principal.email})")
        return None

    # =========================================================================
    # MENU
    # =========================================================================

    async def list_menu(self, criteria: MenuItemFilter) -> list[MenuItem]:
        return await self.menu.find(criteria)

    async def get_menu_item(self, restaurant_id: str, item_id: str) -> MenuItem:
        return await self.menu.get_or_404(restaurant_id, item_id)

    async def create_menu_item(self, data: MenuItemCreate, principal: Optional[Principal]) -> MenuItem:
        require_restaurant_admin(principal, data.restaurant_id)
        await self.restaurants.get_or_404(data.restaurant_id)

        values = data.model_dump()
        values["id"] = data.id or f"item-{uuid.uuid4().hex[:12]}"
        item = await self.menu.create(**values)

        logger.info(f"Menu item {item.restaurant_id}/{item.id} created: {item.name} @ {item.price:.2f}")
        await self._announce(item.restaurant_id, Collection.MENU)
        return item

    async def update_menu_item(
        self,
        restaurant_id: str,
        item_id: str,
        data: MenuItemUpdate,
        principal: Optional[Principal],
    ) -> MenuItem:
        require_restaurant_admin(principal, restaurant_id)
        item = await self.menu.update(restaurant_id, item_id, data.model_dump(exclude_unset=True))
        logger.info(f"Menu item {restaurant_id}/{item_id} updated")
        await self._announce(restaurant_id, Collection.MENU)
        return item

    async def delete_menu_item(self, restaurant_id: str, item_id: str, principal: Optional[Principal]) -> None:
        require_restaurant_admin(principal, restaurant_id)
        await self.menu.delete(restaurant_id, item_id)
        logger.info(f"Menu item {restaurant_id}/{item_id} deleted")
        await self._announce(restaurant_id, Collection.MENU)

    # =========================================================================
    # TABLES
    # =========================================================================

    async def list_tables(self, criteria: TableFilter) -> list[Table]:
        return await self.tables.find(criteria)

    async def get_table(self, restaurant_id: str, table_id: int) -> Table:
        return await self.tables.get_or_404(restaurant_id, table_id)

    async def create_table(self, data: TableCreate, principal: Optional[Principal]) -> Table:
        require_restaurant_admin(principal, data.restaurant_id)
        await self.restaurants.get_or_404(data.restaurant_id)

        table = await self.tables.create(
            id=data.id,
            restaurant_id=data.restaurant_id,
            capacity=data.capacity,
            status=TableStatus.FREE,
            qr_code_url=table_target_url(data.restaurant_id, data.id),
        )
        logger.info(f"Table {table.restaurant_id}/{table.id} created (capacity {table.capacity})")
        await self._announce(table.restaurant_id, Collection.TABLES)
        return table

    async def update_table_status(
        self,
        restaurant_id: str,
        table_id: int,
        status: TableStatus,
        principal: Optional[Principal],
    ) -> Table:
        require_restaurant_admin(principal, restaurant_id)
        table = await self.tables.update_status(restaurant_id, table_id, TableStatus(status))
        logger.info(f"Table {restaurant_id}/{table_id} is now {table.status.value}")
        await self._announce(restaurant_id, Collection.TABLES)
        return table

    async def delete_table(self, restaurant_id: str, table_id: int, principal: Optional[Principal]) -> None:
        require_restaurant_admin(principal, restaurant_id)
        await self.tables.delete(restaurant_id, table_id)
        logger.warning(f"AUDIT: table {restaurant_id}/{table_id} deleted by user {principal.user_id} ({principal.email})")
        await self._announce(restaurant_id, Collection.TABLES)
