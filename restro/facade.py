"""
Application Facade

The single object a UI talks to. It owns the current tenant selection,
keeps the latest known snapshot of that tenant's restaurant, menu, tables
and orders, and keeps it fresh through the change feed.

Mutations are optimistic-UI style: the store is written first and the
local snapshot is patched only after the write succeeds. A failed write
leaves the snapshot exactly as it was and re-raises.

Author: Khalil Bannouri
Version: 1.0.0
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from restro.core.errors import RestroError
from restro.core.security import Principal, SessionSigner
from restro.models import OrderStatus, PaymentMethod, TableStatus
from restro.repositories import MenuItemFilter, OrderFilter, TableFilter
from restro.schemas import (
    MenuItemCreate,
    MenuItemUpdate,
    OrderCreate,
    RestaurantResponse,
    TableCreate,
    UserResponse,
)
from restro.services.auth import AuthService, principal_for
from restro.services.catalog import CatalogService
from restro.services.changes import BaseChangeFeed, Collection, Snapshot, Subscription, serialize
from restro.services.orders import OrderLifecycleEngine

logger = logging.getLogger(__name__)

R = TypeVar("R")

ROW_KEYS = {
    Collection.ORDERS: "id",
    Collection.TABLES: "id",
    Collection.MENU: "id",
}


# =============================================================================
# TENANT SELECTION PERSISTENCE
# =============================================================================

class SelectionStore(ABC):
    """Remembers the selected tenant across restarts."""

    @abstractmethod
    def load(self) -> Optional[str]:
        pass

    @abstractmethod
    def save(self, tenant_id: Optional[str]) -> None:
        pass


class MemorySelectionStore(SelectionStore):

    def __init__(self, tenant_id: Optional[str] = None):
        self.tenant_id = tenant_id

    def load(self) -> Optional[str]:
        return self.tenant_id

    def save(self, tenant_id: Optional[str]) -> None:
        self.tenant_id = tenant_id


class JsonFileSelectionStore(SelectionStore):
    """``{"restaurantId": "..."}`` in a small JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8")).get("restaurantId")
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable selection file {self.path}: {e}")
            return None

    def save(self, tenant_id: Optional[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"restaurantId": tenant_id}), encoding="utf-8")


# =============================================================================
# STATE
# =============================================================================

@dataclass
class Notice:
    level: str  # "success" or "error"
    message: str


@dataclass
class TenantSnapshot:
    tenant_id: Optional[str] = None
    restaurant: Optional[dict[str, Any]] = None
    collections: dict[Collection, Snapshot] = field(
        default_factory=lambda: {c: [] for c in Collection}
    )
    # Parts whose last load failed and still show older data
    stale: set[str] = field(default_factory=set)

    @property
    def menu(self) -> Snapshot:
        return self.collections[Collection.MENU]

    @property
    def tables(self) -> Snapshot:
        return self.collections[Collection.TABLES]

    @property
    def orders(self) -> Snapshot:
        return self.collections[Collection.ORDERS]


def _upsert(rows: Snapshot, row: dict[str, Any], key: str) -> Snapshot:
    """New list with ``row`` replacing the one with the same key, or prepended."""
    replaced = False
    result = []
    for existing in rows:
        if existing.get(key) == row.get(key):
            result.append(row)
            replaced = True
        else:
            result.append(existing)
    return result if replaced else [row] + result


def _without(rows: Snapshot, key: str, value: Any) -> Snapshot:
    return [r for r in rows if r.get(key) != value]


# =============================================================================
# FACADE
# =============================================================================

class RestaurantApp:

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: Optional[BaseChangeFeed] = None,
        selection_store: Optional[SelectionStore] = None,
        signer: Optional[SessionSigner] = None,
    ):
        self.session_factory = session_factory
        self.feed = feed
        self.selection_store = selection_store or MemorySelectionStore()
        self.signer = signer or SessionSigner()

        self.subscriber_id = f"app-{uuid.uuid4().hex[:12]}"
        self.snapshot = TenantSnapshot()
        self.principal: Optional[Principal] = None
        self.user: Optional[UserResponse] = None
        self.token: Optional[str] = None
        self.notices: list[Notice] = []
        self._subscriptions: list[Subscription] = []

    @property
    def tenant_id(self) -> Optional[str]:
        return self.snapshot.tenant_id

    def _notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level, message))

    # =========================================================================
    # TENANT SELECTION
    # =========================================================================

    async def select_tenant(self, tenant_id: str) -> TenantSnapshot:
        """
        Switch to ``tenant_id`` and reload everything for it.

        Each part loads independently. A part that fails keeps what was
        shown before when the tenant is unchanged, and is emptied on a
        tenant switch so no other tenant's data stays on screen. Failed
        parts are listed in ``snapshot.stale``.
        """
        self.selection_store.save(tenant_id)
        switching = tenant_id != self.snapshot.tenant_id
        previous = self.snapshot

        fresh = TenantSnapshot(tenant_id=tenant_id)
        if not switching:
            fresh.restaurant = previous.restaurant
            fresh.collections = dict(previous.collections)

        async with self.session_factory() as session:
            catalog = CatalogService(session)
            engine = OrderLifecycleEngine(session)

            try:
                restaurant = await catalog.get_restaurant(tenant_id)
                fresh.restaurant = RestaurantResponse.model_validate(restaurant).model_dump(mode="json", by_alias=True)
            except RestroError as e:
                logger.warning(f"Restaurant load failed for {tenant_id}: {e.message}")
                fresh.stale.add("restaurant")

            loaders: dict[Collection, Callable[[], Awaitable[list]]] = {
                Collection.MENU: lambda: catalog.list_menu(MenuItemFilter(restaurant_id=tenant_id)),
                Collection.TABLES: lambda: catalog.list_tables(TableFilter(restaurant_id=tenant_id)),
                Collection.ORDERS: lambda: engine.list_orders(OrderFilter(restaurant_id=tenant_id)),
            }
            for collection, load in loaders.items():
                try:
                    rows = await load()
                    fresh.collections[collection] = [serialize(collection, row) for row in rows]
                except RestroError as e:
                    logger.warning(f"{collection.value} load failed for {tenant_id}: {e.message}")
                    fresh.stale.add(collection.value)

        self.snapshot = fresh
        self._resubscribe(tenant_id)

        if fresh.stale:
            self._notify("error", f"Some data could not be loaded: {', '.join(sorted(fresh.stale))}")
        logger.info(f"Selected tenant {tenant_id}")
        return fresh

    async def restore(self) -> Optional[TenantSnapshot]:
        """Re-select the tenant remembered by the selection store."""
        tenant_id = self.selection_store.load()
        if not tenant_id:
            return None
        return await self.select_tenant(tenant_id)

    def _resubscribe(self, tenant_id: str) -> None:
        self._unsubscribe()
        if self.feed is None:
            return
        for collection in Collection:
            self._subscriptions.append(
                self.feed.subscribe(tenant_id, collection, self._receiver(tenant_id, collection), self.subscriber_id)
            )

    def _unsubscribe(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []

    def _receiver(self, tenant_id: str, collection: Collection) -> Callable[[Snapshot], None]:
        def receive(rows: Snapshot) -> None:
            if self.snapshot.tenant_id != tenant_id:
                return
            self.snapshot.collections[collection] = rows
            self.snapshot.stale.discard(collection.value)
        return receive

    # =========================================================================
    # SESSION
    # =========================================================================

    async def login(self, email: str, password: str) -> UserResponse:
        try:
            async with self.session_factory() as session:
                user, token = await AuthService(session, signer=self.signer).login(email, password)
        except RestroError as e:
            self._notify("error", e.message)
            raise

        self.user = UserResponse.model_validate(user)
        self.principal = principal_for(user)
        self.token = token
        self._notify("success", "Login successful")

        if self.principal.restaurant_id:
            await self.select_tenant(self.principal.restaurant_id)
        return self.user

    async def logout(self) -> None:
        self._unsubscribe()
        self.principal = None
        self.user = None
        self.token = None
        self.snapshot = TenantSnapshot()
        self.selection_store.save(None)
        self._notify("success", "Logged out")

    async def close(self) -> None:
        self._unsubscribe()

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def _mutate(self, action: Callable[[AsyncSession], Awaitable[R]], success: str) -> R:
        """Run one write; the snapshot is only touched by the caller afterwards."""
        try:
            async with self.session_factory() as session:
                result = await action(session)
        except RestroError as e:
            self._notify("error", e.message)
            raise
        self._notify("success", success)
        return result

    def _patch(self, tenant_id: str, collection: Collection, row: dict[str, Any]) -> None:
        if tenant_id != self.snapshot.tenant_id:
            return
        key = ROW_KEYS[collection]
        self.snapshot.collections[collection] = _upsert(self.snapshot.collections[collection], row, key)

    def _drop(self, tenant_id: str, collection: Collection, value: Any) -> None:
        if tenant_id != self.snapshot.tenant_id:
            return
        key = ROW_KEYS[collection]
        self.snapshot.collections[collection] = _without(self.snapshot.collections[collection], key, value)

    async def add_menu_item(self, data: MenuItemCreate) -> dict[str, Any]:
        item = await self._mutate(
            lambda s: CatalogService(s, self.feed).create_menu_item(data, self.principal),
            "Menu item added",
        )
        row = serialize(Collection.MENU, item)
        self._patch(item.restaurant_id, Collection.MENU, row)
        return row

    async def update_menu_item(self, item_id: str, data: MenuItemUpdate) -> dict[str, Any]:
        tenant_id = self.tenant_id
        item = await self._mutate(
            lambda s: CatalogService(s, self.feed).update_menu_item(tenant_id, item_id, data, self.principal),
            "Menu item updated",
        )
        row = serialize(Collection.MENU, item)
        self._patch(tenant_id, Collection.MENU, row)
        return row

    async def delete_menu_item(self, item_id: str) -> None:
        tenant_id = self.tenant_id
        await self._mutate(
            lambda s: CatalogService(s, self.feed).delete_menu_item(tenant_id, item_id, self.principal),
            "Menu item deleted",
        )
        self._drop(tenant_id, Collection.MENU, item_id)

    async def add_table(self, data: TableCreate) -> dict[str, Any]:
        table = await self._mutate(
            lambda s: CatalogService(s, self.feed).create_table(data, self.principal),
            "Table added",
        )
        row = serialize(Collection.TABLES, table)
        self._patch(table.restaurant_id, Collection.TABLES, row)
        return row

    async def update_table_status(self, table_id: int, status: TableStatus) -> dict[str, Any]:
        tenant_id = self.tenant_id
        table = await self._mutate(
            lambda s: CatalogService(s, self.feed).update_table_status(tenant_id, table_id, status, self.principal),
            "Table updated",
        )
        row = serialize(Collection.TABLES, table)
        self._patch(tenant_id, Collection.TABLES, row)
        return row

    async def delete_table(self, table_id: int) -> None:
        tenant_id = self.tenant_id
        await self._mutate(
            lambda s: CatalogService(s, self.feed).delete_table(tenant_id, table_id, self.principal),
            "Table deleted",
        )
        self._drop(tenant_id, Collection.TABLES, table_id)

    async def place_order(self, data: Union[OrderCreate, dict[str, Any]]) -> dict[str, Any]:
        order = await self._mutate(
            lambda s: OrderLifecycleEngine(s, self.feed).create_order(data),
            "Order placed",
        )
        row = serialize(Collection.ORDERS, order)
        self._patch(order.restaurant_id, Collection.ORDERS, row)
        return row

    async def update_order_status(
        self,
        order_id: str,
        status: OrderStatus,
        payment_method: Optional[PaymentMethod] = None,
    ) -> dict[str, Any]:
        """Advance an order, pinning the status this snapshot last saw."""
        known = self.get_order_by_id(order_id)
        expected = OrderStatus(known["status"]) if known else None

        order = await self._mutate(
            lambda s: OrderLifecycleEngine(s, self.feed).update_status(
                order_id, status, self.principal,
                expected_status=expected,
                payment_method=payment_method,
            ),
            f"Order marked {OrderStatus(status).value}",
        )
        row = serialize(Collection.ORDERS, order)
        self._patch(order.restaurant_id, Collection.ORDERS, row)
        return row

    async def delete_order(self, order_id: str) -> None:
        tenant_id = self.tenant_id
        await self._mutate(
            lambda s: OrderLifecycleEngine(s, self.feed).delete_order(order_id, self.principal),
            "Order deleted",
        )
        self._drop(tenant_id, Collection.ORDERS, order_id)

    # =========================================================================
    # READS
    # =========================================================================

    def get_order_by_id(self, order_id: str) -> Optional[dict[str, Any]]:
        for order in self.snapshot.orders:
            if order.get("id") == order_id:
                return order
        return None
