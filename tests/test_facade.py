"""
Application facade: tenant selection, partial-failure handling, live
updates and write-then-patch mutations.
"""

import pytest

from restro.core.errors import AuthError, ConflictError, StoreUnavailableError, ValidationError
from restro.facade import JsonFileSelectionStore, MemorySelectionStore, RestaurantApp
from restro.models import OrderStatus, TableStatus
from restro.schemas import MenuItemCreate, TableCreate
from restro.services.catalog import CatalogService
from restro.services.changes import Collection
from restro.services.orders import OrderLifecycleEngine
from tests.conftest import PASSWORD
from tests.helpers import order_payload


@pytest.fixture
async def seeded(make_tenant, add_menu_item, add_table):
    r1 = await make_tenant("r1")
    r2 = await make_tenant("r2")
    await add_menu_item("r1", "m1", price=100)
    await add_table("r1", 1)
    await add_table("r2", 5)
    return r1, r2


@pytest.fixture
async def facade(store, feed):
    app = RestaurantApp(store, feed)
    yield app
    await app.close()


async def store_down(*args, **kwargs):
    raise StoreUnavailableError("Store timed out during list tables")


class TestSelection:

    async def test_loads_everything_for_tenant(self, facade, seeded):
        snapshot = await facade.select_tenant("r1")

        assert snapshot.restaurant["id"] == "r1"
        assert [m["id"] for m in snapshot.menu] == ["m1"]
        assert [t["id"] for t in snapshot.tables] == [1]
        assert snapshot.orders == []
        assert snapshot.stale == set()

    async def test_switching_replaces_data_and_subscriptions(self, facade, feed, seeded):
        await facade.select_tenant("r1")
        await facade.select_tenant("r2")

        assert [t["id"] for t in facade.snapshot.tables] == [5]
        assert facade.snapshot.menu == []
        assert feed.subscriber_count("r1", Collection.ORDERS) == 0
        assert feed.subscriber_count("r2", Collection.ORDERS) == 1

    async def test_failed_part_keeps_previous_data_for_same_tenant(self, facade, seeded, monkeypatch):
        await facade.select_tenant("r1")
        monkeypatch.setattr(CatalogService, "list_tables", store_down)

        snapshot = await facade.select_tenant("r1")

        assert [t["id"] for t in snapshot.tables] == [1]
        assert [m["id"] for m in snapshot.menu] == ["m1"]
        assert snapshot.stale == {"tables"}
        assert facade.notices[-1].level == "error"

    async def test_failed_part_is_empty_after_switch(self, facade, seeded, monkeypatch):
        await facade.select_tenant("r1")
        monkeypatch.setattr(CatalogService, "list_tables", store_down)

        snapshot = await facade.select_tenant("r2")

        assert snapshot.tables == []
        assert snapshot.restaurant["id"] == "r2"
        assert "tables" in snapshot.stale

    async def test_live_updates_refresh_snapshot(self, facade, store, seeded):
        await facade.select_tenant("r1")
        async with store() as s:
            await OrderLifecycleEngine(s, facade.feed).create_order(order_payload())

        assert len(facade.snapshot.orders) == 1

    async def test_other_tenant_updates_are_ignored(self, facade, store, seeded):
        await facade.select_tenant("r2")
        async with store() as s:
            await OrderLifecycleEngine(s, facade.feed).create_order(order_payload())

        assert facade.snapshot.orders == []

    async def test_restore_from_file(self, store, feed, seeded, tmp_path):
        path = tmp_path / "selection.json"
        first = RestaurantApp(store, feed, selection_store=JsonFileSelectionStore(path))
        await first.select_tenant("r2")
        await first.close()

        second = RestaurantApp(store, feed, selection_store=JsonFileSelectionStore(path))
        snapshot = await second.restore()
        assert snapshot.tenant_id == "r2"
        await second.close()

    async def test_restore_without_selection(self, store):
        assert await RestaurantApp(store, selection_store=MemorySelectionStore()).restore() is None

    def test_unreadable_selection_file(self, tmp_path):
        path = tmp_path / "selection.json"
        path.write_text("{not json", encoding="utf-8")
        assert JsonFileSelectionStore(path).load() is None


class TestSession:

    async def test_login_selects_own_restaurant(self, facade, seeded):
        user = await facade.login("admin.r1@example.com", PASSWORD)

        assert user.restaurant_id == "r1"
        assert facade.tenant_id == "r1"
        assert facade.token

    async def test_bad_login_notifies_and_raises(self, facade, seeded):
        with pytest.raises(AuthError):
            await facade.login("admin.r1@example.com", "wrong")
        assert facade.notices[-1].level == "error"
        assert facade.principal is None

    async def test_logout_forgets_everything(self, facade, feed, seeded):
        await facade.login("admin.r1@example.com", PASSWORD)
        await facade.logout()

        assert facade.tenant_id is None
        assert facade.selection_store.load() is None
        assert feed.subscribed_keys() == []


class TestMutations:

    async def test_order_lifecycle_through_facade(self, facade, seeded):
        await facade.login("admin.r1@example.com", PASSWORD)

        order = await facade.place_order(order_payload())
        assert facade.get_order_by_id(order["id"])["status"] == "Placed"

        await facade.update_order_status(order["id"], OrderStatus.PREPARING)
        assert facade.get_order_by_id(order["id"])["status"] == "Preparing"
        assert len(facade.snapshot.orders) == 1

        await facade.delete_order(order["id"])
        assert facade.get_order_by_id(order["id"]) is None

    async def test_failed_write_leaves_snapshot_untouched(self, facade, seeded):
        await facade.login("admin.r1@example.com", PASSWORD)
        order = await facade.place_order(order_payload())
        before = [dict(o) for o in facade.snapshot.orders]

        with pytest.raises(ValidationError):
            await facade.update_order_status(order["id"], OrderStatus.COMPLETED)

        assert facade.snapshot.orders == before
        assert facade.notices[-1].level == "error"

    async def test_stale_snapshot_conflicts(self, facade, store, seeded):
        await facade.login("admin.r1@example.com", PASSWORD)
        order = await facade.place_order(order_payload())

        # Someone else moves the order on while live updates are not arriving
        facade._unsubscribe()
        async with store() as s:
            await OrderLifecycleEngine(s).update_status(order["id"], OrderStatus.PREPARING, facade.principal)

        with pytest.raises(ConflictError):
            await facade.update_order_status(order["id"], OrderStatus.PREPARING)

    async def test_menu_and_tables(self, facade, seeded):
        await facade.login("admin.r1@example.com", PASSWORD)

        await facade.add_menu_item(MenuItemCreate(
            id="m2", restaurant_id="r1", name="Mango Lassi", price=60, category="Beverage",
        ))
        await facade.add_table(TableCreate(id=2, restaurant_id="r1", capacity=2))
        await facade.update_table_status(2, TableStatus.OCCUPIED)
        await facade.delete_menu_item("m1")

        assert {m["id"] for m in facade.snapshot.menu} == {"m2"}
        tables = {t["id"]: t["status"] for t in facade.snapshot.tables}
        assert tables == {1: "Free", 2: "Occupied"}

        await facade.delete_table(2)
        assert [t["id"] for t in facade.snapshot.tables] == [1]

    async def test_anonymous_writes_are_rejected(self, facade, seeded):
        await facade.select_tenant("r1")
        with pytest.raises(AuthError):
            await facade.delete_menu_item("m1")
        assert [m["id"] for m in facade.snapshot.menu] == ["m1"]
