"""
HTTP surface: envelopes, error bodies, tenant isolation and health.
"""

from types import SimpleNamespace

import pytest

from restro import tasks
from restro.api.routes.realtime import _may_watch
from restro.core.security import Principal
from restro.models import UserRole
from restro.services.changes import Collection
from tests.helpers import order_payload


@pytest.fixture
async def r1(make_tenant, add_menu_item, add_table):
    tenant = await make_tenant("r1")
    await add_menu_item("r1", "m1", price=100)
    await add_table("r1", 1)
    return tenant


class TestRoot:

    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["health"] == "/health"

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "healthy"
        assert body["changeFeed"] == "memory: healthy"
        assert body["config"]["session_secret"] is True


# ══════════════════════════════════════════════════════════════
# ORDERS
# ══════════════════════════════════════════════════════════════

class TestOrdersApi:

    async def test_place_and_fetch(self, client, r1):
        response = await client.post("/orders", json=order_payload())

        assert response.status_code == 201
        order = response.json()["data"]
        assert order["total"] == 200
        assert order["status"] == "Placed"
        assert order["items"][0]["unitPrice"] == 100

        fetched = await client.get(f"/orders/{order['id']}", params={"restaurantId": "r1"})
        assert fetched.json()["data"]["id"] == order["id"]

    async def test_invalid_order_lists_every_field(self, client, r1):
        response = await client.post("/orders", json={"restaurantId": "r1"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "validation_error"
        assert {"tableNumber", "items", "customer"} <= {e["field"] for e in body["errors"]}

    async def test_listing_requires_restaurant(self, client, r1):
        response = await client.get("/orders")
        assert response.status_code == 400

    async def test_listing_is_tenant_scoped(self, client, r1, make_tenant, add_table):
        r2 = await make_tenant("r2")
        await add_table("r2", 1)
        await client.post("/orders", json=order_payload())
        await client.post("/orders", json=order_payload(restaurantId="r2"))

        response = await client.get("/orders", params={"restaurantId": "r2"}, headers=r2.headers)
        orders = response.json()["data"]
        assert [o["restaurantId"] for o in orders] == ["r2"]

    async def test_listing_limited_to_restaurant_staff(self, client, r1, make_tenant):
        staff = await make_tenant("r1", role=UserRole.STAFF, with_restaurant=False)
        customer = await make_tenant("r1", role=UserRole.CUSTOMER, with_restaurant=False)
        other = await make_tenant("r2")
        order = (await client.post("/orders", json=order_payload())).json()["data"]
        params = {"restaurantId": "r1"}

        assert (await client.get("/orders", params=params)).status_code == 401
        assert (await client.get("/orders", params=params, headers=customer.headers)).status_code == 403
        assert (await client.get("/orders", params=params, headers=other.headers)).status_code == 403
        listed = await client.get("/orders", params=params, headers=staff.headers)
        assert [o["id"] for o in listed.json()["data"]] == [order["id"]]

        # a customer can still follow their own order by id
        tracked = await client.get(f"/orders/{order['id']}")
        assert tracked.json()["data"]["status"] == "Placed"

    async def test_fetch_under_wrong_restaurant_is_404(self, client, r1):
        order = (await client.post("/orders", json=order_payload())).json()["data"]
        response = await client.get(f"/orders/{order['id']}", params={"restaurantId": "r2"})
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    async def test_status_flow(self, client, r1):
        order = (await client.post("/orders", json=order_payload())).json()["data"]
        url = f"/orders/{order['id']}"

        skip = await client.put(url, json={"status": "Ready"}, headers=r1.headers)
        assert skip.status_code == 400

        step = await client.put(url, json={"status": "Preparing"}, headers=r1.headers)
        assert step.status_code == 200
        assert step.json()["data"]["status"] == "Preparing"

        stale = await client.put(url, json={"status": "Ready", "expectedStatus": "Placed"}, headers=r1.headers)
        assert stale.status_code == 409
        assert stale.json()["error"] == "conflict"

    async def test_status_change_needs_owner(self, client, r1, make_tenant):
        r2 = await make_tenant("r2")
        order = (await client.post("/orders", json=order_payload())).json()["data"]
        url = f"/orders/{order['id']}"

        assert (await client.put(url, json={"status": "Preparing"})).status_code == 401
        assert (await client.put(url, json={"status": "Preparing"}, headers=r2.headers)).status_code == 403
        assert (await client.delete(url, headers=r2.headers)).status_code == 403
        assert (await client.delete(url, headers=r1.headers)).status_code == 200


# ══════════════════════════════════════════════════════════════
# CATALOG
# ══════════════════════════════════════════════════════════════

class TestCatalogApi:

    async def test_table_conflict_and_isolation(self, client, make_tenant):
        r1 = await make_tenant("r1")
        r2 = await make_tenant("r2")

        first = await client.post("/tables", json={"id": 1, "restaurantId": "r1", "capacity": 4}, headers=r1.headers)
        again = await client.post("/tables", json={"id": 1, "restaurantId": "r1", "capacity": 4}, headers=r1.headers)
        other = await client.post("/tables", json={"id": 1, "restaurantId": "r2", "capacity": 4}, headers=r2.headers)

        assert first.status_code == 201
        assert first.json()["data"]["qrCodeUrl"] == "http://restro.test/customer/login/r1/1"
        assert again.status_code == 409
        assert other.status_code == 201

    async def test_table_status_update(self, client, r1):
        response = await client.put("/tables/r1/1", json={"status": "Requires-Cleaning"}, headers=r1.headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "Requires-Cleaning"

    async def test_cannot_create_for_another_tenant(self, client, make_tenant):
        await make_tenant("r1")
        r2 = await make_tenant("r2")
        response = await client.post("/menu", json={
            "restaurantId": "r1", "name": "Kulfi", "price": 60, "category": "Dessert",
        }, headers=r2.headers)
        assert response.status_code == 403

    async def test_menu_listing(self, client, r1, add_menu_item):
        await add_menu_item("r2", "m9")

        scoped = await client.get("/menu", params={"restaurantId": "r1"})
        everything = await client.get("/menu")

        assert [i["id"] for i in scoped.json()["data"]] == ["m1"]
        assert len(everything.json()["data"]) == 2

    async def test_restaurant_soft_delete(self, client, r1):
        response = await client.delete("/restaurants/r1", headers=r1.headers)
        assert response.json()["data"]["isActive"] is False

        active = await client.get("/restaurants", params={"isActive": "true"})
        assert active.json()["data"] == []

        blocked = await client.post("/orders", json=order_payload())
        assert blocked.status_code == 400


# ══════════════════════════════════════════════════════════════
# REPORTS
# ══════════════════════════════════════════════════════════════

class TestReportsApi:

    async def test_dashboard(self, client, r1):
        await client.post("/orders", json=order_payload())
        response = await client.get("/reports/dashboard", params={"restaurantId": "r1"}, headers=r1.headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["activeOrders"] == 1
        assert data["totalTables"] == 1

    async def test_export_is_queued_with_snapshot(self, client, r1, monkeypatch):
        queued = []

        def fake_delay(restaurant_id, orders):
            queued.append((restaurant_id, orders))
            return SimpleNamespace(id="task-1")

        monkeypatch.setattr(tasks.export_orders_report, "delay", fake_delay)
        await client.post("/orders", json=order_payload())

        response = await client.post("/reports/export", params={"restaurantId": "r1"}, headers=r1.headers)

        assert response.status_code == 202
        assert response.json()["taskId"] == "task-1"
        [(restaurant_id, orders)] = queued
        assert restaurant_id == "r1"
        assert orders[0]["tableNumber"] == 1

    async def test_reports_are_owner_only(self, client, r1, make_tenant):
        r2 = await make_tenant("r2")
        response = await client.get("/reports/sales", params={"restaurantId": "r1"}, headers=r2.headers)
        assert response.status_code == 403


# ══════════════════════════════════════════════════════════════
# REALTIME
# ══════════════════════════════════════════════════════════════

class TestWatchPolicy:

    def test_menu_and_tables_are_public(self):
        assert _may_watch(None, "r1", Collection.MENU)
        assert _may_watch(None, "r1", Collection.TABLES)

    def test_orders_need_staff_of_that_restaurant(self):
        staff = Principal(1, "s@example.com", UserRole.STAFF, "r1")
        customer = Principal(2, "c@example.com", UserRole.CUSTOMER, None)

        assert _may_watch(staff, "r1", Collection.ORDERS)
        assert not _may_watch(staff, "r2", Collection.ORDERS)
        assert not _may_watch(customer, "r1", Collection.ORDERS)
        assert not _may_watch(None, "r1", Collection.ORDERS)
