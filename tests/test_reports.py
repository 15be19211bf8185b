"""
Sales reports, the dashboard summary and the Excel export task.
"""

import pytest

from restro import tasks
from restro.models import MenuCategory, OrderStatus
from restro.services.excel_manager import ExcelManager
from restro.services.orders import OrderLifecycleEngine
from restro.services.reports import ReportService, sales_by_category, top_items
from tests.helpers import order_payload


def line(item_id, quantity, price, name=None):
    return {"menuItemId": item_id, "quantity": quantity, "name": name or item_id, "unitPrice": price}


@pytest.fixture
async def r1(make_tenant, add_menu_item, add_table):
    tenant = await make_tenant("r1")
    await add_menu_item("r1", "m1", price=100, category=MenuCategory.APPETIZER)
    await add_menu_item("r1", "m2", price=50, category=MenuCategory.DESSERT)
    await add_table("r1", 1)
    return tenant


async def place_and_complete(store, principal, items):
    async with store() as s:
        engine = OrderLifecycleEngine(s)
        order = await engine.create_order(order_payload(items=items))
        return await engine.update_status(order.id, OrderStatus.COMPLETED, principal, override=True)


class TestSalesReport:

    async def test_categories_and_revenue(self, store, session, r1):
        await place_and_complete(store, r1.principal, [line("m1", 2, 100), line("m2", 1, 50)])
        await place_and_complete(store, r1.principal, [line("gone", 1, 30)])
        async with store() as s:
            await OrderLifecycleEngine(s).create_order(order_payload(items=[line("m1", 5, 100)]))

        report = await ReportService(session).sales_report("r1")

        assert report.total_orders == 3
        assert report.completed_orders == 2
        assert report.total_revenue == 280
        by_name = {c.name: c for c in report.sales_by_category}
        assert set(by_name) == {c.value for c in MenuCategory}
        assert by_name["Appetizer"].value == 200
        assert by_name["Dessert"].value == 50
        assert by_name["Main Course"].value == 30
        assert by_name["Beverage"].count == 0

    async def test_top_items_ranked_by_quantity(self, store, session, r1):
        await place_and_complete(store, r1.principal, [line("m1", 1, 100), line("m2", 3, 50)])

        report = await ReportService(session).sales_report("r1")
        assert [i.menu_item_id for i in report.top_items] == ["m2", "m1"]
        assert report.top_items[0].revenue == 150

    async def test_dashboard(self, store, session, r1):
        await place_and_complete(store, r1.principal, [line("m1", 1, 100)])
        async with store() as s:
            await OrderLifecycleEngine(s).create_order(order_payload())

        summary = await ReportService(session).dashboard("r1")
        assert summary.completed_revenue == 100
        assert summary.active_orders == 1
        assert summary.total_orders == 2
        assert summary.total_tables == 1
        assert summary.occupied_tables == 0

    def test_helpers_ignore_open_orders(self):
        assert all(c.value == 0 for c in sales_by_category([], []))
        assert top_items([]) == []


# ══════════════════════════════════════════════════════════════
# EXPORT
# ══════════════════════════════════════════════════════════════

SNAPSHOT = [{
    "id": "ORD-R1-1700000000000",
    "restaurantId": "r1",
    "tableNumber": 3,
    "items": [{"menuItemId": "m1", "name": "Paneer Tikka", "quantity": 2, "unitPrice": 100}],
    "total": 200,
    "status": "Completed",
    "paymentMethod": "Cash",
    "customer": {"name": "Asha", "email": "asha@example.com", "phone": "+91 98765 43210"},
    "timestamp": "2026-10-19T12:00:00Z",
}]


class TestExcelExport:

    def test_export_and_read_back(self, tmp_path):
        manager = ExcelManager(data_dir=tmp_path)

        result = manager.export_orders("r1", SNAPSHOT)

        assert result["success"]
        assert result["rows"] == 1
        rows = manager.read_orders("r1")
        assert rows[0]["order_id"] == "ORD-R1-1700000000000"
        assert rows[0]["items"] == "2x Paneer Tikka"
        assert rows[0]["item_count"] == 2

    def test_exports_are_per_restaurant(self, tmp_path):
        manager = ExcelManager(data_dir=tmp_path)
        manager.export_orders("r1", SNAPSHOT)

        assert manager.read_orders("r2") == []
        assert manager.clear("r1")
        assert manager.read_orders("r1") == []

    def test_file_name_stays_in_data_dir(self, tmp_path):
        manager = ExcelManager(data_dir=tmp_path / "exports")

        path = manager.orders_file("../../etc/passwd")

        assert path.parent == tmp_path / "exports"
        assert path.name == "orders_______etc_passwd.xlsx"
        result = manager.export_orders("../escape", SNAPSHOT)
        assert result["success"]
        assert list(tmp_path.iterdir()) == [tmp_path / "exports"]

    def test_task_runs_export(self, tmp_path, monkeypatch):
        monkeypatch.setattr(tasks, "ExcelManager", lambda: ExcelManager(data_dir=tmp_path))

        result = tasks.export_orders_report.apply(args=("r1", SNAPSHOT)).get()

        assert result["success"]
        assert result["rows"] == 1
        assert (tmp_path / "orders_r1.xlsx").exists()

    def test_task_fails_when_export_fails(self, monkeypatch):
        class Failing:
            def export_orders(self, restaurant_id, orders):
                return {"success": False, "message": "Lock timeout (10s)"}

        monkeypatch.setattr(tasks, "ExcelManager", Failing)
        monkeypatch.setattr(tasks.export_orders_report, "max_retries", 0)

        result = tasks.export_orders_report.apply(args=("r1", SNAPSHOT))
        assert result.failed()
