"""
Excel File Manager with Concurrency Control

Writes a restaurant's orders to ``<data_dir>/orders_<restaurant_id>.xlsx``
under a file lock, so concurrent export tasks for the same restaurant
never interleave.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd
from filelock import FileLock, Timeout

from restro.core.config import get_settings

logger = logging.getLogger(__name__)

UNSAFE_FILE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class ExcelManager:
    """Process-safe Excel exports of order snapshots."""

    ORDER_COLUMNS = [
        "order_id",
        "date_time",
        "table_number",
        "customer_name",
        "customer_email",
        "customer_phone",
        "items",
        "item_count",
        "total",
        "status",
        "payment_method",
        "exported_at",
    ]

    def __init__(self, data_dir: Optional[Union[str, Path]] = None, lock_timeout: Optional[int] = None):
        settings = get_settings()
        self.data_dir = Path(data_dir or settings.data_directory)
        self.lock_timeout = lock_timeout or settings.report_lock_timeout

    def orders_file(self, restaurant_id: str) -> Path:
        """Export path for a restaurant; the id never leaves ``data_dir``."""
        safe_id = UNSAFE_FILE_CHARS.sub("_", restaurant_id)
        return self.data_dir / f"orders_{safe_id}.xlsx"

    def _lock_for(self, path: Path) -> FileLock:
        return FileLock(str(path) + ".lock", timeout=self.lock_timeout)

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_dir}")

    @staticmethod
    def _row(order: dict[str, Any], export_time: str) -> dict[str, Any]:
        customer = order.get("customer") or {}
        items = order.get("items") or []
        return {
            "order_id": order.get("id"),
            "date_time": order.get("timestamp"),
            "table_number": order.get("tableNumber"),
            "customer_name": customer.get("name"),
            "customer_email": customer.get("email"),
            "customer_phone": customer.get("phone"),
            "items": ", ".join(f"{i.get('quantity')}x {i.get('name')}" for i in items),
            "item_count": sum(i.get("quantity", 0) for i in items),
            "total": order.get("total"),
            "status": order.get("status"),
            "payment_method": order.get("paymentMethod"),
            "exported_at": export_time,
        }

    def export_orders(self, restaurant_id: str, orders: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Replace the restaurant's export with ``orders``.

        ``orders`` are order snapshots as served by the API (camelCase keys).
        Never raises; the outcome is reported in the returned dict.
        """
        self._ensure_data_dir()
        path = self.orders_file(restaurant_id)

        result = {
            "success": False,
            "message": "",
            "restaurant_id": restaurant_id,
            "file": str(path),
            "rows": 0,
            "exported_at": None,
        }

        try:
            with self._lock_for(path):
                logger.debug(f"Lock acquired for {path.name}")

                export_time = datetime.now().isoformat()
                df = pd.DataFrame(
                    [self._row(order, export_time) for order in orders],
                    columns=self.ORDER_COLUMNS,
                )
                df.to_excel(str(path), index=False, engine="openpyxl")

                logger.info(f"Exported {len(df)} orders for {restaurant_id} to {path}")

                result["success"] = True
                result["message"] = f"{len(df)} orders exported"
                result["rows"] = len(df)
                result["exported_at"] = export_time

            logger.debug(f"Lock released for {path.name}")

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout exporting orders for {restaurant_id}")

        except OSError as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting orders for {restaurant_id}")

        return result

    def read_orders(self, restaurant_id: str) -> list[dict[str, Any]]:
        """Rows of the last export, or an empty list."""
        path = self.orders_file(restaurant_id)
        if not path.exists():
            return []

        with self._lock_for(path):
            df = pd.read_excel(path, engine="openpyxl")
        return df.to_dict("records")

    def clear(self, restaurant_id: str) -> bool:
        path = self.orders_file(restaurant_id)
        removed = False
        for f in (path, Path(str(path) + ".lock")):
            if f.exists():
                f.unlink()
                removed = True
        logger.info(f"Export cleared for {restaurant_id}")
        return removed
