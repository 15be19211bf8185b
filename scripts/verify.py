"""
Export Verification Script

Checks a restaurant's Excel order export for missing columns, duplicate
order IDs and per-status counts.
Run from project root: python scripts/verify.py r1

Version: 1.0.0
"""

import argparse
import sys
from datetime import datetime

from restro.services.excel_manager import ExcelManager


def verify_export(restaurant_id: str) -> bool:
    manager = ExcelManager()
    path = manager.orders_file(restaurant_id)

    print("=" * 60)
    print("EXPORT VERIFICATION REPORT")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {path}")
    print("=" * 60)

    if not path.exists():
        print("\nExport file not found!")
        print(f"   Queue one first: POST /reports/export?restaurantId={restaurant_id}")
        return False

    rows = manager.read_orders(restaurant_id)
    print(f"\nTotal Orders: {len(rows)}")

    ok = True
    missing = [c for c in ExcelManager.ORDER_COLUMNS if rows and c not in rows[0]]
    if missing:
        print(f"Missing Columns: {missing}")
        ok = False
    else:
        print("All columns present")

    ids = [r["order_id"] for r in rows]
    duplicates = len(ids) - len(set(ids))
    if duplicates:
        print(f"{duplicates} duplicate order IDs found!")
        ok = False
    else:
        print("No duplicate order IDs")

    by_status: dict[str, int] = {}
    for r in rows:
        by_status[r["status"]] = by_status.get(r["status"], 0) + 1
    print("\nBy status:")
    for status, count in sorted(by_status.items()):
        print(f"   {status}: {count}")

    completed = sum(r["total"] for r in rows if r["status"] == "Completed")
    print(f"\nCompleted order value: {completed:.2f}")

    print("\n" + "=" * 60)
    print("VERIFICATION PASSED" if ok else "VERIFICATION FAILED")
    print("=" * 60)
    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Verify a restaurant's order export")
    parser.add_argument("restaurant_id")
    args = parser.parse_args()
    sys.exit(0 if verify_export(args.restaurant_id) else 1)
