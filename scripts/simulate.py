"""
Concurrency Simulation Script

Fires a burst of orders at one restaurant, then races two status updates
per order to check that exactly one of each pair wins.
Run from project root: python scripts/simulate.py --restaurant r1 --email admin@example.com --password secret

Author: Khalil_Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

# Sample data for random orders
FIRST_NAMES = ["Asha", "Ravi", "Meera", "Arjun", "Priya", "Kabir", "Nisha", "Vikram", "Isha", "Rohan"]
LAST_NAMES = ["Rao", "Sharma", "Iyer", "Patel", "Khan", "Menon", "Das", "Gupta", "Nair", "Singh"]


def generate_random_customer() -> dict[str, str]:
    """Generate random customer info."""
    first = random.choice(FIRST_NAMES)
    last = random.choice(LAST_NAMES)
    return {
        "name": f"{first} {last}",
        "email": f"{first.lower()}.{last.lower()}{random.randint(1, 999)}@example.com",
        "phone": f"+91 9{random.randint(100000000, 999999999)}",
    }


def generate_random_items(menu: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Pick 1-4 lines from the live menu, capturing today's price."""
    return [
        {
            "menuItemId": item["id"],
            "name": item["name"],
            "price": item["price"],
            "quantity": random.randint(1, 3),
        }
        for item in random.sample(menu, k=min(len(menu), random.randint(1, 4)))
    ]


def generate_order_payload(restaurant_id: str, tables: list[int], menu: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "restaurantId": restaurant_id,
        "tableNumber": random.choice(tables),
        "items": generate_random_items(menu),
        "customer": generate_random_customer(),
    }


# =============================================================================
# ORDER BURST
# =============================================================================

async def send_order(client: httpx.AsyncClient, order_num: int, payload: dict[str, Any]) -> dict[str, Any]:
    start_time = time.time()
    try:
        response = await client.post("/orders", json=payload, timeout=30.0)
    except httpx.HTTPError as e:
        return {"order_num": order_num, "success": False, "error": str(e)[:100],
                "time": round(time.time() - start_time, 3)}

    elapsed = round(time.time() - start_time, 3)
    if response.status_code != 201:
        return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}

    order = response.json()["data"]
    return {
        "order_num": order_num,
        "success": True,
        "order_id": order["id"],
        "total": order["total"],
        "time": elapsed,
    }


# =============================================================================
# STATUS RACE
# =============================================================================

async def advance(client: httpx.AsyncClient, order_id: str, token: str) -> int:
    try:
        response = await client.put(
            f"/orders/{order_id}",
            json={"status": "Preparing", "expectedStatus": "Placed"},
            headers={"Authorization": f"Bearer {token}"},
            timeout=30.0,
        )
    except httpx.HTTPError:
        return 0
    return response.status_code


async def race(client: httpx.AsyncClient, order_id: str, token: str) -> dict[str, Any]:
    """Two admins move the same order at once; one must lose."""
    codes = await asyncio.gather(advance(client, order_id, token), advance(client, order_id, token))
    return {
        "order_id": order_id,
        "winners": sum(1 for c in codes if c == 200),
        "conflicts": sum(1 for c in codes if c in (400, 409)),
        "codes": codes,
    }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def login(client: httpx.AsyncClient, email: str, password: str) -> Optional[str]:
    response = await client.post("/auth/login", json={"email": email, "password": password})
    if response.status_code != 200:
        print(f"   Login failed: {response.text[:100]}")
        return None
    return response.json()["token"]


async def run_simulation(
    restaurant_id: str,
    email: str,
    password: str,
    num_orders: int = TOTAL_ORDERS,
) -> dict[str, Any]:
    print("=" * 70)
    print("CONCURRENCY SIMULATION")
    print("=" * 70)
    print(f"Restaurant: {restaurant_id}")
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
        health = await client.get("/health")
        print(f"\nHealth: {health.json().get('status')}")

        token = await login(client, email, password)
        if token is None:
            return {"successful": 0, "failed": num_orders}

        menu = (await client.get("/menu", params={"restaurantId": restaurant_id, "isAvailable": "true"})).json()["data"]
        tables = [t["id"] for t in (await client.get("/tables", params={"restaurantId": restaurant_id})).json()["data"]]
        if not menu or not tables:
            print("\nRestaurant needs at least one available menu item and one table.")
            return {"successful": 0, "failed": num_orders}

        print(f"\nFiring {num_orders} orders...\n")
        start_time = time.time()
        results = await asyncio.gather(*[
            send_order(client, i + 1, generate_order_payload(restaurant_id, tables, menu))
            for i in range(num_orders)
        ])
        total_time = round(time.time() - start_time, 2)

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        print(f"Racing status updates on {len(successful)} orders...\n")
        races = await asyncio.gather(*[race(client, r["order_id"], token) for r in successful])

    ids = [r["order_id"] for r in successful]
    broken_races = [r for r in races if r["winners"] != 1]

    print("=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"\nSuccessful Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Total Time: {total_time}s")
    print(f"Duplicate IDs: {len(ids) - len(set(ids))}")
    print(f"Races with exactly one winner: {len(races) - len(broken_races)}/{len(races)}")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print("\nPerformance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   Order Value: {sum(r['total'] for r in successful):.2f}")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    if broken_races:
        print("\nRaces without a single winner (showing first 5):")
        for r in broken_races[:5]:
            print(f"   {r['order_id']}: {r['codes']}")

    print("\n" + "=" * 70)
    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "broken_races": len(broken_races),
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrency Simulation Script")
    parser.add_argument("--restaurant", required=True, help="Restaurant ID to order from")
    parser.add_argument("--email", required=True, help="Admin email of that restaurant")
    parser.add_argument("--password", required=True, help="Admin password")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url
    summary = asyncio.run(run_simulation(args.restaurant, args.email, args.password, args.orders))
    sys.exit(0 if summary["failed"] == 0 and not summary.get("broken_races") else 1)
