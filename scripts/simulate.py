"""
Dinner Rush Simulation Script

Drives a running API with concurrent traffic to exercise the parts that
matter under load: atomic order creation, concurrent status updates, the
table-number race and the polling contract.

Run from project root (after scripts/seed.py):
    python scripts/simulate.py --orders 50
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

CHEF = {"X-Staff-Role": "chef", "X-Staff-User": "sim-chef"}
MANAGER = {"X-Staff-Role": "manager", "X-Staff-User": "sim-manager"}

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]

# (menu item id, unit price in cents) as created by scripts/seed.py
MENU_ITEMS = [(1, 1499), (2, 1699), (3, 899), (4, 599), (5, 1399), (6, 799), (7, 299), (8, 349)]

KITCHEN_FLOW = ["confirmed", "preparing", "ready", "completed"]


def generate_order_payload(table_count: int) -> dict[str, Any]:
    """Random order whose total matches its lines."""
    lines = []
    for _ in range(random.randint(1, 4)):
        menu_item_id, price = random.choice(MENU_ITEMS)
        lines.append({"menuItemId": menu_item_id, "quantity": random.randint(1, 3), "price": price})

    dine_in = random.random() < 0.7
    return {
        "orderType": "dine_in" if dine_in else "takeaway",
        "customerName": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "customerPhone": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
        "tableNumber": random.randint(1, table_count) if dine_in else None,
        "totalAmount": sum(line["price"] * line["quantity"] for line in lines),
        "specialInstructions": random.choice([None, "No onions", "Extra spicy", "Allergy: nuts"]),
        "orderItems": lines,
    }


async def send_order(client: httpx.AsyncClient, order_num: int, table_count: int) -> dict[str, Any]:
    payload = generate_order_payload(table_count)
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data["id"],
                "total": data["totalAmount"],
                "lines_ok": len(data["items"]) == len(payload["orderItems"]),
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def advance_order(client: httpx.AsyncClient, order_id: int) -> bool:
    """Walk one order through the kitchen flow, sometimes bumping priority first."""
    if random.random() < 0.3:
        await client.patch(
            f"{API_BASE_URL}/api/orders/{order_id}/priority",
            json={"priority": random.choice(["high", "urgent"])},
            headers=CHEF,
        )
    for status in KITCHEN_FLOW:
        response = await client.patch(
            f"{API_BASE_URL}/api/orders/{order_id}/status",
            json={"status": status},
            headers=CHEF,
        )
        if response.status_code != 200:
            print(f"   Order #{order_id} stuck before {status}: {response.text[:80]}")
            return False
        await asyncio.sleep(random.uniform(0, 0.05))
    return True


async def race_table_number(client: httpx.AsyncClient, contenders: int) -> dict[str, int]:
    """Many managers try to create the same table number at once."""
    placement = (await client.get(f"{API_BASE_URL}/api/tables/placement", headers=MANAGER)).json()
    number = placement["tableNumber"]
    body = {
        "tableNumber": number,
        "capacity": 2,
        "shape": "round",
        "positionX": placement.get("positionX") or 0,
        "positionY": placement.get("positionY") or 0,
    }
    responses = await asyncio.gather(
        *[client.post(f"{API_BASE_URL}/api/tables", json=body, headers=MANAGER) for _ in range(contenders)]
    )
    codes = [r.status_code for r in responses]
    return {"number": number, "created": codes.count(201), "rejected": codes.count(400)}


async def check_polling(client: httpx.AsyncClient) -> bool:
    first = await client.get(f"{API_BASE_URL}/api/kitchen/queue", headers=CHEF)
    again = await client.get(
        f"{API_BASE_URL}/api/kitchen/queue",
        headers={**CHEF, "If-None-Match": first.headers.get("ETag", "")},
    )
    print(f"   Poll interval: {first.headers.get('X-Poll-Interval')}s, re-fetch status: {again.status_code}")
    return again.status_code == 304


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, contenders: int = 5) -> dict[str, Any]:
    print("=" * 70)
    print("DINNER RUSH SIMULATION")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        health = await client.get(f"{API_BASE_URL}/health")
        print(f"\nHealth: {health.json().get('status')}")

        tables = await client.get(f"{API_BASE_URL}/api/tables", headers=MANAGER)
        table_count = max(len(tables.json()), 1)

        print(f"\n1. Firing {num_orders} concurrent orders...")
        results = await asyncio.gather(*[send_order(client, i + 1, table_count) for i in range(num_orders)])
        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        print(f"\n2. Advancing {len(successful)} orders concurrently...")
        advanced = await asyncio.gather(*[advance_order(client, r["order_id"]) for r in successful])

        print(f"\n3. Racing {contenders} creations for one table number...")
        race = await race_table_number(client, contenders)

        print("\n4. Checking conditional polling...")
        polling_ok = await check_polling(client)

    total_time = round(time.time() - start_time, 2)

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"\nOrders created: {len(successful)}/{num_orders}")
    print(f"Orders with all lines: {sum(1 for r in successful if r['lines_ok'])}/{len(successful)}")
    print(f"Orders completed: {sum(advanced)}/{len(successful)}")
    print(f"Table {race['number']}: {race['created']} created, {race['rejected']} rejected")
    print(f"Polling 304: {'yes' if polling_ok else 'no'}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r["total"] for r in successful)
        print(f"\nAverage create response: {avg_time}s")
        print(f"Total Revenue: ${total_revenue / 100:.2f}")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    if race["created"] != 1:
        print("\nTable number uniqueness violated!")

    print("\n" + "=" * 70)
    print("If HISTORY_EXPORT_ENABLED is set, run: python scripts/verify.py")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "race": race,
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dinner Rush Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--contenders", type=int, default=5, help="Concurrent creations of one table number")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url
    summary = asyncio.run(run_simulation(args.orders, args.contenders))
    sys.exit(0 if summary["failed"] == 0 and summary["race"]["created"] == 1 else 1)
