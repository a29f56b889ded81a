"""
Concurrency Simulation Script

Fires many order creations at once against a running API to check that
order numbers stay unique and counters stay consistent.
Run from project root after seeding: python scripts/simulate.py --orders 50

Author: Khalil_Bannouri
Version: 3.0.0
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

API_BASE_URL = "http://localhost:5000"
TOTAL_ORDERS = 50
USER_ID = "3"  # seeded staff account


async def send_order(
    client: httpx.AsyncClient,
    order_num: int,
    customer_ids: list[int],
    menu_ids: list[int],
) -> dict[str, Any]:
    """Create one random order and time it."""
    payload = {
        "customer": random.choice(customer_ids),
        "order_type": random.choice(["dine-in", "takeout", "delivery"]),
        "items": [
            {"menu_item": menu_id, "quantity": random.randint(1, 3)}
            for menu_id in random.sample(menu_ids, k=min(len(menu_ids), random.randint(1, 3)))
        ],
    }
    start_time = time.time()

    try:
        response = await client.post("/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)
        if response.status_code == 201:
            order = response.json()["order"]
            return {
                "order_num": order_num,
                "success": True,
                "order_number": order["order_number"],
                "total": order["total"],
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


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 ORDER CONCURRENCY SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=API_BASE_URL, headers={"X-User-Id": USER_ID}) as client:
        customers = (await client.get("/api/customers", params={"limit": 100})).json()["customers"]
        menu = (await client.get("/api/menu/active")).json()["menu_items"]
        if not customers or not menu:
            print("❌ Seed the database first: python scripts/seed_data.py")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        start_time = time.time()
        results = await asyncio.gather(*[
            send_order(client, i + 1, [c["id"] for c in customers], [m["id"] for m in menu])
            for i in range(num_orders)
        ])
        total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    numbers = [r["order_number"] for r in successful]

    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")
    print(f"🔢 Unique order numbers: {len(set(numbers))}/{len(numbers)}")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"\n📈 Average Response: {avg_time}s")
        print(f"   💰 Total Revenue: ${sum(r['total'] for r in successful):.2f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)
    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order concurrency simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS)
    parser.add_argument("--url", default=API_BASE_URL)
    args = parser.parse_args()

    API_BASE_URL = args.url
    asyncio.run(run_simulation(args.orders))
