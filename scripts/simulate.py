"""
Lunch Rush Simulation

Fires many guests at the customer menu at once, each at a random table,
building a cart and checking out either at the cashier or online. Afterwards
an admin logs in and checks that every order reached the dashboard.

Run against a development server (mock backend):
    uvicorn qrmenu.main:app --port 8001
    python scripts/simulate.py --guests 30
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

API_BASE_URL = "http://localhost:8001"
TABLES = [str(n) for n in range(1, 6)]

SPICINESS = ["tidak pedas", "pedas sedang", "pedas"]
TEMPERATURE = ["dingin", "tidak dingin"]


def pick_options(item: dict[str, Any]) -> list[tuple[str, str]]:
    """Options the guest must choose before this item can be added."""
    category = item.get("category") or ""
    if category.startswith("menu mie"):
        return [("spiciness", random.choice(SPICINESS))]
    if category.startswith("minuman"):
        return [("temperature", random.choice(TEMPERATURE))]
    return []


# =============================================================================
# GUEST FLOW
# =============================================================================

async def run_guest(guest_num: int, online: bool) -> dict[str, Any]:
    """One phone: open the menu, add a few items, check out."""
    table = random.choice(TABLES)
    start_time = time.time()

    # Separate client per guest so each gets its own cart cookie.
    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        try:
            menu = (await client.get(f"/menu/{table}")).json()
            items = [item for group in menu["categories"] for item in group["items"]]

            for item in random.sample(items, k=min(len(items), random.randint(1, 3))):
                for option, value in pick_options(item):
                    await client.put(
                        f"/menu/{table}/selections/{item['id_menu']}",
                        json={"option": option, "value": value},
                    )
                for _ in range(random.randint(1, 2)):
                    response = await client.post(
                        f"/menu/{table}/cart/add", json={"menu_item_id": item["id_menu"]}
                    )
                    response.raise_for_status()

            method = "online" if online else "cashier"
            response = await client.post(f"/menu/{table}/checkout", json={"payment_method": method})
            response.raise_for_status()
            data = response.json()

            if online:
                response = await client.post(f"/menu/{table}/checkout/callback", json={
                    "checkout_id": data["checkout"]["checkout_id"],
                    "outcome": random.choice(["success", "success", "pending"]),
                    "transaction_id": f"sim_{guest_num}",
                })
                response.raise_for_status()
                data = response.json()

            return {
                "guest": guest_num,
                "success": True,
                "order_id": data["order"]["order_id"],
                "total": data["order"]["total"],
                "mode": method,
                "time": round(time.time() - start_time, 3),
            }
        except (httpx.HTTPError, KeyError) as e:
            detail = e.response.text[:100] if isinstance(e, httpx.HTTPStatusError) else str(e)[:100]
            return {
                "guest": guest_num,
                "success": False,
                "error": detail,
                "mode": "online" if online else "cashier",
                "time": round(time.time() - start_time, 3),
            }


async def count_dashboard_orders(username: str, password: str) -> int:
    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        response = await client.post("/admin/login", json={"username": username, "password": password})
        response.raise_for_status()
        board = (await client.get("/admin/orders", params={"page_size": 48})).json()
        await client.post("/admin/logout")
        return board["total"]


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_guests: int, online_share: float, username: str, password: str) -> bool:
    print("=" * 70)
    print("🍜 LUNCH RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Guests: {num_guests}")
    print(f"💳 Online share: {online_share:.0%}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()
    results = await asyncio.gather(*[
        run_guest(i + 1, random.random() < online_share) for i in range(num_guests)
    ])
    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print(f"\n✅ Orders placed: {len(successful)}/{num_guests}")
    print(f"❌ Failed: {len(failed)}/{num_guests}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        times = [r["time"] for r in successful]
        revenue = sum(r["total"] for r in successful)
        online = len([r for r in successful if r["mode"] == "online"])
        print(f"\n📈 Average guest flow: {round(sum(times) / len(times), 3)}s (max {max(times)}s)")
        print(f"💳 Online: {online}  🧾 Cashier: {len(successful) - online}")
        print(f"💰 Revenue: Rp {revenue:,}".replace(",", "."))

    if failed:
        print("\n⚠️  Failed guests (first 5):")
        for f in failed[:5]:
            print(f"   Guest #{f['guest']} [{f['mode']}]: {f['error']}")

    on_board = await count_dashboard_orders(username, password)
    print(f"\n📊 Orders on dashboard: {on_board}")
    print("=" * 70)

    return not failed and on_board >= len(successful)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Lunch rush simulation")
    parser.add_argument("--guests", type=int, default=30, help="Number of concurrent guests")
    parser.add_argument("--online", type=float, default=0.5, help="Share of guests paying online")
    parser.add_argument("--username", default="admin", help="Dashboard user for the final check")
    parser.add_argument("--password", default="admin123", help="Dashboard password")
    args = parser.parse_args()

    ok = asyncio.run(run_simulation(args.guests, args.online, args.username, args.password))
    sys.exit(0 if ok else 1)
