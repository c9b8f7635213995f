#!/usr/bin/env python
"""
Concurrent checkout stress test for EventHive.

Uses the buyers and the free tier seeded by create_test_data.py, fires one
checkout per buyer at the same time against that tier, then checks that
confirmed tickets never exceed the tier's capacity. Free carts commit
without a gateway round trip, so this runs against any live server.

Run:
  python create_test_data.py
  python concurrency_test.py

Env vars:
  EVENTHIVE_BASE_URL     (default http://localhost:8000)
  CT_SEED_FILE           (default ct_seed.json next to this script)
  CT_CONCURRENCY         max concurrent requests (default: number of buyers)
"""

import json
import os
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict

import requests

BASE_URL = os.environ.get("EVENTHIVE_BASE_URL", "http://localhost:8000")
API = f"{BASE_URL}/api"
SEED_FILE = os.environ.get(
    "CT_SEED_FILE", os.path.join(os.path.dirname(os.path.abspath(__file__)), "ct_seed.json")
)


def hdr(token: str | None = None) -> Dict[str, str]:
    h = {"Content-Type": "application/json"}
    if token:
        h["Authorization"] = f"Token {token}"
    return h


def load_seed() -> Dict[str, Any]:
    if not os.path.exists(SEED_FILE):
        raise RuntimeError(f"{SEED_FILE} not found; run create_test_data.py first")
    with open(SEED_FILE) as fh:
        return json.load(fh)


def tier_remaining(event_id: int, tier_id: int) -> int:
    r = requests.get(f"{API}/events/{event_id}/availability/")
    if r.status_code != 200:
        raise RuntimeError(f"availability failed: {r.status_code} {r.text}")
    for tier in r.json()["tiers"]:
        if tier["tier_id"] == tier_id:
            return int(tier["remaining_quantity"])
    raise RuntimeError(f"tier {tier_id} not listed for event {event_id}")


def attempt_checkout(token: str, event_id: int, tier_id: int) -> Dict[str, Any]:
    r = requests.post(
        f"{API}/checkout/orders/",
        json={"event_id": event_id, "ticket_types": [{"ticket_type_id": tier_id, "quantity": 1}]},
        headers=hdr(token)
    )
    try:
        data = r.json()
    except ValueError:
        data = {"raw": r.text}
    ok = r.status_code == 201 and data.get("payment_required") is False
    return {"ok": ok, "status": r.status_code, "data": data}


def main() -> None:
    seed = load_seed()
    event_id = seed["event_id"]
    tier_id = seed["free_tier_id"]
    capacity = seed["free_capacity"]
    buyers = seed["buyers"]
    max_workers = int(os.environ.get("CT_CONCURRENCY", str(len(buyers))))

    print(f"BASE: {BASE_URL}")
    start_remaining = tier_remaining(event_id, tier_id)
    print(f"🔎 Initial remaining on tier {tier_id}: {start_remaining} (capacity={capacity})")

    print(f"🚀 Firing {len(buyers)} concurrent checkouts...")
    results = []
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(attempt_checkout, b["token"], event_id, tier_id) for b in buyers]
        for f in as_completed(futures):
            results.append(f.result())

    successes = [r for r in results if r["ok"]]
    failures = [r for r in results if not r["ok"]]
    print(f"✅ Successes: {len(successes)} | ❌ Failures: {len(failures)}")
    codes: Dict[str, int] = {}
    for r in failures:
        code = r["data"].get("code", str(r["status"]))
        codes[code] = codes.get(code, 0) + 1
    for code, count in sorted(codes.items()):
        print(f"   {code}: {count}")

    end_remaining = tier_remaining(event_id, tier_id)
    print(f"🔎 Remaining after: {end_remaining}")

    print(f"📊 Confirmed tickets this run: {len(successes)}")
    print(f"📊 Capacity: {capacity}")

    oversold = len(successes) > start_remaining or end_remaining != start_remaining - len(successes)
    if oversold:
        print("❌ OVERSOLD! Confirmed tickets do not match inventory.")
        sys.exit(1)
    else:
        print("🎉 No oversell detected. Row locks holding.")
        sys.exit(0)


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        print(f"❌ Test failed: {e}")
        sys.exit(1)
