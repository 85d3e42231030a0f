#!/usr/bin/env python3
"""Demo client — drives a running alerting service over HTTP.

Seeds two users' preferences, submits one event of each type, waits for
the worker to process them and prints each user's in-app inbox plus the
queue statistics.

Usage::

    python scripts/run.py &
    python scripts/demo.py --base-url http://localhost:3001
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

import httpx

API = "/api/v1"

DEMO_PREFERENCES: list[dict[str, Any]] = [
    {
        "userId": "user1",
        "email": "user1@example.com",
        "phoneNumber": "+1234567890",
        "preferences": {
            "LOW_STOCK": ["EMAIL", "IN_APP"],
            "IMMINENT_EXPIRATION": ["EMAIL", "SMS"],
            "SUPPLIER_ORDER_UPDATE": ["EMAIL", "PUSH", "IN_APP"],
        },
        "isEnabled": True,
    },
    {
        "userId": "user2",
        "email": "user2@example.com",
        "preferences": {
            "LOW_STOCK": ["IN_APP"],
            "IMMINENT_EXPIRATION": ["EMAIL"],
            "SUPPLIER_ORDER_UPDATE": ["PUSH", "IN_APP"],
        },
        "isEnabled": True,
    },
]

DEMO_EVENTS: list[dict[str, Any]] = [
    {
        "type": "LOW_STOCK",
        "userId": "user1",
        "data": {"productName": "Premium Shampoo", "stock": 3, "location": "Main Store"},
        "severity": "HIGH",
    },
    {
        "type": "IMMINENT_EXPIRATION",
        "userId": "user1",
        "data": {"productName": "Hair Styling Gel", "daysUntilExpiration": 2},
        "severity": "HIGH",
    },
    {
        "type": "SUPPLIER_ORDER_UPDATE",
        "userId": "user2",
        "data": {
            "orderId": "ORD-2024-001",
            "status": "DELAYED",
            "additionalInfo": "Expected delay of 2 days.",
        },
        "severity": "HIGH",
    },
    {
        "type": "LOW_STOCK",
        "userId": "user2",
        "data": {"productName": "Conditioner", "stock": 25},
    },
]


async def run_demo(base_url: str, wait_secs: float) -> int:
    async with httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(10.0)) as client:
        try:
            health = await client.get("/health")
            health.raise_for_status()
        except httpx.HTTPError as exc:
            print(f"Service not reachable at {base_url}: {exc}", file=sys.stderr)
            return 1

        for pref in DEMO_PREFERENCES:
            resp = await client.put(f"{API}/notifications/preferences/{pref['userId']}", json=pref)
            resp.raise_for_status()
            print(f"preferences set for {pref['userId']}")

        for event in DEMO_EVENTS:
            resp = await client.post(f"{API}/alerts", json=event)
            resp.raise_for_status()
            print(f"{event['type']:<22} {event['userId']} -> {resp.json()['eventId']}")

        await asyncio.sleep(wait_secs)

        for pref in DEMO_PREFERENCES:
            resp = await client.get(f"{API}/notifications/in-app/{pref['userId']}")
            resp.raise_for_status()
            inbox = resp.json()
            print(f"\nin-app inbox for {pref['userId']}: {len(inbox)} message(s)")
            for msg in inbox:
                print(f"  [{msg['channel']}] {msg['subject']}: {msg['content']}")

        resp = await client.get(f"{API}/alerts/stats/queue")
        resp.raise_for_status()
        print("\nqueue stats:")
        print(json.dumps(resp.json(), indent=2))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Alerting service demo client")
    parser.add_argument("--base-url", default="http://localhost:3001")
    parser.add_argument(
        "--wait", type=float, default=2.0, help="Seconds to wait for processing"
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(run_demo(args.base_url, args.wait)))


if __name__ == "__main__":
    main()
