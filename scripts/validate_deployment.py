"""
Pre-Deploy and Smoke Test Script.

Runs against the deployed code through TestClient and the configured database:
1. Health Check
2. Public tariff listing
3. Quote for the first tariff (Riga -> Tallinn, cross-border)
4. Admin driver availability (when ADMIN_TOKEN is set, see seed_data.py)
"""

import os
import sys
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from transfer_backend.app.main import app

API = "/v1"


def print_step(step, msg):
    print(f"[{step}] {msg}")


def fail(msg):
    print(f"❌ FAILURE: {msg}")
    sys.exit(1)


def success(msg):
    print(f"✅ {msg}")


def main():
    print("🚀 Starting Deployment Validation...")

    with TestClient(app) as client:
        # 1. Health Check
        print_step("PRE-DEPLOY", "Checking /health...")
        response = client.get("/health")
        if response.status_code != 200:
            fail(f"Health check failed: {response.status_code} {response.text}")
        health = response.json()
        if health.get("redis") != "up":
            print("⚠️ Redis unreachable; routes will not be cached")
        success("Health check passed")

        # 2. Tariffs
        print_step("VERIFY", "Listing vehicle tariffs...")
        response = client.get(f"{API}/vehicles")
        if response.status_code != 200:
            fail(f"Tariff listing failed: {response.status_code} {response.text}")
        tariffs = response.json()
        if not tariffs:
            print("⚠️ No tariffs found. Run seed_data.py. Smoke test incomplete but DB connected.")
            success("Deployment Validation Passed (partial)")
            return
        success(f"Found {len(tariffs)} active tariffs")

        token = os.getenv("ADMIN_TOKEN")
        if not token:
            print("⚠️ ADMIN_TOKEN not set; skipping authenticated checks")
            success("Deployment Validation Passed (partial)")
            return
        headers = {"Authorization": f"Bearer {token}"}

        # 3. Quote
        print_step("SMOKE", "Requesting a quote...")
        departure = (datetime.now(timezone.utc) + timedelta(days=1)).replace(hour=10, minute=0)
        response = client.post(f"{API}/quotes", headers=headers, json={
            "vehicle_tariff_id": tariffs[0]["id"],
            "departure_time": departure.isoformat(),
            "pickup": {"address": "Riga, Latvia", "latitude": 56.9496, "longitude": 24.1052},
            "destination": {"address": "Tallinn, Estonia", "latitude": 59.4370, "longitude": 24.7536},
        })
        if response.status_code != 200:
            fail(f"Quote failed: {response.status_code} {response.text}")
        quote = response.json()
        source = "fallback estimate" if quote["route_fallback"] else "routing provider"
        success(f"Quote {quote['total_price']} EUR for {quote['distance_km']} km ({source})")

        # 4. Availability
        print_step("SMOKE", "Checking driver availability...")
        response = client.get(
            f"{API}/admin/drivers/available",
            headers=headers,
            params={"datetime": departure.isoformat()}
        )
        if response.status_code != 200:
            fail(f"Availability check failed: {response.status_code} {response.text}")
        availability = response.json()
        success(f"{availability['available_drivers']}/{availability['total_drivers']} drivers available")

    success("Deployment Validation Passed!")


if __name__ == "__main__":
    main()
