"""
Pre-Deploy and Smoke Test Script.

Runs the deployed code in-process against the configured database and
executes a full smoke test:
1. Health Check
2. Vehicle and driver registration
3. Trip DRAFT -> DISPATCHED -> IN_TRANSIT -> COMPLETED, with lease checks
4. Clean-up: the smoke vehicle is retired and the driver deactivated
"""

import sys
import uuid
from datetime import date, timedelta

from fastapi.testclient import TestClient
from fleetflow.app.main import app
from fleetflow.app.core.jwt import create_access_token


def print_step(step, msg):
    print(f"[{step}] {msg}")


def fail(msg):
    print(f"❌ FAILURE: {msg}")
    sys.exit(1)


def success(msg):
    print(f"✅ {msg}")


def expect(response, status_code, what):
    if response.status_code != status_code:
        fail(f"{what}: {response.status_code} {response.text}")
    return response.json() if response.content else None


def main():
    print("🚀 Starting Deployment Validation...")

    with TestClient(app) as client:
        # 1. Health Check
        print_step("PRE-DEPLOY", "Checking /health...")
        expect(client.get("/health"), 200, "Health check")
        success("Health check passed")

        # Token as the auth service would issue it
        token = create_access_token(identity={"sub": "deploy-bot", "user_id": 1})
        headers = {"Authorization": f"Bearer {token}"}
        tag = uuid.uuid4().hex[:8].upper()

        # 2. Registration
        print_step("SMOKE", "Registering smoke-test vehicle and driver...")
        vehicle = expect(client.post("/v1/vehicles", headers=headers, json={
            "license_plate": f"SMK-{tag}",
            "make": "Smoke",
            "model": "Test",
            "year": 2024,
            "vehicle_type": "VAN",
            "max_capacity_kg": 1000,
            "odometer_km": 100,
            "acquisition_cost": 1,
        }), 201, "Vehicle registration")
        driver = expect(client.post("/v1/drivers", headers=headers, json={
            "name": "Smoke Test",
            "phone": "+10000000000",
            "license_number": f"SMK-{tag}",
            "license_category": "VAN",
            "license_expiry_date": (date.today() + timedelta(days=30)).isoformat(),
            "status": "ON_DUTY",
        }), 201, "Driver registration")
        success(f"Vehicle {vehicle['id']} and driver {driver['id']} registered")

        # 3. Trip Flow
        print_step("SMOKE", "Running full trip lifecycle...")
        trip = expect(client.post("/v1/trips", headers=headers, json={
            "vehicle_id": vehicle["id"],
            "driver_id": driver["id"],
            "origin": "Smoke Depot",
            "destination": "Smoke Yard",
            "cargo_weight_kg": 500,
        }), 201, "Trip creation")
        success(f"Trip {trip['trip_number']} created")

        for target, extra in [
            ("DISPATCHED", {}),
            ("IN_TRANSIT", {}),
            ("COMPLETED", {"odometer_end": 150, "revenue_generated": 10}),
        ]:
            expect(client.patch(f"/v1/trips/{trip['id']}/status", headers=headers,
                                json={"status": target, **extra}), 200, f"Move to {target}")
            success(f"Trip moved to {target}")

        vehicle = expect(client.get(f"/v1/vehicles/{vehicle['id']}", headers=headers), 200, "Vehicle lookup")
        if vehicle["status"] != "AVAILABLE" or vehicle["odometer_km"] != 150:
            fail(f"Vehicle not released correctly: {vehicle}")
        success("Vehicle released with odometer advanced")

        # 4. Clean-up
        print_step("CLEANUP", "Retiring smoke-test resources...")
        expect(client.post(f"/v1/vehicles/{vehicle['id']}/retire", headers=headers), 200, "Vehicle retirement")
        expect(client.delete(f"/v1/drivers/{driver['id']}", headers=headers), 204, "Driver deactivation")

    success("Deployment Validation Passed!")


if __name__ == "__main__":
    main()
