"""
Database seeding script for a demo fleet.

Creates a few vehicles and drivers covering every vehicle type so trips
can be planned right after setup. Run this script after the database is
set up but before first use.
"""

import asyncio
import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleetflow.app.db.session import AsyncSessionLocal, engine, Base
from fleetflow.app.db.unit_of_work import SqlAlchemyUnitOfWork
from fleetflow.app.models.fleet_enums import DriverStatus, LicenseCategory, VehicleType
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.schemas.driver import DriverCreate
from fleetflow.app.schemas.vehicle import VehicleCreate
from fleetflow.app.services.driver_roster import DriverRoster
from fleetflow.app.services.vehicle_registry import VehicleRegistry
from sqlalchemy import select

VEHICLES = [
    VehicleCreate(license_plate="FF-TRK-001", make="Volvo", model="FH16", year=2022,
                  vehicle_type=VehicleType.TRUCK, max_capacity_kg=18000, odometer_km=42000,
                  acquisition_cost=140000),
    VehicleCreate(license_plate="FF-VAN-001", make="Ford", model="Transit", year=2023,
                  vehicle_type=VehicleType.VAN, max_capacity_kg=1500, odometer_km=8000,
                  acquisition_cost=38000),
    VehicleCreate(license_plate="FF-BKE-001", make="Honda", model="Unicorn", year=2024,
                  vehicle_type=VehicleType.BIKE, max_capacity_kg=40, acquisition_cost=1800),
]


def _drivers():
    expiry = date.today() + timedelta(days=730)
    return [
        DriverCreate(name="Asha Rao", phone="+15550100", license_number="DL-TRK-001",
                     license_category=LicenseCategory.TRUCK, license_expiry_date=expiry,
                     status=DriverStatus.ON_DUTY),
        DriverCreate(name="Ravi Kumar", phone="+15550101", license_number="DL-VAN-001",
                     license_category=LicenseCategory.VAN, license_expiry_date=expiry,
                     status=DriverStatus.ON_DUTY),
        DriverCreate(name="Meera Iyer", phone="+15550102", license_number="DL-BKE-001",
                     license_category=LicenseCategory.BIKE, license_expiry_date=expiry),
    ]


async def seed_fleet():
    """
    Seed a demo fleet.

    Creates:
    - 1 TRUCK, 1 VAN and 1 BIKE
    - 1 driver licensed for each
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting fleet seeding...")

        result = await db.execute(select(Vehicle).where(Vehicle.license_plate == VEHICLES[0].license_plate))
        if result.scalar_one_or_none():
            print("ℹ️  Demo fleet already exists, skipping seeding")
            return

        registry = VehicleRegistry(SqlAlchemyUnitOfWork(db))
        for data in VEHICLES:
            vehicle = await registry.register(data)
            print(f"✅ Registered {vehicle.vehicle_type.value} {vehicle.license_plate}")

        roster = DriverRoster(SqlAlchemyUnitOfWork(db))
        for data in _drivers():
            driver = await roster.register(data)
            print(f"✅ Registered driver {driver.name} ({driver.license_category.value}, {driver.status.value})")

    await engine.dispose()
    print("\n🎉 Fleet seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed_fleet())
