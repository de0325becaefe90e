"""
Vehicle registry: registration, edits, retirement and history.
"""

import pytest

from fleetflow.app.core.exceptions import (
    OdometerRegression,
    VehicleInShop,
    VehicleNotFound,
    VehicleOnTrip,
)
from fleetflow.app.models.fleet_enums import TripStatus, VehicleStatus, VehicleType
from fleetflow.app.models.fuel_log import FuelLog
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.schemas.vehicle import VehicleCreate, VehicleUpdate
from fleetflow.app.services.vehicle_registry import HISTORY_LIMIT, VehicleRegistry

from fakes import NOW, fixed_clock, make_driver, make_open_log, make_trip, make_vehicle


@pytest.fixture
def registry(uow):
    return VehicleRegistry(uow, clock=fixed_clock)


@pytest.mark.asyncio
async def test_register_vehicle(registry):
    vehicle = await registry.register(VehicleCreate(
        license_plate=" mh12ab1234 ",
        make="Tata",
        model="Ace",
        year=2021,
        vehicle_type=VehicleType.VAN,
        max_capacity_kg=750,
        acquisition_cost=9000,
    ))

    assert vehicle.license_plate == "MH12AB1234"
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert vehicle.odometer_km == 0
    assert vehicle.is_active


@pytest.mark.asyncio
async def test_update_rejects_odometer_rollback(registry, store):
    vehicle = make_vehicle(store)
    with pytest.raises(OdometerRegression):
        await registry.update(vehicle.id, VehicleUpdate(odometer_km=100))


@pytest.mark.asyncio
async def test_update_odometer_is_checked_against_stored_reading(registry, store, uow, mocker):
    vehicle = make_vehicle(store, odometer_km=12000)
    stale = Vehicle(
        id=vehicle.id, license_plate=vehicle.license_plate, odometer_km=12000,
        status=VehicleStatus.AVAILABLE, is_active=True,
    )
    get_active = mocker.patch.object(uow.vehicles, "get_active", return_value=stale)
    # A fuel log committed after the edit read the row
    vehicle.odometer_km = 13000
    before = store.snapshot()

    with pytest.raises(OdometerRegression):
        await registry.update(vehicle.id, VehicleUpdate(odometer_km=12500, notes="New tyres"))

    get_active.assert_awaited_once_with(vehicle.id, for_update=True)
    assert vehicle.odometer_km == 13000
    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_update_fields(registry, store):
    vehicle = make_vehicle(store)
    vehicle = await registry.update(vehicle.id, VehicleUpdate(odometer_km=12500, notes="New tyres"))
    assert vehicle.odometer_km == 12500
    assert vehicle.notes == "New tyres"


@pytest.mark.asyncio
async def test_retire_available_vehicle(registry, store):
    vehicle = make_vehicle(store)

    vehicle = await registry.retire(vehicle.id)

    assert vehicle.status == VehicleStatus.RETIRED
    assert vehicle.is_active is False
    assert vehicle.retired_at == NOW
    with pytest.raises(VehicleNotFound):
        await registry.get(vehicle.id)


@pytest.mark.asyncio
async def test_retire_vehicle_on_trip_is_rejected(registry, store):
    vehicle = make_vehicle(store, status=VehicleStatus.ON_TRIP)
    with pytest.raises(VehicleOnTrip):
        await registry.retire(vehicle.id)


@pytest.mark.asyncio
async def test_retire_vehicle_in_shop_reports_open_logs(registry, store):
    vehicle = make_vehicle(store, status=VehicleStatus.IN_SHOP)
    make_open_log(store, vehicle)
    make_open_log(store, vehicle)

    with pytest.raises(VehicleInShop) as exc_info:
        await registry.retire(vehicle.id)

    assert exc_info.value.details["open_logs"] == 2
    assert vehicle.is_active


@pytest.mark.asyncio
async def test_list_hides_retired_by_default(registry, store):
    make_vehicle(store)
    make_vehicle(store, status=VehicleStatus.RETIRED, is_active=False)

    _, active_total = await registry.list()
    _, all_total = await registry.list(include_inactive=True)

    assert (active_total, all_total) == (1, 2)


@pytest.mark.asyncio
async def test_list_available_filters_type(registry, store):
    truck = make_vehicle(store)
    make_vehicle(store, vehicle_type=VehicleType.VAN)
    make_vehicle(store, status=VehicleStatus.IN_SHOP)

    available = await registry.list_available(VehicleType.TRUCK)

    assert [v.id for v in available] == [truck.id]


@pytest.mark.asyncio
async def test_history_summary(registry, store):
    vehicle = make_vehicle(store, acquisition_cost=10000)
    driver = make_driver(store)
    make_trip(store, vehicle, driver, status=TripStatus.COMPLETED, distance_km=300, revenue_generated=2500)
    make_trip(store, vehicle, driver, status=TripStatus.CANCELLED)
    make_open_log(store, vehicle, cost=400, completed_at=NOW)
    store.put(FuelLog(
        vehicle_id=vehicle.id, liters=60, cost_per_liter=1.5, total_cost=90,
        odometer_km=12300, logged_at=NOW,
    ))

    history = await registry.history(vehicle.id)

    assert history["vehicle"] is vehicle
    assert len(history["trips"]) == 2
    assert history["summary"] == {
        "total_trips": 2,
        "total_distance_km": 300,
        "total_revenue": 2500,
        "total_maintenance_cost": 400,
        "total_fuel_cost": 90,
        "total_fuel_liters": 60,
        "total_operational_cost": 490,
        "roi_percent": 20.1,
    }


@pytest.mark.asyncio
async def test_history_summary_covers_trips_beyond_listed_window(registry, store):
    vehicle = make_vehicle(store, acquisition_cost=10000)
    driver = make_driver(store)
    for _ in range(HISTORY_LIMIT + 1):
        make_trip(store, vehicle, driver, status=TripStatus.COMPLETED, distance_km=10, revenue_generated=100)

    history = await registry.history(vehicle.id)

    assert len(history["trips"]) == HISTORY_LIMIT
    assert history["summary"]["total_trips"] == HISTORY_LIMIT + 1
    assert history["summary"]["total_revenue"] == 100 * (HISTORY_LIMIT + 1)
    assert history["summary"]["total_distance_km"] == 10 * (HISTORY_LIMIT + 1)
    assert history["summary"]["roi_percent"] == 51.0
