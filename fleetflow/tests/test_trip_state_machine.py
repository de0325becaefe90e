"""
Trip lifecycle: create preconditions, dispatch leases, completion and cancellation.
"""

from datetime import date

import pytest

from fleetflow.app.core.exceptions import (
    CancellationReasonRequired,
    DriverNotAvailable,
    DriverNotFound,
    DriverSuspended,
    InvalidTransition,
    LicenseCategoryMismatch,
    LicenseExpired,
    OdometerRegression,
    OdometerRequiredForCompletion,
    Overweight,
    TripNotFound,
    VehicleNotAvailable,
    VehicleNotFound,
)
from fleetflow.app.domain.dispatch.rules import TRIP_TRANSITIONS
from fleetflow.app.domain.dispatch.trip_state_machine import TripStateMachine
from fleetflow.app.models.audit_log import AuditLog
from fleetflow.app.models.fleet_enums import (
    DriverStatus, LicenseCategory, TripStatus, VehicleStatus, VehicleType
)
from fleetflow.app.models.trip import Trip
from fleetflow.app.schemas.trip import TripCreate

from fakes import NOW, fixed_clock, make_driver, make_trip, make_vehicle


def trip_request(vehicle, driver, **overrides):
    values = dict(
        vehicle_id=vehicle.id,
        driver_id=driver.id,
        origin="Pune",
        destination="Mumbai",
        cargo_weight_kg=5000,
    )
    values.update(overrides)
    return TripCreate(**values)


@pytest.fixture
def machine(uow):
    return TripStateMachine(uow, clock=fixed_clock)


@pytest.fixture
def vehicle(store):
    return make_vehicle(store)


@pytest.fixture
def driver(store):
    return make_driver(store)


@pytest.mark.asyncio
async def test_full_lifecycle_leases_and_releases(machine, store, vehicle, driver):
    trip = await machine.create(trip_request(vehicle, driver), requester_id=7)

    assert trip.status == TripStatus.DRAFT
    assert trip.trip_number == "TRP-00001"
    assert trip.odometer_start == 12000
    assert trip.created_by_id == 7
    # DRAFT holds nothing
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert driver.status == DriverStatus.ON_DUTY

    trip = await machine.transition(trip.id, TripStatus.DISPATCHED)
    assert trip.status == TripStatus.DISPATCHED
    assert trip.dispatched_at == NOW
    assert vehicle.status == VehicleStatus.ON_TRIP
    assert driver.status == DriverStatus.ON_TRIP

    trip = await machine.transition(trip.id, TripStatus.IN_TRANSIT)
    assert trip.status == TripStatus.IN_TRANSIT
    assert vehicle.status == VehicleStatus.ON_TRIP

    trip = await machine.transition(
        trip.id, TripStatus.COMPLETED, odometer_end=12450, revenue_generated=1800
    )
    assert trip.status == TripStatus.COMPLETED
    assert trip.odometer_end == 12450
    assert trip.distance_km == 450
    assert trip.revenue_generated == 1800
    assert trip.completed_at == NOW

    assert vehicle.status == VehicleStatus.AVAILABLE
    assert vehicle.odometer_km == 12450
    assert driver.status == DriverStatus.ON_DUTY
    assert driver.total_trips == 1
    assert driver.completed_trips == 1

    actions = [a.action for a in store.rows(AuditLog)]
    assert actions == [
        "TRIP_CREATED", "TRIP_DISPATCHED", "TRIP_IN_TRANSIT", "TRIP_COMPLETED"
    ]


@pytest.mark.asyncio
async def test_trip_numbers_are_sequential(machine, store, vehicle, driver):
    first = await machine.create(trip_request(vehicle, driver))
    second = await machine.create(trip_request(vehicle, driver))
    assert (first.trip_number, second.trip_number) == ("TRP-00001", "TRP-00002")


@pytest.mark.asyncio
async def test_explicit_odometer_start_is_kept(machine, vehicle, driver):
    trip = await machine.create(trip_request(vehicle, driver, odometer_start=12500))
    assert trip.odometer_start == 12500


# Create preconditions

@pytest.mark.asyncio
async def test_create_rejects_unknown_vehicle(machine, driver):
    with pytest.raises(VehicleNotFound):
        await machine.create(TripCreate(
            vehicle_id=999, driver_id=driver.id, origin="A", destination="B", cargo_weight_kg=10
        ))


@pytest.mark.asyncio
async def test_create_rejects_retired_vehicle_as_missing(machine, store, driver):
    vehicle = make_vehicle(store, status=VehicleStatus.RETIRED, is_active=False)
    with pytest.raises(VehicleNotFound):
        await machine.create(trip_request(vehicle, driver))


@pytest.mark.parametrize("status", [VehicleStatus.IN_SHOP, VehicleStatus.ON_TRIP])
@pytest.mark.asyncio
async def test_create_rejects_unavailable_vehicle(machine, store, driver, status):
    vehicle = make_vehicle(store, status=status)
    with pytest.raises(VehicleNotAvailable) as exc_info:
        await machine.create(trip_request(vehicle, driver))
    assert exc_info.value.details["status"] == status.value


@pytest.mark.asyncio
async def test_create_rejects_unknown_driver(machine, vehicle):
    with pytest.raises(DriverNotFound):
        await machine.create(TripCreate(
            vehicle_id=vehicle.id, driver_id=999, origin="A", destination="B", cargo_weight_kg=10
        ))


@pytest.mark.asyncio
async def test_create_rejects_suspended_driver(machine, store, vehicle):
    driver = make_driver(store, status=DriverStatus.SUSPENDED, suspended_reason="Speeding")
    with pytest.raises(DriverSuspended):
        await machine.create(trip_request(vehicle, driver))


@pytest.mark.parametrize("status", [DriverStatus.OFF_DUTY, DriverStatus.ON_TRIP])
@pytest.mark.asyncio
async def test_create_rejects_driver_not_on_duty(machine, store, vehicle, status):
    driver = make_driver(store, status=status)
    with pytest.raises(DriverNotAvailable):
        await machine.create(trip_request(vehicle, driver))


@pytest.mark.asyncio
async def test_create_rejects_expired_license(machine, store, vehicle):
    driver = make_driver(store, license_expiry_date=date(2026, 3, 1))
    with pytest.raises(LicenseExpired) as exc_info:
        await machine.create(trip_request(vehicle, driver))
    assert exc_info.value.details["license_expiry_date"] == "2026-03-01"


@pytest.mark.asyncio
async def test_create_rejects_license_category_mismatch(machine, store, vehicle):
    driver = make_driver(store, license_category=LicenseCategory.VAN)
    with pytest.raises(LicenseCategoryMismatch) as exc_info:
        await machine.create(trip_request(vehicle, driver))
    assert exc_info.value.details == {"driver_category": "VAN", "vehicle_type": "TRUCK"}


@pytest.mark.asyncio
async def test_create_rejects_overweight_cargo_without_writing(machine, store):
    vehicle = make_vehicle(store, vehicle_type=VehicleType.VAN, max_capacity_kg=1500)
    driver = make_driver(store, license_category=LicenseCategory.VAN)

    with pytest.raises(Overweight) as exc_info:
        await machine.create(trip_request(vehicle, driver, cargo_weight_kg=1501))

    assert exc_info.value.status_code == 400
    assert exc_info.value.details == {"cargo_weight_kg": 1501, "max_capacity_kg": 1500}
    assert store.rows(Trip) == []
    assert store.trip_sequence == 0


@pytest.mark.asyncio
async def test_cargo_at_exact_capacity_is_accepted(machine, store):
    vehicle = make_vehicle(store, max_capacity_kg=1500)
    driver = make_driver(store)
    trip = await machine.create(trip_request(vehicle, driver, cargo_weight_kg=1500))
    assert trip.status == TripStatus.DRAFT


@pytest.mark.asyncio
async def test_vehicle_check_comes_before_driver_check(machine, store):
    vehicle = make_vehicle(store, status=VehicleStatus.IN_SHOP)
    driver = make_driver(store, status=DriverStatus.SUSPENDED)
    with pytest.raises(VehicleNotAvailable):
        await machine.create(trip_request(vehicle, driver))


# Transitions

ILLEGAL_MOVES = [
    (src, dst)
    for src in TripStatus
    for dst in TripStatus
    if dst not in TRIP_TRANSITIONS[src]
]


@pytest.mark.parametrize("src,dst", ILLEGAL_MOVES)
@pytest.mark.asyncio
async def test_illegal_transition_changes_nothing(machine, store, vehicle, driver, src, dst):
    trip = make_trip(store, vehicle, driver, status=src)
    before = store.snapshot()

    with pytest.raises(InvalidTransition):
        await machine.transition(
            trip.id, dst, odometer_end=13000, cancellation_reason="Customer request"
        )

    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_transition_unknown_trip(machine):
    with pytest.raises(TripNotFound):
        await machine.transition(404, TripStatus.DISPATCHED)


@pytest.mark.asyncio
async def test_cancel_draft_does_not_touch_resources(machine, store, vehicle, driver):
    trip = make_trip(store, vehicle, driver)

    trip = await machine.transition(trip.id, TripStatus.CANCELLED, cancellation_reason="  Duplicate  ")

    assert trip.status == TripStatus.CANCELLED
    assert trip.cancellation_reason == "Duplicate"
    assert trip.cancelled_at == NOW
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert driver.total_trips == 0


@pytest.mark.parametrize("src", [TripStatus.DISPATCHED, TripStatus.IN_TRANSIT])
@pytest.mark.asyncio
async def test_cancel_leased_trip_releases_resources(machine, store, src):
    vehicle = make_vehicle(store, status=VehicleStatus.ON_TRIP)
    driver = make_driver(store, status=DriverStatus.ON_TRIP, total_trips=4, completed_trips=3)
    trip = make_trip(store, vehicle, driver, status=src)

    await machine.transition(trip.id, TripStatus.CANCELLED, cancellation_reason="Breakdown")

    assert vehicle.status == VehicleStatus.AVAILABLE
    assert driver.status == DriverStatus.ON_DUTY
    assert driver.total_trips == 5
    assert driver.completed_trips == 3


@pytest.mark.parametrize("reason", [None, "", "   "])
@pytest.mark.asyncio
async def test_cancel_requires_reason(machine, store, vehicle, driver, reason):
    trip = make_trip(store, vehicle, driver)
    before = store.snapshot()

    with pytest.raises(CancellationReasonRequired) as exc_info:
        await machine.transition(trip.id, TripStatus.CANCELLED, cancellation_reason=reason)

    assert exc_info.value.status_code == 422
    assert exc_info.value.details["field"] == "cancellation_reason"
    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_complete_requires_odometer(machine, store):
    vehicle = make_vehicle(store, status=VehicleStatus.ON_TRIP)
    driver = make_driver(store, status=DriverStatus.ON_TRIP)
    trip = make_trip(store, vehicle, driver, status=TripStatus.IN_TRANSIT)
    before = store.snapshot()

    with pytest.raises(OdometerRequiredForCompletion):
        await machine.transition(trip.id, TripStatus.COMPLETED)

    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_complete_rejects_odometer_below_start(machine, store):
    vehicle = make_vehicle(store, status=VehicleStatus.ON_TRIP)
    driver = make_driver(store, status=DriverStatus.ON_TRIP)
    trip = make_trip(store, vehicle, driver, status=TripStatus.IN_TRANSIT)
    before = store.snapshot()

    with pytest.raises(OdometerRegression) as exc_info:
        await machine.transition(trip.id, TripStatus.COMPLETED, odometer_end=11999)

    assert exc_info.value.details == {"reading": 11999, "minimum": 12000}
    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_complete_rejects_odometer_below_vehicle_reading(machine, store):
    vehicle = make_vehicle(store, status=VehicleStatus.ON_TRIP)
    driver = make_driver(store, status=DriverStatus.ON_TRIP)
    trip = make_trip(store, vehicle, driver, status=TripStatus.IN_TRANSIT)
    # A fuel stop during the trip already moved the odometer on
    vehicle.odometer_km = 12300

    with pytest.raises(OdometerRegression) as exc_info:
        await machine.transition(trip.id, TripStatus.COMPLETED, odometer_end=12200)

    assert exc_info.value.details["minimum"] == 12300
    assert trip.status == TripStatus.IN_TRANSIT
    assert vehicle.status == VehicleStatus.ON_TRIP


@pytest.mark.asyncio
async def test_dispatch_fails_when_driver_was_suspended_after_draft(machine, uow, store, vehicle, driver):
    trip = make_trip(store, vehicle, driver)
    driver.status = DriverStatus.SUSPENDED
    before = store.snapshot()

    with pytest.raises(DriverSuspended):
        await machine.transition(trip.id, TripStatus.DISPATCHED)

    # The vehicle lease taken first is rolled back with the rest
    assert store.snapshot() == before
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert uow.commits == 0
    assert uow.rollbacks == 1


@pytest.mark.asyncio
async def test_dispatch_fails_when_vehicle_entered_shop_after_draft(machine, store, vehicle, driver):
    trip = make_trip(store, vehicle, driver)
    vehicle.status = VehicleStatus.IN_SHOP

    with pytest.raises(VehicleNotAvailable) as exc_info:
        await machine.transition(trip.id, TripStatus.DISPATCHED)

    assert exc_info.value.details["status"] == "IN_SHOP"
    assert trip.status == TripStatus.DRAFT
    assert driver.status == DriverStatus.ON_DUTY


@pytest.mark.asyncio
async def test_list_filters_by_status(machine, store, vehicle, driver):
    make_trip(store, vehicle, driver)
    make_trip(store, vehicle, driver, status=TripStatus.CANCELLED)

    trips, total = await machine.list(status=TripStatus.DRAFT)

    assert total == 1
    assert trips[0].status == TripStatus.DRAFT
