"""
Resource availability model.

Vehicle and driver status double as exclusive leases: ON_TRIP means a
DISPATCHED or IN_TRANSIT trip holds the resource, IN_SHOP means at least
one open maintenance log holds the vehicle. Acquiring a lease is a
compare-and-set on status, so of two racing acquirers exactly one wins.
"""

import logging
from typing import Optional, Tuple

from fleetflow.app.core.exceptions import (
    DriverNotAvailable,
    DriverSuspended,
    VehicleNotAvailable,
    VehicleOnTrip,
    VehicleRetired,
)
from fleetflow.app.domain.dispatch.ports import AbstractUnitOfWork
from fleetflow.app.models.fleet_enums import DriverStatus, VehicleStatus

logger = logging.getLogger(__name__)


async def acquire_vehicle_for_trip(uow: AbstractUnitOfWork, vehicle_id: int) -> None:
    """AVAILABLE -> ON_TRIP, or VehicleNotAvailable with the status that blocked it."""
    if not await uow.vehicles.transition_status(vehicle_id, (VehicleStatus.AVAILABLE,), VehicleStatus.ON_TRIP):
        vehicle = await uow.vehicles.get(vehicle_id)
        raise VehicleNotAvailable(vehicle_id, vehicle.status if vehicle else None)


async def acquire_driver_for_trip(uow: AbstractUnitOfWork, driver_id: int) -> None:
    """ON_DUTY -> ON_TRIP."""
    if not await uow.drivers.transition_status(driver_id, (DriverStatus.ON_DUTY,), DriverStatus.ON_TRIP):
        driver = await uow.drivers.get_active(driver_id)
        if driver is not None and driver.status == DriverStatus.SUSPENDED:
            raise DriverSuspended(driver_id)
        raise DriverNotAvailable(driver_id, driver.status if driver else None)


async def release_trip_leases(
    uow: AbstractUnitOfWork,
    vehicle_id: int,
    driver_id: int,
    completed: bool,
) -> None:
    """
    Return both resources after a leased trip ends.

    The trip counts towards the driver's total either way; only a
    completion counts towards completed trips.
    """
    await uow.vehicles.transition_status(vehicle_id, None, VehicleStatus.AVAILABLE)
    increments = {"total_trips": 1}
    if completed:
        increments["completed_trips"] = 1
    await uow.drivers.transition_status(driver_id, None, DriverStatus.ON_DUTY, increments=increments)
    logger.debug("Released trip leases vehicle=%s driver=%s", vehicle_id, driver_id)


async def acquire_vehicle_for_service(uow: AbstractUnitOfWork, vehicle_id: int) -> None:
    """
    AVAILABLE or IN_SHOP -> IN_SHOP.

    Several open logs may share the lease; a vehicle on a trip or retired
    cannot enter the shop.
    """
    ok = await uow.vehicles.transition_status(
        vehicle_id, (VehicleStatus.AVAILABLE, VehicleStatus.IN_SHOP), VehicleStatus.IN_SHOP
    )
    if not ok:
        vehicle = await uow.vehicles.get(vehicle_id)
        if vehicle is not None and vehicle.status == VehicleStatus.RETIRED:
            raise VehicleRetired(vehicle_id)
        raise VehicleOnTrip(vehicle_id)


async def release_vehicle_from_service(
    uow: AbstractUnitOfWork,
    vehicle_id: int,
    exclude_log_id: Optional[int] = None,
) -> Tuple[bool, int]:
    """
    IN_SHOP -> AVAILABLE once no open maintenance log remains.

    Returns (restored, remaining_open_logs). An early completion among
    overlapping service jobs leaves the vehicle in the shop.
    """
    remaining = await uow.maintenance.count_open(vehicle_id, exclude_id=exclude_log_id)
    if remaining > 0:
        logger.debug("Vehicle %s stays in shop, %s open logs remain", vehicle_id, remaining)
        return False, remaining
    restored = await uow.vehicles.transition_status(vehicle_id, (VehicleStatus.IN_SHOP,), VehicleStatus.AVAILABLE)
    return restored, 0
