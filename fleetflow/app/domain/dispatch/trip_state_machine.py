"""
Trip State Machine.

Creates DRAFT trips and moves them through
DRAFT -> DISPATCHED -> IN_TRANSIT -> COMPLETED, or into CANCELLED from any
non-terminal state. Every call is one unit of work: preconditions are
checked first, then the trip, vehicle and driver writes commit together.

Lease protocol:
- DRAFT holds nothing, so a trip can be planned speculatively.
- DISPATCHED acquires the vehicle (AVAILABLE -> ON_TRIP) and the driver
  (ON_DUTY -> ON_TRIP) with conditional writes. The create-time read is
  never trusted; a vehicle taken in the meantime fails the dispatch.
- COMPLETED and CANCELLED (from a leased state) release both.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from fleetflow.app.core.config import settings
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
from fleetflow.app.domain.dispatch import leases
from fleetflow.app.domain.dispatch.ports import UnitOfWorkService
from fleetflow.app.domain.dispatch.rules import (
    LEASE_HOLDING_STATES,
    assert_valid_transition,
    format_trip_number,
    is_license_expired,
)
from fleetflow.app.models.fleet_enums import DriverStatus, TripStatus, VehicleStatus
from fleetflow.app.models.trip import Trip
from fleetflow.app.schemas.trip import TripCreate
from fleetflow.app.services.audit import AuditAction

logger = logging.getLogger(__name__)

_TRANSITION_ACTIONS = {
    TripStatus.DISPATCHED: AuditAction.TRIP_DISPATCHED,
    TripStatus.IN_TRANSIT: AuditAction.TRIP_IN_TRANSIT,
    TripStatus.COMPLETED: AuditAction.TRIP_COMPLETED,
    TripStatus.CANCELLED: AuditAction.TRIP_CANCELLED,
}


class TripStateMachine(UnitOfWorkService):

    async def create(self, data: TripCreate, requester_id: Optional[int] = None) -> Trip:
        """
        Create a DRAFT trip.

        Preconditions, in order:
        1. vehicle exists, is active and AVAILABLE
        2. driver exists and is active
        3. driver is not SUSPENDED and is ON_DUTY
        4. driver's license has not expired
        5. license category matches the vehicle type
        6. cargo fits the vehicle's capacity
        """
        async with self.uow:
            vehicle = await self.uow.vehicles.get_active(data.vehicle_id)
            if vehicle is None:
                raise VehicleNotFound(data.vehicle_id)
            if vehicle.status != VehicleStatus.AVAILABLE:
                raise VehicleNotAvailable(vehicle.id, vehicle.status)

            driver = await self.uow.drivers.get_active(data.driver_id)
            if driver is None:
                raise DriverNotFound(data.driver_id)
            if driver.status == DriverStatus.SUSPENDED:
                raise DriverSuspended(driver.id)
            if driver.status != DriverStatus.ON_DUTY:
                raise DriverNotAvailable(driver.id, driver.status)

            if is_license_expired(driver.license_expiry_date, self.clock()):
                raise LicenseExpired(driver.id, driver.license_expiry_date)
            if driver.license_category != vehicle.vehicle_type:
                raise LicenseCategoryMismatch(driver.license_category, vehicle.vehicle_type)
            if data.cargo_weight_kg > vehicle.max_capacity_kg:
                raise Overweight(data.cargo_weight_kg, vehicle.max_capacity_kg)

            sequence_value = await self.uow.trips.next_number()
            trip = Trip(
                trip_number=format_trip_number(
                    sequence_value, settings.trip_number_prefix, settings.trip_number_width
                ),
                status=TripStatus.DRAFT,
                vehicle_id=vehicle.id,
                driver_id=driver.id,
                created_by_id=requester_id,
                origin=data.origin,
                destination=data.destination,
                cargo_weight_kg=data.cargo_weight_kg,
                cargo_description=data.cargo_description,
                estimated_fuel_cost=data.estimated_fuel_cost,
                odometer_start=(
                    data.odometer_start if data.odometer_start is not None else vehicle.odometer_km
                ),
            )
            trip = await self.uow.trips.add(trip)
            await self.uow.audit.record(
                AuditAction.TRIP_CREATED, "trip", trip.id, actor_id=requester_id,
                metadata={"trip_number": trip.trip_number, "vehicle_id": vehicle.id, "driver_id": driver.id},
            )
            await self.uow.commit()

        logger.info("Trip %s created (vehicle=%s driver=%s)", trip.trip_number, trip.vehicle_id, trip.driver_id)
        return trip

    async def transition(
        self,
        trip_id: int,
        target: TripStatus,
        odometer_end: Optional[float] = None,
        cancellation_reason: Optional[str] = None,
        revenue_generated: Optional[float] = None,
        actor_id: Optional[int] = None,
    ) -> Trip:
        """
        Move a trip to `target`.

        Raises InvalidTransition before touching anything when the move is
        not in the transition table.
        """
        target = TripStatus(target)
        async with self.uow:
            trip = await self.uow.trips.get(trip_id)
            if trip is None:
                raise TripNotFound(trip_id)
            from_status = TripStatus(trip.status)
            assert_valid_transition(from_status, target)

            now = self.clock()
            if target == TripStatus.DISPATCHED:
                await self._dispatch(trip, now)
            elif target == TripStatus.IN_TRANSIT:
                await self._move(trip, from_status, target)
            elif target == TripStatus.COMPLETED:
                await self._complete(trip, odometer_end, revenue_generated, now)
            else:
                await self._cancel(trip, from_status, cancellation_reason, now)

            await self.uow.audit.record(
                _TRANSITION_ACTIONS[target], "trip", trip.id, actor_id=actor_id,
                metadata={"from": from_status.value, "to": target.value},
            )
            await self.uow.commit()

        logger.info(
            "Trip %s moved %s -> %s (vehicle=%s driver=%s)",
            trip.trip_number, from_status.value, target.value, trip.vehicle_id, trip.driver_id,
        )
        return trip

    # Reads run outside a unit of work: nothing to commit, and a rollback
    # would expire the instances handed back to the caller.

    async def get(self, trip_id: int) -> Trip:
        trip = await self.uow.trips.get(trip_id)
        if trip is None:
            raise TripNotFound(trip_id)
        return trip

    async def list(
        self,
        status: Optional[TripStatus] = None,
        vehicle_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Trip], int]:
        return await self.uow.trips.list(
            status=status, vehicle_id=vehicle_id, driver_id=driver_id, offset=offset, limit=limit
        )

    # Branches

    async def _move(self, trip: Trip, from_status: TripStatus, target: TripStatus, **values) -> None:
        # Conditional on the status read above; a concurrent move makes this one stale
        if not await self.uow.trips.transition_status(trip.id, from_status, target, **values):
            raise InvalidTransition(from_status, target)

    async def _dispatch(self, trip: Trip, now: datetime) -> None:
        await leases.acquire_vehicle_for_trip(self.uow, trip.vehicle_id)
        await leases.acquire_driver_for_trip(self.uow, trip.driver_id)
        await self._move(trip, TripStatus.DRAFT, TripStatus.DISPATCHED, dispatched_at=now)

    async def _complete(
        self,
        trip: Trip,
        odometer_end: Optional[float],
        revenue_generated: Optional[float],
        now: datetime,
    ) -> None:
        if odometer_end is None:
            raise OdometerRequiredForCompletion()
        if trip.odometer_start is not None and odometer_end < trip.odometer_start:
            raise OdometerRegression(odometer_end, trip.odometer_start)
        vehicle = await self.uow.vehicles.get(trip.vehicle_id)
        if vehicle is not None and odometer_end < vehicle.odometer_km:
            raise OdometerRegression(odometer_end, vehicle.odometer_km)

        values = {"odometer_end": odometer_end, "completed_at": now}
        if trip.odometer_start is not None:
            values["distance_km"] = odometer_end - trip.odometer_start
        if revenue_generated is not None:
            values["revenue_generated"] = revenue_generated
        await self._move(trip, TripStatus.IN_TRANSIT, TripStatus.COMPLETED, **values)

        await leases.release_trip_leases(self.uow, trip.vehicle_id, trip.driver_id, completed=True)
        if not await self.uow.vehicles.advance_odometer(trip.vehicle_id, odometer_end):
            # A fuel log moved the odometer past this reading since the check above
            vehicle = await self.uow.vehicles.get(trip.vehicle_id)
            raise OdometerRegression(odometer_end, vehicle.odometer_km)

    async def _cancel(
        self,
        trip: Trip,
        from_status: TripStatus,
        cancellation_reason: Optional[str],
        now: datetime,
    ) -> None:
        reason = (cancellation_reason or "").strip()
        if not reason:
            raise CancellationReasonRequired()

        await self._move(
            trip, from_status, TripStatus.CANCELLED, cancelled_at=now, cancellation_reason=reason
        )
        if from_status in LEASE_HOLDING_STATES:
            await leases.release_trip_leases(self.uow, trip.vehicle_id, trip.driver_id, completed=False)
