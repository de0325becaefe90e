"""
Data-access ports for the dispatch domain.

The domain services never talk to a session directly: they receive an
`AbstractUnitOfWork` whose repositories cover the reads and the
compare-and-set writes the lease protocol needs. One `async with uow:`
block is one atomic unit; leaving it without `commit()` rolls back.
"""

import abc
from datetime import date, datetime
from typing import Any, Callable, Collection, Dict, List, Optional, Tuple

from fleetflow.app.models.audit_log import AuditLog
from fleetflow.app.models.driver import Driver
from fleetflow.app.models.driver_incident import DriverIncident
from fleetflow.app.models.fleet_enums import (
    DriverStatus, LicenseCategory, ServiceType, TripStatus, VehicleStatus, VehicleType
)
from fleetflow.app.models.fuel_log import FuelLog
from fleetflow.app.models.maintenance import Maintenance
from fleetflow.app.models.trip import Trip
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.domain.dispatch.rules import utc_now

Page = Tuple[List[Any], int]


class AbstractVehicleRepository(abc.ABC):

    @abc.abstractmethod
    async def get(self, vehicle_id: int) -> Optional[Vehicle]:
        """Fetch a vehicle regardless of its active flag."""

    @abc.abstractmethod
    async def get_active(self, vehicle_id: int, for_update: bool = False) -> Optional[Vehicle]:
        """Fetch an active vehicle, optionally locking its row until commit."""

    @abc.abstractmethod
    async def add(self, vehicle: Vehicle) -> Vehicle:
        ...

    @abc.abstractmethod
    async def update(self, vehicle: Vehicle, **values) -> Vehicle:
        ...

    @abc.abstractmethod
    async def transition_status(
        self,
        vehicle_id: int,
        expected: Optional[Collection[VehicleStatus]],
        new_status: VehicleStatus,
        **values,
    ) -> bool:
        """
        Move a vehicle to `new_status` only if its current status is in
        `expected` (any status when None). Returns whether the row changed.
        The in-memory instance reflects the stored row afterwards.
        """

    @abc.abstractmethod
    async def advance_odometer(self, vehicle_id: int, odometer_km: float) -> bool:
        """Set the odometer only if the new reading does not go backwards."""

    @abc.abstractmethod
    async def list(
        self,
        status: Optional[VehicleStatus] = None,
        vehicle_type: Optional[VehicleType] = None,
        is_active: Optional[bool] = True,
        offset: int = 0,
        limit: int = 50,
    ) -> Page:
        ...

    @abc.abstractmethod
    async def list_available(self, vehicle_type: Optional[VehicleType] = None) -> List[Vehicle]:
        ...


class AbstractDriverRepository(abc.ABC):

    @abc.abstractmethod
    async def get_active(self, driver_id: int, for_update: bool = False) -> Optional[Driver]:
        ...

    @abc.abstractmethod
    async def add(self, driver: Driver) -> Driver:
        ...

    @abc.abstractmethod
    async def update(self, driver: Driver, **values) -> Driver:
        ...

    @abc.abstractmethod
    async def transition_status(
        self,
        driver_id: int,
        expected: Optional[Collection[DriverStatus]],
        new_status: DriverStatus,
        increments: Optional[Dict[str, int]] = None,
        **values,
    ) -> bool:
        """Compare-and-set on duty status; `increments` bumps counter columns."""

    @abc.abstractmethod
    async def list(
        self,
        status: Optional[DriverStatus] = None,
        license_category: Optional[LicenseCategory] = None,
        is_active: Optional[bool] = True,
        offset: int = 0,
        limit: int = 50,
    ) -> Page:
        ...

    @abc.abstractmethod
    async def list_available(self, today: date, license_category: Optional[LicenseCategory] = None) -> List[Driver]:
        """ON_DUTY, active drivers whose license is still valid after `today`."""


class AbstractIncidentRepository(abc.ABC):

    @abc.abstractmethod
    async def add(self, incident: DriverIncident) -> DriverIncident:
        ...

    @abc.abstractmethod
    async def list_for_driver(self, driver_id: int) -> List[DriverIncident]:
        ...


class AbstractTripRepository(abc.ABC):

    @abc.abstractmethod
    async def get(self, trip_id: int) -> Optional[Trip]:
        ...

    @abc.abstractmethod
    async def add(self, trip: Trip) -> Trip:
        ...

    @abc.abstractmethod
    async def next_number(self) -> int:
        """Allocate the next value of the trip number sequence."""

    @abc.abstractmethod
    async def transition_status(
        self,
        trip_id: int,
        expected: TripStatus,
        new_status: TripStatus,
        **values,
    ) -> bool:
        ...

    @abc.abstractmethod
    async def list(
        self,
        status: Optional[TripStatus] = None,
        vehicle_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Page:
        ...

    @abc.abstractmethod
    async def totals_for_vehicle(self, vehicle_id: int) -> Dict[str, float]:
        """Revenue and distance summed over every trip of the vehicle."""


class AbstractMaintenanceRepository(abc.ABC):

    @abc.abstractmethod
    async def get(self, log_id: int) -> Optional[Maintenance]:
        ...

    @abc.abstractmethod
    async def add(self, log: Maintenance) -> Maintenance:
        ...

    @abc.abstractmethod
    async def update(self, log: Maintenance, **values) -> Maintenance:
        ...

    @abc.abstractmethod
    async def close(self, log_id: int, completed_at: datetime) -> bool:
        """Set completed_at only if the log is still open."""

    @abc.abstractmethod
    async def count_open(self, vehicle_id: int, exclude_id: Optional[int] = None) -> int:
        ...

    @abc.abstractmethod
    async def list(
        self,
        vehicle_id: Optional[int] = None,
        service_type: Optional[ServiceType] = None,
        in_shop: Optional[bool] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Page:
        ...

    @abc.abstractmethod
    async def list_open(self) -> List[Maintenance]:
        """Open logs, oldest service date first."""

    @abc.abstractmethod
    async def total_cost_for_vehicle(self, vehicle_id: int) -> float:
        ...


class AbstractFuelLogRepository(abc.ABC):

    @abc.abstractmethod
    async def get(self, log_id: int) -> Optional[FuelLog]:
        ...

    @abc.abstractmethod
    async def add(self, log: FuelLog) -> FuelLog:
        ...

    @abc.abstractmethod
    async def latest_for_vehicle(self, vehicle_id: int) -> Optional[FuelLog]:
        """The vehicle's log with the highest odometer reading."""

    @abc.abstractmethod
    async def list_for_vehicle(self, vehicle_id: int) -> List[FuelLog]:
        """All logs of a vehicle in odometer order."""

    @abc.abstractmethod
    async def totals_for_vehicle(self, vehicle_id: int) -> Dict[str, float]:
        """Cost and liters summed over every log of the vehicle."""

    @abc.abstractmethod
    async def list(
        self,
        vehicle_id: Optional[int] = None,
        trip_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Page:
        ...


class AbstractAuditRepository(abc.ABC):

    @abc.abstractmethod
    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        actor_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        ...

    @abc.abstractmethod
    async def list_for(self, entity_type: str, entity_id: int) -> List[AuditLog]:
        ...


class AbstractUnitOfWork(abc.ABC):
    """
    Transaction boundary across all repositories.

    Usage:
        async with uow:
            ...reads, precondition checks...
            ...writes...
            await uow.commit()
    """

    vehicles: AbstractVehicleRepository
    drivers: AbstractDriverRepository
    incidents: AbstractIncidentRepository
    trips: AbstractTripRepository
    maintenance: AbstractMaintenanceRepository
    fuel_logs: AbstractFuelLogRepository
    audit: AbstractAuditRepository

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        # No-op after a successful commit
        await self.rollback()

    @abc.abstractmethod
    async def commit(self) -> None:
        ...

    @abc.abstractmethod
    async def rollback(self) -> None:
        ...


class UnitOfWorkService:
    """Base for domain services: an injected unit of work plus a clock."""

    def __init__(self, uow: AbstractUnitOfWork, clock: Callable[[], datetime] = utc_now):
        self.uow = uow
        self.clock = clock
