"""
SQLAlchemy implementations of the dispatch repositories.

Status changes go through conditional UPDATE statements
(`... WHERE status IN (:expected)`) and report the matched row count, so
two transactions racing for the same vehicle or driver cannot both win.
"""

from datetime import date, datetime
from typing import Any, Collection, Dict, List, Optional

from sqlalchemy import select, update, insert, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.domain.dispatch.ports import (
    AbstractAuditRepository,
    AbstractDriverRepository,
    AbstractFuelLogRepository,
    AbstractIncidentRepository,
    AbstractMaintenanceRepository,
    AbstractTripRepository,
    AbstractVehicleRepository,
    Page,
)
from fleetflow.app.models.audit_log import AuditLog
from fleetflow.app.models.driver import Driver
from fleetflow.app.models.driver_incident import DriverIncident
from fleetflow.app.models.fleet_enums import (
    DriverStatus, LicenseCategory, ServiceType, TripStatus, VehicleStatus, VehicleType
)
from fleetflow.app.models.fuel_log import FuelLog
from fleetflow.app.models.maintenance import Maintenance
from fleetflow.app.models.trip import Trip
from fleetflow.app.models.trip_sequence import TripNumberSequence
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.services.audit import log_event, get_audit_trail

TRIP_SEQUENCE_NAME = "trip_number"


class SqlAlchemyRepository:
    """Shared helpers for session-bound repositories."""

    model: Any = None

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _add(self, instance):
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def _update(self, instance, **values):
        for field, value in values.items():
            setattr(instance, field, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def _page(self, query, offset: int, limit: int) -> Page:
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (await self.session.execute(count_query)).scalar()
        result = await self.session.execute(query.offset(offset).limit(limit))
        return list(result.scalars().all()), total

    async def _compare_and_set(self, entity_id: int, conditions: list, values: Dict[str, Any]) -> bool:
        # Pending attribute changes must reach the row before the conditional write
        await self.session.flush()
        statement = (
            update(self.model)
            .where(self.model.id == entity_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        # Reload so callers see the stored row whether or not it matched
        await self.session.get(self.model, entity_id, populate_existing=True)
        return result.rowcount == 1


class SqlAlchemyVehicleRepository(SqlAlchemyRepository, AbstractVehicleRepository):
    model = Vehicle

    async def get(self, vehicle_id: int) -> Optional[Vehicle]:
        return await self.session.get(Vehicle, vehicle_id)

    async def get_active(self, vehicle_id: int, for_update: bool = False) -> Optional[Vehicle]:
        query = select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.is_active == True)
        if for_update:
            # Serializes maintenance and fuel writes per vehicle (no-op on SQLite)
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def add(self, vehicle: Vehicle) -> Vehicle:
        return await self._add(vehicle)

    async def update(self, vehicle: Vehicle, **values) -> Vehicle:
        return await self._update(vehicle, **values)

    async def transition_status(
        self,
        vehicle_id: int,
        expected: Optional[Collection[VehicleStatus]],
        new_status: VehicleStatus,
        **values,
    ) -> bool:
        conditions = [] if expected is None else [Vehicle.status.in_(list(expected))]
        return await self._compare_and_set(vehicle_id, conditions, {"status": new_status, **values})

    async def advance_odometer(self, vehicle_id: int, odometer_km: float) -> bool:
        return await self._compare_and_set(
            vehicle_id, [Vehicle.odometer_km <= odometer_km], {"odometer_km": odometer_km}
        )

    async def list(
        self,
        status: Optional[VehicleStatus] = None,
        vehicle_type: Optional[VehicleType] = None,
        is_active: Optional[bool] = True,
        offset: int = 0,
        limit: int = 50,
    ) -> Page:
        query = select(Vehicle).order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
        if status:
            query = query.where(Vehicle.status == status)
        if vehicle_type:
            query = query.where(Vehicle.vehicle_type == vehicle_type)
        if is_active is not None:
            query = query.where(Vehicle.is_active == is_active)
        return await self._page(query, offset, limit)

    async def list_available(self, vehicle_type: Optional[VehicleType] = None) -> List[Vehicle]:
        query = select(Vehicle).where(
            Vehicle.status == VehicleStatus.AVAILABLE,
            Vehicle.is_active == True
        ).order_by(Vehicle.license_plate)
        if vehicle_type:
            query = query.where(Vehicle.vehicle_type == vehicle_type)
        result = await self.session.execute(query)
        return list(result.scalars().all())


class SqlAlchemyDriverRepository(SqlAlchemyRepository, AbstractDriverRepository):
    model = Driver

    async def get_active(self, driver_id: int, for_update: bool = False) -> Optional[Driver]:
        query = select(Driver).where(Driver.id == driver_id, Driver.is_active == True)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def add(self, driver: Driver) -> Driver:
        return await self._add(driver)

    async def update(self, driver: Driver, **values) -> Driver:
        return await self._update(driver, **values)

    async def transition_status(
        self,
        driver_id: int,
        expected: Optional[Collection[DriverStatus]],
        new_status: DriverStatus,
        increments: Optional[Dict[str, int]] = None,
        **values,
    ) -> bool:
        conditions = [] if expected is None else [Driver.status.in_(list(expected))]
        values = {"status": new_status, **values}
        for column, delta in (increments or {}).items():
            values[column] = getattr(Driver, column) + delta
        return await self._compare_and_set(driver_id, conditions, values)

    async def list(
        self,
        status: Optional[DriverStatus] = None,
        license_category: Optional[LicenseCategory] = None,
        is_active: Optional[bool] = True,
        offset: int = 0,
        limit: int = 50,
    ) -> Page:
        query = select(Driver).order_by(Driver.name, Driver.id)
        if status:
            query = query.where(Driver.status == status)
        if license_category:
            query = query.where(Driver.license_category == license_category)
        if is_active is not None:
            query = query.where(Driver.is_active == is_active)
        return await self._page(query, offset, limit)

    async def list_available(self, today: date, license_category: Optional[LicenseCategory] = None) -> List[Driver]:
        query = select(Driver).where(
            Driver.status == DriverStatus.ON_DUTY,
            Driver.is_active == True,
            Driver.license_expiry_date > today
        ).order_by(Driver.safety_score.desc(), Driver.id)
        if license_category:
            query = query.where(Driver.license_category == license_category)
        result = await self.session.execute(query)
        return list(result.scalars().all())


class SqlAlchemyIncidentRepository(SqlAlchemyRepository, AbstractIncidentRepository):
    model = DriverIncident

    async def add(self, incident: DriverIncident) -> DriverIncident:
        return await self._add(incident)

    async def list_for_driver(self, driver_id: int) -> List[DriverIncident]:
        result = await self.session.execute(
            select(DriverIncident)
            .where(DriverIncident.driver_id == driver_id)
            .order_by(DriverIncident.reported_at.desc(), DriverIncident.id.desc())
        )
        return list(result.scalars().all())


class SqlAlchemyTripRepository(SqlAlchemyRepository, AbstractTripRepository):
    model = Trip

    async def get(self, trip_id: int) -> Optional[Trip]:
        return await self.session.get(Trip, trip_id)

    async def add(self, trip: Trip) -> Trip:
        return await self._add(trip)

    async def next_number(self) -> int:
        """
        Increment the trip counter row and return the new value.

        The UPDATE takes a row lock, so concurrent creators queue on it
        instead of reading the same value.
        """
        statement = (
            update(TripNumberSequence)
            .where(TripNumberSequence.name == TRIP_SEQUENCE_NAME)
            .values(value=TripNumberSequence.value + 1)
            .returning(TripNumberSequence.value)
            .execution_options(synchronize_session=False)
        )
        value = (await self.session.execute(statement)).scalar_one_or_none()
        if value is not None:
            return value

        # First trip ever: create the counter row
        try:
            async with self.session.begin_nested():
                await self.session.execute(
                    insert(TripNumberSequence).values(name=TRIP_SEQUENCE_NAME, value=1)
                )
            return 1
        except IntegrityError:
            # Another transaction created it first
            return (await self.session.execute(statement)).scalar_one()

    async def transition_status(
        self,
        trip_id: int,
        expected: TripStatus,
        new_status: TripStatus,
        **values,
    ) -> bool:
        return await self._compare_and_set(trip_id, [Trip.status == expected], {"status": new_status, **values})

    async def list(
        self,
        status: Optional[TripStatus] = None,
        vehicle_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Page:
        query = select(Trip).order_by(Trip.created_at.desc(), Trip.id.desc())
        if status:
            query = query.where(Trip.status == status)
        if vehicle_id is not None:
            query = query.where(Trip.vehicle_id == vehicle_id)
        if driver_id is not None:
            query = query.where(Trip.driver_id == driver_id)
        return await self._page(query, offset, limit)

    async def totals_for_vehicle(self, vehicle_id: int) -> Dict[str, float]:
        result = await self.session.execute(
            select(
                func.coalesce(func.sum(Trip.revenue_generated), 0),
                func.coalesce(func.sum(Trip.distance_km), 0),
            ).where(Trip.vehicle_id == vehicle_id)
        )
        revenue, distance = result.one()
        return {"revenue": float(revenue), "distance_km": float(distance)}


class SqlAlchemyMaintenanceRepository(SqlAlchemyRepository, AbstractMaintenanceRepository):
    model = Maintenance

    async def get(self, log_id: int) -> Optional[Maintenance]:
        return await self.session.get(Maintenance, log_id)

    async def add(self, log: Maintenance) -> Maintenance:
        return await self._add(log)

    async def update(self, log: Maintenance, **values) -> Maintenance:
        return await self._update(log, **values)

    async def close(self, log_id: int, completed_at: datetime) -> bool:
        return await self._compare_and_set(
            log_id, [Maintenance.completed_at.is_(None)], {"completed_at": completed_at}
        )

    async def count_open(self, vehicle_id: int, exclude_id: Optional[int] = None) -> int:
        query = select(func.count(Maintenance.id)).where(
            Maintenance.vehicle_id == vehicle_id,
            Maintenance.completed_at.is_(None)
        )
        if exclude_id is not None:
            query = query.where(Maintenance.id != exclude_id)
        return (await self.session.execute(query)).scalar()

    async def list(
        self,
        vehicle_id: Optional[int] = None,
        service_type: Optional[ServiceType] = None,
        in_shop: Optional[bool] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Page:
        query = select(Maintenance).order_by(Maintenance.service_date.desc(), Maintenance.id.desc())
        if vehicle_id is not None:
            query = query.where(Maintenance.vehicle_id == vehicle_id)
        if service_type:
            query = query.where(Maintenance.service_type == service_type)
        if in_shop is True:
            query = query.where(Maintenance.completed_at.is_(None))
        elif in_shop is False:
            query = query.where(Maintenance.completed_at.is_not(None))
        return await self._page(query, offset, limit)

    async def list_open(self) -> List[Maintenance]:
        result = await self.session.execute(
            select(Maintenance)
            .where(Maintenance.completed_at.is_(None))
            .order_by(Maintenance.service_date, Maintenance.id)
        )
        return list(result.scalars().all())

    async def total_cost_for_vehicle(self, vehicle_id: int) -> float:
        result = await self.session.execute(
            select(func.coalesce(func.sum(Maintenance.cost), 0))
            .where(Maintenance.vehicle_id == vehicle_id)
        )
        return float(result.scalar())


class SqlAlchemyFuelLogRepository(SqlAlchemyRepository, AbstractFuelLogRepository):
    model = FuelLog

    async def get(self, log_id: int) -> Optional[FuelLog]:
        return await self.session.get(FuelLog, log_id)

    async def add(self, log: FuelLog) -> FuelLog:
        return await self._add(log)

    async def latest_for_vehicle(self, vehicle_id: int) -> Optional[FuelLog]:
        result = await self.session.execute(
            select(FuelLog)
            .where(FuelLog.vehicle_id == vehicle_id)
            .order_by(FuelLog.odometer_km.desc(), FuelLog.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_vehicle(self, vehicle_id: int) -> List[FuelLog]:
        result = await self.session.execute(
            select(FuelLog)
            .where(FuelLog.vehicle_id == vehicle_id)
            .order_by(FuelLog.odometer_km, FuelLog.id)
        )
        return list(result.scalars().all())

    async def totals_for_vehicle(self, vehicle_id: int) -> Dict[str, float]:
        result = await self.session.execute(
            select(
                func.coalesce(func.sum(FuelLog.total_cost), 0),
                func.coalesce(func.sum(FuelLog.liters), 0),
            ).where(FuelLog.vehicle_id == vehicle_id)
        )
        total_cost, liters = result.one()
        return {"total_cost": float(total_cost), "liters": float(liters)}

    async def list(
        self,
        vehicle_id: Optional[int] = None,
        trip_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Page:
        query = select(FuelLog).order_by(FuelLog.logged_at.desc(), FuelLog.id.desc())
        if vehicle_id is not None:
            query = query.where(FuelLog.vehicle_id == vehicle_id)
        if trip_id is not None:
            query = query.where(FuelLog.trip_id == trip_id)
        return await self._page(query, offset, limit)


class SqlAlchemyAuditRepository(SqlAlchemyRepository, AbstractAuditRepository):
    model = AuditLog

    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        actor_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        return await log_event(
            self.session,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            metadata=metadata,
        )

    async def list_for(self, entity_type: str, entity_id: int) -> List[AuditLog]:
        return await get_audit_trail(self.session, entity_type=entity_type, entity_id=entity_id)
