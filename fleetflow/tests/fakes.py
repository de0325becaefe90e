"""
In-memory unit of work for domain tests.

A FakeStore plays the database; every FakeUnitOfWork opened on it is one
session. Writes land in the store immediately and are journaled, so a
rollback undoes exactly what that unit of work changed. Reads yield to
the event loop, which lets tests interleave concurrent operations between
a read and the conditional write that follows it.
"""

import asyncio
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from fleetflow.app.domain.dispatch.ports import (
    AbstractAuditRepository,
    AbstractDriverRepository,
    AbstractFuelLogRepository,
    AbstractIncidentRepository,
    AbstractMaintenanceRepository,
    AbstractTripRepository,
    AbstractUnitOfWork,
    AbstractVehicleRepository,
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
from fleetflow.app.models.vehicle import Vehicle

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

SERVER_TIMESTAMPS = {"created_at", "updated_at", "timestamp", "reported_at"}


def fixed_clock():
    return NOW


class FakeStore:
    """Rows by model, plus the counters a database would keep."""

    def __init__(self):
        self.tables = defaultdict(dict)
        self.next_ids = defaultdict(int)
        self.trip_sequence = 0

    def rows(self, model):
        return list(self.tables[model].values())

    def put(self, instance):
        """Insert directly, outside any unit of work (test setup)."""
        model = type(instance)
        self.next_ids[model] += 1
        instance.id = self.next_ids[model]
        for column in model.__table__.columns:
            if getattr(instance, column.key) is not None:
                continue
            if column.default is not None and column.default.is_scalar:
                setattr(instance, column.key, column.default.arg)
            elif column.key in SERVER_TIMESTAMPS:
                setattr(instance, column.key, NOW)
        self.tables[model][instance.id] = instance
        return instance

    def snapshot(self):
        """Column values of every row, for asserting nothing changed."""
        return {
            model: {
                row_id: {c.key: getattr(row, c.key) for c in model.__table__.columns}
                for row_id, row in table.items()
            }
            for model, table in self.tables.items()
            if table
        }


class FakeRepository:
    model = None

    def __init__(self, uow):
        self.uow = uow
        self.store = uow.store

    @property
    def table(self):
        return self.store.tables[self.model]

    async def _read(self, entity_id):
        await asyncio.sleep(0)
        return self.table.get(entity_id)

    async def _add(self, instance):
        self.store.put(instance)
        table = self.table
        self.uow.journal(lambda: table.pop(instance.id, None))
        return instance

    async def _update(self, instance, **values):
        previous = {field: getattr(instance, field) for field in values}

        def undo():
            for field, value in previous.items():
                setattr(instance, field, value)

        self.uow.journal(undo)
        for field, value in values.items():
            setattr(instance, field, value)
        return instance

    async def _compare_and_set(self, entity_id, condition, values):
        # No await between the check and the write: atomic on the event loop
        instance = self.table.get(entity_id)
        if instance is None or not condition(instance):
            return False
        await self._update(instance, **values)
        return True

    def _page(self, rows, offset, limit):
        return rows[offset:offset + limit], len(rows)


class FakeVehicleRepository(FakeRepository, AbstractVehicleRepository):
    model = Vehicle

    async def get(self, vehicle_id):
        return await self._read(vehicle_id)

    async def get_active(self, vehicle_id, for_update=False):
        vehicle = await self._read(vehicle_id)
        return vehicle if vehicle is not None and vehicle.is_active else None

    async def add(self, vehicle):
        return await self._add(vehicle)

    async def update(self, vehicle, **values):
        return await self._update(vehicle, **values)

    async def transition_status(self, vehicle_id, expected, new_status, **values):
        return await self._compare_and_set(
            vehicle_id,
            lambda v: expected is None or v.status in expected,
            {"status": new_status, **values},
        )

    async def advance_odometer(self, vehicle_id, odometer_km):
        return await self._compare_and_set(
            vehicle_id, lambda v: v.odometer_km <= odometer_km, {"odometer_km": odometer_km}
        )

    async def list(self, status=None, vehicle_type=None, is_active=True, offset=0, limit=50):
        rows = [
            v for v in sorted(self.table.values(), key=lambda v: v.id, reverse=True)
            if (status is None or v.status == status)
            and (vehicle_type is None or v.vehicle_type == vehicle_type)
            and (is_active is None or v.is_active == is_active)
        ]
        return self._page(rows, offset, limit)

    async def list_available(self, vehicle_type=None):
        return [
            v for v in sorted(self.table.values(), key=lambda v: v.license_plate)
            if v.status == VehicleStatus.AVAILABLE and v.is_active
            and (vehicle_type is None or v.vehicle_type == vehicle_type)
        ]


class FakeDriverRepository(FakeRepository, AbstractDriverRepository):
    model = Driver

    async def get_active(self, driver_id, for_update=False):
        driver = await self._read(driver_id)
        return driver if driver is not None and driver.is_active else None

    async def add(self, driver):
        return await self._add(driver)

    async def update(self, driver, **values):
        return await self._update(driver, **values)

    async def transition_status(self, driver_id, expected, new_status, increments=None, **values):
        instance = self.table.get(driver_id)
        if instance is not None:
            for column, delta in (increments or {}).items():
                values[column] = getattr(instance, column) + delta
        return await self._compare_and_set(
            driver_id,
            lambda d: expected is None or d.status in expected,
            {"status": new_status, **values},
        )

    async def list(self, status=None, license_category=None, is_active=True, offset=0, limit=50):
        rows = [
            d for d in sorted(self.table.values(), key=lambda d: (d.name, d.id))
            if (status is None or d.status == status)
            and (license_category is None or d.license_category == license_category)
            and (is_active is None or d.is_active == is_active)
        ]
        return self._page(rows, offset, limit)

    async def list_available(self, today, license_category=None):
        return [
            d for d in sorted(self.table.values(), key=lambda d: (-d.safety_score, d.id))
            if d.status == DriverStatus.ON_DUTY and d.is_active and d.license_expiry_date > today
            and (license_category is None or d.license_category == license_category)
        ]


class FakeIncidentRepository(FakeRepository, AbstractIncidentRepository):
    model = DriverIncident

    async def add(self, incident):
        return await self._add(incident)

    async def list_for_driver(self, driver_id):
        return [i for i in reversed(list(self.table.values())) if i.driver_id == driver_id]


class FakeTripRepository(FakeRepository, AbstractTripRepository):
    model = Trip

    async def get(self, trip_id):
        return await self._read(trip_id)

    async def add(self, trip):
        return await self._add(trip)

    async def next_number(self):
        store = self.store
        store.trip_sequence += 1

        def undo():
            store.trip_sequence -= 1

        self.uow.journal(undo)
        return store.trip_sequence

    async def transition_status(self, trip_id, expected, new_status, **values):
        return await self._compare_and_set(
            trip_id, lambda t: t.status == expected, {"status": new_status, **values}
        )

    async def list(self, status=None, vehicle_id=None, driver_id=None, offset=0, limit=50):
        rows = [
            t for t in sorted(self.table.values(), key=lambda t: t.id, reverse=True)
            if (status is None or t.status == status)
            and (vehicle_id is None or t.vehicle_id == vehicle_id)
            and (driver_id is None or t.driver_id == driver_id)
        ]
        return self._page(rows, offset, limit)

    async def totals_for_vehicle(self, vehicle_id):
        trips = [t for t in self.table.values() if t.vehicle_id == vehicle_id]
        return {
            "revenue": sum(t.revenue_generated or 0 for t in trips),
            "distance_km": sum(t.distance_km or 0 for t in trips),
        }


class FakeMaintenanceRepository(FakeRepository, AbstractMaintenanceRepository):
    model = Maintenance

    async def get(self, log_id):
        return await self._read(log_id)

    async def add(self, log):
        return await self._add(log)

    async def update(self, log, **values):
        return await self._update(log, **values)

    async def close(self, log_id, completed_at):
        return await self._compare_and_set(
            log_id, lambda m: m.completed_at is None, {"completed_at": completed_at}
        )

    async def count_open(self, vehicle_id, exclude_id=None):
        return sum(
            1 for m in self.table.values()
            if m.vehicle_id == vehicle_id and m.completed_at is None and m.id != exclude_id
        )

    async def list(self, vehicle_id=None, service_type=None, in_shop=None, offset=0, limit=50):
        rows = [
            m for m in sorted(self.table.values(), key=lambda m: (m.service_date, m.id), reverse=True)
            if (vehicle_id is None or m.vehicle_id == vehicle_id)
            and (service_type is None or m.service_type == service_type)
            and (in_shop is None or (m.completed_at is None) == in_shop)
        ]
        return self._page(rows, offset, limit)

    async def list_open(self):
        return sorted(
            (m for m in self.table.values() if m.completed_at is None),
            key=lambda m: (m.service_date, m.id),
        )

    async def total_cost_for_vehicle(self, vehicle_id):
        return sum(m.cost or 0 for m in self.table.values() if m.vehicle_id == vehicle_id)


class FakeFuelLogRepository(FakeRepository, AbstractFuelLogRepository):
    model = FuelLog

    async def get(self, log_id):
        return await self._read(log_id)

    async def add(self, log):
        return await self._add(log)

    async def latest_for_vehicle(self, vehicle_id):
        logs = await self.list_for_vehicle(vehicle_id)
        return logs[-1] if logs else None

    async def list_for_vehicle(self, vehicle_id):
        return sorted(
            (f for f in self.table.values() if f.vehicle_id == vehicle_id),
            key=lambda f: (f.odometer_km, f.id),
        )

    async def totals_for_vehicle(self, vehicle_id):
        logs = [f for f in self.table.values() if f.vehicle_id == vehicle_id]
        return {
            "total_cost": sum(f.total_cost for f in logs),
            "liters": sum(f.liters for f in logs),
        }

    async def list(self, vehicle_id=None, trip_id=None, offset=0, limit=50):
        rows = [
            f for f in sorted(self.table.values(), key=lambda f: f.id, reverse=True)
            if (vehicle_id is None or f.vehicle_id == vehicle_id)
            and (trip_id is None or f.trip_id == trip_id)
        ]
        return self._page(rows, offset, limit)


class FakeAuditRepository(FakeRepository, AbstractAuditRepository):
    model = AuditLog

    async def record(self, action, entity_type, entity_id, actor_id=None, metadata=None):
        return await self._add(AuditLog(
            action=action, entity_type=entity_type, entity_id=entity_id,
            actor_id=actor_id, meta_data=metadata,
        ))

    async def list_for(self, entity_type, entity_id):
        return [a for a in self.table.values() if a.entity_type == entity_type and a.entity_id == entity_id]


class FakeUnitOfWork(AbstractUnitOfWork):

    def __init__(self, store=None, fail_on_commit=False):
        self.store = store if store is not None else FakeStore()
        self.fail_on_commit = fail_on_commit
        self.commits = 0
        self.rollbacks = 0
        self._undo = []
        self.vehicles = FakeVehicleRepository(self)
        self.drivers = FakeDriverRepository(self)
        self.incidents = FakeIncidentRepository(self)
        self.trips = FakeTripRepository(self)
        self.maintenance = FakeMaintenanceRepository(self)
        self.fuel_logs = FakeFuelLogRepository(self)
        self.audit = FakeAuditRepository(self)

    def journal(self, undo):
        self._undo.append(undo)

    async def commit(self):
        if self.fail_on_commit:
            raise OperationalError("COMMIT", {}, ConnectionError("connection lost"))
        self._undo.clear()
        self.commits += 1

    async def rollback(self):
        if self._undo:
            self.rollbacks += 1
        while self._undo:
            self._undo.pop()()


# Test data builders

def make_vehicle(store, **overrides):
    values = dict(
        license_plate=f"FF-{store.next_ids[Vehicle] + 1:04d}",
        make="Volvo",
        model="FH16",
        year=2022,
        vehicle_type=VehicleType.TRUCK,
        max_capacity_kg=7500,
        odometer_km=12000,
        acquisition_cost=120000,
        status=VehicleStatus.AVAILABLE,
        is_active=True,
    )
    values.update(overrides)
    return store.put(Vehicle(**values))


def make_driver(store, **overrides):
    values = dict(
        name="Asha Rao",
        phone="+15550100",
        license_number=f"DL-{store.next_ids[Driver] + 1:05d}",
        license_category=LicenseCategory.TRUCK,
        license_expiry_date=date(2027, 6, 30),
        status=DriverStatus.ON_DUTY,
        safety_score=100,
        total_trips=0,
        completed_trips=0,
        is_active=True,
    )
    values.update(overrides)
    return store.put(Driver(**values))


def make_trip(store, vehicle, driver, **overrides):
    values = dict(
        trip_number=f"TRP-{store.next_ids[Trip] + 1:05d}",
        status=TripStatus.DRAFT,
        vehicle_id=vehicle.id,
        driver_id=driver.id,
        origin="Pune",
        destination="Mumbai",
        cargo_weight_kg=5000,
        odometer_start=vehicle.odometer_km,
    )
    values.update(overrides)
    return store.put(Trip(**values))


def make_open_log(store, vehicle, **overrides):
    values = dict(
        vehicle_id=vehicle.id,
        service_type=ServiceType.OIL_CHANGE,
        description="Scheduled oil change",
        cost=150,
        service_date=(NOW - timedelta(days=1)).date(),
        completed_at=None,
    )
    values.update(overrides)
    return store.put(Maintenance(**values))
