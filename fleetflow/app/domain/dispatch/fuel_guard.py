"""
Fuel/Odometer Consistency Guard.

A fill-up may never move a vehicle's odometer backwards, and a referenced
trip must belong to the same vehicle. Total cost is always computed here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from fleetflow.app.core.exceptions import (
    FuelLogNotFound,
    OdometerRegression,
    TripNotFound,
    TripVehicleMismatch,
    VehicleNotFound,
)
from fleetflow.app.domain.dispatch.ports import UnitOfWorkService
from fleetflow.app.domain.dispatch.rules import fuel_efficiency, round2
from fleetflow.app.models.fuel_log import FuelLog
from fleetflow.app.schemas.fuel_log import FuelLogCreate
from fleetflow.app.services.audit import AuditAction

logger = logging.getLogger(__name__)


@dataclass
class FuelRecord:
    log: FuelLog
    fuel_efficiency: Optional[float]


class FuelConsistencyGuard(UnitOfWorkService):

    async def record(self, data: FuelLogCreate, actor_id: Optional[int] = None) -> FuelRecord:
        async with self.uow:
            vehicle = await self.uow.vehicles.get_active(data.vehicle_id, for_update=True)
            if vehicle is None:
                raise VehicleNotFound(data.vehicle_id)
            if data.odometer_km < vehicle.odometer_km:
                raise OdometerRegression(data.odometer_km, vehicle.odometer_km)

            if data.trip_id is not None:
                trip = await self.uow.trips.get(data.trip_id)
                if trip is None:
                    raise TripNotFound(data.trip_id)
                if trip.vehicle_id != vehicle.id:
                    raise TripVehicleMismatch(trip.vehicle_id, vehicle.id)

            previous = await self.uow.fuel_logs.latest_for_vehicle(vehicle.id)

            log = FuelLog(
                vehicle_id=vehicle.id,
                trip_id=data.trip_id,
                liters=data.liters,
                cost_per_liter=data.cost_per_liter,
                total_cost=round2(data.liters * data.cost_per_liter),
                odometer_km=data.odometer_km,
                driver_name=data.driver_name,
                notes=data.notes,
                logged_at=data.logged_at or self.clock(),
            )
            log = await self.uow.fuel_logs.add(log)
            if not await self.uow.vehicles.advance_odometer(vehicle.id, data.odometer_km):
                raise OdometerRegression(data.odometer_km, vehicle.odometer_km)
            await self.uow.audit.record(
                AuditAction.FUEL_LOGGED, "fuel_log", log.id, actor_id=actor_id,
                metadata={"vehicle_id": vehicle.id, "odometer_km": data.odometer_km, "total_cost": log.total_cost},
            )
            await self.uow.commit()

        efficiency = None
        if previous is not None:
            efficiency = fuel_efficiency(previous.odometer_km, log.odometer_km, log.liters)

        logger.info("Fuel log %s recorded for vehicle %s at %s km", log.id, log.vehicle_id, log.odometer_km)
        return FuelRecord(log=log, fuel_efficiency=efficiency)

    async def get(self, log_id: int) -> FuelLog:
        log = await self.uow.fuel_logs.get(log_id)
        if log is None:
            raise FuelLogNotFound(log_id)
        return log

    async def list(
        self,
        vehicle_id: Optional[int] = None,
        trip_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[FuelLog], int]:
        return await self.uow.fuel_logs.list(vehicle_id=vehicle_id, trip_id=trip_id, offset=offset, limit=limit)

    async def vehicle_summary(self, vehicle_id: int) -> Dict[str, Any]:
        """
        Fuel totals for one vehicle.

        Average efficiency spans the first to the last reading; it is None
        until the vehicle has covered distance between two fill-ups.
        """
        vehicle = await self.uow.vehicles.get(vehicle_id)
        if vehicle is None:
            raise VehicleNotFound(vehicle_id)

        logs = await self.uow.fuel_logs.list_for_vehicle(vehicle_id)
        total_liters = sum(log.liters for log in logs)
        total_cost = sum(log.total_cost for log in logs)
        distance = logs[-1].odometer_km - logs[0].odometer_km if logs else 0

        average = None
        if total_liters > 0 and distance > 0:
            average = round2(distance / total_liters)

        return {
            "vehicle_id": vehicle_id,
            "fill_ups": len(logs),
            "total_liters": round2(total_liters),
            "total_cost": round2(total_cost),
            "distance_km": round2(distance),
            "average_efficiency": average,
        }
