"""
Vehicle registry service.

Registration, edits, retirement and the per-vehicle history view. Status
is never edited directly here: it moves only through trip and maintenance
leases, or to RETIRED via `retire`.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fleetflow.app.core.exceptions import (
    OdometerRegression,
    VehicleInShop,
    VehicleNotFound,
    VehicleOnTrip,
)
from fleetflow.app.domain.dispatch.ports import UnitOfWorkService
from fleetflow.app.domain.dispatch.rules import round2, vehicle_roi
from fleetflow.app.models.fleet_enums import VehicleStatus, VehicleType
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.schemas.vehicle import VehicleCreate, VehicleUpdate
from fleetflow.app.services.audit import AuditAction

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


class VehicleRegistry(UnitOfWorkService):

    async def register(self, data: VehicleCreate, actor_id: Optional[int] = None) -> Vehicle:
        async with self.uow:
            vehicle = Vehicle(
                **data.model_dump(),
                status=VehicleStatus.AVAILABLE,
                is_active=True,
            )
            vehicle = await self.uow.vehicles.add(vehicle)
            await self.uow.audit.record(
                AuditAction.VEHICLE_REGISTERED, "vehicle", vehicle.id, actor_id=actor_id,
                metadata={"license_plate": vehicle.license_plate},
            )
            await self.uow.commit()

        logger.info("Vehicle %s registered as %s", vehicle.id, vehicle.license_plate)
        return vehicle

    async def update(self, vehicle_id: int, data: VehicleUpdate, actor_id: Optional[int] = None) -> Vehicle:
        async with self.uow:
            vehicle = await self.uow.vehicles.get_active(vehicle_id, for_update=True)
            if vehicle is None:
                raise VehicleNotFound(vehicle_id)

            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            odometer_km = changes.pop("odometer_km", None)
            if odometer_km is not None:
                # Fuel logs and trip completions advance the same column
                if not await self.uow.vehicles.advance_odometer(vehicle.id, odometer_km):
                    raise OdometerRegression(odometer_km, vehicle.odometer_km)

            if changes:
                vehicle = await self.uow.vehicles.update(vehicle, **changes)
            await self.uow.audit.record(
                AuditAction.VEHICLE_UPDATED, "vehicle", vehicle.id, actor_id=actor_id,
                metadata={"fields": sorted(data.model_dump(exclude_unset=True, exclude_none=True))},
            )
            await self.uow.commit()
        return vehicle

    async def retire(self, vehicle_id: int, actor_id: Optional[int] = None) -> Vehicle:
        """
        Permanently take a vehicle out of service.

        A vehicle on a trip or with open maintenance must be released first.
        """
        async with self.uow:
            vehicle = await self.uow.vehicles.get_active(vehicle_id)
            if vehicle is None:
                raise VehicleNotFound(vehicle_id)
            await self._ensure_idle(vehicle)

            retired = await self.uow.vehicles.transition_status(
                vehicle.id, (VehicleStatus.AVAILABLE,), VehicleStatus.RETIRED,
                is_active=False, retired_at=self.clock(),
            )
            if not retired:
                # Leased between the read and the write; report the new holder
                await self._ensure_idle(vehicle)
                raise VehicleNotFound(vehicle.id)
            await self.uow.audit.record(
                AuditAction.VEHICLE_RETIRED, "vehicle", vehicle.id, actor_id=actor_id,
                metadata={"license_plate": vehicle.license_plate},
            )
            await self.uow.commit()

        logger.info("Vehicle %s retired", vehicle.id)
        return vehicle

    async def _ensure_idle(self, vehicle: Vehicle) -> None:
        if vehicle.status == VehicleStatus.ON_TRIP:
            raise VehicleOnTrip(vehicle.id)
        if vehicle.status == VehicleStatus.IN_SHOP:
            open_logs = await self.uow.maintenance.count_open(vehicle.id)
            raise VehicleInShop(vehicle.id, open_logs)

    async def get(self, vehicle_id: int) -> Vehicle:
        vehicle = await self.uow.vehicles.get_active(vehicle_id)
        if vehicle is None:
            raise VehicleNotFound(vehicle_id)
        return vehicle

    async def list(
        self,
        status: Optional[VehicleStatus] = None,
        vehicle_type: Optional[VehicleType] = None,
        include_inactive: bool = False,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Vehicle], int]:
        return await self.uow.vehicles.list(
            status=status,
            vehicle_type=vehicle_type,
            is_active=None if include_inactive else True,
            offset=offset,
            limit=limit,
        )

    async def list_available(self, vehicle_type: Optional[VehicleType] = None) -> List[Vehicle]:
        """Vehicles that can be put on a new trip right now."""
        return await self.uow.vehicles.list_available(vehicle_type)

    async def history(self, vehicle_id: int) -> Dict[str, Any]:
        """
        Recent trips, maintenance and fuel logs with a cost and ROI summary.

        The lists hold the newest `HISTORY_LIMIT` rows; the summary covers
        the vehicle's whole history.
        """
        vehicle = await self.get(vehicle_id)

        trips, trip_count = await self.uow.trips.list(vehicle_id=vehicle.id, limit=HISTORY_LIMIT)
        maintenance_logs, _ = await self.uow.maintenance.list(vehicle_id=vehicle.id, limit=HISTORY_LIMIT)
        fuel_logs, _ = await self.uow.fuel_logs.list(vehicle_id=vehicle.id, limit=HISTORY_LIMIT)

        trip_totals = await self.uow.trips.totals_for_vehicle(vehicle.id)
        maintenance_cost = await self.uow.maintenance.total_cost_for_vehicle(vehicle.id)
        fuel_totals = await self.uow.fuel_logs.totals_for_vehicle(vehicle.id)
        revenue = trip_totals["revenue"]
        fuel_cost = fuel_totals["total_cost"]

        return {
            "vehicle": vehicle,
            "trips": trips,
            "maintenance_logs": maintenance_logs,
            "fuel_logs": fuel_logs,
            "summary": {
                "total_trips": trip_count,
                "total_distance_km": round2(trip_totals["distance_km"]),
                "total_revenue": round2(revenue),
                "total_maintenance_cost": round2(maintenance_cost),
                "total_fuel_cost": round2(fuel_cost),
                "total_fuel_liters": round2(fuel_totals["liters"]),
                "total_operational_cost": round2(maintenance_cost + fuel_cost),
                "roi_percent": vehicle_roi(revenue, maintenance_cost, fuel_cost, vehicle.acquisition_cost),
            },
        }
