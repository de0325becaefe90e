"""
Maintenance Lease Tracker.

Opening a log puts its vehicle IN_SHOP. Several logs may be open at once;
the vehicle returns to AVAILABLE only when the last of them completes.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from fleetflow.app.core.exceptions import (
    AlreadyComplete,
    MaintenanceNotFound,
    VehicleNotFound,
    VehicleOnTrip,
    VehicleRetired,
)
from fleetflow.app.domain.dispatch import leases
from fleetflow.app.domain.dispatch.ports import UnitOfWorkService
from fleetflow.app.models.fleet_enums import ServiceType, VehicleStatus
from fleetflow.app.models.maintenance import Maintenance
from fleetflow.app.schemas.maintenance import MaintenanceCreate, MaintenanceUpdate
from fleetflow.app.services.audit import AuditAction

logger = logging.getLogger(__name__)


@dataclass
class MaintenanceCompletion:
    log: Maintenance
    vehicle_restored: bool
    remaining_open_logs: int


class MaintenanceLeaseTracker(UnitOfWorkService):

    async def open(self, data: MaintenanceCreate, logged_by_id: Optional[int] = None) -> Maintenance:
        async with self.uow:
            # Row lock keeps open/complete on one vehicle from interleaving
            vehicle = await self.uow.vehicles.get_active(data.vehicle_id, for_update=True)
            if vehicle is None:
                raise VehicleNotFound(data.vehicle_id)
            if vehicle.status == VehicleStatus.ON_TRIP:
                raise VehicleOnTrip(vehicle.id)
            if vehicle.status == VehicleStatus.RETIRED:
                raise VehicleRetired(vehicle.id)

            log = Maintenance(
                vehicle_id=vehicle.id,
                logged_by_id=logged_by_id,
                service_type=data.service_type,
                description=data.description,
                cost=data.cost,
                vendor=data.vendor,
                service_date=data.service_date,
                odometer_at_service=(
                    data.odometer_at_service if data.odometer_at_service is not None else vehicle.odometer_km
                ),
                completed_at=None,
            )
            log = await self.uow.maintenance.add(log)
            await leases.acquire_vehicle_for_service(self.uow, vehicle.id)
            await self.uow.audit.record(
                AuditAction.MAINTENANCE_OPENED, "maintenance", log.id, actor_id=logged_by_id,
                metadata={"vehicle_id": vehicle.id, "service_type": log.service_type.value},
            )
            await self.uow.commit()

        logger.info("Maintenance log %s opened, vehicle %s in shop", log.id, log.vehicle_id)
        return log

    async def complete(self, log_id: int, actor_id: Optional[int] = None) -> MaintenanceCompletion:
        async with self.uow:
            log = await self.uow.maintenance.get(log_id)
            if log is None:
                raise MaintenanceNotFound(log_id)
            if log.completed_at is not None:
                raise AlreadyComplete(log_id)

            await self.uow.vehicles.get_active(log.vehicle_id, for_update=True)
            if not await self.uow.maintenance.close(log.id, self.clock()):
                raise AlreadyComplete(log_id)

            restored, remaining = await leases.release_vehicle_from_service(
                self.uow, log.vehicle_id, exclude_log_id=log.id
            )
            await self.uow.audit.record(
                AuditAction.MAINTENANCE_COMPLETED, "maintenance", log.id, actor_id=actor_id,
                metadata={"vehicle_id": log.vehicle_id, "vehicle_restored": restored, "remaining_open_logs": remaining},
            )
            await self.uow.commit()

        logger.info(
            "Maintenance log %s completed, vehicle %s restored=%s remaining=%s",
            log.id, log.vehicle_id, restored, remaining,
        )
        return MaintenanceCompletion(log=log, vehicle_restored=restored, remaining_open_logs=remaining)

    async def update(self, log_id: int, data: MaintenanceUpdate, actor_id: Optional[int] = None) -> Maintenance:
        """Edit an open log. Closed logs are history and stay as they are."""
        async with self.uow:
            log = await self.uow.maintenance.get(log_id)
            if log is None:
                raise MaintenanceNotFound(log_id)
            if log.completed_at is not None:
                raise AlreadyComplete(log_id)

            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            log = await self.uow.maintenance.update(log, **changes)
            await self.uow.audit.record(
                AuditAction.MAINTENANCE_UPDATED, "maintenance", log.id, actor_id=actor_id,
                metadata={"fields": sorted(changes)},
            )
            await self.uow.commit()
        return log

    async def get(self, log_id: int) -> Maintenance:
        log = await self.uow.maintenance.get(log_id)
        if log is None:
            raise MaintenanceNotFound(log_id)
        return log

    async def list(
        self,
        vehicle_id: Optional[int] = None,
        service_type: Optional[ServiceType] = None,
        in_shop: Optional[bool] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Maintenance], int]:
        return await self.uow.maintenance.list(
            vehicle_id=vehicle_id, service_type=service_type, in_shop=in_shop, offset=offset, limit=limit
        )

    async def list_open(self) -> List[Maintenance]:
        return await self.uow.maintenance.list_open()
