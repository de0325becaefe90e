"""
Driver roster service.

Registration, duty status changes, safety incidents and soft deletion.
ON_TRIP is a lease marker owned by the trip state machine: it can be
neither set nor cleared from here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from fleetflow.app.core.config import settings
from fleetflow.app.core.exceptions import (
    DriverNotFound,
    DriverOnTrip,
    InvalidDriverStatusTransition,
    LicenseExpired,
    SuspensionReasonRequired,
)
from fleetflow.app.domain.dispatch.ports import UnitOfWorkService
from fleetflow.app.domain.dispatch.rules import (
    apply_incident,
    completion_rate,
    is_license_expired,
    license_status,
    safety_penalty,
)
from fleetflow.app.models.driver import Driver
from fleetflow.app.models.driver_incident import DriverIncident
from fleetflow.app.models.fleet_enums import DriverStatus, LicenseCategory
from fleetflow.app.schemas.driver import DriverCreate, DriverUpdate, IncidentCreate
from fleetflow.app.services.audit import AuditAction

logger = logging.getLogger(__name__)

# Statuses a dispatcher may set by hand
MANUAL_STATUSES = frozenset({DriverStatus.ON_DUTY, DriverStatus.OFF_DUTY, DriverStatus.SUSPENDED})


@dataclass
class IncidentOutcome:
    incident: DriverIncident
    new_safety_score: float
    penalty_applied: int


class DriverRoster(UnitOfWorkService):

    def profile(self, driver: Driver) -> Dict[str, Any]:
        """Column values plus license status and completion rate."""
        data = {column.key: getattr(driver, column.key) for column in Driver.__table__.columns}
        data["license_status"] = license_status(
            driver.license_expiry_date, self.clock(), settings.license_expiry_warning_days
        )
        data["completion_rate"] = completion_rate(driver.completed_trips, driver.total_trips)
        return data

    async def register(self, data: DriverCreate, actor_id: Optional[int] = None) -> Driver:
        if data.status not in (DriverStatus.ON_DUTY, DriverStatus.OFF_DUTY):
            raise InvalidDriverStatusTransition(
                None, data.status, "New drivers start ON_DUTY or OFF_DUTY"
            )
        if is_license_expired(data.license_expiry_date, self.clock()):
            raise LicenseExpired(None, data.license_expiry_date)

        async with self.uow:
            driver = Driver(
                **data.model_dump(),
                safety_score=100,
                total_trips=0,
                completed_trips=0,
                is_active=True,
            )
            driver = await self.uow.drivers.add(driver)
            await self.uow.audit.record(
                AuditAction.DRIVER_REGISTERED, "driver", driver.id, actor_id=actor_id,
                metadata={"license_number": driver.license_number},
            )
            await self.uow.commit()

        logger.info("Driver %s registered (%s)", driver.id, driver.license_number)
        return driver

    async def update(self, driver_id: int, data: DriverUpdate, actor_id: Optional[int] = None) -> Driver:
        async with self.uow:
            driver = await self._get_active(driver_id)
            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            driver = await self.uow.drivers.update(driver, **changes)
            await self.uow.audit.record(
                AuditAction.DRIVER_UPDATED, "driver", driver.id, actor_id=actor_id,
                metadata={"fields": sorted(changes)},
            )
            await self.uow.commit()
        return driver

    async def change_status(
        self,
        driver_id: int,
        status: DriverStatus,
        suspended_reason: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Driver:
        """
        Set a driver's duty status.

        Rules:
        - ON_TRIP is never set or left by hand
        - SUSPENDED must go through OFF_DUTY before ON_DUTY
        - suspending needs a reason; leaving SUSPENDED clears it
        """
        status = DriverStatus(status)
        async with self.uow:
            driver = await self._get_active(driver_id)
            current = DriverStatus(driver.status)

            if status not in MANUAL_STATUSES:
                raise InvalidDriverStatusTransition(
                    current, status, "ON_TRIP is set by dispatching a trip"
                )
            if current == DriverStatus.ON_TRIP:
                raise DriverOnTrip(driver.id)
            if current == DriverStatus.SUSPENDED and status == DriverStatus.ON_DUTY:
                raise InvalidDriverStatusTransition(
                    current, status,
                    "A suspended driver must be set to OFF_DUTY before being placed ON_DUTY",
                )

            reason = (suspended_reason or "").strip()
            if status == DriverStatus.SUSPENDED and not reason:
                raise SuspensionReasonRequired()

            changed = await self.uow.drivers.transition_status(
                driver.id, (current,), status,
                suspended_reason=reason if status == DriverStatus.SUSPENDED else None,
            )
            if not changed:
                # Only a dispatch can move the row under us
                raise DriverOnTrip(driver.id)
            await self.uow.audit.record(
                AuditAction.DRIVER_STATUS_CHANGED, "driver", driver.id, actor_id=actor_id,
                metadata={"from": current.value, "to": status.value},
            )
            await self.uow.commit()

        logger.info("Driver %s status %s -> %s", driver.id, current.value, status.value)
        return driver

    async def log_incident(self, driver_id: int, data: IncidentCreate, actor_id: Optional[int] = None) -> IncidentOutcome:
        """Record an incident and lower the safety score in the same commit."""
        async with self.uow:
            driver = await self._get_active(driver_id, for_update=True)
            penalty = safety_penalty(data.severity)
            new_score = apply_incident(driver.safety_score, data.severity)

            incident = await self.uow.incidents.add(DriverIncident(
                driver_id=driver.id,
                trip_id=data.trip_id,
                description=data.description,
                severity=data.severity,
                penalty_applied=penalty,
                reported_by=data.reported_by,
            ))
            await self.uow.drivers.update(driver, safety_score=new_score)
            await self.uow.audit.record(
                AuditAction.INCIDENT_LOGGED, "driver", driver.id, actor_id=actor_id,
                metadata={"incident_id": incident.id, "severity": data.severity, "penalty": penalty},
            )
            await self.uow.commit()

        logger.info("Incident %s logged for driver %s, safety score now %s", incident.id, driver.id, new_score)
        return IncidentOutcome(incident=incident, new_safety_score=new_score, penalty_applied=penalty)

    async def deactivate(self, driver_id: int, actor_id: Optional[int] = None) -> None:
        """Soft delete. A driver holding a trip lease stays until the trip ends."""
        async with self.uow:
            driver = await self._get_active(driver_id)
            current = DriverStatus(driver.status)
            if current == DriverStatus.ON_TRIP:
                raise DriverOnTrip(driver.id)

            changed = await self.uow.drivers.transition_status(
                driver.id, (current,), DriverStatus.OFF_DUTY, is_active=False
            )
            if not changed:
                raise DriverOnTrip(driver.id)
            await self.uow.audit.record(AuditAction.DRIVER_DEACTIVATED, "driver", driver.id, actor_id=actor_id)
            await self.uow.commit()

        logger.info("Driver %s deactivated", driver_id)

    async def _get_active(self, driver_id: int, for_update: bool = False) -> Driver:
        driver = await self.uow.drivers.get_active(driver_id, for_update=for_update)
        if driver is None:
            raise DriverNotFound(driver_id)
        return driver

    async def get(self, driver_id: int) -> Driver:
        return await self._get_active(driver_id)

    async def list(
        self,
        status: Optional[DriverStatus] = None,
        license_category: Optional[LicenseCategory] = None,
        include_inactive: bool = False,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Driver], int]:
        return await self.uow.drivers.list(
            status=status,
            license_category=license_category,
            is_active=None if include_inactive else True,
            offset=offset,
            limit=limit,
        )

    async def list_available(self, license_category: Optional[LicenseCategory] = None) -> List[Driver]:
        """ON_DUTY drivers whose license is still valid today."""
        return await self.uow.drivers.list_available(self.clock().date(), license_category)

    async def incidents(self, driver_id: int) -> List[DriverIncident]:
        driver = await self._get_active(driver_id)
        return await self.uow.incidents.list_for_driver(driver.id)
