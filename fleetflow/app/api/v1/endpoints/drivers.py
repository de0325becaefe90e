"""
Driver Roster API Endpoints.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query, Path

from fleetflow.app.core.config import settings
from fleetflow.app.core.dependencies import get_current_user, get_unit_of_work
from fleetflow.app.domain.dispatch.ports import AbstractUnitOfWork
from fleetflow.app.models.fleet_enums import DriverStatus, LicenseCategory
from fleetflow.app.schemas.driver import (
    DriverCreate, DriverUpdate, DriverStatusUpdate, DriverResponse, DriverListResponse,
    IncidentCreate, IncidentResponse, IncidentLoggedResponse
)
from fleetflow.app.services.driver_roster import DriverRoster

router = APIRouter(prefix="/drivers", tags=["Drivers"])


def get_driver_roster(uow: AbstractUnitOfWork = Depends(get_unit_of_work)) -> DriverRoster:
    return DriverRoster(uow)


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def register_driver(
    driver_data: DriverCreate,
    current_user: dict = Depends(get_current_user),
    roster: DriverRoster = Depends(get_driver_roster)
):
    driver = await roster.register(driver_data, actor_id=current_user["user_id"])
    return DriverResponse(**roster.profile(driver))


@router.get("", response_model=DriverListResponse)
async def list_drivers(
    status_filter: Optional[DriverStatus] = Query(None, alias="status"),
    license_category: Optional[LicenseCategory] = Query(None),
    include_inactive: bool = Query(False),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    roster: DriverRoster = Depends(get_driver_roster)
):
    drivers, total = await roster.list(
        status=status_filter,
        license_category=license_category,
        include_inactive=include_inactive,
        offset=(page - 1) * page_size,
        limit=page_size,
    )
    return DriverListResponse(
        drivers=[DriverResponse(**roster.profile(d)) for d in drivers],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/available", response_model=List[DriverResponse])
async def list_available_drivers(
    license_category: Optional[LicenseCategory] = Query(None),
    current_user: dict = Depends(get_current_user),
    roster: DriverRoster = Depends(get_driver_roster)
):
    """ON_DUTY drivers with a valid license, best safety score first."""
    drivers = await roster.list_available(license_category)
    return [DriverResponse(**roster.profile(d)) for d in drivers]


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    roster: DriverRoster = Depends(get_driver_roster)
):
    driver = await roster.get(driver_id)
    return DriverResponse(**roster.profile(driver))


@router.patch("/{driver_id}", response_model=DriverResponse)
async def update_driver(
    driver_data: DriverUpdate,
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    roster: DriverRoster = Depends(get_driver_roster)
):
    driver = await roster.update(driver_id, driver_data, actor_id=current_user["user_id"])
    return DriverResponse(**roster.profile(driver))


@router.patch("/{driver_id}/status", response_model=DriverResponse)
async def change_driver_status(
    update: DriverStatusUpdate,
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    roster: DriverRoster = Depends(get_driver_roster)
):
    """Set ON_DUTY, OFF_DUTY or SUSPENDED (with a reason)."""
    driver = await roster.change_status(
        driver_id, update.status, update.suspended_reason, actor_id=current_user["user_id"]
    )
    return DriverResponse(**roster.profile(driver))


@router.post("/{driver_id}/incidents", response_model=IncidentLoggedResponse, status_code=status.HTTP_201_CREATED)
async def log_incident(
    incident_data: IncidentCreate,
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    roster: DriverRoster = Depends(get_driver_roster)
):
    """Record a safety incident; the driver's score drops by the severity penalty."""
    outcome = await roster.log_incident(driver_id, incident_data, actor_id=current_user["user_id"])
    return IncidentLoggedResponse(
        incident=IncidentResponse.model_validate(outcome.incident),
        new_safety_score=outcome.new_safety_score,
        penalty_applied=outcome.penalty_applied
    )


@router.get("/{driver_id}/incidents", response_model=List[IncidentResponse])
async def list_incidents(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    roster: DriverRoster = Depends(get_driver_roster)
):
    incidents = await roster.incidents(driver_id)
    return [IncidentResponse.model_validate(i) for i in incidents]


@router.delete("/{driver_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    roster: DriverRoster = Depends(get_driver_roster)
):
    """Soft delete. Refused while the driver is on a trip."""
    await roster.deactivate(driver_id, actor_id=current_user["user_id"])
