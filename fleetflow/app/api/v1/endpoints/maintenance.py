"""
Maintenance API Endpoints.

Opening a log sends the vehicle to the shop; completing the last open log
brings it back.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query, Path

from fleetflow.app.core.config import settings
from fleetflow.app.core.dependencies import get_current_user, get_unit_of_work
from fleetflow.app.domain.dispatch.maintenance_tracker import MaintenanceLeaseTracker
from fleetflow.app.domain.dispatch.ports import AbstractUnitOfWork
from fleetflow.app.models.fleet_enums import ServiceType
from fleetflow.app.schemas.maintenance import (
    MaintenanceCreate, MaintenanceUpdate, MaintenanceResponse,
    MaintenanceListResponse, MaintenanceCompleteResponse
)

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


def get_maintenance_tracker(uow: AbstractUnitOfWork = Depends(get_unit_of_work)) -> MaintenanceLeaseTracker:
    return MaintenanceLeaseTracker(uow)


@router.post("", response_model=MaintenanceResponse, status_code=status.HTTP_201_CREATED)
async def open_maintenance(
    log_data: MaintenanceCreate,
    current_user: dict = Depends(get_current_user),
    tracker: MaintenanceLeaseTracker = Depends(get_maintenance_tracker)
):
    log = await tracker.open(log_data, logged_by_id=current_user["user_id"])
    return MaintenanceResponse.model_validate(log)


@router.get("", response_model=MaintenanceListResponse)
async def list_maintenance(
    vehicle_id: Optional[int] = Query(None),
    service_type: Optional[ServiceType] = Query(None),
    in_shop: Optional[bool] = Query(None, description="true = open logs only, false = completed only"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    tracker: MaintenanceLeaseTracker = Depends(get_maintenance_tracker)
):
    logs, total = await tracker.list(
        vehicle_id=vehicle_id,
        service_type=service_type,
        in_shop=in_shop,
        offset=(page - 1) * page_size,
        limit=page_size,
    )
    return MaintenanceListResponse(
        logs=[MaintenanceResponse.model_validate(log) for log in logs],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/open", response_model=List[MaintenanceResponse])
async def list_open_maintenance(
    current_user: dict = Depends(get_current_user),
    tracker: MaintenanceLeaseTracker = Depends(get_maintenance_tracker)
):
    """Open logs, oldest service date first."""
    logs = await tracker.list_open()
    return [MaintenanceResponse.model_validate(log) for log in logs]


@router.get("/{log_id}", response_model=MaintenanceResponse)
async def get_maintenance(
    log_id: int = Path(..., description="Maintenance log ID"),
    current_user: dict = Depends(get_current_user),
    tracker: MaintenanceLeaseTracker = Depends(get_maintenance_tracker)
):
    log = await tracker.get(log_id)
    return MaintenanceResponse.model_validate(log)


@router.patch("/{log_id}", response_model=MaintenanceResponse)
async def update_maintenance(
    log_data: MaintenanceUpdate,
    log_id: int = Path(..., description="Maintenance log ID"),
    current_user: dict = Depends(get_current_user),
    tracker: MaintenanceLeaseTracker = Depends(get_maintenance_tracker)
):
    log = await tracker.update(log_id, log_data, actor_id=current_user["user_id"])
    return MaintenanceResponse.model_validate(log)


@router.post("/{log_id}/complete", response_model=MaintenanceCompleteResponse)
async def complete_maintenance(
    log_id: int = Path(..., description="Maintenance log ID"),
    current_user: dict = Depends(get_current_user),
    tracker: MaintenanceLeaseTracker = Depends(get_maintenance_tracker)
):
    result = await tracker.complete(log_id, actor_id=current_user["user_id"])
    return MaintenanceCompleteResponse(
        log=MaintenanceResponse.model_validate(result.log),
        vehicle_restored=result.vehicle_restored,
        remaining_open_logs=result.remaining_open_logs
    )
