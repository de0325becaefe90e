"""
Fuel Log API Endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path

from fleetflow.app.core.config import settings
from fleetflow.app.core.dependencies import get_current_user, get_unit_of_work
from fleetflow.app.domain.dispatch.fuel_guard import FuelConsistencyGuard
from fleetflow.app.domain.dispatch.ports import AbstractUnitOfWork
from fleetflow.app.schemas.fuel_log import (
    FuelLogCreate, FuelLogResponse, FuelLogRecordedResponse, FuelLogListResponse, VehicleFuelSummary
)

router = APIRouter(prefix="/fuel-logs", tags=["Fuel Logs"])


def get_fuel_guard(uow: AbstractUnitOfWork = Depends(get_unit_of_work)) -> FuelConsistencyGuard:
    return FuelConsistencyGuard(uow)


@router.post("", response_model=FuelLogRecordedResponse, status_code=status.HTTP_201_CREATED)
async def record_fuel(
    log_data: FuelLogCreate,
    current_user: dict = Depends(get_current_user),
    guard: FuelConsistencyGuard = Depends(get_fuel_guard)
):
    """
    Record a fill-up and advance the vehicle odometer.

    Returns km/l since the previous fill-up, or null for the first one.
    """
    result = await guard.record(log_data, actor_id=current_user["user_id"])
    return FuelLogRecordedResponse(
        log=FuelLogResponse.model_validate(result.log),
        fuel_efficiency=result.fuel_efficiency
    )


@router.get("", response_model=FuelLogListResponse)
async def list_fuel_logs(
    vehicle_id: Optional[int] = Query(None),
    trip_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    guard: FuelConsistencyGuard = Depends(get_fuel_guard)
):
    logs, total = await guard.list(
        vehicle_id=vehicle_id, trip_id=trip_id, offset=(page - 1) * page_size, limit=page_size
    )
    return FuelLogListResponse(
        logs=[FuelLogResponse.model_validate(log) for log in logs],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/vehicles/{vehicle_id}/summary", response_model=VehicleFuelSummary)
async def get_vehicle_fuel_summary(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
    guard: FuelConsistencyGuard = Depends(get_fuel_guard)
):
    summary = await guard.vehicle_summary(vehicle_id)
    return VehicleFuelSummary(**summary)


@router.get("/{log_id}", response_model=FuelLogResponse)
async def get_fuel_log(
    log_id: int = Path(..., description="Fuel log ID"),
    current_user: dict = Depends(get_current_user),
    guard: FuelConsistencyGuard = Depends(get_fuel_guard)
):
    log = await guard.get(log_id)
    return FuelLogResponse.model_validate(log)
