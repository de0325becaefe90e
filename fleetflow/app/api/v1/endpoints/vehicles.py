"""
Vehicle Registry API Endpoints.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query, Path

from fleetflow.app.core.config import settings
from fleetflow.app.core.dependencies import get_current_user, get_unit_of_work
from fleetflow.app.domain.dispatch.ports import AbstractUnitOfWork
from fleetflow.app.models.fleet_enums import VehicleStatus, VehicleType
from fleetflow.app.schemas.vehicle import (
    VehicleCreate, VehicleUpdate, VehicleResponse, VehicleListResponse, VehicleHistoryResponse
)
from fleetflow.app.services.vehicle_registry import VehicleRegistry

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


def get_vehicle_registry(uow: AbstractUnitOfWork = Depends(get_unit_of_work)) -> VehicleRegistry:
    return VehicleRegistry(uow)


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def register_vehicle(
    vehicle_data: VehicleCreate,
    current_user: dict = Depends(get_current_user),
    registry: VehicleRegistry = Depends(get_vehicle_registry)
):
    """Register a vehicle. It starts AVAILABLE; duplicate plates get 409."""
    vehicle = await registry.register(vehicle_data, actor_id=current_user["user_id"])
    return VehicleResponse.model_validate(vehicle)


@router.get("", response_model=VehicleListResponse)
async def list_vehicles(
    status_filter: Optional[VehicleStatus] = Query(None, alias="status"),
    vehicle_type: Optional[VehicleType] = Query(None),
    include_inactive: bool = Query(False),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    registry: VehicleRegistry = Depends(get_vehicle_registry)
):
    vehicles, total = await registry.list(
        status=status_filter,
        vehicle_type=vehicle_type,
        include_inactive=include_inactive,
        offset=(page - 1) * page_size,
        limit=page_size,
    )
    return VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(v) for v in vehicles],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/available", response_model=List[VehicleResponse])
async def list_available_vehicles(
    vehicle_type: Optional[VehicleType] = Query(None),
    current_user: dict = Depends(get_current_user),
    registry: VehicleRegistry = Depends(get_vehicle_registry)
):
    """Vehicles a dispatcher can put on a new trip."""
    vehicles = await registry.list_available(vehicle_type)
    return [VehicleResponse.model_validate(v) for v in vehicles]


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
    registry: VehicleRegistry = Depends(get_vehicle_registry)
):
    vehicle = await registry.get(vehicle_id)
    return VehicleResponse.model_validate(vehicle)


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_data: VehicleUpdate,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
    registry: VehicleRegistry = Depends(get_vehicle_registry)
):
    vehicle = await registry.update(vehicle_id, vehicle_data, actor_id=current_user["user_id"])
    return VehicleResponse.model_validate(vehicle)


@router.get("/{vehicle_id}/history", response_model=VehicleHistoryResponse)
async def get_vehicle_history(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
    registry: VehicleRegistry = Depends(get_vehicle_registry)
):
    """Recent trips, maintenance and fuel logs with a cost and ROI summary."""
    history = await registry.history(vehicle_id)
    return VehicleHistoryResponse.model_validate(history, from_attributes=True)


@router.post("/{vehicle_id}/retire", response_model=VehicleResponse)
async def retire_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
    registry: VehicleRegistry = Depends(get_vehicle_registry)
):
    """Permanently take a vehicle out of service."""
    vehicle = await registry.retire(vehicle_id, actor_id=current_user["user_id"])
    return VehicleResponse.model_validate(vehicle)
