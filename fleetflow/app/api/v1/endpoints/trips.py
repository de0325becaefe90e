"""
Trip Dispatch API Endpoints.

Thin HTTP layer over the trip state machine: shape validation happens in
the schemas, every business rule in the domain.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path

from fleetflow.app.core.config import settings
from fleetflow.app.core.dependencies import get_current_user, get_unit_of_work
from fleetflow.app.domain.dispatch.ports import AbstractUnitOfWork
from fleetflow.app.domain.dispatch.trip_state_machine import TripStateMachine
from fleetflow.app.models.fleet_enums import TripStatus
from fleetflow.app.schemas.trip import TripCreate, TripStatusUpdate, TripResponse, TripListResponse

router = APIRouter(prefix="/trips", tags=["Trips"])


def get_trip_state_machine(uow: AbstractUnitOfWork = Depends(get_unit_of_work)) -> TripStateMachine:
    return TripStateMachine(uow)


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    current_user: dict = Depends(get_current_user),
    machine: TripStateMachine = Depends(get_trip_state_machine)
):
    """
    Create a DRAFT trip.

    The vehicle and driver are checked but not reserved until dispatch.
    """
    trip = await machine.create(trip_data, requester_id=current_user["user_id"])
    return TripResponse.model_validate(trip)


@router.get("", response_model=TripListResponse)
async def list_trips(
    status_filter: Optional[TripStatus] = Query(None, alias="status"),
    vehicle_id: Optional[int] = Query(None),
    driver_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    machine: TripStateMachine = Depends(get_trip_state_machine)
):
    """List trips, newest first."""
    trips, total = await machine.list(
        status=status_filter,
        vehicle_id=vehicle_id,
        driver_id=driver_id,
        offset=(page - 1) * page_size,
        limit=page_size,
    )
    return TripListResponse(
        trips=[TripResponse.model_validate(trip) for trip in trips],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    machine: TripStateMachine = Depends(get_trip_state_machine)
):
    trip = await machine.get(trip_id)
    return TripResponse.model_validate(trip)


@router.patch("/{trip_id}/status", response_model=TripResponse)
async def update_trip_status(
    update: TripStatusUpdate,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    machine: TripStateMachine = Depends(get_trip_state_machine)
):
    """
    Move a trip through its lifecycle.

    - DISPATCHED: reserves vehicle and driver
    - IN_TRANSIT: status only
    - COMPLETED: needs `odometer_end`; frees vehicle and driver
    - CANCELLED: needs `cancellation_reason`; frees them if they were reserved
    """
    trip = await machine.transition(
        trip_id,
        update.status,
        odometer_end=update.odometer_end,
        cancellation_reason=update.cancellation_reason,
        revenue_generated=update.revenue_generated,
        actor_id=current_user["user_id"],
    )
    return TripResponse.model_validate(trip)
