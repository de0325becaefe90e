"""
Trip Pydantic schemas.

Request bodies validate shape only. Cross-entity rules (capacity, license,
availability) and per-transition required fields are enforced by the
trip state machine.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from fleetflow.app.models.fleet_enums import TripStatus


class TripCreate(BaseModel):
    """Schema for creating a DRAFT trip."""
    vehicle_id: int
    driver_id: int
    origin: str = Field(..., min_length=1, max_length=200)
    destination: str = Field(..., min_length=1, max_length=200)
    cargo_weight_kg: float = Field(..., gt=0)
    cargo_description: Optional[str] = None
    estimated_fuel_cost: Optional[float] = Field(None, ge=0)
    odometer_start: Optional[float] = Field(None, ge=0, description="Defaults to the vehicle's current odometer")


class TripStatusUpdate(BaseModel):
    """
    Schema for moving a trip to a new status.

    `odometer_end` is required for COMPLETED and `cancellation_reason` for
    CANCELLED; both are checked against the target state, not here.
    """
    status: TripStatus
    odometer_end: Optional[float] = Field(None, ge=0)
    cancellation_reason: Optional[str] = Field(None, max_length=500)
    revenue_generated: Optional[float] = Field(None, ge=0)


class TripResponse(BaseModel):
    """Schema for trip response."""
    id: int
    trip_number: str
    status: TripStatus
    vehicle_id: int
    driver_id: int
    created_by_id: Optional[int]
    origin: str
    destination: str
    distance_km: Optional[float]
    cargo_weight_kg: float
    cargo_description: Optional[str]
    estimated_fuel_cost: Optional[float]
    revenue_generated: Optional[float]
    odometer_start: Optional[float]
    odometer_end: Optional[float]
    cancellation_reason: Optional[str]
    dispatched_at: Optional[datetime]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TripListResponse(BaseModel):
    """Schema for paginated trip list."""
    trips: List[TripResponse]
    total: int
    page: int
    page_size: int
