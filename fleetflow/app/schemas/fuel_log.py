"""
Fuel log Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class FuelLogCreate(BaseModel):
    """Schema for recording a fill-up. Total cost is always computed server-side."""
    vehicle_id: int
    trip_id: Optional[int] = None
    liters: float = Field(..., gt=0)
    cost_per_liter: float = Field(..., gt=0)
    odometer_km: float = Field(..., ge=0)
    driver_name: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    logged_at: Optional[datetime] = None


class FuelLogResponse(BaseModel):
    id: int
    vehicle_id: int
    trip_id: Optional[int]
    liters: float
    cost_per_liter: float
    total_cost: float
    odometer_km: float
    driver_name: Optional[str]
    notes: Optional[str]
    logged_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class FuelLogRecordedResponse(BaseModel):
    """Recorded log plus km/l since the previous fill-up (null for the first one)."""
    log: FuelLogResponse
    fuel_efficiency: Optional[float]


class FuelLogListResponse(BaseModel):
    logs: List[FuelLogResponse]
    total: int
    page: int
    page_size: int


class VehicleFuelSummary(BaseModel):
    vehicle_id: int
    fill_ups: int
    total_liters: float
    total_cost: float
    distance_km: float
    average_efficiency: Optional[float]
