"""
Maintenance Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List

from fleetflow.app.models.fleet_enums import ServiceType


class MaintenanceCreate(BaseModel):
    """Schema for opening a maintenance log (puts the vehicle in the shop)."""
    vehicle_id: int
    service_type: ServiceType
    description: str = Field(..., min_length=1)
    cost: float = Field(0, ge=0)
    vendor: Optional[str] = Field(None, max_length=200)
    service_date: date
    odometer_at_service: Optional[float] = Field(None, ge=0, description="Defaults to the vehicle's current odometer")


class MaintenanceUpdate(BaseModel):
    """Schema for editing an open maintenance log."""
    service_type: Optional[ServiceType] = None
    description: Optional[str] = Field(None, min_length=1)
    cost: Optional[float] = Field(None, ge=0)
    vendor: Optional[str] = Field(None, max_length=200)
    service_date: Optional[date] = None
    odometer_at_service: Optional[float] = Field(None, ge=0)


class MaintenanceResponse(BaseModel):
    id: int
    vehicle_id: int
    logged_by_id: Optional[int]
    service_type: ServiceType
    description: str
    cost: float
    vendor: Optional[str]
    service_date: date
    odometer_at_service: Optional[float]
    completed_at: Optional[datetime]
    is_open: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MaintenanceListResponse(BaseModel):
    logs: List[MaintenanceResponse]
    total: int
    page: int
    page_size: int


class MaintenanceCompleteResponse(BaseModel):
    """Result of completing a log: the vehicle returns to service only when the last open log closes."""
    log: MaintenanceResponse
    vehicle_restored: bool
    remaining_open_logs: int
