"""
Driver Pydantic schemas.

Defines request and response models for the driver roster.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Optional, List

from fleetflow.app.models.fleet_enums import DriverStatus, LicenseCategory, LicenseStatus


class DriverCreate(BaseModel):
    """Schema for registering a new driver."""
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=5, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    license_number: str = Field(..., min_length=1, max_length=50)
    license_category: LicenseCategory
    license_expiry_date: date
    status: DriverStatus = Field(DriverStatus.OFF_DUTY, description="Initial duty status (ON_DUTY or OFF_DUTY)")

    @field_validator("license_number")
    @classmethod
    def normalize_license_number(cls, value: str) -> str:
        return value.strip().upper()


class DriverUpdate(BaseModel):
    """Schema for updating driver details. Status has its own endpoint."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=5, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    license_category: Optional[LicenseCategory] = None
    license_expiry_date: Optional[date] = None


class DriverStatusUpdate(BaseModel):
    status: DriverStatus
    suspended_reason: Optional[str] = Field(None, max_length=500)


class IncidentCreate(BaseModel):
    """Schema for logging a safety incident."""
    description: str = Field(..., min_length=1)
    severity: int = Field(..., ge=1, le=5, description="1 = minor, 5 = critical")
    trip_id: Optional[int] = None
    reported_by: Optional[str] = Field(None, max_length=100)


class DriverResponse(BaseModel):
    """Schema for driver response, enriched with derived license and performance figures."""
    id: int
    name: str
    phone: str
    email: Optional[str]
    license_number: str
    license_category: LicenseCategory
    license_expiry_date: date
    status: DriverStatus
    suspended_reason: Optional[str]
    safety_score: float
    total_trips: int
    completed_trips: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    license_status: LicenseStatus
    completion_rate: float

    class Config:
        from_attributes = True


class DriverListResponse(BaseModel):
    """Schema for paginated driver list."""
    drivers: List[DriverResponse]
    total: int
    page: int
    page_size: int


class IncidentResponse(BaseModel):
    id: int
    driver_id: int
    trip_id: Optional[int]
    description: str
    severity: int
    penalty_applied: int
    reported_by: Optional[str]
    reported_at: datetime

    class Config:
        from_attributes = True


class IncidentLoggedResponse(BaseModel):
    """Response after logging an incident."""
    incident: IncidentResponse
    new_safety_score: float
    penalty_applied: int
