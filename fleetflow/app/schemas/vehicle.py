"""
Vehicle Pydantic schemas.

Defines request and response models for the vehicle registry.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Optional, List

from fleetflow.app.models.fleet_enums import ServiceType, TripStatus, VehicleType, VehicleStatus


class VehicleCreate(BaseModel):
    """Schema for registering a new vehicle."""
    license_plate: str = Field(..., min_length=1, max_length=20, description="Unique registration plate")
    make: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    year: int = Field(..., ge=1990, le=2100)
    vehicle_type: VehicleType

    # Capacity and running figures
    max_capacity_kg: float = Field(..., gt=0, description="Maximum cargo weight in kg")
    odometer_km: float = Field(0, ge=0, description="Current odometer reading")
    acquisition_cost: float = Field(..., ge=0)

    notes: Optional[str] = None

    @field_validator("license_plate")
    @classmethod
    def normalize_plate(cls, value: str) -> str:
        return value.strip().upper()


class VehicleUpdate(BaseModel):
    """Schema for updating a vehicle. Plate and status are not editable here."""
    make: Optional[str] = Field(None, min_length=1, max_length=50)
    model: Optional[str] = Field(None, min_length=1, max_length=50)
    year: Optional[int] = Field(None, ge=1990, le=2100)
    vehicle_type: Optional[VehicleType] = None
    max_capacity_kg: Optional[float] = Field(None, gt=0)
    odometer_km: Optional[float] = Field(None, ge=0)
    acquisition_cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class VehicleResponse(BaseModel):
    """Schema for vehicle response."""
    id: int
    license_plate: str
    make: str
    model: str
    year: int
    vehicle_type: VehicleType
    max_capacity_kg: float
    odometer_km: float
    acquisition_cost: float
    status: VehicleStatus
    is_active: bool
    retired_at: Optional[datetime]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VehicleListResponse(BaseModel):
    """Schema for paginated vehicle list."""
    vehicles: List[VehicleResponse]
    total: int
    page: int
    page_size: int


class VehicleCostSummary(BaseModel):
    total_trips: int
    total_distance_km: float
    total_revenue: float
    total_maintenance_cost: float
    total_fuel_cost: float
    total_fuel_liters: float
    total_operational_cost: float
    roi_percent: float


class VehicleTripEntry(BaseModel):
    id: int
    trip_number: str
    status: TripStatus
    origin: str
    destination: str
    distance_km: Optional[float]
    revenue_generated: Optional[float]
    created_at: datetime

    class Config:
        from_attributes = True


class VehicleMaintenanceEntry(BaseModel):
    id: int
    service_type: ServiceType
    cost: float
    service_date: date
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class VehicleFuelEntry(BaseModel):
    id: int
    liters: float
    total_cost: float
    odometer_km: float
    logged_at: datetime

    class Config:
        from_attributes = True


class VehicleHistoryResponse(BaseModel):
    """Vehicle with its recent trips, maintenance and fuel logs plus a cost summary."""
    vehicle: VehicleResponse
    trips: List[VehicleTripEntry]
    maintenance_logs: List[VehicleMaintenanceEntry]
    fuel_logs: List[VehicleFuelEntry]
    summary: VehicleCostSummary
