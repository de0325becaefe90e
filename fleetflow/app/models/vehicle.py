"""
Vehicle database model.

Vehicles are long-lived resources leased by trips and maintenance logs.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Enum, Text
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base
from fleetflow.app.models.fleet_enums import VehicleType, VehicleStatus


class Vehicle(Base):
    """
    Vehicle model.

    `status` names the current lease holder kind: ON_TRIP while a trip is
    DISPATCHED or IN_TRANSIT, IN_SHOP while any maintenance log is open.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identification
    license_plate = Column(String(20), unique=True, nullable=False, index=True)
    make = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    vehicle_type = Column(Enum(VehicleType), nullable=False, index=True)

    # Capacity and running figures
    max_capacity_kg = Column(Float, nullable=False)
    odometer_km = Column(Float, default=0, nullable=False)
    acquisition_cost = Column(Float, nullable=False)

    # Availability
    status = Column(Enum(VehicleStatus), default=VehicleStatus.AVAILABLE, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    retired_at = Column(DateTime(timezone=True), nullable=True)

    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.license_plate}', status='{self.status.value}')>"
