"""
Trip database model.

Trips are created in DRAFT and only ever mutated through validated status
transitions. They are never deleted.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum, Text
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base
from fleetflow.app.models.fleet_enums import TripStatus


class Trip(Base):
    """
    Trip model.

    A trip references exactly one vehicle and one driver. While DISPATCHED
    or IN_TRANSIT it is the lease holder of both.
    """
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    trip_number = Column(String(20), unique=True, nullable=False, index=True)

    # Status
    status = Column(Enum(TripStatus), default=TripStatus.DRAFT, nullable=False, index=True)

    # Resource assignment
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)

    # Caller identity from the auth service (no local users table)
    created_by_id = Column(Integer, nullable=True, index=True)

    # Route
    origin = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)
    distance_km = Column(Float, nullable=True)

    # Cargo
    cargo_weight_kg = Column(Float, nullable=False)
    cargo_description = Column(Text, nullable=True)

    # Financials
    estimated_fuel_cost = Column(Float, nullable=True)
    revenue_generated = Column(Float, nullable=True)

    # Odometer
    odometer_start = Column(Float, nullable=True)
    odometer_end = Column(Float, nullable=True)

    cancellation_reason = Column(Text, nullable=True)

    # Timestamps
    dispatched_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Trip(id={self.id}, number='{self.trip_number}', status='{self.status.value}')>"
