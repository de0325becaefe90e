"""
Fuel log database model.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Text
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base


class FuelLog(Base):
    """
    Fuel log model.

    `total_cost` is always computed server-side from liters and unit price.
    """
    __tablename__ = "fuel_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=True, index=True)

    liters = Column(Float, nullable=False)
    cost_per_liter = Column(Float, nullable=False)
    total_cost = Column(Float, nullable=False)
    odometer_km = Column(Float, nullable=False, index=True)

    driver_name = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    logged_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<FuelLog(id={self.id}, vehicle_id={self.vehicle_id}, odometer_km={self.odometer_km})>"
