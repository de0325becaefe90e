"""
Maintenance log database model.

An open log (completed_at IS NULL) holds its vehicle IN_SHOP.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, Date, DateTime, Enum, Text
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base
from fleetflow.app.models.fleet_enums import ServiceType


class Maintenance(Base):
    __tablename__ = "maintenance_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    logged_by_id = Column(Integer, nullable=True)

    service_type = Column(Enum(ServiceType), nullable=False, index=True)
    description = Column(Text, nullable=False)
    cost = Column(Float, nullable=False, default=0)
    vendor = Column(String(200), nullable=True)
    service_date = Column(Date, nullable=False)
    odometer_at_service = Column(Float, nullable=True)

    # Null while the vehicle is still being serviced
    completed_at = Column(DateTime(timezone=True), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_open(self) -> bool:
        return self.completed_at is None

    def __repr__(self):
        return f"<Maintenance(id={self.id}, vehicle_id={self.vehicle_id}, open={self.completed_at is None})>"
