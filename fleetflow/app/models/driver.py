"""
Driver database model.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, Date, DateTime, Enum, Text
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base
from fleetflow.app.models.fleet_enums import LicenseCategory, DriverStatus


class Driver(Base):
    """
    Driver model.

    A SUSPENDED driver never holds a trip lease. ON_TRIP is written only by
    the dispatch transition and cleared on completion or cancellation.
    """
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identity and contact
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)

    # License
    license_number = Column(String(50), unique=True, nullable=False, index=True)
    license_category = Column(Enum(LicenseCategory), nullable=False, index=True)
    license_expiry_date = Column(Date, nullable=False)

    # Duty status
    status = Column(Enum(DriverStatus), default=DriverStatus.OFF_DUTY, nullable=False, index=True)
    suspended_reason = Column(Text, nullable=True)

    # Performance
    safety_score = Column(Float, default=100, nullable=False)
    total_trips = Column(Integer, default=0, nullable=False)
    completed_trips = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.name}', status='{self.status.value}')>"
