"""
Driver incident database model.

Incidents are append-only; each one lowers the driver's safety score.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base


class DriverIncident(Base):
    __tablename__ = "driver_incidents"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=True, index=True)

    description = Column(Text, nullable=False)
    severity = Column(Integer, nullable=False)  # 1 = minor, 5 = critical
    penalty_applied = Column(Integer, nullable=False)
    reported_by = Column(String(100), nullable=True)

    reported_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<DriverIncident(id={self.id}, driver_id={self.driver_id}, severity={self.severity})>"
