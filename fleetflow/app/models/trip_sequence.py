"""
Named counters used to allocate human-readable numbers.

Trip numbers come from here instead of counting existing rows, so two
concurrent creations can never format the same number.
"""

from sqlalchemy import Column, Integer, String
from fleetflow.app.db.session import Base


class TripNumberSequence(Base):
    __tablename__ = "trip_number_sequences"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<TripNumberSequence(name='{self.name}', value={self.value})>"
