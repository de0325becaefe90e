"""
Fleet-related enumerations.
"""

import enum


class VehicleType(str, enum.Enum):
    """Vehicle type taxonomy, shared with driver license categories."""
    TRUCK = "TRUCK"
    VAN = "VAN"
    BIKE = "BIKE"


# A driver's license category uses the same taxonomy as vehicle types
LicenseCategory = VehicleType


class VehicleStatus(str, enum.Enum):
    """Vehicle availability status."""
    AVAILABLE = "AVAILABLE"  # Free to be dispatched or serviced
    ON_TRIP = "ON_TRIP"  # Leased by a DISPATCHED / IN_TRANSIT trip
    IN_SHOP = "IN_SHOP"  # Leased by one or more open maintenance logs
    RETIRED = "RETIRED"  # Out of service for good


class DriverStatus(str, enum.Enum):
    """Driver duty status."""
    ON_DUTY = "ON_DUTY"  # Available for dispatch
    OFF_DUTY = "OFF_DUTY"
    SUSPENDED = "SUSPENDED"  # Never assignable; must go through OFF_DUTY to return
    ON_TRIP = "ON_TRIP"  # Lease marker, set only by dispatch


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    DRAFT = "DRAFT"  # Planned, no resources leased
    DISPATCHED = "DISPATCHED"  # Vehicle and driver leased
    IN_TRANSIT = "IN_TRANSIT"  # On the road
    COMPLETED = "COMPLETED"  # Delivered, resources released
    CANCELLED = "CANCELLED"  # Abandoned, resources released if they were leased


class ServiceType(str, enum.Enum):
    """Maintenance service type."""
    OIL_CHANGE = "OIL_CHANGE"
    TIRE_ROTATION = "TIRE_ROTATION"
    BRAKE_SERVICE = "BRAKE_SERVICE"
    ENGINE_REPAIR = "ENGINE_REPAIR"
    ELECTRICAL = "ELECTRICAL"
    BODY_WORK = "BODY_WORK"
    INSPECTION = "INSPECTION"
    OTHER = "OTHER"


class LicenseStatus(str, enum.Enum):
    """Derived license validity."""
    VALID = "VALID"
    EXPIRING_SOON = "EXPIRING_SOON"
    EXPIRED = "EXPIRED"
