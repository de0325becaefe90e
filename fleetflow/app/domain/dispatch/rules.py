"""
Dispatch Domain Rules.

Pure functions (no I/O) shared by the trip state machine, the maintenance
lease tracker, the fuel guard and the roster services.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, FrozenSet

from fleetflow.app.core.exceptions import InvalidTransition
from fleetflow.app.models.fleet_enums import LicenseStatus, TripStatus


# Declarative trip state machine: state -> states it may move to.
TRIP_TRANSITIONS: Dict[TripStatus, FrozenSet[TripStatus]] = {
    TripStatus.DRAFT: frozenset({TripStatus.DISPATCHED, TripStatus.CANCELLED}),
    TripStatus.DISPATCHED: frozenset({TripStatus.IN_TRANSIT, TripStatus.CANCELLED}),
    TripStatus.IN_TRANSIT: frozenset({TripStatus.COMPLETED, TripStatus.CANCELLED}),
    TripStatus.COMPLETED: frozenset(),  # terminal
    TripStatus.CANCELLED: frozenset(),  # terminal
}

# Trip states in which the trip holds the vehicle and driver leases.
LEASE_HOLDING_STATES: FrozenSet[TripStatus] = frozenset({TripStatus.DISPATCHED, TripStatus.IN_TRANSIT})

# Severity (1 = minor, 5 = critical) -> safety score penalty.
SAFETY_PENALTIES: Dict[int, int] = {1: 2, 2: 5, 3: 10, 4: 20, 5: 35}
DEFAULT_SAFETY_PENALTY = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_transition(from_status: TripStatus, to_status: TripStatus) -> bool:
    return to_status in TRIP_TRANSITIONS[from_status]


def assert_valid_transition(from_status: TripStatus, to_status: TripStatus) -> None:
    """Raise InvalidTransition unless the table allows from_status -> to_status."""
    if not is_valid_transition(from_status, to_status):
        raise InvalidTransition(from_status, to_status)


def round2(value: float) -> float:
    """Round half-up to two decimals."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def safety_penalty(severity: int) -> int:
    # Out-of-range severities are rejected upstream; fall back to the default.
    return SAFETY_PENALTIES.get(severity, DEFAULT_SAFETY_PENALTY)


def apply_incident(current_score: float, severity: int) -> float:
    """New safety score after an incident, floored at 0."""
    return max(0, current_score - safety_penalty(severity))


def vehicle_roi(revenue: float, maintenance_cost: float, fuel_cost: float, acquisition_cost: float) -> float:
    """Return on investment as a percentage of acquisition cost."""
    if acquisition_cost <= 0:
        return 0
    return round2(100 * (revenue - maintenance_cost - fuel_cost) / acquisition_cost)


def _expiry_instant(expiry: date) -> datetime:
    # A license dated D stops being valid at the start of day D (UTC).
    return datetime.combine(expiry, time.min, tzinfo=timezone.utc)


def _aware(now: datetime) -> datetime:
    return now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)


def is_license_expired(expiry: date, now: datetime) -> bool:
    return _expiry_instant(expiry) < _aware(now)


def license_status(expiry: date, now: datetime, warning_days: int = 30) -> LicenseStatus:
    """
    Classify a license expiry date.

    EXPIRED if already past, EXPIRING_SOON if it lapses within
    `warning_days`, otherwise VALID.
    """
    if is_license_expired(expiry, now):
        return LicenseStatus.EXPIRED
    if _expiry_instant(expiry) <= _aware(now) + timedelta(days=warning_days):
        return LicenseStatus.EXPIRING_SOON
    return LicenseStatus.VALID


def fuel_efficiency(previous_odometer_km: float, odometer_km: float, liters: float) -> float:
    """Kilometres per liter between two fill-ups."""
    km = odometer_km - previous_odometer_km
    if km <= 0 or liters <= 0:
        return 0
    return round2(km / liters)


def completion_rate(completed_trips: int, total_trips: int) -> float:
    if total_trips <= 0:
        return 0
    return round2(100 * completed_trips / total_trips)


def format_trip_number(sequence_value: int, prefix: str = "TRP", width: int = 5) -> str:
    """`TRP-00001` style trip number."""
    return f"{prefix}-{sequence_value:0{width}d}"
