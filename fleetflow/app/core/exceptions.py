"""
Custom exceptions and error handlers for consistent error responses.

Every dispatch failure kind has its own exception class carrying a stable
error code, an HTTP status and structured details (offending value, limit,
from/to states) so callers can render a precise message.
"""

import logging
from datetime import date
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from typing import Any, Dict

logger = logging.getLogger("fleetflow.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


# Not-found

class ResourceNotFoundError(AppException):
    """Raised when requested resource is missing or soft-deleted."""

    resource = "Resource"
    code = "ERR_NOT_FOUND"

    def __init__(self, resource_id: Any = None):
        message = f"{self.resource} not found"
        if resource_id is not None:
            message = f"{self.resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code=self.code,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": self.resource, "id": resource_id}
        )


class VehicleNotFound(ResourceNotFoundError):
    resource = "Vehicle"
    code = "ERR_VEHICLE_NOT_FOUND"


class DriverNotFound(ResourceNotFoundError):
    resource = "Driver"
    code = "ERR_DRIVER_NOT_FOUND"


class TripNotFound(ResourceNotFoundError):
    resource = "Trip"
    code = "ERR_TRIP_NOT_FOUND"


class MaintenanceNotFound(ResourceNotFoundError):
    resource = "Maintenance log"
    code = "ERR_MAINTENANCE_NOT_FOUND"


class FuelLogNotFound(ResourceNotFoundError):
    resource = "Fuel log"
    code = "ERR_FUEL_LOG_NOT_FOUND"


# Precondition violations

class PreconditionError(AppException):
    """Entity is in the wrong state for the requested operation."""

    def __init__(self, message: str, error_code: str, details: Dict[str, Any] = None,
                 status_code: int = status.HTTP_409_CONFLICT):
        super().__init__(message=message, error_code=error_code, status_code=status_code, details=details)


class VehicleNotAvailable(PreconditionError):
    def __init__(self, vehicle_id: Any, current_status: Any = None):
        super().__init__(
            "Vehicle is not available, it may be on a trip or in the shop",
            "ERR_VEHICLE_NOT_AVAILABLE",
            {"vehicle_id": vehicle_id, "status": _value(current_status)},
        )


class VehicleOnTrip(PreconditionError):
    def __init__(self, vehicle_id: Any):
        super().__init__(
            "Vehicle is currently on a trip. Complete or cancel the trip first.",
            "ERR_VEHICLE_ON_TRIP",
            {"vehicle_id": vehicle_id},
        )


class VehicleInShop(PreconditionError):
    def __init__(self, vehicle_id: Any, open_logs: int = None):
        super().__init__(
            "Vehicle is currently in the shop. Complete all maintenance first.",
            "ERR_VEHICLE_IN_SHOP",
            {"vehicle_id": vehicle_id, "open_logs": open_logs},
        )


class VehicleRetired(PreconditionError):
    def __init__(self, vehicle_id: Any):
        super().__init__(
            "Vehicle is retired",
            "ERR_VEHICLE_RETIRED",
            {"vehicle_id": vehicle_id},
        )


class DriverSuspended(PreconditionError):
    def __init__(self, driver_id: Any):
        super().__init__(
            "Driver is suspended and cannot be assigned to trips",
            "ERR_DRIVER_SUSPENDED",
            {"driver_id": driver_id},
        )


class DriverNotAvailable(PreconditionError):
    def __init__(self, driver_id: Any, current_status: Any = None):
        super().__init__(
            "Driver is not available, check their duty status",
            "ERR_DRIVER_NOT_AVAILABLE",
            {"driver_id": driver_id, "status": _value(current_status)},
        )


class DriverOnTrip(PreconditionError):
    def __init__(self, driver_id: Any):
        super().__init__(
            "Driver is currently on a trip. Complete or cancel the trip first.",
            "ERR_DRIVER_ON_TRIP",
            {"driver_id": driver_id},
        )


class LicenseExpired(PreconditionError):
    def __init__(self, driver_id: Any, expiry: date):
        super().__init__(
            "Driver's license has expired. Renew before assigning.",
            "ERR_LICENSE_EXPIRED",
            {"driver_id": driver_id, "license_expiry_date": expiry.isoformat() if expiry else None},
        )


class LicenseCategoryMismatch(PreconditionError):
    def __init__(self, driver_category: Any, vehicle_type: Any):
        driver_category, vehicle_type = _value(driver_category), _value(vehicle_type)
        super().__init__(
            f"Driver holds a {driver_category} license but vehicle type is {vehicle_type}",
            "ERR_LICENSE_CATEGORY_MISMATCH",
            {"driver_category": driver_category, "vehicle_type": vehicle_type},
        )


class Overweight(PreconditionError):
    def __init__(self, cargo_weight_kg: float, max_capacity_kg: float):
        super().__init__(
            f"Cargo weight ({cargo_weight_kg}kg) exceeds vehicle max capacity ({max_capacity_kg}kg)",
            "ERR_TRIP_OVERWEIGHT",
            {"cargo_weight_kg": cargo_weight_kg, "max_capacity_kg": max_capacity_kg},
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class AlreadyComplete(PreconditionError):
    def __init__(self, log_id: Any):
        super().__init__(
            "This maintenance log is already marked as complete",
            "ERR_MAINTENANCE_ALREADY_COMPLETE",
            {"id": log_id},
        )


class FieldRequiredError(PreconditionError):
    """A field that is optional in general is mandatory for this transition."""

    def __init__(self, message: str, error_code: str, field: str):
        super().__init__(
            message,
            error_code,
            {"field": field, "errors": {field: [message]}},
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )


class CancellationReasonRequired(FieldRequiredError):
    def __init__(self):
        super().__init__(
            "A cancellation reason is required when cancelling a trip",
            "ERR_CANCELLATION_REASON_REQUIRED",
            "cancellation_reason",
        )


class OdometerRequiredForCompletion(FieldRequiredError):
    def __init__(self):
        super().__init__(
            "Final odometer reading is required when completing a trip",
            "ERR_ODOMETER_REQUIRED",
            "odometer_end",
        )


class SuspensionReasonRequired(FieldRequiredError):
    def __init__(self):
        super().__init__(
            "A reason is required when suspending a driver",
            "ERR_SUSPENSION_REASON_REQUIRED",
            "suspended_reason",
        )


# Invalid transitions

class InvalidTransition(AppException):
    """Raised when the trip state machine does not allow a move."""

    def __init__(self, from_status: Any, to_status: Any):
        from_status, to_status = _value(from_status), _value(to_status)
        super().__init__(
            message=f'Cannot move a trip from "{from_status}" to "{to_status}"',
            error_code="ERR_INVALID_TRIP_TRANSITION",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"from": from_status, "to": to_status}
        )
        self.from_status = from_status
        self.to_status = to_status


class InvalidDriverStatusTransition(AppException):
    def __init__(self, from_status: Any, to_status: Any, message: str = None):
        from_status, to_status = _value(from_status), _value(to_status)
        super().__init__(
            message=message or f'Cannot change driver status from "{from_status}" to "{to_status}"',
            error_code="ERR_INVALID_DRIVER_STATUS_TRANSITION",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"from": from_status, "to": to_status}
        )


# Consistency violations

class OdometerRegression(AppException):
    def __init__(self, reading: float, minimum: float):
        super().__init__(
            message=f"Odometer reading ({reading} km) cannot be less than {minimum} km",
            error_code="ERR_ODOMETER_REGRESSION",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"reading": reading, "minimum": minimum}
        )


class TripVehicleMismatch(AppException):
    def __init__(self, trip_vehicle_id: Any, vehicle_id: Any):
        super().__init__(
            message="The selected trip does not belong to this vehicle",
            error_code="ERR_TRIP_VEHICLE_MISMATCH",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"trip_vehicle_id": trip_vehicle_id, "vehicle_id": vehicle_id}
        )


def _value(item: Any) -> Any:
    return getattr(item, "value", item)


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    logger.info(
        "Rejected request",
        extra={"path": request.url.path, "error_code": exc.error_code, "details": exc.details},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry exception instances that JSONResponse cannot encode
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Handler for unique/foreign key violations raised by the store."""
    logger.warning("Integrity error on %s: %s", request.url.path, exc.orig)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "error_code": "ERR_CONFLICT",
            "message": "A record with these values already exists",
            "details": {}
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
