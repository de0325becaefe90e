"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from fleetflow.app.api.v1.endpoints import vehicles, drivers, trips, maintenance, fuel_logs

router = APIRouter()

# Fleet resources
router.include_router(vehicles.router)
router.include_router(drivers.router)

# Dispatch lifecycle
router.include_router(trips.router)

# Vehicle leases held by service work, and odometer readings
router.include_router(maintenance.router)
router.include_router(fuel_logs.router)
