"""
Audit logging service for tracking dispatch, maintenance and roster actions.

Rows are flushed into the caller's transaction, never committed here, so
an audit entry exists only if the change it describes commits.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from fleetflow.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    # Vehicle registry
    VEHICLE_REGISTERED = "VEHICLE_REGISTERED"
    VEHICLE_UPDATED = "VEHICLE_UPDATED"
    VEHICLE_RETIRED = "VEHICLE_RETIRED"

    # Driver roster
    DRIVER_REGISTERED = "DRIVER_REGISTERED"
    DRIVER_UPDATED = "DRIVER_UPDATED"
    DRIVER_STATUS_CHANGED = "DRIVER_STATUS_CHANGED"
    DRIVER_DEACTIVATED = "DRIVER_DEACTIVATED"
    INCIDENT_LOGGED = "INCIDENT_LOGGED"

    # Trip dispatch
    TRIP_CREATED = "TRIP_CREATED"
    TRIP_DISPATCHED = "TRIP_DISPATCHED"
    TRIP_IN_TRANSIT = "TRIP_IN_TRANSIT"
    TRIP_COMPLETED = "TRIP_COMPLETED"
    TRIP_CANCELLED = "TRIP_CANCELLED"

    # Maintenance leases
    MAINTENANCE_OPENED = "MAINTENANCE_OPENED"
    MAINTENANCE_UPDATED = "MAINTENANCE_UPDATED"
    MAINTENANCE_COMPLETED = "MAINTENANCE_COMPLETED"

    # Fuel
    FUEL_LOGGED = "FUEL_LOGGED"


async def log_event(
    db: AsyncSession,
    action: str,
    entity_type: str,
    entity_id: Optional[int],
    actor_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an event to the audit log inside the current transaction.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        entity_type: Kind of record affected ("trip", "vehicle", ...)
        entity_id: ID of the affected record
        actor_id: ID of the caller performing the action
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, oldest first.
    """
    query = select(AuditLog).order_by(AuditLog.timestamp, AuditLog.id)

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
