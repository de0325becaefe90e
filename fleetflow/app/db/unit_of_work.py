"""
SQLAlchemy unit of work.

Wraps a single AsyncSession; every repository shares it, so everything
done inside one `async with uow:` block commits or rolls back together.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.db.repositories import (
    SqlAlchemyAuditRepository,
    SqlAlchemyDriverRepository,
    SqlAlchemyFuelLogRepository,
    SqlAlchemyIncidentRepository,
    SqlAlchemyMaintenanceRepository,
    SqlAlchemyTripRepository,
    SqlAlchemyVehicleRepository,
)
from fleetflow.app.domain.dispatch.ports import AbstractUnitOfWork


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):

    def __init__(self, session: AsyncSession):
        self.session = session
        self.vehicles = SqlAlchemyVehicleRepository(session)
        self.drivers = SqlAlchemyDriverRepository(session)
        self.incidents = SqlAlchemyIncidentRepository(session)
        self.trips = SqlAlchemyTripRepository(session)
        self.maintenance = SqlAlchemyMaintenanceRepository(session)
        self.fuel_logs = SqlAlchemyFuelLogRepository(session)
        self.audit = SqlAlchemyAuditRepository(session)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
