"""Concrete admin log access repository backed by SQLAlchemy."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dani_api.application.interfaces import AdminLogAccessRepository
from dani_api.domain.entities import AdminLogAccess
from dani_api.infrastructure.database.models import AdminLogAccessModel


class SQLAlchemyAdminLogAccessRepository(AdminLogAccessRepository):
    """Implements the AdminLogAccessRepository port. Insert only."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _to_model(self, entity: AdminLogAccess) -> AdminLogAccessModel:
        return AdminLogAccessModel(
            id=entity.id,
            admin_user_id=entity.admin_user_id,
            action=entity.action,
            log_id=entity.log_id,
            access_data=entity.access_data,
            timestamp=entity.timestamp,
        )

    async def create(self, entry: AdminLogAccess) -> AdminLogAccess:
        async with self._session_factory() as session:
            session.add(self._to_model(entry))
            await session.commit()
        return entry
