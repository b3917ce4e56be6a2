"""Abstract repository interface for the admin log access audit trail."""

from abc import ABC, abstractmethod

from dani_api.domain.entities import AdminLogAccess


class AdminLogAccessRepository(ABC):
    """Port — append-only; there is deliberately no read or delete operation."""

    @abstractmethod
    async def create(self, entry: AdminLogAccess) -> AdminLogAccess:
        """Persist a new audit entry."""
        ...
