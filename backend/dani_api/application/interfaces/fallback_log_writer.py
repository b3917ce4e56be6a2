"""Abstract interface for the degraded-mode conversation log sink."""

from abc import ABC, abstractmethod
from typing import Any


class FallbackLogWriter(ABC):
    """Port for durably writing a log payload when the database is unavailable."""

    @abstractmethod
    async def write(self, user_id: str, log_data: dict[str, Any]) -> str:
        """Write the payload and return where it was stored."""
        ...
