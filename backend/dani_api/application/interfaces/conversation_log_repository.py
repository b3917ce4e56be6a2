"""Abstract repository interface (port) for conversation log persistence."""

from abc import ABC, abstractmethod

from dani_api.domain.entities import (
    ConversationLog,
    DateCount,
    DistinctUser,
    FeedbackData,
    LogFilters,
    Pagination,
    ToolUsage,
)


class ConversationLogRepository(ABC):
    """Port — persistence and aggregation over stored execution traces.

    Every read takes the same ``LogFilters`` so that listings, counts and
    statistics always agree on which logs match. Implementations must allow
    the read methods to be awaited concurrently.
    """

    @abstractmethod
    async def create(self, log: ConversationLog) -> ConversationLog:
        """Persist a new log and return it with its assigned ID."""
        ...

    @abstractmethod
    async def update_feedback(self, log_id: str, feedback: FeedbackData) -> bool:
        """Replace the feedback sub-document and bump ``updated_at``.

        Returns:
            True if a log was updated, False if ``log_id`` does not exist.
        """
        ...

    @abstractmethod
    async def get_by_id(self, log_id: str) -> ConversationLog | None:
        ...

    @abstractmethod
    async def find(self, filters: LogFilters, pagination: Pagination) -> list[ConversationLog]:
        """Return one sorted page of matching logs (pagination is clamped)."""
        ...

    @abstractmethod
    async def count(self, filters: LogFilters) -> int:
        ...

    @abstractmethod
    async def average_execution_time(self, filters: LogFilters) -> float | None:
        """Mean ``execution_time_ms`` of matching logs, None when nothing matches."""
        ...

    @abstractmethod
    async def count_by_feedback_status(self, filters: LogFilters) -> dict[str | None, int]:
        """Histogram keyed by the raw stored status (None for no verdict)."""
        ...

    @abstractmethod
    async def count_by_model(self, filters: LogFilters) -> dict[str, int]:
        ...

    @abstractmethod
    async def count_by_complexity(self, filters: LogFilters) -> dict[str, int]:
        ...

    @abstractmethod
    async def count_by_date(self, filters: LogFilters) -> list[DateCount]:
        ...

    @abstractmethod
    async def most_used_tools(self, filters: LogFilters, limit: int = 10) -> list[ToolUsage]:
        """Tool names across all matching logs, most frequent first."""
        ...

    @abstractmethod
    async def distinct_users(self) -> list[DistinctUser]:
        ...

    @abstractmethod
    async def distinct_tools(self) -> list[str]:
        ...
