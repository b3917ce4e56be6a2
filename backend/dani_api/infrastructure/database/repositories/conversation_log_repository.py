"""Concrete conversation log repository backed by SQLAlchemy + PostgreSQL JSONB.

Each method opens its own short-lived session from the factory. The service
awaits several reads at once (page + count, the statistics fan-out), and a
single ``AsyncSession`` cannot run statements concurrently.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import cast, func, literal_column, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dani_api.application.interfaces import ConversationLogRepository
from dani_api.domain.entities import (
    TOP_TOOLS_LIMIT,
    ConversationLog,
    ConversationLogData,
    DateCount,
    DistinctUser,
    FeedbackData,
    LogFilters,
    Pagination,
    ToolUsage,
)
from dani_api.infrastructure.database.log_query_builder import (
    build_avg_time_query,
    build_complexity_query,
    build_count_query,
    build_date_query,
    build_distinct_tools_query,
    build_distinct_users_query,
    build_feedback_query,
    build_log_query,
    build_model_query,
    build_tools_query,
)
from dani_api.infrastructure.database.models import ConversationLogModel

_FEEDBACK_PATH = literal_column("'{feedback}'::text[]")


class SQLAlchemyConversationLogRepository(ConversationLogRepository):
    """Implements the ConversationLogRepository port using SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _to_entity(self, model: ConversationLogModel) -> ConversationLog:
        """Map ORM model → domain entity."""
        return ConversationLog(
            id=model.id,
            conversation_id=model.conversation_id,
            message_id=model.message_id,
            user_id=model.user_id,
            timestamp=model.timestamp,
            log_data=ConversationLogData.from_dict(model.log_data or {}),
            created_at=model.created_at,
            updated_at=model.updated_at,
            stored_data=model.log_data,
        )

    def _to_model(self, entity: ConversationLog) -> ConversationLogModel:
        """Map domain entity → ORM model (for creation)."""
        return ConversationLogModel(
            id=entity.id,
            conversation_id=entity.conversation_id,
            message_id=entity.message_id,
            user_id=entity.user_id,
            timestamp=entity.timestamp,
            log_data=entity.log_data.to_dict(),
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    # ── Writes ──────────────────────────────────────────────────────

    async def create(self, log: ConversationLog) -> ConversationLog:
        async with self._session_factory() as session:
            model = self._to_model(log)
            session.add(model)
            await session.commit()
            return self._to_entity(model)

    async def update_feedback(self, log_id: str, feedback: FeedbackData) -> bool:
        stmt = (
            update(ConversationLogModel)
            .where(ConversationLogModel.id == log_id)
            .values(
                log_data=func.jsonb_set(
                    ConversationLogModel.log_data,
                    _FEEDBACK_PATH,
                    cast(feedback.to_dict(), JSONB),
                ),
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0

    # ── Reads ───────────────────────────────────────────────────────

    async def get_by_id(self, log_id: str) -> ConversationLog | None:
        async with self._session_factory() as session:
            model = await session.get(ConversationLogModel, log_id)
            return self._to_entity(model) if model else None

    async def find(self, filters: LogFilters, pagination: Pagination) -> list[ConversationLog]:
        async with self._session_factory() as session:
            result = await session.execute(build_log_query(filters, pagination))
            return [self._to_entity(row) for row in result.scalars().all()]

    async def count(self, filters: LogFilters) -> int:
        async with self._session_factory() as session:
            result = await session.execute(build_count_query(filters))
            return int(result.scalar_one())

    # ── Statistics ──────────────────────────────────────────────────

    async def average_execution_time(self, filters: LogFilters) -> float | None:
        async with self._session_factory() as session:
            result = await session.execute(build_avg_time_query(filters))
            value = result.scalar_one_or_none()
        if value is None:
            return None
        return float(value) if isinstance(value, Decimal) else value

    async def count_by_feedback_status(self, filters: LogFilters) -> dict[str | None, int]:
        async with self._session_factory() as session:
            result = await session.execute(build_feedback_query(filters))
            return {status: int(count) for status, count in result}

    async def count_by_model(self, filters: LogFilters) -> dict[str, int]:
        async with self._session_factory() as session:
            result = await session.execute(build_model_query(filters))
            return {model: int(count) for model, count in result if model is not None}

    async def count_by_complexity(self, filters: LogFilters) -> dict[str, int]:
        async with self._session_factory() as session:
            result = await session.execute(build_complexity_query(filters))
            return {
                level: int(count) for level, count in result if level is not None
            }

    async def count_by_date(self, filters: LogFilters) -> list[DateCount]:
        async with self._session_factory() as session:
            result = await session.execute(build_date_query(filters))
            rows = result.all()
        return [
            DateCount(
                date=day.isoformat() if isinstance(day, date) else str(day),
                count=int(count),
            )
            for day, count in rows
        ]

    async def most_used_tools(
        self, filters: LogFilters, limit: int = TOP_TOOLS_LIMIT
    ) -> list[ToolUsage]:
        async with self._session_factory() as session:
            result = await session.execute(build_tools_query(filters, limit=limit))
            return [
                ToolUsage(tool_name=name, count=int(count))
                for name, count in result
                if name is not None
            ]

    # ── Filter dropdowns ────────────────────────────────────────────

    async def distinct_users(self) -> list[DistinctUser]:
        async with self._session_factory() as session:
            result = await session.execute(build_distinct_users_query())
            return [
                DistinctUser(user_id=row.user_id, email=row.email, name=row.name)
                for row in result
            ]

    async def distinct_tools(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(build_distinct_tools_query())
            return [row.tool_name for row in result if row.tool_name is not None]
