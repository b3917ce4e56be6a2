"""Conversation log service — records, queries and aggregates agent execution traces.

Error policy differs per operation:
    - ``record`` and ``audit_access`` are best-effort and never raise; a
      logging outage must not block chat delivery or the admin action.
    - ``update_feedback`` and every read surface failures to the caller.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from dani_api.application.interfaces import (
    AdminLogAccessRepository,
    ConversationLogRepository,
    FallbackLogWriter,
)
from dani_api.domain.entities import (
    TOP_TOOLS_LIMIT,
    AdminLogAccess,
    ConversationLog,
    ConversationLogData,
    DistinctUser,
    FeedbackData,
    FeedbackStats,
    FeedbackStatus,
    LogFilters,
    LogQueryResult,
    LogStats,
    Pagination,
)
from dani_api.domain.entities.log_query import round_half_up
from dani_api.domain.exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)


class ConversationLogService:
    """Facade over the conversation log store. Depends on repository ports (DI)."""

    def __init__(
        self,
        repository: ConversationLogRepository,
        access_repository: AdminLogAccessRepository,
        fallback_writer: FallbackLogWriter,
    ):
        self._repository = repository
        self._access_repository = access_repository
        self._fallback_writer = fallback_writer

    # ── Writes ──────────────────────────────────────────────────────

    async def record(
        self,
        *,
        user_id: str,
        log_data: ConversationLogData,
        conversation_id: str | None = None,
        message_id: str | None = None,
    ) -> str | None:
        """Store one execution trace.

        Returns:
            The new log ID, or None when the database write failed and the
            payload went to the fallback location instead.
        """
        log = ConversationLog(
            user_id=user_id,
            log_data=log_data,
            conversation_id=conversation_id,
            message_id=message_id,
        )
        try:
            saved = await self._repository.create(log)
        except Exception as exc:
            logger.error(
                "Failed to log conversation to database (user_id=%s): %s", user_id, exc
            )
            await self._write_fallback(user_id, log_data)
            return None

        logger.info(
            "Conversation logged id=%s user_id=%s conversation_id=%s execution_time_ms=%d",
            saved.id,
            user_id,
            conversation_id,
            log_data.execution_time_ms,
        )
        return saved.id

    async def update_feedback(
        self,
        log_id: str,
        status: FeedbackStatus | str,
        comment: str | None = None,
    ) -> FeedbackData:
        """Replace the feedback of a log (last write wins).

        Raises:
            EntityNotFoundError: if no log has ``log_id``.
        """
        feedback = FeedbackData(
            status=FeedbackStatus(status),
            comment=comment or None,
            timestamp=datetime.now(timezone.utc),
        )
        try:
            updated = await self._repository.update_feedback(log_id, feedback)
        except Exception:
            logger.exception("Failed to update feedback for log %s", log_id)
            raise

        if not updated:
            raise EntityNotFoundError("ConversationLog", log_id)

        logger.info("Feedback updated log_id=%s status=%s", log_id, feedback.status.value)
        return feedback

    # ── Reads ───────────────────────────────────────────────────────

    async def query(self, filters: LogFilters, pagination: Pagination) -> LogQueryResult:
        """Fetch one page of matching logs together with the total match count."""
        window = pagination.clamped()
        try:
            logs, total = await asyncio.gather(
                self._repository.find(filters, pagination),
                self._repository.count(filters),
            )
        except Exception:
            logger.exception("Failed to query conversation logs (filters=%s)", filters.to_dict())
            raise

        return LogQueryResult(logs=logs, total=total, page=window.page, limit=window.limit)

    async def get_detail(self, log_id: str) -> ConversationLog | None:
        try:
            return await self._repository.get_by_id(log_id)
        except Exception:
            logger.exception("Failed to get log detail for %s", log_id)
            raise

    async def get_statistics(self, filters: LogFilters | None = None) -> LogStats:
        """Aggregate matching logs; all sub-queries must succeed or none is served."""
        filters = filters or LogFilters()
        try:
            (
                total,
                avg_time,
                feedback_counts,
                by_model,
                by_complexity,
                by_date,
                tools,
            ) = await asyncio.gather(
                self._repository.count(filters),
                self._repository.average_execution_time(filters),
                self._repository.count_by_feedback_status(filters),
                self._repository.count_by_model(filters),
                self._repository.count_by_complexity(filters),
                self._repository.count_by_date(filters),
                self._repository.most_used_tools(filters, limit=TOP_TOOLS_LIMIT),
            )
        except Exception:
            logger.exception("Failed to get log statistics (filters=%s)", filters.to_dict())
            raise

        feedback = FeedbackStats()
        for status, count in feedback_counts.items():
            if status == FeedbackStatus.POSITIVE.value:
                feedback.positive += count
            elif status == FeedbackStatus.NEGATIVE.value:
                feedback.negative += count
            else:
                feedback.none += count

        return LogStats(
            total_queries=total,
            avg_response_time_ms=round_half_up(float(avg_time or 0)),
            feedback_stats=feedback,
            queries_by_model=by_model,
            queries_by_complexity=by_complexity,
            queries_by_date=by_date,
            most_used_tools=tools,
        )

    async def list_distinct_users(self) -> list[DistinctUser]:
        try:
            return await self._repository.distinct_users()
        except Exception:
            logger.exception("Failed to get distinct users")
            raise

    async def list_distinct_tools(self) -> list[str]:
        try:
            return await self._repository.distinct_tools()
        except Exception:
            logger.exception("Failed to get distinct tools")
            raise

    # ── Audit ───────────────────────────────────────────────────────

    async def audit_access(
        self,
        admin_user_id: str,
        action: str,
        log_id: str | None = None,
        access_data: dict[str, Any] | None = None,
    ) -> None:
        """Append an admin access entry. Failures are logged, never raised."""
        entry = AdminLogAccess(
            admin_user_id=admin_user_id,
            action=action,
            log_id=log_id,
            access_data=access_data,
        )
        try:
            await self._access_repository.create(entry)
        except Exception as exc:
            logger.error(
                "Failed to log admin access (admin_user_id=%s, action=%s): %s",
                admin_user_id,
                action,
                exc,
            )

    # ── Helpers ─────────────────────────────────────────────────────

    async def _write_fallback(self, user_id: str, log_data: ConversationLogData) -> None:
        try:
            path = await self._fallback_writer.write(user_id, log_data.to_dict())
        except Exception as exc:
            logger.error("Failed to write fallback log file (user_id=%s): %s", user_id, exc)
            return
        logger.warning("Conversation logged to fallback file %s (user_id=%s)", path, user_id)
