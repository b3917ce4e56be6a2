"""Pydantic DTOs (Data Transfer Objects) for conversation logs, statistics and exports."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from dani_api.domain.entities import (
    ComplexityLevel,
    ConversationLog,
    DistinctUser,
    FeedbackData,
    FeedbackFilter,
    FeedbackStatus,
    LogFilters,
    LogQueryResult,
    LogStats,
)


# ── Filters ──────────────────────────────────────────────────────────


class LogFiltersSchema(BaseModel):
    """Filter set shared by listing, statistics and export requests."""

    date_from: datetime | None = None
    date_to: datetime | None = None
    user_id: str | None = None
    model: str | None = None
    complexity_level: ComplexityLevel | None = None
    feedback_status: FeedbackFilter | None = None
    query_text: str | None = Field(None, max_length=500)
    tool_used: str | None = None
    min_execution_time: int | None = Field(None, ge=0)

    def to_filters(self) -> LogFilters:
        return LogFilters(**self.model_dump())


# ── Logs ─────────────────────────────────────────────────────────────


class ConversationLogResponse(BaseModel):
    """A stored log with its payload as the raw JSON document."""

    id: str
    conversation_id: str | None
    message_id: str | None
    user_id: str
    timestamp: datetime
    log_data: dict[str, Any]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, log: ConversationLog) -> "ConversationLogResponse":
        return cls(
            id=log.id,
            conversation_id=log.conversation_id,
            message_id=log.message_id,
            user_id=log.user_id,
            timestamp=log.timestamp,
            log_data=log.payload(),
            created_at=log.created_at,
            updated_at=log.updated_at,
        )


class LogQueryResponse(BaseModel):
    logs: list[ConversationLogResponse]
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def from_result(cls, result: LogQueryResult) -> "LogQueryResponse":
        return cls(
            logs=[ConversationLogResponse.from_entity(log) for log in result.logs],
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        )


# ── Statistics ───────────────────────────────────────────────────────


class FeedbackStatsResponse(BaseModel):
    positive: int
    negative: int
    none: int
    positive_percentage: int


class ToolUsageResponse(BaseModel):
    tool_name: str
    count: int

    model_config = {"from_attributes": True}


class DateCountResponse(BaseModel):
    date: str
    count: int

    model_config = {"from_attributes": True}


class LogStatsResponse(BaseModel):
    total_queries: int
    avg_response_time_ms: int
    feedback_stats: FeedbackStatsResponse
    queries_by_model: dict[str, int]
    queries_by_complexity: dict[str, int]
    queries_by_date: list[DateCountResponse]
    most_used_tools: list[ToolUsageResponse]

    @classmethod
    def from_stats(cls, stats: LogStats) -> "LogStatsResponse":
        feedback = stats.feedback_stats
        return cls(
            total_queries=stats.total_queries,
            avg_response_time_ms=stats.avg_response_time_ms,
            feedback_stats=FeedbackStatsResponse(
                positive=feedback.positive,
                negative=feedback.negative,
                none=feedback.none,
                positive_percentage=feedback.positive_percentage,
            ),
            queries_by_model=stats.queries_by_model,
            queries_by_complexity=stats.queries_by_complexity,
            queries_by_date=[
                DateCountResponse.model_validate(d, from_attributes=True)
                for d in stats.queries_by_date
            ],
            most_used_tools=[
                ToolUsageResponse.model_validate(t, from_attributes=True)
                for t in stats.most_used_tools
            ],
        )


# ── Filter dropdowns ─────────────────────────────────────────────────


class DistinctUserResponse(BaseModel):
    user_id: str
    email: str
    name: str

    model_config = {"from_attributes": True}

    @classmethod
    def from_entity(cls, user: DistinctUser) -> "DistinctUserResponse":
        return cls.model_validate(user, from_attributes=True)


# ── Feedback ─────────────────────────────────────────────────────────


class FeedbackRequest(BaseModel):
    """Schema for rating an assistant response."""

    log_id: str = Field(..., min_length=1, examples=["0b7c2f9e-3a51-4c1e-9a57-2f0d4c8e6a11"])
    status: FeedbackStatus
    comment: str | None = Field(None, max_length=2000)


class FeedbackResponse(BaseModel):
    log_id: str
    status: FeedbackStatus | None
    comment: str | None = None
    timestamp: datetime | None = None

    @classmethod
    def from_feedback(cls, log_id: str, feedback: FeedbackData) -> "FeedbackResponse":
        return cls(
            log_id=log_id,
            status=feedback.status,
            comment=feedback.comment,
            timestamp=feedback.timestamp,
        )


# ── Export ───────────────────────────────────────────────────────────


class LogExportRequest(BaseModel):
    """Export request. ``format`` and ``scope`` are checked by the export service
    so that an unsupported value gets its descriptive error message."""

    filters: LogFiltersSchema = Field(default_factory=LogFiltersSchema)
    format: str = Field(..., examples=["csv"])
    scope: str = Field("current_page", examples=["all_filtered"])
    page: int | None = None
    limit: int | None = None
