from .conversation_log import (
    ConversationLogResponse,
    DateCountResponse,
    DistinctUserResponse,
    FeedbackRequest,
    FeedbackResponse,
    FeedbackStatsResponse,
    LogExportRequest,
    LogFiltersSchema,
    LogQueryResponse,
    LogStatsResponse,
    ToolUsageResponse,
)

__all__ = [
    "ConversationLogResponse",
    "DateCountResponse",
    "DistinctUserResponse",
    "FeedbackRequest",
    "FeedbackResponse",
    "FeedbackStatsResponse",
    "LogExportRequest",
    "LogFiltersSchema",
    "LogQueryResponse",
    "LogStatsResponse",
    "ToolUsageResponse",
]
