from .conversation_log import (
    LOG_SCHEMA_VERSION,
    AnalyzerOutput,
    ComplexityLevel,
    ConversationLog,
    ConversationLogData,
    ErrorData,
    ExecutionData,
    FeedbackData,
    FeedbackStatus,
    QueryData,
    ReasoningStepData,
    ResponseData,
    ToolCallData,
    UsageData,
)
from .log_query import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    TOP_TOOLS_LIMIT,
    DateCount,
    DistinctUser,
    FeedbackFilter,
    FeedbackStats,
    LogFilters,
    LogQueryResult,
    LogStats,
    PageCursor,
    PageWindow,
    Pagination,
    SortField,
    SortOrder,
    ToolUsage,
)
from .log_export import (
    MAX_EXPORT_RECORDS,
    ExportFormat,
    ExportMetadata,
    ExportResult,
    ExportScope,
    ExportValidation,
)
from .admin_log_access import AdminLogAccess

__all__ = [
    "LOG_SCHEMA_VERSION",
    "AnalyzerOutput",
    "ComplexityLevel",
    "ConversationLog",
    "ConversationLogData",
    "ErrorData",
    "ExecutionData",
    "FeedbackData",
    "FeedbackStatus",
    "QueryData",
    "ReasoningStepData",
    "ResponseData",
    "ToolCallData",
    "UsageData",
    "DEFAULT_PAGE_LIMIT",
    "MAX_PAGE_LIMIT",
    "TOP_TOOLS_LIMIT",
    "DateCount",
    "DistinctUser",
    "FeedbackFilter",
    "FeedbackStats",
    "LogFilters",
    "LogQueryResult",
    "LogStats",
    "PageCursor",
    "PageWindow",
    "Pagination",
    "SortField",
    "SortOrder",
    "ToolUsage",
    "MAX_EXPORT_RECORDS",
    "ExportFormat",
    "ExportMetadata",
    "ExportResult",
    "ExportScope",
    "ExportValidation",
    "AdminLogAccess",
]
