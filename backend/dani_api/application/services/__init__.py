from .conversation_log_service import ConversationLogService
from .log_export_service import LogExportService

__all__ = [
    "ConversationLogService",
    "LogExportService",
]
