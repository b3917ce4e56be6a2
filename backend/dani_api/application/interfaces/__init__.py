from .conversation_log_repository import ConversationLogRepository
from .admin_log_access_repository import AdminLogAccessRepository
from .fallback_log_writer import FallbackLogWriter

__all__ = [
    "ConversationLogRepository",
    "AdminLogAccessRepository",
    "FallbackLogWriter",
]
