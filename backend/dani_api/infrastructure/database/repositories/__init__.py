from .conversation_log_repository import SQLAlchemyConversationLogRepository
from .admin_log_access_repository import SQLAlchemyAdminLogAccessRepository

__all__ = [
    "SQLAlchemyConversationLogRepository",
    "SQLAlchemyAdminLogAccessRepository",
]
