from .conversation_log import AdminLogAccessModel, ConversationLogModel
from .user import UserModel

__all__ = [
    "AdminLogAccessModel",
    "ConversationLogModel",
    "UserModel",
]
