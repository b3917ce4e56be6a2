"""Domain entity for the admin log access audit trail — append-only."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4


@dataclass
class AdminLogAccess:
    """Records that an admin viewed or exported conversation logs.

    ``access_data`` holds free-form context such as the filters applied or
    the export format. Rows are never updated or deleted.
    """

    admin_user_id: str
    action: str  # "view_logs" | "view_log_detail" | "export_logs"
    log_id: str | None = None
    access_data: dict[str, Any] | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
