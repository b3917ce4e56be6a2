"""Local filesystem sink for conversation logs that could not reach the database.

Storage layout:
    <fallback_dir>/conversation-log-<user>-<YYYYMMDD_HHmmss_ffffff>.json
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from dani_api.application.interfaces import FallbackLogWriter

logger = logging.getLogger(__name__)


def _datetime_stamp() -> str:
    """UTC stamp with microseconds so two writes for one user do not collide."""
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")


def _sanitise(name: str, max_len: int = 80) -> str:
    """Replace non-word characters with underscores and truncate."""
    return re.sub(r"[^\w\-]", "_", name)[:max_len].strip("_") or "unknown"


class LocalFallbackLogStorage(FallbackLogWriter):
    """Infrastructure adapter writing one pretty-printed JSON file per failed log."""

    def __init__(self, fallback_dir: str):
        self._fallback_dir = Path(fallback_dir)

    async def write(self, user_id: str, log_data: dict[str, Any]) -> str:
        # Created lazily: the directory only matters once the database is down.
        self._fallback_dir.mkdir(parents=True, exist_ok=True)

        filename = f"conversation-log-{_sanitise(user_id)}-{_datetime_stamp()}.json"
        dest_path = self._fallback_dir / filename
        dest_path.write_text(
            json.dumps(log_data, indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )

        logger.info("Stored fallback log: %s", dest_path)
        return str(dest_path)
