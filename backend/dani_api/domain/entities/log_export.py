"""Domain value objects for conversation log exports."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .log_query import LogFilters

MAX_EXPORT_RECORDS = 10_000


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    JSONL = "jsonl"

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]


_MIME_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSONL: "application/x-ndjson",
}


class ExportScope(str, Enum):
    CURRENT_PAGE = "current_page"
    ALL_FILTERED = "all_filtered"


@dataclass(frozen=True)
class ExportValidation:
    """Outcome of validating an export request — never raised."""

    valid: bool
    error: str | None = None


@dataclass
class ExportMetadata:
    """Provenance block written at the top of every export."""

    export_timestamp: datetime
    filters_applied: LogFilters
    record_count: int
    exported_by: str
    export_format: ExportFormat

    def to_dict(self) -> dict[str, Any]:
        date_from = self.filters_applied.date_from
        date_to = self.filters_applied.date_to
        return {
            "export_timestamp": self.export_timestamp.isoformat(),
            "filters_applied": self.filters_applied.to_dict(),
            "record_count": self.record_count,
            "date_range": {
                "from": date_from.isoformat() if date_from else None,
                "to": date_to.isoformat() if date_to else None,
            },
            "exported_by": self.exported_by,
            "export_format": self.export_format.value,
        }


@dataclass
class ExportResult:
    data: str
    filename: str
    mime_type: str
    record_count: int
