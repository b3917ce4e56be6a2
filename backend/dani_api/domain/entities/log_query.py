"""Domain value objects for filtering, paginating and aggregating conversation logs."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .conversation_log import ComplexityLevel, ConversationLog

MAX_PAGE_LIMIT = 1000
DEFAULT_PAGE_LIMIT = 50
TOP_TOOLS_LIMIT = 10


def round_half_up(value: float) -> int:
    """Round halves up for non-negative values (``round()`` rounds to even)."""
    return math.floor(value + 0.5)


class FeedbackFilter(str, Enum):
    """Feedback filter values — ``none`` matches logs without a verdict."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NONE = "none"


class SortField(str, Enum):
    TIMESTAMP = "timestamp"
    EXECUTION_TIME_MS = "execution_time_ms"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass
class LogFilters:
    """Optional constraints; every field left as ``None`` means "no constraint"."""

    date_from: datetime | None = None
    date_to: datetime | None = None
    user_id: str | None = None
    model: str | None = None
    complexity_level: ComplexityLevel | None = None
    feedback_status: FeedbackFilter | None = None
    query_text: str | None = None
    tool_used: str | None = None
    min_execution_time: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Only the filters that are set, in a JSON-friendly shape."""
        data: dict[str, Any] = {}
        for name, value in vars(self).items():
            if value is None or value == "":
                continue
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            data[name] = value
        return data


@dataclass(frozen=True)
class PageCursor:
    """Sort key and id of the last row already read.

    The next page starts strictly after this row in the current sort order,
    so rows inserted meanwhile never shift what is read next.
    """

    sort_value: datetime | int
    id: str

    @classmethod
    def after_log(cls, log: ConversationLog, field: "SortField") -> "PageCursor":
        if field is SortField.EXECUTION_TIME_MS:
            return cls(sort_value=log.log_data.execution_time_ms, id=log.id)
        return cls(sort_value=log.timestamp, id=log.id)


@dataclass
class Pagination:
    """Page request. Raw values are accepted as-is and sanitised by ``clamped()``.

    With ``after`` set, rows are read from the cursor onwards and ``page`` only
    affects the reported page number.
    """

    page: int | float = 1
    limit: int | float = DEFAULT_PAGE_LIMIT
    sort_by: str = SortField.TIMESTAMP.value
    sort_order: str = SortOrder.DESC.value
    after: PageCursor | None = None

    def clamped(self) -> "PageWindow":
        page = max(1, math.floor(self.page))
        limit = min(max(1, math.floor(self.limit)), MAX_PAGE_LIMIT)
        offset = 0 if self.after is not None else (page - 1) * limit
        return PageWindow(page=page, limit=limit, offset=offset)

    def sort_field(self) -> SortField:
        try:
            return SortField(self.sort_by)
        except ValueError:
            return SortField.TIMESTAMP

    def sort_direction(self) -> SortOrder:
        try:
            return SortOrder(str(self.sort_order).upper())
        except ValueError:
            return SortOrder.DESC


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int
    offset: int


@dataclass
class LogQueryResult:
    logs: list[ConversationLog]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class FeedbackStats:
    positive: int = 0
    negative: int = 0
    none: int = 0

    @property
    def positive_percentage(self) -> int:
        """Share of positive verdicts among logs that received any verdict."""
        rated = self.positive + self.negative
        if rated == 0:
            return 0
        return round_half_up(self.positive / rated * 100)


@dataclass
class ToolUsage:
    tool_name: str
    count: int


@dataclass
class DateCount:
    date: str  # YYYY-MM-DD (UTC)
    count: int


@dataclass
class LogStats:
    total_queries: int = 0
    avg_response_time_ms: int = 0
    feedback_stats: FeedbackStats = field(default_factory=FeedbackStats)
    queries_by_model: dict[str, int] = field(default_factory=dict)
    queries_by_complexity: dict[str, int] = field(default_factory=dict)
    queries_by_date: list[DateCount] = field(default_factory=list)
    most_used_tools: list[ToolUsage] = field(default_factory=list)


@dataclass
class DistinctUser:
    user_id: str
    email: str
    name: str
