"""In-memory fakes for the conversation log ports, plus payload builders."""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any

from dani_api.application.interfaces import (
    AdminLogAccessRepository,
    ConversationLogRepository,
    FallbackLogWriter,
)
from dani_api.domain.entities import (
    AdminLogAccess,
    AnalyzerOutput,
    ComplexityLevel,
    ConversationLog,
    ConversationLogData,
    DateCount,
    DistinctUser,
    ExecutionData,
    FeedbackData,
    FeedbackFilter,
    LogFilters,
    Pagination,
    QueryData,
    ResponseData,
    SortField,
    SortOrder,
    ToolCallData,
    ToolUsage,
    UsageData,
)

BASE_TIME = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_log_data(
    *,
    text: str = "How do I reset my password?",
    model: str = "claude-sonnet",
    complexity: ComplexityLevel = ComplexityLevel.SIMPLE,
    execution_time_ms: int = 1200,
    tools: tuple[str, ...] = (),
    final_text: str = "Open settings and choose reset.",
    username: str = "alice",
    feedback: FeedbackData | None = None,
) -> ConversationLogData:
    start = BASE_TIME
    return ConversationLogData(
        username=username,
        start_time=start,
        end_time=start + timedelta(milliseconds=execution_time_ms),
        execution_time_ms=execution_time_ms,
        query=QueryData(
            original_text=text,
            analyzer_output=AnalyzerOutput(
                selected_model=model,
                complexity_level=complexity,
                reasoning="short question",
            ),
        ),
        execution=ExecutionData(
            tool_calls=[
                ToolCallData(tool_name=name, server="kb", timestamp=start, iteration=1)
                for name in tools
            ],
            iterations=1,
        ),
        response=ResponseData(
            final_text=final_text,
            model_used=model,
            usage=UsageData(input_tokens=100, output_tokens=40),
        ),
        feedback=feedback or FeedbackData(),
    )


def make_log(
    user_id: str = "user-1",
    timestamp: datetime = BASE_TIME,
    **kwargs: Any,
) -> ConversationLog:
    return ConversationLog(
        user_id=user_id,
        log_data=make_log_data(**kwargs),
        conversation_id="conv-1",
        message_id="msg-1",
        timestamp=timestamp,
    )


def _matches(log: ConversationLog, filters: LogFilters) -> bool:
    data = log.log_data
    if filters.date_from and log.timestamp < filters.date_from:
        return False
    if filters.date_to and log.timestamp > filters.date_to:
        return False
    if filters.user_id and log.user_id != filters.user_id:
        return False
    if filters.model and data.response.model_used != filters.model:
        return False
    if filters.complexity_level and (
        data.query.analyzer_output.complexity_level != filters.complexity_level
    ):
        return False
    if filters.feedback_status:
        wanted = FeedbackFilter(filters.feedback_status)
        status = data.feedback.status.value if data.feedback.status else None
        if wanted is FeedbackFilter.NONE and status is not None:
            return False
        if wanted is not FeedbackFilter.NONE and status != wanted.value:
            return False
    if filters.query_text:
        words = filters.query_text.lower().split()
        if not all(w in data.query.original_text.lower() for w in words):
            return False
    if filters.tool_used and filters.tool_used not in data.tool_names:
        return False
    if filters.min_execution_time and data.execution_time_ms < filters.min_execution_time:
        return False
    return True


class FakeConversationLogRepository(ConversationLogRepository):
    """In-memory fake repository for unit testing."""

    def __init__(self, users: dict[str, tuple[str, str]] | None = None):
        self.logs: dict[str, ConversationLog] = {}
        self.users = users or {}
        self.fail_with: Exception | None = None
        self.calls: list[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def _matching(self, filters: LogFilters) -> list[ConversationLog]:
        return [log for log in self.logs.values() if _matches(log, filters)]

    async def create(self, log: ConversationLog) -> ConversationLog:
        self._check("create")
        self.logs[log.id] = log
        return log

    async def update_feedback(self, log_id: str, feedback: FeedbackData) -> bool:
        self._check("update_feedback")
        log = self.logs.get(log_id)
        if log is None:
            return False
        log.log_data.feedback = feedback
        log.updated_at = datetime.now(timezone.utc)
        return True

    async def get_by_id(self, log_id: str) -> ConversationLog | None:
        self._check("get_by_id")
        return self.logs.get(log_id)

    async def find(self, filters: LogFilters, pagination: Pagination) -> list[ConversationLog]:
        self._check("find")
        window = pagination.clamped()
        if pagination.sort_field() is SortField.EXECUTION_TIME_MS:
            key = lambda log: (log.log_data.execution_time_ms, log.id)  # noqa: E731
        else:
            key = lambda log: (log.timestamp, log.id)  # noqa: E731
        descending = pagination.sort_direction() is SortOrder.DESC
        rows = self._matching(filters)
        cursor = pagination.after
        if cursor is not None:
            last = (cursor.sort_value, cursor.id)
            rows = [log for log in rows if (key(log) < last if descending else key(log) > last)]
        ordered = sorted(rows, key=key, reverse=descending)
        return ordered[window.offset : window.offset + window.limit]

    async def count(self, filters: LogFilters) -> int:
        self._check("count")
        return len(self._matching(filters))

    async def average_execution_time(self, filters: LogFilters) -> float | None:
        self._check("average_execution_time")
        times = [log.log_data.execution_time_ms for log in self._matching(filters)]
        return sum(times) / len(times) if times else None

    async def count_by_feedback_status(self, filters: LogFilters) -> dict[str | None, int]:
        self._check("count_by_feedback_status")
        return dict(
            Counter(
                log.log_data.feedback.status.value if log.log_data.feedback.status else None
                for log in self._matching(filters)
            )
        )

    async def count_by_model(self, filters: LogFilters) -> dict[str, int]:
        self._check("count_by_model")
        return dict(Counter(log.log_data.response.model_used for log in self._matching(filters)))

    async def count_by_complexity(self, filters: LogFilters) -> dict[str, int]:
        self._check("count_by_complexity")
        return dict(
            Counter(
                log.log_data.query.analyzer_output.complexity_level.value
                for log in self._matching(filters)
                if log.log_data.query.analyzer_output.complexity_level is not None
            )
        )

    async def count_by_date(self, filters: LogFilters) -> list[DateCount]:
        self._check("count_by_date")
        days = Counter(
            log.timestamp.astimezone(timezone.utc).date().isoformat()
            for log in self._matching(filters)
        )
        return [DateCount(date=day, count=days[day]) for day in sorted(days)]

    async def most_used_tools(self, filters: LogFilters, limit: int = 10) -> list[ToolUsage]:
        self._check("most_used_tools")
        counts = Counter(
            name for log in self._matching(filters) for name in log.log_data.tool_names
        )
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [ToolUsage(tool_name=name, count=count) for name, count in ranked[:limit]]

    async def distinct_users(self) -> list[DistinctUser]:
        self._check("distinct_users")
        owners = {log.user_id for log in self.logs.values()}
        users = [
            DistinctUser(user_id=uid, email=self.users[uid][0], name=self.users[uid][1])
            for uid in owners
            if uid in self.users
        ]
        return sorted(users, key=lambda u: u.name)

    async def distinct_tools(self) -> list[str]:
        self._check("distinct_tools")
        return sorted({name for log in self.logs.values() for name in log.log_data.tool_names})


class FakeAdminLogAccessRepository(AdminLogAccessRepository):
    def __init__(self):
        self.entries: list[AdminLogAccess] = []
        self.fail_with: Exception | None = None

    async def create(self, entry: AdminLogAccess) -> AdminLogAccess:
        if self.fail_with is not None:
            raise self.fail_with
        self.entries.append(entry)
        return entry


class FakeFallbackWriter(FallbackLogWriter):
    def __init__(self):
        self.written: list[tuple[str, dict[str, Any]]] = []
        self.fail_with: Exception | None = None

    async def write(self, user_id: str, log_data: dict[str, Any]) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.written.append((user_id, log_data))
        return f"/tmp/dani-logs/conversation-log-{user_id}.json"
