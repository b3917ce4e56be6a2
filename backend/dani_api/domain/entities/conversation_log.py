"""Domain entity for conversation logs — one execution trace per agent turn.

The payload is persisted as a JSONB document. Field names below are the
durable contract: filters, statistics and exports address them by path, so
the mapping to and from the stored document is written out explicitly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

LOG_SCHEMA_VERSION = 1


class ComplexityLevel(str, Enum):
    """Coarse query classification assigned by the upstream analyzer."""

    SIMPLE = "SIMPLE"
    PROCEDURAL = "PROCEDURAL"
    ANALYTICAL = "ANALYTICAL"


class FeedbackStatus(str, Enum):
    """User verdict on an assistant response."""

    POSITIVE = "positive"
    NEGATIVE = "negative"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Any) -> datetime | None:
    """Accept ISO strings (including a trailing ``Z``) or datetimes; anything else is None."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _parse_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_enum(enum_cls: type[Enum], value: Any) -> Any:
    """Enum member for ``value``, or None for unset and unrecognised values."""
    try:
        return enum_cls(value)
    except ValueError:
        return None


@dataclass
class ToolCallData:
    """One tool invocation made during agent execution."""

    tool_name: str
    server: str
    input: dict[str, Any] = field(default_factory=dict)
    output: Any = None
    timestamp: datetime = field(default_factory=_utcnow)
    execution_time_ms: int = 0
    iteration: int = 0
    is_error: bool = False
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "tool_name": self.tool_name,
            "server": self.server,
            "input": self.input,
            "output": self.output,
            "timestamp": _iso(self.timestamp),
            "execution_time_ms": self.execution_time_ms,
            "iteration": self.iteration,
            "is_error": self.is_error,
        }
        if self.error_message is not None:
            data["error_message"] = self.error_message
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolCallData":
        return cls(
            tool_name=data.get("tool_name") or "",
            server=data.get("server", ""),
            input=data.get("input") or {},
            output=data.get("output"),
            timestamp=_parse_datetime(data.get("timestamp")) or _utcnow(),
            execution_time_ms=_parse_int(data.get("execution_time_ms")),
            iteration=_parse_int(data.get("iteration")),
            is_error=bool(data.get("is_error", False)),
            error_message=data.get("error_message"),
        )


@dataclass
class ReasoningStepData:
    """One iteration of the agent's deliberation loop."""

    iteration: int
    step_order: int
    timestamp: datetime = field(default_factory=_utcnow)
    tools_requested: list[str] = field(default_factory=list)
    thinking_content: str | None = None  # extended thinking output, when enabled

    def to_dict(self) -> dict[str, Any]:
        data = {
            "iteration": self.iteration,
            "timestamp": _iso(self.timestamp),
            "tools_requested": list(self.tools_requested),
            "step_order": self.step_order,
        }
        if self.thinking_content is not None:
            data["thinking_content"] = self.thinking_content
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReasoningStepData":
        return cls(
            iteration=_parse_int(data.get("iteration")),
            step_order=_parse_int(data.get("step_order")),
            timestamp=_parse_datetime(data.get("timestamp")) or _utcnow(),
            tools_requested=list(data.get("tools_requested") or []),
            thinking_content=data.get("thinking_content"),
        )


@dataclass
class AnalyzerOutput:
    selected_model: str
    complexity_level: ComplexityLevel | None
    reasoning: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "selected_model": self.selected_model,
            "complexity_level": (
                self.complexity_level.value if self.complexity_level is not None else None
            ),
        }
        if self.reasoning is not None:
            data["reasoning"] = self.reasoning
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalyzerOutput":
        return cls(
            selected_model=data.get("selected_model") or "",
            complexity_level=_parse_enum(ComplexityLevel, data.get("complexity_level")),
            reasoning=data.get("reasoning"),
        )


@dataclass
class QueryData:
    original_text: str
    analyzer_output: AnalyzerOutput

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_text": self.original_text,
            "analyzer_output": self.analyzer_output.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueryData":
        return cls(
            original_text=data.get("original_text") or "",
            analyzer_output=AnalyzerOutput.from_dict(data.get("analyzer_output") or {}),
        )


@dataclass
class ExecutionData:
    tool_calls: list[ToolCallData] = field(default_factory=list)
    reasoning_steps: list[ReasoningStepData] = field(default_factory=list)
    iterations: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool_calls": [t.to_dict() for t in self.tool_calls],
            "reasoning_steps": [s.to_dict() for s in self.reasoning_steps],
            "iterations": self.iterations,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionData":
        return cls(
            tool_calls=[ToolCallData.from_dict(t) for t in data.get("tool_calls") or []],
            reasoning_steps=[
                ReasoningStepData.from_dict(s) for s in data.get("reasoning_steps") or []
            ],
            iterations=_parse_int(data.get("iterations")),
        )


@dataclass
class UsageData:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int | None = None
    cache_read_tokens: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
        }
        if self.cache_creation_tokens is not None:
            data["cache_creation_tokens"] = self.cache_creation_tokens
        if self.cache_read_tokens is not None:
            data["cache_read_tokens"] = self.cache_read_tokens
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageData":
        return cls(
            input_tokens=_parse_int(data.get("input_tokens")),
            output_tokens=_parse_int(data.get("output_tokens")),
            cache_creation_tokens=data.get("cache_creation_tokens"),
            cache_read_tokens=data.get("cache_read_tokens"),
        )


@dataclass
class ResponseData:
    final_text: str
    model_used: str
    usage: UsageData = field(default_factory=UsageData)

    def to_dict(self) -> dict[str, Any]:
        return {
            "final_text": self.final_text,
            "model_used": self.model_used,
            "usage": self.usage.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResponseData":
        return cls(
            final_text=data.get("final_text") or "",
            model_used=data.get("model_used") or "",
            usage=UsageData.from_dict(data.get("usage") or {}),
        )


@dataclass
class FeedbackData:
    """User feedback — the only part of a log mutable after insertion.

    ``status``, ``comment`` and ``timestamp`` are always written together;
    a newer submission replaces the whole sub-document.
    """

    status: FeedbackStatus | None = None
    comment: str | None = None
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status.value if self.status is not None else None,
        }
        if self.comment:
            data["comment"] = self.comment
        if self.timestamp is not None:
            data["timestamp"] = _iso(self.timestamp)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "FeedbackData":
        if not data:
            return cls()
        raw_status = data.get("status")
        # Older rows carry the literal string "null" instead of JSON null.
        status = None if raw_status == "null" else _parse_enum(FeedbackStatus, raw_status)
        return cls(
            status=status,
            comment=data.get("comment"),
            timestamp=_parse_datetime(data.get("timestamp")),
        )


@dataclass
class ErrorData:
    occurred: bool
    message: str | None = None
    stack: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"occurred": self.occurred}
        if self.message is not None:
            data["message"] = self.message
        if self.stack is not None:
            data["stack"] = self.stack
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorData":
        return cls(
            occurred=bool(data.get("occurred", False)),
            message=data.get("message"),
            stack=data.get("stack"),
        )


@dataclass
class ConversationLogData:
    """Typed payload stored in ``conversation_logs.log_data``.

    ``execution_time_ms`` is computed by the caller from ``end_time - start_time``
    and is never recomputed here.
    """

    username: str
    start_time: datetime | None
    end_time: datetime | None
    execution_time_ms: int
    query: QueryData
    execution: ExecutionData
    response: ResponseData
    feedback: FeedbackData = field(default_factory=FeedbackData)
    error: ErrorData | None = None
    metadata: dict[str, Any] | None = None
    schema_version: int = LOG_SCHEMA_VERSION

    @property
    def tool_names(self) -> list[str]:
        return [t.tool_name for t in self.execution.tool_calls]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "schema_version": self.schema_version,
            "username": self.username,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "execution_time_ms": self.execution_time_ms,
            "query": self.query.to_dict(),
            "execution": self.execution.to_dict(),
            "response": self.response.to_dict(),
            "feedback": self.feedback.to_dict(),
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationLogData":
        """Read a stored payload.

        Rows written by earlier releases may miss sections or carry values
        outside the current enums; those read as empty or None instead of
        failing the whole page they appear on.
        """
        return cls(
            schema_version=_parse_int(data.get("schema_version"), LOG_SCHEMA_VERSION),
            username=data.get("username") or "",
            start_time=_parse_datetime(data.get("start_time")),
            end_time=_parse_datetime(data.get("end_time")),
            execution_time_ms=_parse_int(data.get("execution_time_ms")),
            query=QueryData.from_dict(data.get("query") or {}),
            execution=ExecutionData.from_dict(data.get("execution") or {}),
            response=ResponseData.from_dict(data.get("response") or {}),
            feedback=FeedbackData.from_dict(data.get("feedback")),
            error=ErrorData.from_dict(data["error"]) if data.get("error") else None,
            metadata=data.get("metadata"),
        )


@dataclass
class ConversationLog:
    """A stored execution trace, owned by exactly one user.

    ``conversation_id`` and ``message_id`` may be unset before the turn is
    associated with a conversation, but are never reassigned once set.
    """

    user_id: str
    log_data: ConversationLogData
    conversation_id: str | None = None
    message_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=_utcnow)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    # Payload document exactly as read from storage, when the log came from there.
    stored_data: dict[str, Any] | None = field(default=None, repr=False, compare=False)

    def payload(self) -> dict[str, Any]:
        """The payload as stored, or freshly serialised for logs not read back yet."""
        if self.stored_data is not None:
            return self.stored_data
        return self.log_data.to_dict()
