"""JSONB path expressions for the conversation log payload.

Each queryable payload field is mapped to a fixed path and rendered as
``log_data->'a'->>'b'``. Paths are constants (never caller input) and are
rendered inline, so the same field always produces the same SQL text. That
matters for GROUP BY / DISTINCT over JSON paths, and lets the planner match
the expression indexes declared on the table.
"""

import re

from sqlalchemy import ColumnElement, Integer, Text, cast, literal_column
from sqlalchemy.dialects.postgresql import JSONB

_KEY = re.compile(r"^[a-z_]+$")

MODEL_USED = ("response", "model_used")
COMPLEXITY_LEVEL = ("query", "analyzer_output", "complexity_level")
FEEDBACK_STATUS = ("feedback", "status")
ORIGINAL_TEXT = ("query", "original_text")
EXECUTION_TIME_MS = ("execution_time_ms",)
TOOL_CALLS = ("execution", "tool_calls")
TOOL_NAME = ("tool_name",)

FTS_CONFIG = "english"


def _render(source: str, path: tuple[str, ...], as_text: bool) -> str:
    for key in path:
        if not _KEY.match(key):
            raise ValueError(f"Invalid payload path key: {key!r}")
    *parents, leaf = path
    rendered = source + "".join(f"->'{key}'" for key in parents)
    return rendered + (f"->>'{leaf}'" if as_text else f"->'{leaf}'")


def path_sql(path: tuple[str, ...], source: str = "log_data", as_text: bool = True) -> str:
    """Raw SQL for a payload path (used by index definitions)."""
    return _render(source, path, as_text)


def json_text(path: tuple[str, ...], source: str = "conversation_logs.log_data") -> ColumnElement[str]:
    """A payload field as text (``->>`` on the leaf)."""
    return literal_column(f"({_render(source, path, True)})", type_=Text)


def json_value(path: tuple[str, ...], source: str = "conversation_logs.log_data") -> ColumnElement:
    """A payload field as JSONB (``->`` on the leaf)."""
    return literal_column(f"({_render(source, path, False)})", type_=JSONB)


def execution_time_ms(source: str = "conversation_logs.log_data") -> ColumnElement[int]:
    return cast(json_text(EXECUTION_TIME_MS, source), Integer)


def fts_vector_sql(source: str = "log_data") -> str:
    return f"to_tsvector('{FTS_CONFIG}', {path_sql(ORIGINAL_TEXT, source)})"
