"""Query builder for conversation logs — filters, pagination and statistics over JSONB.

Translates ``LogFilters`` + ``Pagination`` into SQLAlchemy statements. Every
active filter contributes exactly one AND-ed predicate; caller values are
always bound parameters, so parameter positions are assigned by SQLAlchemy
and never assumed by callers.

Usage:
    stmt = build_log_query(filters, pagination)
    count_stmt = build_count_query(filters)
    stats = build_stats_queries(filters)
"""

from dataclasses import dataclass

from sqlalchemy import (
    ColumnElement,
    Select,
    and_,
    cast,
    column,
    Date,
    desc,
    exists,
    func,
    literal_column,
    or_,
    select,
    true,
    tuple_,
)
from sqlalchemy.dialects.postgresql import JSONB

from dani_api.domain.entities import (
    TOP_TOOLS_LIMIT,
    FeedbackFilter,
    LogFilters,
    Pagination,
    SortField,
    SortOrder,
)
from dani_api.infrastructure.database.models import ConversationLogModel, UserModel
from dani_api.infrastructure.database.payload_paths import (
    COMPLEXITY_LEVEL,
    FEEDBACK_STATUS,
    FTS_CONFIG,
    MODEL_USED,
    ORIGINAL_TEXT,
    TOOL_CALLS,
    TOOL_NAME,
    execution_time_ms,
    json_text,
    json_value,
)

_LOG = ConversationLogModel

# Legacy rows serialised an unset verdict as the string "null".
_LEGACY_NULL_STATUS = "null"


def _tool_elements(name: str = "tool"):
    """``jsonb_array_elements(log_data->'execution'->'tool_calls') AS tool(value)``."""
    return (
        func.jsonb_array_elements(json_value(TOOL_CALLS))
        .table_valued(column("value", JSONB))
        .render_derived(name=name)
    )


def _tool_name(name: str = "tool") -> ColumnElement[str]:
    return json_text(TOOL_NAME, source=f"{name}.value")


def _fts_config() -> ColumnElement:
    return literal_column(f"'{FTS_CONFIG}'::regconfig")


# ── WHERE ────────────────────────────────────────────────────────────


def build_conditions(filters: LogFilters) -> list[ColumnElement[bool]]:
    """One predicate per active filter, in a fixed order."""
    conditions: list[ColumnElement[bool]] = []

    if filters.date_from is not None:
        conditions.append(_LOG.timestamp >= filters.date_from)
    if filters.date_to is not None:
        conditions.append(_LOG.timestamp <= filters.date_to)

    if filters.user_id:
        conditions.append(_LOG.user_id == filters.user_id)

    if filters.model:
        conditions.append(json_text(MODEL_USED) == filters.model)

    if filters.complexity_level:
        level = getattr(filters.complexity_level, "value", filters.complexity_level)
        conditions.append(json_text(COMPLEXITY_LEVEL) == level)

    if filters.feedback_status:
        status = FeedbackFilter(filters.feedback_status)
        status_expr = json_text(FEEDBACK_STATUS)
        if status is FeedbackFilter.NONE:
            # Absent key and JSON null both come back as SQL NULL from ->>
            conditions.append(
                or_(status_expr.is_(None), status_expr == _LEGACY_NULL_STATUS)
            )
        else:
            conditions.append(status_expr == status.value)

    if filters.query_text:
        vector = func.to_tsvector(_fts_config(), json_text(ORIGINAL_TEXT))
        query = func.plainto_tsquery(_fts_config(), filters.query_text)
        conditions.append(vector.bool_op("@@")(query))

    if filters.tool_used:
        tool = _tool_elements()
        conditions.append(
            exists(
                select(literal_column("1"))
                .select_from(tool)
                .where(_tool_name() == filters.tool_used)
            )
        )

    if filters.min_execution_time is not None and filters.min_execution_time > 0:
        conditions.append(execution_time_ms() >= filters.min_execution_time)

    return conditions


def build_where(filters: LogFilters | None) -> ColumnElement[bool]:
    """AND of all active predicates; ``true()`` when no filter is set."""
    conditions = build_conditions(filters) if filters else []
    if not conditions:
        return true()
    return and_(*conditions)


# ── ORDER BY / pagination ────────────────────────────────────────────


def _sort_key(pagination: Pagination) -> ColumnElement:
    if pagination.sort_field() is SortField.EXECUTION_TIME_MS:
        return execution_time_ms()
    return _LOG.timestamp


def build_order_by(pagination: Pagination) -> list[ColumnElement]:
    """Sort key with the log id as tiebreaker; invalid input falls back to timestamp DESC."""
    key = _sort_key(pagination)
    if pagination.sort_direction() is SortOrder.ASC:
        return [key.asc(), _LOG.id.asc()]
    return [key.desc(), _LOG.id.desc()]


def build_keyset_condition(pagination: Pagination) -> ColumnElement[bool] | None:
    """Rows strictly after ``pagination.after`` in ``(sort key, id)`` order."""
    cursor = pagination.after
    if cursor is None:
        return None
    row = tuple_(_sort_key(pagination), _LOG.id)
    if pagination.sort_direction() is SortOrder.ASC:
        return row > (cursor.sort_value, cursor.id)
    return row < (cursor.sort_value, cursor.id)


def build_log_query(filters: LogFilters, pagination: Pagination) -> Select:
    window = pagination.clamped()
    stmt = select(_LOG).where(build_where(filters))
    keyset = build_keyset_condition(pagination)
    if keyset is not None:
        stmt = stmt.where(keyset)
    return (
        stmt
        .order_by(*build_order_by(pagination))
        .limit(window.limit)
        .offset(window.offset)
    )


def build_count_query(filters: LogFilters | None) -> Select:
    return select(func.count()).select_from(_LOG).where(build_where(filters))


# ── Statistics ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class StatsQueries:
    total: Select
    avg_time: Select
    feedback: Select
    model: Select
    complexity: Select
    date: Select
    tools: Select


def _grouped_count(expr: ColumnElement, label: str, filters: LogFilters | None) -> Select:
    return (
        select(expr.label(label), func.count().label("count"))
        .select_from(_LOG)
        .where(build_where(filters))
        .group_by(expr)
    )


def build_avg_time_query(filters: LogFilters | None) -> Select:
    return (
        select(func.avg(execution_time_ms()).label("avg_time"))
        .select_from(_LOG)
        .where(build_where(filters))
    )


def build_feedback_query(filters: LogFilters | None) -> Select:
    return _grouped_count(json_text(FEEDBACK_STATUS), "status", filters)


def build_model_query(filters: LogFilters | None) -> Select:
    return _grouped_count(json_text(MODEL_USED), "model", filters).order_by(desc("count"))


def build_complexity_query(filters: LogFilters | None) -> Select:
    return _grouped_count(json_text(COMPLEXITY_LEVEL), "complexity", filters)


def build_date_query(filters: LogFilters | None) -> Select:
    day = cast(func.timezone(literal_column("'UTC'"), _LOG.timestamp), Date)
    return _grouped_count(day, "date", filters).order_by(day)


def build_tools_query(filters: LogFilters | None, limit: int = TOP_TOOLS_LIMIT) -> Select:
    """Flatten tool calls of matching logs and rank tool names by frequency."""
    tool = _tool_elements()
    name = _tool_name()
    return (
        select(name.label("tool_name"), func.count().label("count"))
        .select_from(_LOG)
        .join(tool, true())
        .where(build_where(filters))
        .group_by(name)
        .order_by(desc("count"), name)
        .limit(limit)
    )


def build_stats_queries(filters: LogFilters | None = None) -> StatsQueries:
    return StatsQueries(
        total=build_count_query(filters),
        avg_time=build_avg_time_query(filters),
        feedback=build_feedback_query(filters),
        model=build_model_query(filters),
        complexity=build_complexity_query(filters),
        date=build_date_query(filters),
        tools=build_tools_query(filters),
    )


# ── Filter dropdowns ─────────────────────────────────────────────────


def build_distinct_users_query() -> Select:
    return (
        select(_LOG.user_id, UserModel.email, UserModel.name)
        .join(UserModel, UserModel.id == _LOG.user_id)
        .distinct()
        .order_by(UserModel.name)
    )


def build_distinct_tools_query() -> Select:
    tool = _tool_elements()
    name = _tool_name()
    return (
        select(name.label("tool_name"))
        .select_from(_LOG)
        .join(tool, true())
        .distinct()
        .order_by(name)
    )
