"""Unit tests for the conversation log query builder.

Statements are compiled with the PostgreSQL dialect and inspected as SQL text
plus bound parameters; no database is involved.
"""

from datetime import datetime, timezone

from sqlalchemy.dialects import postgresql

from dani_api.domain.entities import (
    ComplexityLevel,
    FeedbackFilter,
    LogFilters,
    PageCursor,
    Pagination,
)
from dani_api.infrastructure.database.log_query_builder import (
    build_conditions,
    build_count_query,
    build_date_query,
    build_distinct_tools_query,
    build_distinct_users_query,
    build_feedback_query,
    build_log_query,
    build_model_query,
    build_stats_queries,
    build_tools_query,
)


def _compile(stmt):
    compiled = stmt.compile(dialect=postgresql.dialect())
    return str(compiled), compiled.params


def _all_filters() -> LogFilters:
    return LogFilters(
        date_from=datetime(2025, 1, 1, tzinfo=timezone.utc),
        date_to=datetime(2025, 1, 31, tzinfo=timezone.utc),
        user_id="user-1",
        model="claude-sonnet",
        complexity_level=ComplexityLevel.ANALYTICAL,
        feedback_status=FeedbackFilter.POSITIVE,
        query_text="reset password",
        tool_used="search_kb",
        min_execution_time=500,
    )


def test_no_filters_match_everything():
    sql, params = _compile(build_count_query(LogFilters()))
    assert "WHERE true" in sql
    assert params == {}


def test_each_active_filter_adds_one_predicate():
    assert build_conditions(LogFilters()) == []
    assert len(build_conditions(_all_filters())) == 9


def test_filter_values_are_bound_not_inlined():
    sql, params = _compile(build_count_query(_all_filters()))

    values = set(map(str, params.values()))
    for value in ("user-1", "claude-sonnet", "ANALYTICAL", "positive", "reset password", "search_kb", "500"):
        assert value in values
        assert f"'{value}'" not in sql


def test_payload_fields_are_addressed_by_json_path():
    sql, _ = _compile(build_count_query(_all_filters()))

    assert "conversation_logs.log_data->'response'->>'model_used'" in sql
    assert "conversation_logs.log_data->'query'->'analyzer_output'->>'complexity_level'" in sql
    assert "conversation_logs.log_data->'feedback'->>'status'" in sql
    assert "CAST((conversation_logs.log_data->>'execution_time_ms') AS INTEGER) >=" in sql


def test_query_text_uses_english_full_text_search():
    sql, _ = _compile(build_count_query(LogFilters(query_text="reset")))
    assert "to_tsvector('english'::regconfig, (conversation_logs.log_data->'query'->>'original_text'))" in sql
    assert "@@ plainto_tsquery('english'::regconfig," in sql


def test_tool_filter_checks_any_tool_call():
    sql, params = _compile(build_count_query(LogFilters(tool_used="search_kb")))
    assert "EXISTS (SELECT 1" in sql
    assert "jsonb_array_elements((conversation_logs.log_data->'execution'->'tool_calls')) AS tool(value)" in sql
    assert "(tool.value->>'tool_name') =" in sql
    assert "search_kb" in params.values()


def test_feedback_none_matches_null_and_legacy_string():
    sql, params = _compile(build_count_query(LogFilters(feedback_status=FeedbackFilter.NONE)))
    assert "(conversation_logs.log_data->'feedback'->>'status') IS NULL" in sql
    assert "null" in params.values()


def test_zero_min_execution_time_is_no_constraint():
    assert build_conditions(LogFilters(min_execution_time=0)) == []


def test_log_query_defaults_to_newest_first():
    sql, params = _compile(build_log_query(LogFilters(), Pagination()))
    assert "ORDER BY conversation_logs.timestamp DESC, conversation_logs.id DESC" in sql
    assert 50 in params.values()


def test_log_query_sorts_by_execution_time():
    pagination = Pagination(sort_by="execution_time_ms", sort_order="asc")
    sql, _ = _compile(build_log_query(LogFilters(), pagination))
    assert (
        "ORDER BY CAST((conversation_logs.log_data->>'execution_time_ms') AS INTEGER) ASC, "
        "conversation_logs.id ASC"
    ) in sql


def test_unknown_sort_column_never_reaches_sql():
    pagination = Pagination(sort_by="user_id; DROP TABLE users", sort_order="up")
    sql, _ = _compile(build_log_query(LogFilters(), pagination))
    assert "DROP" not in sql
    assert "ORDER BY conversation_logs.timestamp DESC" in sql


def test_log_query_clamps_limit_and_offset():
    _, params = _compile(build_log_query(LogFilters(), Pagination(page=3, limit=5000)))
    assert 1000 in params.values()
    assert 2000 in params.values()


def test_log_query_continues_after_cursor_row():
    cursor = PageCursor(sort_value=datetime(2025, 3, 10, 12, tzinfo=timezone.utc), id="log-42")
    pagination = Pagination(page=2, limit=1000, after=cursor)

    sql, params = _compile(build_log_query(LogFilters(), pagination))

    assert "(conversation_logs.timestamp, conversation_logs.id) < (" in sql
    assert "log-42" in params.values()
    assert cursor.sort_value in params.values()


def test_ascending_cursor_reads_larger_keys():
    cursor = PageCursor(sort_value=1500, id="log-42")
    pagination = Pagination(sort_by="execution_time_ms", sort_order="asc", after=cursor)

    sql, params = _compile(build_log_query(LogFilters(), pagination))

    assert (
        "(CAST((conversation_logs.log_data->>'execution_time_ms') AS INTEGER), "
        "conversation_logs.id) > ("
    ) in sql
    assert 1500 in params.values()


# ── Statistics ───────────────────────────────────────────────────────


def test_stats_queries_share_the_same_filters():
    stats = build_stats_queries(LogFilters(model="claude-sonnet"))
    for stmt in (stats.total, stats.avg_time, stats.feedback, stats.model,
                 stats.complexity, stats.date, stats.tools):
        sql, params = _compile(stmt)
        assert "claude-sonnet" in params.values()
        assert "log_data->'response'->>'model_used'" in sql


def test_feedback_query_groups_by_status():
    sql, _ = _compile(build_feedback_query(LogFilters()))
    assert "GROUP BY (conversation_logs.log_data->'feedback'->>'status')" in sql


def test_model_query_orders_by_count():
    sql, _ = _compile(build_model_query(LogFilters()))
    assert "ORDER BY count DESC" in sql


def test_date_query_buckets_by_utc_day():
    sql, _ = _compile(build_date_query(LogFilters()))
    assert "CAST(timezone('UTC', conversation_logs.timestamp) AS DATE) AS date" in sql
    assert "GROUP BY CAST(timezone('UTC', conversation_logs.timestamp) AS DATE)" in sql


def test_tools_query_flattens_tool_calls_and_ranks():
    sql, params = _compile(build_tools_query(LogFilters(), limit=10))
    assert "AS tool(value) ON true" in sql
    assert "GROUP BY (tool.value->>'tool_name')" in sql
    assert "ORDER BY count DESC, (tool.value->>'tool_name')" in sql
    assert 10 in params.values()


# ── Filter dropdowns ─────────────────────────────────────────────────


def test_distinct_users_joins_users_table():
    sql, _ = _compile(build_distinct_users_query())
    assert sql.startswith("SELECT DISTINCT")
    assert "JOIN users ON users.id = conversation_logs.user_id" in sql
    assert "ORDER BY users.name" in sql


def test_distinct_tools_lists_each_name_once():
    sql, _ = _compile(build_distinct_tools_query())
    assert sql.startswith("SELECT DISTINCT (tool.value->>'tool_name') AS tool_name")
    assert "ORDER BY (tool.value->>'tool_name')" in sql
