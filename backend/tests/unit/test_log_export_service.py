"""Unit tests for conversation log exports."""

import csv
import io
import json
from datetime import date, datetime, timedelta, timezone

import pytest

from dani_api.application.services import ConversationLogService, LogExportService
from dani_api.application.services.log_export_service import (
    CSV_COLUMNS,
    export_to_csv,
    export_to_json,
    export_to_jsonl,
    flatten_log,
    generate_filename,
    validate_export_request,
)
from dani_api.domain.entities import (
    ExportFormat,
    ExportMetadata,
    FeedbackData,
    FeedbackStatus,
    LogFilters,
)
from dani_api.domain.exceptions import ExportValidationError
from tests.fakes import (
    BASE_TIME,
    FakeAdminLogAccessRepository,
    FakeConversationLogRepository,
    FakeFallbackWriter,
    make_log,
)

EXPORTED_AT = datetime(2025, 3, 12, 9, 30, tzinfo=timezone.utc)


def _metadata(export_format: ExportFormat, count: int, filters: LogFilters | None = None):
    return ExportMetadata(
        export_timestamp=EXPORTED_AT,
        filters_applied=filters or LogFilters(),
        record_count=count,
        exported_by="admin@example.com",
        export_format=export_format,
    )


@pytest.fixture
def repository() -> FakeConversationLogRepository:
    return FakeConversationLogRepository()


@pytest.fixture
def access_repository() -> FakeAdminLogAccessRepository:
    return FakeAdminLogAccessRepository()


@pytest.fixture
def export_service(repository, access_repository) -> LogExportService:
    log_service = ConversationLogService(repository, access_repository, FakeFallbackWriter())
    return LogExportService(log_service)


# ── validation ───────────────────────────────────────────────────────


def test_unknown_format_is_rejected():
    result = validate_export_request("xml", "current_page", 10)
    assert not result.valid
    assert result.error == "Invalid export format. Must be json, csv, or jsonl."


def test_unknown_scope_is_rejected():
    result = validate_export_request("csv", "everything", 10)
    assert not result.valid
    assert "current_page or all_filtered" in result.error


def test_record_cap_applies_to_all_filtered_only():
    assert validate_export_request("json", "all_filtered", 10_000).valid
    assert validate_export_request("json", "current_page", 10_001).valid

    result = validate_export_request("json", "all_filtered", 10_001)
    assert not result.valid
    assert result.error == (
        "Export exceeds maximum record limit (10,000). Requested: 10001. "
        "Please narrow your filters or date range."
    )


# ── formatters ───────────────────────────────────────────────────────


def test_json_export_has_metadata_and_flat_entries():
    log = make_log(tools=("search_kb",))

    document = json.loads(export_to_json([log], _metadata(ExportFormat.JSON, 1)))

    assert document["metadata"]["record_count"] == 1
    assert document["metadata"]["exported_by"] == "admin@example.com"
    assert document["metadata"]["date_range"] == {"from": None, "to": None}
    entry = document["logs"][0]
    assert entry["id"] == log.id
    assert entry["user_id"] == "user-1"
    assert entry["response"]["model_used"] == "claude-sonnet"
    assert "log_data" not in entry


def test_jsonl_export_starts_with_metadata_line():
    logs = [make_log(), make_log()]

    lines = export_to_jsonl(logs, _metadata(ExportFormat.JSONL, 2)).split("\n")

    assert len(lines) == 3
    assert json.loads(lines[0])["_metadata"]["export_format"] == "jsonl"
    assert [json.loads(line)["id"] for line in lines[1:]] == [log.id for log in logs]


def test_csv_export_layout():
    filters = LogFilters(
        date_from=datetime(2025, 3, 1, tzinfo=timezone.utc),
        date_to=datetime(2025, 3, 31, tzinfo=timezone.utc),
    )
    output = export_to_csv([make_log()], _metadata(ExportFormat.CSV, 1, filters))
    lines = output.split("\n")

    assert lines[0] == f"# Export Timestamp: {EXPORTED_AT.isoformat()}"
    assert lines[1] == "# Exported By: admin@example.com"
    assert lines[2] == "# Record Count: 1"
    assert lines[3] == "# Export Format: csv"
    assert lines[4] == "# Date Range: 2025-03-01T00:00:00+00:00 to 2025-03-31T00:00:00+00:00"
    assert lines[5] == ""
    assert lines[6] == ",".join(CSV_COLUMNS)


def test_csv_fields_survive_commas_quotes_and_newlines():
    tricky = 'Compare "plan A", plan B\nand plan C'
    log = make_log(
        text=tricky,
        final_text="line one\nline two, with comma",
        tools=("search_kb", "get_article"),
        feedback=FeedbackData(status=FeedbackStatus.NEGATIVE),
    )

    output = export_to_csv([log], _metadata(ExportFormat.CSV, 1))
    body = output.split("\n\n", 1)[1]
    rows = list(csv.DictReader(io.StringIO(body)))

    assert len(rows) == 1
    row = rows[0]
    assert row["query"] == tricky
    assert row["response_preview"] == "line one line two, with comma"
    assert row["tool_count"] == "2"
    assert row["feedback"] == "negative"
    assert json.loads(row["full_data_json"])["query"]["original_text"] == tricky


def test_flatten_log_truncates_preview_and_defaults_feedback():
    row = flatten_log(make_log(final_text="x" * 500))
    assert len(row["response_preview"]) == 200
    assert row["feedback"] == "none"
    assert row["tool_count"] == 0


def test_exports_carry_the_stored_document_unchanged():
    log = make_log()
    log.stored_data = {
        **log.log_data.to_dict(),
        "start_time": "2025-03-10T12:00:00.000Z",
        "client": {"app": "teams"},
    }
    del log.stored_data["schema_version"]

    full = json.loads(flatten_log(log)["full_data_json"])
    entry = json.loads(export_to_json([log], _metadata(ExportFormat.JSON, 1)))["logs"][0]

    for exported in (full, entry):
        assert exported["start_time"] == "2025-03-10T12:00:00.000Z"
        assert exported["client"] == {"app": "teams"}
        assert "schema_version" not in exported


def test_flatten_log_leaves_unknown_complexity_blank():
    log = make_log()
    log.log_data.query.analyzer_output.complexity_level = None
    assert flatten_log(log)["complexity"] == ""


# ── naming ───────────────────────────────────────────────────────────


def test_filename_without_date_range():
    name = generate_filename(ExportFormat.CSV, LogFilters(), today=date(2025, 3, 12))
    assert name == "dani_logs_2025-03-12.csv"


def test_filename_with_date_range():
    filters = LogFilters(
        date_from=datetime(2025, 3, 1, tzinfo=timezone.utc),
        date_to=datetime(2025, 3, 31, tzinfo=timezone.utc),
    )
    name = generate_filename(ExportFormat.JSONL, filters, today=date(2025, 4, 1))
    assert name == "dani_logs_2025-03-01_to_2025-03-31_2025-04-01.jsonl"


@pytest.mark.parametrize(
    "export_format, mime",
    [
        (ExportFormat.JSON, "application/json"),
        (ExportFormat.CSV, "text/csv"),
        (ExportFormat.JSONL, "application/x-ndjson"),
    ],
)
def test_mime_types(export_format, mime):
    assert export_format.mime_type == mime


# ── export entry point ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_current_page_export(export_service, repository, access_repository):
    for _ in range(3):
        await repository.create(make_log())

    result = await export_service.export_logs(
        filters=LogFilters(),
        format="json",
        scope="current_page",
        exported_by="admin@example.com",
        admin_user_id="admin-1",
        page=1,
        limit=2,
    )

    assert result.record_count == 2
    assert result.mime_type == "application/json"
    assert result.filename.endswith(".json")
    assert len(json.loads(result.data)["logs"]) == 2

    entry = access_repository.entries[-1]
    assert entry.action == "export_logs"
    assert entry.access_data["export_scope"] == "current_page"
    assert entry.access_data["record_count"] == 2


@pytest.mark.asyncio
async def test_all_filtered_export_reads_every_page(export_service, repository):
    for i in range(2405):
        await repository.create(make_log(model="claude-opus" if i % 2 else "claude-sonnet"))

    result = await export_service.export_logs(
        filters=LogFilters(model="claude-sonnet"),
        format="jsonl",
        scope="all_filtered",
        exported_by="admin@example.com",
        admin_user_id="admin-1",
    )

    assert result.record_count == 1203
    assert len(result.data.split("\n")) == 1204


@pytest.mark.asyncio
async def test_all_filtered_export_over_the_cap_is_rejected(
    export_service, repository, monkeypatch
):
    async def too_many(filters):
        return 10_001

    await repository.create(make_log())
    monkeypatch.setattr(repository, "count", too_many)

    with pytest.raises(ExportValidationError, match="Requested: 10001"):
        await export_service.export_logs(
            filters=LogFilters(),
            format="csv",
            scope="all_filtered",
            exported_by="admin@example.com",
            admin_user_id="admin-1",
        )


@pytest.mark.asyncio
async def test_invalid_format_is_rejected_before_querying(export_service, repository):
    with pytest.raises(ExportValidationError):
        await export_service.export_logs(
            filters=LogFilters(),
            format="xml",
            scope="current_page",
            exported_by="admin@example.com",
            admin_user_id="admin-1",
        )
    assert repository.calls == []


@pytest.mark.asyncio
async def test_all_filtered_export_is_stable_while_logs_are_written(
    export_service, repository, monkeypatch
):
    for i in range(1500):
        await repository.create(make_log(timestamp=BASE_TIME - timedelta(seconds=i % 700)))

    read_page = repository.find
    pages_read = 0

    async def find_while_a_turn_is_logged(filters, pagination):
        nonlocal pages_read
        logs = await read_page(filters, pagination)
        pages_read += 1
        if pages_read == 1:
            await repository.create(make_log(timestamp=BASE_TIME + timedelta(minutes=5)))
        return logs

    monkeypatch.setattr(repository, "find", find_while_a_turn_is_logged)

    result = await export_service.export_logs(
        filters=LogFilters(),
        format="jsonl",
        scope="all_filtered",
        exported_by="admin@example.com",
        admin_user_id="admin-1",
    )

    ids = [json.loads(line)["id"] for line in result.data.split("\n")[1:]]
    assert pages_read == 2
    assert len(ids) == len(set(ids)) == 1500
    assert result.record_count == 1500
