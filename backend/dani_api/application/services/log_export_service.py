"""Conversation log export — renders logs as JSON, CSV or JSONL downloads.

Formats:
    json   — one document ``{"metadata": ..., "logs": [...]}``
    csv    — ``#`` metadata comment block, header row, one flattened row per log
    jsonl  — ``{"_metadata": ...}`` line followed by one log object per line

In JSON and JSONL each log entry carries its identifiers at the top level with
the payload fields merged alongside them (no nested ``log_data`` key).
"""

import csv
import io
import json
import logging
from datetime import date, datetime, timezone
from typing import Any

from dani_api.application.services.conversation_log_service import ConversationLogService
from dani_api.domain.entities import (
    DEFAULT_PAGE_LIMIT,
    MAX_EXPORT_RECORDS,
    MAX_PAGE_LIMIT,
    ConversationLog,
    ExportFormat,
    ExportMetadata,
    ExportResult,
    ExportScope,
    ExportValidation,
    LogFilters,
    PageCursor,
    Pagination,
)
from dani_api.domain.exceptions import ExportValidationError

logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    "id",
    "timestamp",
    "user_id",
    "username",
    "query",
    "model",
    "complexity",
    "execution_time_ms",
    "tool_count",
    "response_preview",
    "feedback",
    "full_data_json",
)

RESPONSE_PREVIEW_CHARS = 200


# ── Validation ───────────────────────────────────────────────────────


def validate_export_request(format: str, scope: str, record_count: int) -> ExportValidation:
    """Check format, scope and (for ``all_filtered``) the record cap."""
    if format not in {f.value for f in ExportFormat}:
        return ExportValidation(
            valid=False, error="Invalid export format. Must be json, csv, or jsonl."
        )
    if scope not in {s.value for s in ExportScope}:
        return ExportValidation(
            valid=False,
            error="Invalid export scope. Must be current_page or all_filtered.",
        )
    if scope == ExportScope.ALL_FILTERED.value and record_count > MAX_EXPORT_RECORDS:
        return ExportValidation(
            valid=False,
            error=(
                f"Export exceeds maximum record limit ({MAX_EXPORT_RECORDS:,}). "
                f"Requested: {record_count}. Please narrow your filters or date range."
            ),
        )
    return ExportValidation(valid=True)


# ── Formatters ───────────────────────────────────────────────────────


def _export_entry(log: ConversationLog) -> dict[str, Any]:
    return {
        "id": log.id,
        "conversation_id": log.conversation_id,
        "message_id": log.message_id,
        "user_id": log.user_id,
        "timestamp": log.timestamp.isoformat(),
        **log.payload(),
    }


def export_to_json(logs: list[ConversationLog], metadata: ExportMetadata) -> str:
    document = {
        "metadata": metadata.to_dict(),
        "logs": [_export_entry(log) for log in logs],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def export_to_jsonl(logs: list[ConversationLog], metadata: ExportMetadata) -> str:
    lines = [json.dumps({"_metadata": metadata.to_dict()}, ensure_ascii=False)]
    lines.extend(json.dumps(_export_entry(log), ensure_ascii=False) for log in logs)
    return "\n".join(lines)


def flatten_log(log: ConversationLog) -> dict[str, Any]:
    """Flatten a log into the fixed CSV columns."""
    data = log.log_data
    preview = data.response.final_text[:RESPONSE_PREVIEW_CHARS].replace("\n", " ")
    return {
        "id": log.id,
        "timestamp": log.timestamp.isoformat(),
        "user_id": log.user_id,
        "username": data.username,
        "query": data.query.original_text,
        "model": data.response.model_used,
        "complexity": getattr(data.query.analyzer_output.complexity_level, "value", ""),
        "execution_time_ms": data.execution_time_ms,
        "tool_count": len(data.execution.tool_calls),
        "response_preview": preview,
        "feedback": data.feedback.status.value if data.feedback.status else "none",
        "full_data_json": json.dumps(log.payload(), ensure_ascii=False),
    }


def export_to_csv(logs: list[ConversationLog], metadata: ExportMetadata) -> str:
    meta = metadata.to_dict()
    date_range = meta["date_range"]
    buffer = io.StringIO()
    buffer.write(f"# Export Timestamp: {meta['export_timestamp']}\n")
    buffer.write(f"# Exported By: {meta['exported_by']}\n")
    buffer.write(f"# Record Count: {meta['record_count']}\n")
    buffer.write(f"# Export Format: {meta['export_format']}\n")
    buffer.write(
        f"# Date Range: {date_range['from'] or 'N/A'} to {date_range['to'] or 'N/A'}\n"
    )
    buffer.write("\n")

    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for log in logs:
        row = flatten_log(log)
        writer.writerow([row[column] for column in CSV_COLUMNS])

    return buffer.getvalue().rstrip("\n")


_RENDERERS = {
    ExportFormat.JSON: export_to_json,
    ExportFormat.CSV: export_to_csv,
    ExportFormat.JSONL: export_to_jsonl,
}


def render_export(
    format: ExportFormat, logs: list[ConversationLog], metadata: ExportMetadata
) -> str:
    return _RENDERERS[format](logs, metadata)


# ── Naming ───────────────────────────────────────────────────────────


def generate_filename(
    format: ExportFormat, filters: LogFilters, today: date | None = None
) -> str:
    """``dani_logs[_<from>_to_<to>]_<today>.<ext>`` — same filters, same day, same name."""
    today = today or datetime.now(timezone.utc).date()
    date_range = ""
    if filters.date_from and filters.date_to:
        date_range = (
            f"_{filters.date_from.date().isoformat()}_to_{filters.date_to.date().isoformat()}"
        )
    return f"dani_logs{date_range}_{today.isoformat()}.{format.value}"


def get_mime_type(format: ExportFormat) -> str:
    return format.mime_type


# ── Export entry point ───────────────────────────────────────────────


class LogExportService:
    """Runs a filtered log query and renders the result as a downloadable file."""

    def __init__(self, log_service: ConversationLogService):
        self._log_service = log_service

    async def export_logs(
        self,
        *,
        filters: LogFilters,
        format: str,
        scope: str,
        exported_by: str,
        admin_user_id: str,
        page: int | None = None,
        limit: int | None = None,
    ) -> ExportResult:
        """Build an export file.

        Raises:
            ExportValidationError: on an unknown format/scope or when more than
                ``MAX_EXPORT_RECORDS`` logs match an ``all_filtered`` export.
        """
        validation = validate_export_request(format, scope, 0)
        if not validation.valid:
            raise ExportValidationError(validation.error)

        export_format = ExportFormat(format)
        export_scope = ExportScope(scope)

        if export_scope is ExportScope.CURRENT_PAGE:
            result = await self._log_service.query(
                filters, Pagination(page=page or 1, limit=limit or DEFAULT_PAGE_LIMIT)
            )
            logs = result.logs
        else:
            logs = await self._collect_all(filters, format, scope)

        metadata = ExportMetadata(
            export_timestamp=datetime.now(timezone.utc),
            filters_applied=filters,
            record_count=len(logs),
            exported_by=exported_by,
            export_format=export_format,
        )
        data = render_export(export_format, logs, metadata)

        logger.info(
            "Admin log export admin_user_id=%s format=%s scope=%s records=%d filters=%s",
            admin_user_id,
            export_format.value,
            export_scope.value,
            len(logs),
            filters.to_dict(),
        )
        await self._log_service.audit_access(
            admin_user_id,
            "export_logs",
            access_data={
                "filters": filters.to_dict(),
                "export_format": export_format.value,
                "export_scope": export_scope.value,
                "record_count": len(logs),
            },
        )

        return ExportResult(
            data=data,
            filename=generate_filename(export_format, filters),
            mime_type=get_mime_type(export_format),
            record_count=len(logs),
        )

    async def _collect_all(self, filters: LogFilters, format: str, scope: str) -> list[ConversationLog]:
        """Read every matching log in key order, re-checking the cap on each page.

        Each page continues after the last row read, so logs written while the
        export runs cannot shift a row into two pages.
        """
        logs: list[ConversationLog] = []
        pagination = Pagination(limit=MAX_PAGE_LIMIT)
        while True:
            result = await self._log_service.query(filters, pagination)
            validation = validate_export_request(format, scope, result.total)
            if not validation.valid:
                raise ExportValidationError(validation.error)

            logs.extend(result.logs)
            if len(result.logs) < MAX_PAGE_LIMIT or len(logs) >= MAX_EXPORT_RECORDS:
                break
            pagination = Pagination(
                page=pagination.page + 1,
                limit=MAX_PAGE_LIMIT,
                after=PageCursor.after_log(result.logs[-1], pagination.sort_field()),
            )
        return logs[:MAX_EXPORT_RECORDS]
