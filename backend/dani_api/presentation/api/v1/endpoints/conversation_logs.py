"""Admin endpoints for browsing, aggregating and exporting conversation logs.

Every read that exposes log content is recorded in the admin access audit
trail. Audit failures never fail the request.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from dani_api.application.schemas import (
    ConversationLogResponse,
    DistinctUserResponse,
    LogExportRequest,
    LogFiltersSchema,
    LogQueryResponse,
    LogStatsResponse,
)
from dani_api.application.services import ConversationLogService, LogExportService
from dani_api.config import Settings
from dani_api.domain.entities import (
    ComplexityLevel,
    FeedbackFilter,
    LogFilters,
    Pagination,
    SortField,
    SortOrder,
)
from dani_api.domain.exceptions import ExportValidationError
from dani_api.infrastructure.dependencies import (
    AdminIdentity,
    get_admin_identity,
    get_app_settings,
    get_conversation_log_service,
    get_log_export_service,
)

router = APIRouter(prefix="/admin", tags=["Conversation Logs"])


def get_log_filters(
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    user_id: str | None = None,
    model: str | None = None,
    complexity_level: ComplexityLevel | None = None,
    feedback_status: FeedbackFilter | None = None,
    query_text: str | None = Query(None, max_length=500),
    tool_used: str | None = None,
    min_execution_time: int | None = Query(None, ge=0),
) -> LogFilters:
    """Collect the optional filter query parameters into ``LogFilters``."""
    return LogFiltersSchema(
        date_from=date_from,
        date_to=date_to,
        user_id=user_id,
        model=model,
        complexity_level=complexity_level,
        feedback_status=feedback_status,
        query_text=query_text,
        tool_used=tool_used,
        min_execution_time=min_execution_time,
    ).to_filters()


@router.get("/conversation-logs", response_model=LogQueryResponse)
async def list_conversation_logs(
    filters: LogFilters = Depends(get_log_filters),
    page: float = Query(1, allow_inf_nan=False),
    limit: float | None = Query(None, allow_inf_nan=False),
    sort_by: str = SortField.TIMESTAMP.value,
    sort_order: str = SortOrder.DESC.value,
    admin: AdminIdentity = Depends(get_admin_identity),
    settings: Settings = Depends(get_app_settings),
    service: ConversationLogService = Depends(get_conversation_log_service),
) -> LogQueryResponse:
    """Paginated, filtered log listing. Out-of-range paging values are clamped."""
    pagination = Pagination(
        page=page,
        limit=limit if limit is not None else settings.log_page_default_limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = await service.query(filters, pagination)
    await service.audit_access(
        admin.user_id,
        "view_logs",
        access_data={
            "filters": filters.to_dict(),
            "page": result.page,
            "limit": result.limit,
            "result_count": len(result.logs),
        },
    )
    return LogQueryResponse.from_result(result)


@router.get("/conversation-logs/filters/users", response_model=list[DistinctUserResponse])
async def list_log_users(
    admin: AdminIdentity = Depends(get_admin_identity),
    service: ConversationLogService = Depends(get_conversation_log_service),
) -> list[DistinctUserResponse]:
    """Users that own at least one log, for the filter dropdown."""
    users = await service.list_distinct_users()
    return [DistinctUserResponse.from_entity(u) for u in users]


@router.get("/conversation-logs/filters/tools", response_model=list[str])
async def list_log_tools(
    admin: AdminIdentity = Depends(get_admin_identity),
    service: ConversationLogService = Depends(get_conversation_log_service),
) -> list[str]:
    """Tool names that appear in any log, for the filter dropdown."""
    return await service.list_distinct_tools()


@router.post("/conversation-logs/export")
async def export_conversation_logs(
    data: LogExportRequest,
    admin: AdminIdentity = Depends(get_admin_identity),
    service: LogExportService = Depends(get_log_export_service),
) -> Response:
    """Download matching logs as a JSON, CSV or JSONL file."""
    try:
        result = await service.export_logs(
            filters=data.filters.to_filters(),
            format=data.format,
            scope=data.scope,
            exported_by=admin.display_name,
            admin_user_id=admin.user_id,
            page=data.page,
            limit=data.limit,
        )
    except ExportValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return Response(
        content=result.data,
        media_type=result.mime_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Record-Count": str(result.record_count),
        },
    )


@router.get("/conversation-logs/{log_id}", response_model=ConversationLogResponse)
async def get_conversation_log(
    log_id: str,
    admin: AdminIdentity = Depends(get_admin_identity),
    service: ConversationLogService = Depends(get_conversation_log_service),
) -> ConversationLogResponse:
    """Full trace of a single log."""
    log = await service.get_detail(log_id)
    if log is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"ConversationLog with id '{log_id}' not found",
        )
    await service.audit_access(admin.user_id, "view_log_detail", log_id=log_id)
    return ConversationLogResponse.from_entity(log)


@router.get("/conversation-logs-stats", response_model=LogStatsResponse)
async def get_conversation_log_stats(
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    user_id: str | None = None,
    model: str | None = None,
    admin: AdminIdentity = Depends(get_admin_identity),
    service: ConversationLogService = Depends(get_conversation_log_service),
) -> LogStatsResponse:
    """Dashboard aggregates over the logs matching the given range."""
    filters = LogFilters(date_from=date_from, date_to=date_to, user_id=user_id, model=model)
    stats = await service.get_statistics(filters)
    return LogStatsResponse.from_stats(stats)
