"""User feedback on assistant responses."""

from fastapi import APIRouter, Depends, HTTPException, status

from dani_api.application.schemas import FeedbackRequest, FeedbackResponse
from dani_api.application.services import ConversationLogService
from dani_api.domain.exceptions import EntityNotFoundError
from dani_api.infrastructure.dependencies import get_conversation_log_service

router = APIRouter(prefix="/feedback", tags=["Feedback"])


@router.post("", response_model=FeedbackResponse)
async def submit_feedback(
    data: FeedbackRequest,
    service: ConversationLogService = Depends(get_conversation_log_service),
) -> FeedbackResponse:
    """Rate a response. A later submission replaces the earlier one."""
    try:
        feedback = await service.update_feedback(data.log_id, data.status, data.comment)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return FeedbackResponse.from_feedback(data.log_id, feedback)


@router.get("/{log_id}", response_model=FeedbackResponse)
async def get_feedback(
    log_id: str,
    service: ConversationLogService = Depends(get_conversation_log_service),
) -> FeedbackResponse:
    """Current feedback of a log (status is null when not rated yet)."""
    log = await service.get_detail(log_id)
    if log is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"ConversationLog with id '{log_id}' not found",
        )
    return FeedbackResponse.from_feedback(log_id, log.log_data.feedback)
