"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from dani_api.presentation.api.v1.endpoints.health import router as health_router
from dani_api.presentation.api.v1.endpoints.conversation_logs import router as conversation_logs_router
from dani_api.presentation.api.v1.endpoints.feedback import router as feedback_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(conversation_logs_router)
router.include_router(feedback_router)
