"""FastAPI dependency injection — wires infrastructure to application layer."""

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dani_api.config import Settings, get_settings
from dani_api.application.services import ConversationLogService, LogExportService
from dani_api.infrastructure.database.repositories import (
    SQLAlchemyAdminLogAccessRepository,
    SQLAlchemyConversationLogRepository,
)
from dani_api.infrastructure.storage.fallback_log_storage import LocalFallbackLogStorage


@dataclass(frozen=True)
class AdminIdentity:
    """The admin on whose behalf a request runs, as handed in by the auth proxy."""

    user_id: str
    email: str | None = None

    @property
    def display_name(self) -> str:
        return self.email or self.user_id


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with (falls back to the cached env settings)."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_factory


def get_conversation_log_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_app_settings),
) -> ConversationLogService:
    """Provides a ConversationLogService with its repositories wired up."""
    return ConversationLogService(
        repository=SQLAlchemyConversationLogRepository(session_factory),
        access_repository=SQLAlchemyAdminLogAccessRepository(session_factory),
        fallback_writer=LocalFallbackLogStorage(settings.fallback_log_dir),
    )


def get_log_export_service(
    log_service: ConversationLogService = Depends(get_conversation_log_service),
) -> LogExportService:
    return LogExportService(log_service)


def get_admin_identity(
    x_admin_user_id: str | None = Header(None),
    x_admin_email: str | None = Header(None),
) -> AdminIdentity:
    """Admin identity from request headers. Authentication happens upstream."""
    if not x_admin_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Admin-User-Id header",
        )
    return AdminIdentity(user_id=x_admin_user_id, email=x_admin_email)
