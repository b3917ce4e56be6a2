"""SQLAlchemy ORM models for conversation logs and the admin access audit trail."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from dani_api.infrastructure.database.base import Base
from dani_api.infrastructure.database.payload_paths import (
    COMPLEXITY_LEVEL,
    EXECUTION_TIME_MS,
    FEEDBACK_STATUS,
    MODEL_USED,
    fts_vector_sql,
    path_sql,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationLogModel(Base):
    """ORM model — maps to the 'conversation_logs' table."""

    __tablename__ = "conversation_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    conversation_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    message_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False,
    )
    log_data: Mapped[dict] = mapped_column(JSONB, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False,
    )

    __table_args__ = (
        Index("idx_conversation_logs_user_id", "user_id"),
        Index("idx_conversation_logs_conversation_id", "conversation_id"),
        Index("idx_conversation_logs_timestamp", text("timestamp DESC")),
        Index("idx_conversation_logs_data_gin", "log_data", postgresql_using="gin"),
        Index("idx_logs_model", text(f"({path_sql(MODEL_USED)})")),
        Index("idx_logs_feedback", text(f"({path_sql(FEEDBACK_STATUS)})")),
        Index("idx_logs_complexity", text(f"({path_sql(COMPLEXITY_LEVEL)})")),
        Index(
            "idx_logs_execution_time",
            text(f"(({path_sql(EXECUTION_TIME_MS)})::integer)"),
        ),
        Index("idx_logs_query_text", text(fts_vector_sql()), postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return (
            f"<ConversationLogModel(id={self.id}, user_id='{self.user_id}', "
            f"conversation_id='{self.conversation_id}')>"
        )


class AdminLogAccessModel(Base):
    """ORM model — maps to the append-only 'admin_log_access' table."""

    __tablename__ = "admin_log_access"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    admin_user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    log_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("conversation_logs.id", ondelete="SET NULL"),
        nullable=True,
    )
    access_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False,
    )

    __table_args__ = (
        Index("idx_admin_log_access_admin_user_id", "admin_user_id"),
        Index("idx_admin_log_access_action", "action"),
        Index("idx_admin_log_access_timestamp", text("timestamp DESC")),
    )

    def __repr__(self) -> str:
        return f"<AdminLogAccessModel(id={self.id}, action='{self.action}')>"
