"""SQLAlchemy ORM model for the users table — read-only here.

Accounts are owned by the authentication subsystem; the log subsystem only
joins against it to label distinct log owners.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from dani_api.infrastructure.database.base import Base


class UserModel(Base):
    """ORM model — the columns of 'users' that log queries read."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<UserModel(id={self.id}, email='{self.email}')>"
