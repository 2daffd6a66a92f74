from sqlalchemy import String, DateTime, Boolean, UUID, true
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from datetime import datetime, timezone
from usercrud.database.base import Base
import uuid

# --- Field constraints ---
# Shared by the column definitions below and by the request DTOs in usercrud.schemas.user,
# so the schema checks and the table can never disagree.
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 255
NAME_MAX_LENGTH = 50


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    SQLAlchemy model for User.

    Represents an account. `id`, `created_at` and `updated_at` are filled in when the
    row is first flushed; `updated_at` is stamped again on every UPDATE.
    The password is write-only: it never leaves the service through a DTO.
    """
    __tablename__ = "users"

    # Unique identifier for the user (primary key)
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Username (must be unique and non-null)
    username: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH),
        unique=True,
        index=True,
        nullable=False
    )

    # Email address (must be unique and non-null)
    email: Mapped[str] = mapped_column(
        String(EMAIL_MAX_LENGTH),
        unique=True,
        index=True,
        nullable=False
    )

    password: Mapped[str] = mapped_column(
        String(PASSWORD_MAX_LENGTH),
        nullable=False
    )

    first_name: Mapped[str | None] = mapped_column(
        String(NAME_MAX_LENGTH),
        nullable=True
    )

    last_name: Mapped[str | None] = mapped_column(
        String(NAME_MAX_LENGTH),
        nullable=True
    )

    # Whether the user account is active
    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default=true(),
        index=True,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False
    )

    # Refreshed by the ORM on every UPDATE statement
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        # password deliberately left out
        return f"<User(id={self.id!r}, username={self.username!r}, email={self.email!r})>"
