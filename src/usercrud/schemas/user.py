"""
User-related Pydantic schemas used by the API layer.

JSON field names are camelCase (`firstName`, `createdAt`, `validationErrors`);
input also accepts the snake_case attribute names.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidatorFunctionWrapHandler, field_validator
from pydantic.alias_generators import to_camel

from usercrud.models.user import (
    USERNAME_MIN_LENGTH,
    USERNAME_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    PASSWORD_MAX_LENGTH,
    NAME_MAX_LENGTH,
)

__all__ = [
    "CreateUserRequest",
    "UpdateUserRequest",
    "UserView",
    "ValidationIssue",
    "ErrorPayload",
]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_username(value: str) -> str:
    if not value.strip():
        raise ValueError("Username must not be blank")
    return value


def _check_email_length(value: str) -> str:
    # EmailStr does not take max_length, so the column bound is checked here
    if len(value) > EMAIL_MAX_LENGTH:
        raise ValueError(f"Email must be at most {EMAIL_MAX_LENGTH} characters")
    return value


class _UserFields(_CamelModel):
    """Shared attributes between the create and update payloads."""

    username: str = Field(..., min_length=USERNAME_MIN_LENGTH, max_length=USERNAME_MAX_LENGTH)
    email: EmailStr
    first_name: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)
    last_name: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, v: str) -> str:
        return _check_username(v)

    @field_validator("email", mode="wrap")
    @classmethod
    def email_as_sent(cls, v: Any, handler: ValidatorFunctionWrapHandler) -> str:
        # EmailStr normalises the domain; it only validates here and the input is kept
        handler(v)
        return _check_email_length(v)


class CreateUserRequest(_UserFields):
    """Payload for creating a new user."""

    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)


class UpdateUserRequest(_UserFields):
    """
    Payload for replacing a user's fields.

    `password` is optional: missing, null or "" all mean "keep the current one"
    and come out of validation as None.
    """

    password: str | None = None

    @field_validator("password")
    @classmethod
    def password_length_when_given(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        if not PASSWORD_MIN_LENGTH <= len(v) <= PASSWORD_MAX_LENGTH:
            raise ValueError(
                f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters"
            )
        return v


class UserView(_CamelModel):
    """Publicly exposed user model. Has no password field."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    username: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    active: bool
    created_at: datetime
    updated_at: datetime


class ValidationIssue(_CamelModel):
    field: str
    message: str


class ErrorPayload(_CamelModel):
    """Body of every error response produced by the error translator."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: int
    error: str
    message: str
    path: str
    validation_errors: list[ValidationIssue] = Field(default_factory=list)
