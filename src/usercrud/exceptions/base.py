
# usercrud/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # Service-level errors (ResourceNotFound, DuplicateResource, ...) + RepositoryError
# │   ├── integrity_classifier.py    # SQL-level / DB-specific constraint classification
# │   └── mapper.py                  # Map DB integrity errors onto the service-level errors
"""
Error taxonomy raised by the use-case layer, plus the opaque infrastructure error
raised by repositories.

The set of ServiceError subclasses is closed: the HTTP error translator matches on
exactly these classes and anything else is reported as an internal error.
"""

from typing import Any, Iterable

# (field, message) pairs, kept in the order they were produced
FieldErrors = list[tuple[str, str]]


def _as_field_errors(errors: Iterable[tuple[str, str]] | dict[str, str] | None) -> FieldErrors:
    if not errors:
        return []
    if isinstance(errors, dict):
        return [(str(k), str(v)) for k, v in errors.items()]
    return [(str(field), str(message)) for field, message in errors]


class ServiceError(Exception):
    """
    Base class for expected domain conditions.

    - message: human-friendly text, safe to show to clients
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ResourceNotFound(ServiceError):
    def __init__(self, resource_type: str, identifier: Any):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"{resource_type} not found with id: '{identifier}'")


class DuplicateResource(ServiceError):
    """
    A unique field already holds `value` (raised by pre-checks and by the integrity fallback).
    `value` is None when the store did not say which value collided.
    """

    def __init__(self, resource_type: str, field: str, value: Any, *, constraint: str | None = None):
        self.resource_type = resource_type
        self.field = field
        self.value = value
        # DB constraint name when the conflict came from the store; logs only
        self.constraint = constraint
        if value is None:
            message = f"{resource_type} already exists with {field}"
        else:
            message = f"{resource_type} already exists with {field}: '{value}'"
        super().__init__(message)


class ValidationFailed(ServiceError):
    """Hand-raised validation failure carrying field-level issues."""

    def __init__(self, message: str = "Validation failed",
                 errors: Iterable[tuple[str, str]] | dict[str, str] | None = None):
        super().__init__(message)
        self.errors = _as_field_errors(errors)

    def add_error(self, field: str, message: str) -> None:
        self.errors.append((field, message))


class ConstraintViolation(ServiceError):
    """Schema-driven validation failure; renders exactly like ValidationFailed."""

    def __init__(self, errors: Iterable[tuple[str, str]] | dict[str, str] | None = None):
        super().__init__("Validation failed")
        self.errors = _as_field_errors(errors)


class InvalidArgument(ServiceError):
    pass


class Unclassified(ServiceError):
    """Catch-all for conditions that have no better category. Always a 500."""
    pass


class RepositoryError(Exception):
    """
    Opaque infrastructure failure raised by repositories (connectivity, unexpected
    integrity errors, ...). Not part of the domain taxonomy; clients only ever see
    a generic 500 for it.

    - constraint: optional DB constraint name (for logs only)
    """

    def __init__(self, message: str, *, constraint: str | None = None):
        super().__init__(message)
        self.message = message
        self.constraint = constraint

    def __str__(self) -> str:
        if self.constraint:
            return f"{self.message} (constraint: {self.constraint})"
        return self.message


__all__ = [
    "FieldErrors",
    "ServiceError",
    "ResourceNotFound",
    "DuplicateResource",
    "ValidationFailed",
    "ConstraintViolation",
    "InvalidArgument",
    "Unclassified",
    "RepositoryError",
]
