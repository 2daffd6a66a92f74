from .base import (
    FieldErrors,
    ServiceError,
    ResourceNotFound,
    DuplicateResource,
    ValidationFailed,
    ConstraintViolation,
    InvalidArgument,
    Unclassified,
    RepositoryError,
)

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
