from .user import CreateUserRequest, UpdateUserRequest, UserView, ValidationIssue, ErrorPayload

__all__ = [
    "CreateUserRequest",
    "UpdateUserRequest",
    "UserView",
    "ValidationIssue",
    "ErrorPayload",
]
