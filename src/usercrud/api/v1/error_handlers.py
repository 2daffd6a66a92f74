# usercrud/api/v1/error_handlers.py
"""
Translation of raised errors into HTTP error responses.

`translate_error(exc, path)` is the single mapping from the error taxonomy
(usercrud.exceptions.base) plus FastAPI's RequestValidationError to a status
code and an `ErrorPayload`. `ErrorTranslatingRoute` applies it around every
route handler it is installed on, so no handler needs its own try/except.

| error                                   | status | error label           |
| --------------------------------------- | ------ | --------------------- |
| ResourceNotFound                        | 404    | Not Found             |
| DuplicateResource                       | 409    | Conflict              |
| ValidationFailed / ConstraintViolation  | 400    | Bad Request           |
| RequestValidationError                  | 400    | Bad Request           |
| InvalidArgument / ValueError            | 400    | Bad Request           |
| anything else                           | 500    | Internal Server Error |

Only the 500 path logs a stack trace; its message is fixed and never carries
internal detail.
"""

import logging
from typing import Any, Callable, Coroutine

from fastapi import Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from usercrud.exceptions.base import (
    ResourceNotFound,
    DuplicateResource,
    ValidationFailed,
    ConstraintViolation,
    InvalidArgument,
    FieldErrors,
)
from usercrud.schemas.user import ErrorPayload, ValidationIssue

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"
VALIDATION_FAILED_MESSAGE = "Validation failed"

# Request parts FastAPI puts in front of the field name in `loc`
_LOCATION_PREFIXES = {"body", "path", "query", "header", "cookie"}


def _label(status_code: int) -> str:
    return {
        status.HTTP_400_BAD_REQUEST: "Bad Request",
        status.HTTP_404_NOT_FOUND: "Not Found",
        status.HTTP_409_CONFLICT: "Conflict",
    }.get(status_code, "Internal Server Error")


def _payload(status_code: int, message: str, path: str, errors: FieldErrors | None = None) -> ErrorPayload:
    return ErrorPayload(
        status=status_code,
        error=_label(status_code),
        message=message,
        path=path,
        validation_errors=[ValidationIssue(field=f, message=m) for f, m in (errors or [])],
    )


def _field_name(loc: tuple[Any, ...]) -> str:
    parts = list(loc)
    if len(parts) > 1 and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(str(p) for p in parts)


def _clean_message(msg: str) -> str:
    # pydantic prefixes messages raised from our own validators
    return msg.removeprefix("Value error, ")


def request_validation_errors(exc: RequestValidationError) -> FieldErrors:
    """(field, message) pairs from a RequestValidationError, in pydantic's order."""
    return [(_field_name(e.get("loc", ())), _clean_message(e.get("msg", ""))) for e in exc.errors()]


def translate_error(exc: Exception, path: str) -> tuple[int, ErrorPayload]:
    """
    Map an exception raised while handling a request to (status, payload).

    The isinstance chain is ordered most specific first. Unknown exceptions,
    RepositoryError and Unclassified all take the generic 500 branch.
    """
    if isinstance(exc, ResourceNotFound):
        code = status.HTTP_404_NOT_FOUND
        payload = _payload(code, exc.message, path)

    elif isinstance(exc, DuplicateResource):
        code = status.HTTP_409_CONFLICT
        payload = _payload(code, exc.message, path)

    elif isinstance(exc, (ValidationFailed, ConstraintViolation)):
        code = status.HTTP_400_BAD_REQUEST
        payload = _payload(code, exc.message, path, exc.errors)

    elif isinstance(exc, RequestValidationError):
        # Schema failures on body/path/query render as a ConstraintViolation
        violation = ConstraintViolation(request_validation_errors(exc))
        code = status.HTTP_400_BAD_REQUEST
        payload = _payload(code, violation.message, path, violation.errors)

    elif isinstance(exc, InvalidArgument):
        code = status.HTTP_400_BAD_REQUEST
        payload = _payload(code, exc.message, path)

    elif isinstance(exc, ValueError):
        code = status.HTTP_400_BAD_REQUEST
        payload = _payload(code, str(exc), path)

    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
        logger.error(
            "http.error.unhandled",
            extra={"path": path, "error_type": type(exc).__name__},
            exc_info=exc,
        )
        return code, _payload(code, GENERIC_ERROR_MESSAGE, path)

    # Expected client errors: INFO, no stack trace
    logger.info(
        "http.error.client",
        extra={"path": path, "status": code, "error_type": type(exc).__name__},
    )
    return code, payload


def error_response(exc: Exception, path: str) -> JSONResponse:
    code, payload = translate_error(exc, path)
    return JSONResponse(status_code=code, content=payload.model_dump(mode="json", by_alias=True))


class ErrorTranslatingRoute(APIRoute):
    """
    APIRoute whose handler converts any raised exception into an error response.

    Install it with `APIRouter(route_class=ErrorTranslatingRoute)`. Starlette
    HTTPExceptions are left to FastAPI's own handling.
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        original_route_handler = super().get_route_handler()

        async def translating_route_handler(request: Request) -> Response:
            try:
                return await original_route_handler(request)
            except StarletteHTTPException:
                raise
            except Exception as exc:
                return error_response(exc, request.url.path)

        return translating_route_handler
