# usercrud/core/logging/filters.py
"""
Logging filters.

- RequestIdFilter stamps every LogRecord with `request_id`, read from a
  contextvar set by RequestIDMiddleware. Contextvars follow the request across
  `await` boundaries, which `threading.local()` would not.
- RedactFilter masks record attributes whose names look like secrets, so a
  stray `extra={"password": ...}` never reaches a handler.

Both filters always return True: they annotate records, they never drop them.
"""

import contextvars
import logging
from logging import LogRecord

NO_REQUEST_ID = "-"
REDACTED = "***REDACTED***"

_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)


def set_request_id(request_id: str | None) -> contextvars.Token:
    """Store the id for the current context; keep the token to undo it with reset_request_id()."""
    return _request_id_ctx.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Guarantees `record.request_id` exists so `%(request_id)s` never KeyErrors.

    Precedence: an explicit `extra={"request_id": ...}`, then the contextvar,
    then "-" for records logged outside any request (startup, tests).
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = getattr(record, "request_id", None) or get_request_id() or NO_REQUEST_ID
        return True


class RedactFilter(logging.Filter):
    SENSITIVE = {"password", "secret", "token", "access_token", "refresh_token", "authorization"}

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = REDACTED
        return True
