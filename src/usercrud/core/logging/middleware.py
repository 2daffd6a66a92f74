# usercrud/core/logging/middleware.py
"""
Request ID middleware for FastAPI / Starlette.

Every request runs with a request id in the logging contextvar, and the same id
is returned in the `X-Request-ID` response header so a client report can be
matched to the log lines it produced.

An incoming `X-Request-ID` is reused when it looks sane (short, printable, no
whitespace); anything else is replaced by a fresh UUID4 so headers cannot
inject newlines into text logs.
"""

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .filters import set_request_id, reset_request_id

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def _request_id_from(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = _request_id_from(request)
        token = set_request_id(rid)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            reset_request_id(token)
