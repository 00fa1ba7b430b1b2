# backend/rentledger/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# client-supplied ids end up in every log line of the request
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

_current_request_id: ContextVar[Optional[str]] = ContextVar("rentledger_request_id", default=None)


def get_request_id() -> Optional[str]:
    return _current_request_id.get()


def _incoming_request_id(request: Request) -> Optional[str]:
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return rid if _SAFE_ID.match(rid) else None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id (reused from the caller when well-formed) and echoes it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _incoming_request_id(request) or uuid.uuid4().hex
        token = _current_request_id.set(rid)
        try:
            response = await call_next(request)
        finally:
            _current_request_id.reset(token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
