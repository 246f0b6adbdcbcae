from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# caller-supplied ids end up in every log line, so keep them short and printable
_VALID_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def _incoming_id(request: Request) -> Optional[str]:
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return rid if _VALID_ID.match(rid) else None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuses a well-formed incoming X-Request-ID, otherwise mints one, and echoes it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _incoming_id(request) or uuid.uuid4().hex
        request.state.request_id = rid
        token = request_id_ctx.set(rid)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            request_id_ctx.reset(token)
