from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.requests import Request
from starlette.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import settings

log = logging.getLogger("equitystek.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request. Method, path, status and latency go in as
    record extras so the JSON formatter emits them as fields.

    The user is taken from the dev header when present; in jwt mode the
    principal is only resolved inside handlers, so the line carries no user.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            level = logging.ERROR if status_code >= 500 else logging.INFO
            log.log(
                level,
                "%s %s -> %s",
                request.method,
                request.url.path,
                status_code,
                extra={
                    "event": "http_request",
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": int((time.perf_counter() - t0) * 1000),
                    "user_email": request.headers.get(settings.dev_header_user_email),
                },
            )
