from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

log = logging.getLogger("equitystek.errors")


class PaymentProcessorError(Exception):
    """Raised by the payment client when the processor call fails or returns an error body."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


def _field_path(loc: tuple | list) -> str:
    # drop the "body"/"query"/"path" source prefix
    parts = [str(x) for x in loc]
    if parts and parts[0] in ("body", "query", "path", "header", "cookie"):
        parts = parts[1:]
    return ".".join(parts) or "body"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"field": _field_path(e.get("loc", ())), "message": str(e.get("msg", "invalid"))} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"detail": "validation_failed", "errors": errors})


async def payment_error_handler(request: Request, exc: PaymentProcessorError) -> JSONResponse:
    log.error(
        "payment processor error: %s",
        exc,
        extra={"event_type": "payment_processor_error"},
    )
    return JSONResponse(status_code=500, content={"detail": "payment_processor_error"})


async def stale_data_handler(request: Request, exc: StaleDataError) -> JSONResponse:
    log.warning("concurrent update rejected: %s", exc)
    return JSONResponse(status_code=409, content={"detail": "concurrent_update_conflict"})


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error("database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "database_error"})


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(PaymentProcessorError, payment_error_handler)
    # StaleDataError subclasses SQLAlchemyError; the more specific handler wins
    app.add_exception_handler(StaleDataError, stale_data_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
