from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .errors import install_exception_handlers
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.properties import router as properties_router
from .routers.maintenance import router as maintenance_router
from .routers.maintenance import tradesperson_router
from .routers.valuations import router as valuations_router
from .routers.subscriptions import router as subscriptions_router
from .routers.receipts import router as receipts_router
from .routers.tradespeople import router as tradespeople_router
from .routers.notifications import router as notifications_router
from .routers.admin import router as admin_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="EquityStek API", version=settings.app_version)

    # last added runs first: the request id is set before the request log
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    origins = _cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)

    # Portfolio
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(maintenance_router, prefix=API_PREFIX)
    app.include_router(tradesperson_router, prefix=API_PREFIX)
    app.include_router(valuations_router, prefix=API_PREFIX)
    app.include_router(tradespeople_router, prefix=API_PREFIX)
    app.include_router(notifications_router, prefix=API_PREFIX)

    # Billing
    app.include_router(subscriptions_router, prefix=API_PREFIX)
    app.include_router(receipts_router, prefix=API_PREFIX)

    # Admin
    app.include_router(admin_router, prefix=API_PREFIX)

    return app


app = create_app()
