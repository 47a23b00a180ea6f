# conciergeops/main.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import CronUnauthorized
from .config import settings
from .logging_config import configure_logging
from .middleware.access_log import AccessLogMiddleware
from .middleware.correlation import CorrelationIDMiddleware

from .routers.health import router as health_router
from .routers.cron import router as cron_router
from .routers.calendar import router as calendar_router
from .routers.recurrences import router as recurrences_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


async def _cron_unauthorized(request: Request, exc: CronUnauthorized) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": "Unauthorized"})


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="ConciergeOps Automation Engine", version="1.0.0")

    # Last added runs first: the correlation id is bound before the access line is written.
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(CorrelationIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CronUnauthorized, _cron_unauthorized)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)

    # Automation triggers
    app.include_router(cron_router, prefix=API_PREFIX)

    # Operator-facing loaders
    app.include_router(calendar_router, prefix=API_PREFIX)
    app.include_router(recurrences_router, prefix=API_PREFIX)

    return app


app = create_app()
