# conciergeops/middleware/correlation.py
from __future__ import annotations

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# One id per unit of work: an HTTP request, or one sweep run outside HTTP
# (celery task, CLI). Every log line emitted inside it carries the id.
correlation_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

HEADER = "X-Request-ID"
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def get_correlation_id() -> str | None:
    return correlation_ctx.get()


@contextmanager
def sweep_context(sweep: str) -> Iterator[str]:
    """Bind a fresh '<sweep>-<hex>' id for one sweep run."""
    cid = f"{sweep}-{uuid.uuid4().hex[:12]}"
    token = correlation_ctx.set(cid)
    try:
        yield cid
    finally:
        correlation_ctx.reset(token)


def _inbound_id(request: Request) -> str | None:
    raw = request.headers.get(HEADER) or request.headers.get("X-Request-Id")
    if raw and _SAFE_ID.match(raw.strip()):
        return raw.strip()
    return None


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Reuses a well-formed inbound X-Request-ID (the cron trigger and the
    front-end gateway both send one) or mints a uuid4, and echoes it back.
    Malformed inbound ids are replaced rather than logged verbatim.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        cid = _inbound_id(request) or str(uuid.uuid4())
        request.state.correlation_id = cid

        token = correlation_ctx.set(cid)
        try:
            resp = await call_next(request)
            resp.headers[HEADER] = cid
            return resp
        finally:
            correlation_ctx.reset(token)
