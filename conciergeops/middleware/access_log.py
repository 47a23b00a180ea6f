# conciergeops/middleware/access_log.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("conciergeops.access")

CRON_PREFIX = "/api/cron/"


def sweep_for_path(path: str) -> Optional[str]:
    """'/api/cron/incident-escalation' -> 'incident-escalation'; None for non-cron paths."""
    if not path.startswith(CRON_PREFIX):
        return None
    name = path[len(CRON_PREFIX):].strip("/")
    return name or None


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    One access line per request, as structured extras on the JSON formatter.

    Cron calls are tagged with their sweep and carry no org; operator calls
    carry the X-Org-Slug they were made for. Headers other than the org slug
    are never logged (the cron bearer secret travels in Authorization).
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            extra = {
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "latency_ms": int((time.perf_counter() - t0) * 1000),
            }
            sweep = sweep_for_path(request.url.path)
            if sweep:
                extra["sweep"] = sweep
            else:
                extra["org_slug"] = request.headers.get("X-Org-Slug")

            level = logging.WARNING if status_code >= 500 else logging.INFO
            log.log(level, "http_request", extra=extra)
