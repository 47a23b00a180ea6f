# conciergeops/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .middleware.correlation import get_correlation_id

# Extras copied onto the JSON line when a caller passes them via `extra=`.
STRUCTURED_KEYS = (
    # sweeps
    "sweep",
    "org_id",
    "template_id",
    "task_id",
    "incident_id",
    "recipient_id",
    # access log
    "method",
    "path",
    "status_code",
    "latency_ms",
    "org_slug",
)

# Third-party loggers and the env var that tunes each one.
_LIBRARY_LEVELS = {
    "sqlalchemy.engine": ("SQL_LOG_LEVEL", "WARNING"),
    "httpx": ("HTTPX_LOG_LEVEL", "WARNING"),
    "celery": ("CELERY_LOG_LEVEL", "INFO"),
}


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: ts (from the record, UTC), level, logger,
    message, correlation_id when bound, exc_info, and any STRUCTURED_KEYS.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        cid = get_correlation_id()
        if cid:
            payload["correlation_id"] = cid

        for k in STRUCTURED_KEYS:
            v = getattr(record, k, None)
            if v is not None:
                payload[k] = v

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: Optional[str] = None) -> None:
    """Idempotent: uvicorn reload, celery workers and the CLI all call it."""
    lvl = (level or os.getenv("LOG_LEVEL") or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(lvl)
    for name, (env, default) in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel((os.getenv(env) or default).upper())
