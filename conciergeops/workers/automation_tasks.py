# conciergeops/workers/automation_tasks.py
from __future__ import annotations

import logging

from ..db import SessionLocal
from ..middleware.correlation import sweep_context
from ..services.escalation_service import run_escalation_sweep
from ..services.recurrence_service import generate_due_occurrences
from ..services.reminder_service import run_reminder_sweep
from .celery_app import celery_app

log = logging.getLogger(__name__)


@celery_app.task(name="conciergeops.workers.automation_tasks.generate_recurring_tasks")
def generate_recurring_tasks() -> dict:
    """
    Daily recurrence sweep. Idempotent per calendar day, so a duplicate
    delivery (acks_late) only produces skips.
    """
    with sweep_context("recurrences"):
        db = SessionLocal()
        try:
            res = generate_due_occurrences(db)
            log.info("sweep done", extra={"sweep": "recurrences"})
            return {"success": True, **res.as_dict()}
        finally:
            db.close()


@celery_app.task(name="conciergeops.workers.automation_tasks.escalate_incidents")
def escalate_incidents() -> dict:
    with sweep_context("escalation"):
        db = SessionLocal()
        try:
            res = run_escalation_sweep(db)
            log.info("sweep done", extra={"sweep": "escalation"})
            return {"success": True, **res.as_dict()}
        finally:
            db.close()


@celery_app.task(name="conciergeops.workers.automation_tasks.remind_open_incidents")
def remind_open_incidents() -> dict:
    with sweep_context("reminders"):
        db = SessionLocal()
        try:
            res = run_reminder_sweep(db)
            log.info("sweep done", extra={"sweep": "reminders"})
            return {"success": True, **res.as_dict()}
        finally:
            db.close()
