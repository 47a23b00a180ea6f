# conciergeops/routers/cron.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..auth import require_cron_secret
from ..db import get_db
from ..schemas import EscalationSweepOut, RecurrenceSweepOut, ReminderSweepOut
from ..services.escalation_service import run_escalation_sweep
from ..services.recurrence_service import generate_due_occurrences
from ..services.reminder_service import run_reminder_sweep

log = logging.getLogger(__name__)

# Invoked by the external periodic trigger; every route requires the cron bearer secret.
router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


def _failure(sweep: str, db: Session, err: Exception) -> JSONResponse:
    db.rollback()
    log.exception("sweep failed", extra={"sweep": sweep})
    return JSONResponse(status_code=500, content={"error": str(err) or type(err).__name__})


@router.get("/generate-recurring-tasks", response_model=RecurrenceSweepOut)
def generate_recurring_tasks(db: Session = Depends(get_db)):
    try:
        res = generate_due_occurrences(db)
    except Exception as e:
        return _failure("recurrences", db, e)
    log.info("sweep done", extra={"sweep": "recurrences"})
    return RecurrenceSweepOut(generated=res.generated)


@router.get("/incident-escalation", response_model=EscalationSweepOut)
def incident_escalation(db: Session = Depends(get_db)):
    try:
        res = run_escalation_sweep(db)
    except Exception as e:
        return _failure("escalation", db, e)
    log.info("sweep done", extra={"sweep": "escalation"})
    return EscalationSweepOut(escalated=res.escalated)


@router.get("/incident-reminders", response_model=ReminderSweepOut)
def incident_reminders(db: Session = Depends(get_db)):
    try:
        res = run_reminder_sweep(db)
    except Exception as e:
        return _failure("reminders", db, e)
    log.info("sweep done", extra={"sweep": "reminders"})
    return ReminderSweepOut(reminders_sent=res.reminders_sent)
