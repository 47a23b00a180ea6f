# conciergeops/services/recurrence_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.recurrence import auto_notes, generated_on, is_due, occurrence_at
from ..models import RecurrenceTemplate, ScheduledTask

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.utcnow()


@dataclass(frozen=True)
class RecurrenceSweepResult:
    generated: int
    skipped: int
    failed: int

    def as_dict(self) -> dict:
        return {"generated": self.generated, "skipped": self.skipped, "failed": self.failed}


def materialize_occurrence(db: Session, tpl: RecurrenceTemplate, *, now: datetime) -> ScheduledTask:
    """
    Insert today's task for `tpl` and stamp the witness. Does NOT commit.

    The task row and last_generated_at land in the same transaction, so a
    committed task always has its witness.
    """
    today = now.date()
    task = ScheduledTask(
        org_id=int(tpl.org_id),
        property_id=int(tpl.property_id),
        task_type=tpl.task_type,
        status="todo",
        priority=tpl.priority or "normal",
        scheduled_at=occurrence_at(today, tpl.scheduled_time),
        assigned_to=tpl.assigned_to,
        notes=auto_notes(tpl.notes),
        recurrence_id=int(tpl.id),
        created_at=now,
        updated_at=now,
    )
    db.add(task)
    tpl.last_generated_at = now
    db.add(tpl)
    db.flush()
    return task


def generate_due_occurrences(db: Session, *, now: Optional[datetime] = None) -> RecurrenceSweepResult:
    """
    Global sweep over every active template, all orgs.

    Safe to re-run any number of times per day: a template whose
    last_generated_at is already on today's date is skipped. One template
    failing is rolled back and logged; the rest still run.
    """
    now = now or _utcnow()
    today = now.date()

    templates = db.scalars(
        select(RecurrenceTemplate)
        .where(RecurrenceTemplate.active.is_(True))
        .order_by(RecurrenceTemplate.id.asc())
    ).all()

    generated = skipped = failed = 0

    for tpl in templates:
        tpl_id = int(tpl.id)
        org_id = int(tpl.org_id)

        if generated_on(tpl.last_generated_at, today):
            skipped += 1
            continue

        due = is_due(
            frequency=tpl.frequency,
            day_of_week=tpl.day_of_week,
            day_of_month=tpl.day_of_month,
            last_generated_at=tpl.last_generated_at,
            now=now,
        )
        if not due:
            skipped += 1
            continue

        try:
            task = materialize_occurrence(db, tpl, now=now)
            db.commit()
        except Exception:
            db.rollback()
            failed += 1
            log.exception(
                "recurrence generation failed",
                extra={"sweep": "recurrences", "org_id": org_id, "template_id": tpl_id},
            )
            continue

        generated += 1
        log.info(
            "recurrence generated",
            extra={"sweep": "recurrences", "org_id": org_id, "template_id": tpl_id, "task_id": int(task.id)},
        )

    return RecurrenceSweepResult(generated=generated, skipped=skipped, failed=failed)
