# conciergeops/services/reminder_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..clients.email import ResendEmailClient
from ..config import settings
from ..domain.activity import REMINDER_SENT, activity_write, latest_activity_since
from ..domain.severity import ACTIVE_STATUSES
from ..models import Incident
from .notification_service import (
    INCIDENT_REMINDER,
    REMINDER_ROLES,
    fan_out,
    preview,
    resolve_recipients,
    send_emails,
)

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.utcnow()


@dataclass(frozen=True)
class ReminderSweepResult:
    reminders_sent: int
    skipped: int
    failed: int

    def as_dict(self) -> dict:
        return {"reminders_sent": self.reminders_sent, "skipped": self.skipped, "failed": self.failed}


def days_open(opened_at: datetime, now: datetime) -> int:
    return max(0, (now - opened_at).days)


def run_reminder_sweep(
    db: Session,
    *,
    now: Optional[datetime] = None,
    interval_days: Optional[int] = None,
    email_client: Optional[ResendEmailClient] = None,
) -> ReminderSweepResult:
    """
    Re-notify org admins about incidents open longer than the interval.

    The only dedup guard is the reminder_sent activity row: an incident with
    one inside the lookback window is skipped. The row is written in the same
    transaction as the notifications.
    """
    now = now or _utcnow()
    interval = timedelta(days=int(interval_days or settings.reminder_interval_days))
    cutoff = now - interval
    client = email_client if email_client is not None else ResendEmailClient()

    candidates = db.execute(
        select(Incident.id, Incident.org_id, Incident.description, Incident.opened_at)
        .where(
            Incident.status.in_(list(ACTIVE_STATUSES)),
            Incident.opened_at < cutoff,
        )
        .order_by(Incident.id.asc())
    ).all()

    sent = skipped = failed = 0

    for incident_id, org_id, description, opened_at in candidates:
        incident_id = int(incident_id)
        org_id = int(org_id)

        try:
            recent = latest_activity_since(
                db,
                org_id=org_id,
                entity_type="incident",
                entity_id=incident_id,
                action=REMINDER_SENT,
                since=cutoff,
            )
            if recent is not None:
                skipped += 1
                continue

            admins = resolve_recipients(db, org_id=org_id, roles=REMINDER_ROLES)
            if not admins:
                # guard stays unarmed so the next sweep retries
                skipped += 1
                log.info(
                    "incident reminder skipped: no admin recipients",
                    extra={"sweep": "reminders", "org_id": org_id, "incident_id": incident_id},
                )
                continue

            n_days = days_open(opened_at, now)
            title = f"Incident open for {n_days} days"
            message = f'Incident "{preview(description)}" has been open for {n_days} days without resolution.'

            written = fan_out(
                db,
                org_id=org_id,
                recipients=admins,
                notification_type=INCIDENT_REMINDER,
                title=title,
                message=message,
                entity_type="incident",
                entity_id=incident_id,
                created_at=now,
            )
            if written == 0:
                # nobody was told; leave the guard unarmed for the next sweep
                db.rollback()
                failed += 1
                log.warning(
                    "incident reminder not delivered: no notification written",
                    extra={"sweep": "reminders", "org_id": org_id, "incident_id": incident_id},
                )
                continue

            activity_write(
                db,
                org_id=org_id,
                actor_user_id=None,
                action=REMINDER_SENT,
                entity_type="incident",
                entity_id=incident_id,
                metadata={"days_open": n_days},
                created_at=now,
            )
            db.commit()
        except Exception:
            db.rollback()
            failed += 1
            log.exception(
                "incident reminder failed",
                extra={"sweep": "reminders", "org_id": org_id, "incident_id": incident_id},
            )
            continue

        sent += 1
        log.info(
            "incident reminder sent",
            extra={"sweep": "reminders", "org_id": org_id, "incident_id": incident_id},
        )
        send_emails(client, org_id=org_id, recipients=admins, subject=title, text=message)

    return ReminderSweepResult(reminders_sent=sent, skipped=skipped, failed=failed)
