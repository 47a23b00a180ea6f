# conciergeops/services/escalation_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..clients.email import ResendEmailClient
from ..domain.severity import ESCALATION_RULES, EscalationRule, assert_transition
from ..models import Incident
from .notification_service import (
    ESCALATION_ROLES,
    INCIDENT_ESCALATED,
    fan_out,
    preview,
    resolve_recipients,
    send_emails,
)

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.utcnow()


@dataclass
class EscalationSweepResult:
    escalated: int = 0
    failed: int = 0
    by_rule: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"escalated": self.escalated, "failed": self.failed, "by_rule": dict(self.by_rule)}


def _hours(rule: EscalationRule) -> int:
    return int(rule.min_age.total_seconds() // 3600)


def escalate_incident(
    db: Session,
    *,
    rule: EscalationRule,
    incident_id: int,
    org_id: int,
    now: datetime,
) -> bool:
    """
    Conditional severity bump. Does NOT commit.

    The WHERE clause repeats the rule's predicate, so a row resolved or
    escalated by someone else since the candidate query is left alone
    (returns False).
    """
    assert_transition(rule.from_severity, rule.to_severity)
    res = db.execute(
        update(Incident)
        .where(
            Incident.id == int(incident_id),
            Incident.org_id == int(org_id),
            Incident.severity == rule.from_severity,
            Incident.status.in_(list(rule.statuses)),
        )
        .values(severity=rule.to_severity, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return int(res.rowcount or 0) == 1


def run_escalation_sweep(
    db: Session,
    *,
    now: Optional[datetime] = None,
    email_client: Optional[ResendEmailClient] = None,
) -> EscalationSweepResult:
    """
    Global sweep across orgs, rules in ESCALATION_RULES order.

    An incident moves at most one step per sweep: ids escalated by an earlier
    rule are excluded from the later ones. Per-incident failures are rolled
    back, logged and counted; the sweep carries on.
    """
    now = now or _utcnow()
    client = email_client if email_client is not None else ResendEmailClient()
    out = EscalationSweepResult()
    escalated_ids: set[int] = set()

    for rule in ESCALATION_RULES:
        candidates = db.execute(
            select(Incident.id, Incident.org_id, Incident.description)
            .where(
                Incident.severity == rule.from_severity,
                Incident.status.in_(list(rule.statuses)),
                Incident.opened_at < rule.cutoff(now),
            )
            .order_by(Incident.id.asc())
        ).all()

        count = 0
        for incident_id, org_id, description in candidates:
            incident_id = int(incident_id)
            org_id = int(org_id)
            if incident_id in escalated_ids:
                continue

            title = f"Incident escalated: {rule.from_severity} -> {rule.to_severity}"
            message = (
                f'Incident "{preview(description)}" was automatically escalated from '
                f"{rule.from_severity} to {rule.to_severity} after {_hours(rule)}h without resolution."
            )

            try:
                if not escalate_incident(db, rule=rule, incident_id=incident_id, org_id=org_id, now=now):
                    db.rollback()
                    continue
                recipients = resolve_recipients(db, org_id=org_id, roles=ESCALATION_ROLES)
                fan_out(
                    db,
                    org_id=org_id,
                    recipients=recipients,
                    notification_type=INCIDENT_ESCALATED,
                    title=title,
                    message=message,
                    entity_type="incident",
                    entity_id=incident_id,
                    created_at=now,
                )
                db.commit()
            except Exception:
                db.rollback()
                out.failed += 1
                log.exception(
                    "incident escalation failed",
                    extra={"sweep": "escalation", "org_id": org_id, "incident_id": incident_id},
                )
                continue

            escalated_ids.add(incident_id)
            count += 1
            log.info(
                f"incident escalated {rule.label}",
                extra={"sweep": "escalation", "org_id": org_id, "incident_id": incident_id},
            )
            send_emails(client, org_id=org_id, recipients=recipients, subject=title, text=message)

        out.by_rule[rule.label] = count
        out.escalated += count

    return out
