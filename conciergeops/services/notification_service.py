# conciergeops/services/notification_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..clients.email import EmailDeliveryError, ResendEmailClient
from ..models import AppUser, Notification, OrgMembership

log = logging.getLogger(__name__)

INCIDENT_ESCALATED = "incident_escalated"
INCIDENT_REMINDER = "incident_reminder"

ESCALATION_ROLES = ("admin", "manager")
REMINDER_ROLES = ("admin",)


@dataclass(frozen=True)
class Recipient:
    user_id: int
    email: Optional[str]


def resolve_recipients(db: Session, *, org_id: int, roles: Sequence[str]) -> list[Recipient]:
    """Members of one org holding any of `roles`, ordered by user id."""
    rows = db.execute(
        select(AppUser.id, AppUser.email)
        .join(OrgMembership, OrgMembership.user_id == AppUser.id)
        .where(
            OrgMembership.org_id == int(org_id),
            OrgMembership.role.in_(list(roles)),
        )
        .order_by(AppUser.id.asc())
    ).all()
    return [Recipient(user_id=int(uid), email=email) for uid, email in rows]


def fan_out(
    db: Session,
    *,
    org_id: int,
    recipients: Iterable[Recipient],
    notification_type: str,
    title: str,
    message: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[object] = None,
    created_at: Optional[datetime] = None,
) -> int:
    """
    One in-app Notification per recipient, each inside its own savepoint.

    A failed insert only loses that recipient's row. Returns rows written.
    Does NOT commit.
    """
    written = 0
    ts = created_at or datetime.utcnow()
    for r in recipients:
        try:
            with db.begin_nested():
                db.add(
                    Notification(
                        org_id=int(org_id),
                        user_id=int(r.user_id),
                        notification_type=str(notification_type),
                        title=title[:255],
                        message=message,
                        entity_type=entity_type,
                        entity_id=str(entity_id) if entity_id is not None else None,
                        read=False,
                        created_at=ts,
                    )
                )
            written += 1
        except SQLAlchemyError:
            log.exception(
                "notification insert failed",
                extra={"org_id": int(org_id), "recipient_id": int(r.user_id)},
            )
    return written


def send_emails(
    client: Optional[ResendEmailClient],
    *,
    org_id: int,
    recipients: Iterable[Recipient],
    subject: str,
    text: str,
) -> int:
    """
    Optional outbound channel. Every failure is logged and isolated per
    recipient; nothing here raises. Returns emails accepted by the provider.
    """
    if client is None or not client.enabled():
        return 0

    sent = 0
    for r in recipients:
        if not r.email:
            continue
        try:
            res = client.send(to=r.email, subject=subject, text=text)
            if res.sent:
                sent += 1
        except EmailDeliveryError:
            log.warning(
                "outbound email failed",
                exc_info=True,
                extra={"org_id": int(org_id), "recipient_id": int(r.user_id)},
            )
        except Exception:
            log.exception(
                "outbound email crashed",
                extra={"org_id": int(org_id), "recipient_id": int(r.user_id)},
            )
    return sent


def preview(text: Optional[str], limit: int = 80) -> str:
    s = (text or "").strip()
    return s[:limit] if s else "No description"
