# tests/factories.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from conciergeops.models import (
    AppUser,
    Incident,
    Organization,
    OrgMembership,
    Property,
    RecurrenceTemplate,
    ScheduledTask,
)

CRON_SECRET = "test-cron-secret"


def cron_headers(secret: str = CRON_SECRET) -> dict[str, str]:
    return {"Authorization": f"Bearer {secret}"}


def org_headers(org_slug: str, email: str) -> dict[str, str]:
    return {"X-Org-Slug": org_slug, "X-User-Email": email}


def mk_org(db, slug: str = "acme") -> Organization:
    org = Organization(slug=slug, name=slug.title(), created_at=datetime.utcnow())
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


def mk_member(db, org: Organization, email: str, role: str = "admin", display_name: Optional[str] = None) -> AppUser:
    user = db.query(AppUser).filter(AppUser.email == email).one_or_none()
    if user is None:
        user = AppUser(email=email, display_name=display_name, created_at=datetime.utcnow())
        db.add(user)
        db.commit()
        db.refresh(user)
    db.add(OrgMembership(org_id=org.id, user_id=user.id, role=role, created_at=datetime.utcnow()))
    db.commit()
    return user


def mk_property(db, org: Organization, name: str = "Harbour Flat") -> Property:
    prop = Property(org_id=org.id, name=name, address="3 Rue du Port", city="Marseille")
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


def mk_template(db, org: Organization, prop: Property, **kw) -> RecurrenceTemplate:
    fields = dict(
        task_type="cleaning",
        priority="normal",
        frequency="weekly",
        day_of_week=0,
        day_of_month=None,
        scheduled_time="09:00",
        assigned_to=None,
        notes=None,
        active=True,
        last_generated_at=None,
    )
    fields.update(kw)
    tpl = RecurrenceTemplate(org_id=org.id, property_id=prop.id, **fields)
    db.add(tpl)
    db.commit()
    db.refresh(tpl)
    return tpl


def mk_task(
    db,
    org: Organization,
    prop: Property,
    *,
    scheduled_at: datetime,
    assigned_to: Optional[int],
    task_type: str = "cleaning",
    status: str = "todo",
) -> ScheduledTask:
    task = ScheduledTask(
        org_id=org.id,
        property_id=prop.id,
        task_type=task_type,
        status=status,
        scheduled_at=scheduled_at,
        assigned_to=assigned_to,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def mk_incident(
    db,
    org: Organization,
    prop: Property,
    *,
    opened_at: datetime,
    severity: str = "minor",
    status: str = "open",
    description: Optional[str] = "Broken shutter in the living room",
) -> Incident:
    inc = Incident(
        org_id=org.id,
        property_id=prop.id,
        severity=severity,
        status=status,
        description=description,
        opened_at=opened_at,
        updated_at=opened_at,
    )
    db.add(inc)
    db.commit()
    db.refresh(inc)
    return inc
