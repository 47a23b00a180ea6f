# conciergeops/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from conciergeops.db import SessionLocal
from conciergeops.domain.recurrence import weekday_number
from conciergeops.models import (
    AppUser,
    Incident,
    Organization,
    OrgMembership,
    Property,
    RecurrenceTemplate,
    ScheduledTask,
)

DEMO_CREW = (
    # (email local part, display name, role)
    ("admin", "Admin", "admin"),
    ("manager", "Claire (manager)", "manager"),
    ("marie", "Marie", "operator"),
)


@dataclass(frozen=True)
class SeedResult:
    org_slug: str
    user_ids: dict[str, int] = field(default_factory=dict)
    property_id: Optional[int] = None
    recurrence_ids: tuple[int, ...] = ()
    task_ids: tuple[int, ...] = ()
    incident_id: Optional[int] = None

    def as_dict(self) -> dict:
        return {
            "org_slug": self.org_slug,
            "user_ids": dict(self.user_ids),
            "property_id": self.property_id,
            "recurrence_ids": list(self.recurrence_ids),
            "task_ids": list(self.task_ids),
            "incident_id": self.incident_id,
        }


def _member(db: Session, org: Organization, *, email: str, display_name: str, role: str) -> AppUser:
    user = db.scalar(select(AppUser).where(AppUser.email == email))
    if user is None:
        user = AppUser(email=email, display_name=display_name)
        db.add(user)
        db.flush()

    mem = db.scalar(select(OrgMembership).where(OrgMembership.org_id == org.id, OrgMembership.user_id == user.id))
    if mem is None:
        db.add(OrgMembership(org_id=org.id, user_id=user.id, role=role))
    return user


def _seed(db: Session, *, org_slug: str, org_name: str, domain: str, now: datetime, samples: bool) -> SeedResult:
    org = db.scalar(select(Organization).where(Organization.slug == org_slug))
    if org is not None:
        # already seeded; report what is there
        prop = db.scalar(select(Property).where(Property.org_id == org.id).order_by(Property.id))
        return SeedResult(org_slug=org_slug, property_id=int(prop.id) if prop else None)

    org = Organization(slug=org_slug, name=org_name)
    db.add(org)
    db.flush()

    users = {
        role: _member(db, org, email=f"{local}@{domain}", display_name=name, role=role)
        for local, name, role in DEMO_CREW
    }
    db.flush()
    user_ids = {role: int(u.id) for role, u in users.items()}
    if not samples:
        db.commit()
        return SeedResult(org_slug=org_slug, user_ids=user_ids)

    worker_id = user_ids["operator"]
    prop = Property(org_id=org.id, name="Seaside Loft", address="12 Quai des Docks", city="Nice")
    db.add(prop)
    db.flush()

    # due on today's sweep, and on the first of every month
    templates = [
        RecurrenceTemplate(
            org_id=org.id,
            property_id=prop.id,
            task_type="cleaning",
            frequency="weekly",
            day_of_week=weekday_number(now),
            scheduled_time="09:00",
            assigned_to=worker_id,
            notes="Weekly deep clean",
        ),
        RecurrenceTemplate(
            org_id=org.id,
            property_id=prop.id,
            task_type="intervention",
            priority="low",
            frequency="monthly",
            day_of_month=1,
            scheduled_time="14:00",
            notes="Boiler check",
        ),
    ]
    db.add_all(templates)

    # two missions 90 minutes apart for the same worker tomorrow
    tomorrow = (now + timedelta(days=1)).replace(hour=10, minute=0, second=0, microsecond=0)
    tasks = [
        ScheduledTask(org_id=org.id, property_id=prop.id, task_type="check_out", scheduled_at=tomorrow,
                      assigned_to=worker_id),
        ScheduledTask(org_id=org.id, property_id=prop.id, task_type="check_in",
                      scheduled_at=tomorrow + timedelta(minutes=90), assigned_to=worker_id),
    ]
    db.add_all(tasks)

    # old enough for both the escalation and the reminder sweep
    incident = Incident(
        org_id=org.id,
        property_id=prop.id,
        severity="minor",
        status="open",
        description="Dripping tap in the bathroom",
        opened_at=now - timedelta(days=8),
        updated_at=now - timedelta(days=8),
    )
    db.add(incident)
    db.commit()

    return SeedResult(
        org_slug=org_slug,
        user_ids=user_ids,
        property_id=int(prop.id),
        recurrence_ids=tuple(int(t.id) for t in templates),
        task_ids=tuple(int(t.id) for t in tasks),
        incident_id=int(incident.id),
    )


def seed_demo(
    *,
    org_slug: str = "demo",
    org_name: str = "Demo Conciergerie",
    domain: str = "demo.local",
    create_samples: bool = True,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> SeedResult:
    """
    One org with an admin, a manager and a field worker. With samples, every
    automation has something to act on right away: a weekly recurrence due
    today, a clashing pair of missions tomorrow and an 8-day-old minor
    incident. Re-running on an existing org changes nothing.
    """
    now = now or datetime.utcnow()
    if db is not None:
        return _seed(db, org_slug=org_slug, org_name=org_name, domain=domain, now=now, samples=create_samples)

    session = SessionLocal()
    try:
        return _seed(session, org_slug=org_slug, org_name=org_name, domain=domain, now=now, samples=create_samples)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
