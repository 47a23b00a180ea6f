# conciergeops/services/conflict_service.py
from __future__ import annotations

from datetime import date, datetime, time
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.conflicts import Conflict, TaskSlot, find_conflicts
from ..models import AppUser, OrgMembership, ScheduledTask


def _as_date(v: Any) -> date:
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    return date.fromisoformat(str(v))


def window_bounds(start_date: Any, end_date: Any) -> tuple[datetime, datetime]:
    """[start 00:00:00, end 23:59:59], both inclusive."""
    s = _as_date(start_date)
    e = _as_date(end_date)
    if e < s:
        raise ValueError("end_date cannot be before start_date")
    return datetime.combine(s, time.min), datetime.combine(e, time(23, 59, 59))


def detect_conflicts(db: Session, *, org_id: int, start_date: Any, end_date: Any) -> list[Conflict]:
    """
    Read-only: pairs of one worker's missions scheduled less than two hours
    apart inside the window. Cancelled and unassigned missions are ignored.
    """
    lo, hi = window_bounds(start_date, end_date)

    rows = db.execute(
        select(ScheduledTask.id, ScheduledTask.task_type, ScheduledTask.scheduled_at, ScheduledTask.assigned_to)
        .where(
            ScheduledTask.org_id == int(org_id),
            ScheduledTask.assigned_to.is_not(None),
            ScheduledTask.status != "cancelled",
            ScheduledTask.scheduled_at >= lo,
            ScheduledTask.scheduled_at <= hi,
        )
        .order_by(ScheduledTask.scheduled_at.asc(), ScheduledTask.id.asc())
    ).all()

    if not rows:
        return []

    slots = [
        TaskSlot(id=int(r.id), task_type=str(r.task_type), scheduled_at=r.scheduled_at, assigned_to=int(r.assigned_to))
        for r in rows
    ]

    assignee_ids = sorted({s.assigned_to for s in slots if s.assigned_to is not None})
    names: dict[int, str] = {}
    for uid, display_name, email in db.execute(
        select(AppUser.id, AppUser.display_name, AppUser.email)
        .join(OrgMembership, OrgMembership.user_id == AppUser.id)
        .where(OrgMembership.org_id == int(org_id), AppUser.id.in_(assignee_ids))
    ).all():
        names[int(uid)] = display_name or email

    return find_conflicts(slots, names, unknown_label=settings.conflict_unknown_worker_label)
