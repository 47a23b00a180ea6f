from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_admin
from ..db import get_db
from ..domain.activity import activity_write
from ..models import OrgMembership, Property, RecurrenceTemplate
from ..schemas import RecurrenceCreate, RecurrenceOut, RecurrenceToggle, RecurrenceUpdate

router = APIRouter(prefix="/recurrences", tags=["recurrences"])


def _get_property_or_404(db: Session, *, org_id: int, property_id: int) -> Property:
    prop = db.scalar(select(Property).where(Property.id == property_id, Property.org_id == org_id))
    if not prop:
        raise HTTPException(status_code=404, detail="property not found")
    return prop


def _get_recurrence_or_404(db: Session, *, org_id: int, recurrence_id: int) -> RecurrenceTemplate:
    row = db.scalar(
        select(RecurrenceTemplate).where(RecurrenceTemplate.id == recurrence_id, RecurrenceTemplate.org_id == org_id)
    )
    if not row:
        raise HTTPException(status_code=404, detail="recurrence not found")
    return row


def _check_assignee(db: Session, *, org_id: int, user_id: Optional[int]) -> None:
    if user_id is None:
        return
    mem = db.scalar(select(OrgMembership).where(OrgMembership.org_id == org_id, OrgMembership.user_id == user_id))
    if mem is None:
        raise HTTPException(status_code=400, detail="assignee is not a member of this org")


def _snapshot(row: RecurrenceTemplate) -> dict:
    return RecurrenceOut.model_validate(row).model_dump(mode="json")


@router.get("", response_model=list[RecurrenceOut])
def list_recurrences(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return db.scalars(
        select(RecurrenceTemplate)
        .where(RecurrenceTemplate.org_id == p.org_id)
        .order_by(desc(RecurrenceTemplate.created_at), desc(RecurrenceTemplate.id))
    ).all()


@router.post("", response_model=RecurrenceOut)
def create_recurrence(payload: RecurrenceCreate, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    _get_property_or_404(db, org_id=p.org_id, property_id=payload.property_id)
    _check_assignee(db, org_id=p.org_id, user_id=payload.assigned_to)

    row = RecurrenceTemplate(org_id=p.org_id, created_at=datetime.utcnow(), **payload.model_dump())
    db.add(row)
    db.flush()

    activity_write(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        action="recurrence.create",
        entity_type="recurrence",
        entity_id=row.id,
        metadata={"after": _snapshot(row)},
    )
    db.commit()
    db.refresh(row)
    return row


@router.patch("/{recurrence_id}", response_model=RecurrenceOut)
def update_recurrence(
    recurrence_id: int,
    payload: RecurrenceUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    row = _get_recurrence_or_404(db, org_id=p.org_id, recurrence_id=recurrence_id)
    _get_property_or_404(db, org_id=p.org_id, property_id=payload.property_id)
    _check_assignee(db, org_id=p.org_id, user_id=payload.assigned_to)

    before = _snapshot(row)
    for k, v in payload.model_dump().items():
        setattr(row, k, v)
    db.add(row)
    db.flush()

    activity_write(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        action="recurrence.update",
        entity_type="recurrence",
        entity_id=row.id,
        metadata={"before": before, "after": _snapshot(row)},
    )
    db.commit()
    db.refresh(row)
    return row


@router.post("/{recurrence_id}/toggle", response_model=RecurrenceOut)
def toggle_recurrence(
    recurrence_id: int,
    payload: RecurrenceToggle,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    row = _get_recurrence_or_404(db, org_id=p.org_id, recurrence_id=recurrence_id)
    row.active = bool(payload.active)
    db.add(row)

    activity_write(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        action="recurrence.activate" if row.active else "recurrence.deactivate",
        entity_type="recurrence",
        entity_id=row.id,
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{recurrence_id}", response_model=dict)
def delete_recurrence(recurrence_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    row = _get_recurrence_or_404(db, org_id=p.org_id, recurrence_id=recurrence_id)
    before = _snapshot(row)
    db.delete(row)

    activity_write(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        action="recurrence.delete",
        entity_type="recurrence",
        entity_id=recurrence_id,
        metadata={"before": before},
    )
    db.commit()
    return {"ok": True, "id": recurrence_id}
