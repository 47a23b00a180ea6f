# conciergeops/domain/activity.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import ActivityLog

REMINDER_SENT = "reminder_sent"


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def activity_write(
    db: Session,
    *,
    org_id: int,
    actor_user_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Any,
    metadata: Optional[dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
    commit: bool = False,
) -> ActivityLog:
    """
    Append one activity row.

    - actor_user_id=None marks a system-generated entry.
    - Does NOT commit by default so sweeps can bundle it with their writes.
    """
    row = ActivityLog(
        org_id=int(org_id),
        actor_user_id=int(actor_user_id) if actor_user_id is not None else None,
        action=str(action),
        entity_type=str(entity_type),
        entity_id=str(entity_id),
        metadata_json=_dumps(metadata),
        created_at=created_at or datetime.utcnow(),
    )
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    return row


def latest_activity_since(
    db: Session,
    *,
    org_id: int,
    entity_type: str,
    entity_id: Any,
    action: str,
    since: datetime,
) -> Optional[ActivityLog]:
    return db.scalar(
        select(ActivityLog)
        .where(
            ActivityLog.org_id == int(org_id),
            ActivityLog.entity_type == str(entity_type),
            ActivityLog.entity_id == str(entity_id),
            ActivityLog.action == str(action),
            ActivityLog.created_at >= since,
        )
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(1)
    )
