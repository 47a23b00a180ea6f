# conciergeops/routers/calendar.py
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import ConflictOut
from ..services.conflict_service import detect_conflicts

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/conflicts", response_model=list[ConflictOut])
def list_conflicts(
    start: date = Query(..., description="YYYY-MM-DD, inclusive"),
    end: date = Query(..., description="YYYY-MM-DD, inclusive"),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    """
    Page-data loader for the calendar banner. Empty list means nothing to show.
    """
    try:
        conflicts = detect_conflicts(db, org_id=p.org_id, start_date=start, end_date=end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [c.as_dict() for c in conflicts]
