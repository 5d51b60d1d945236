"""Public calendar routes — read-only views of published events."""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from event_approvals.database import get_db
from event_approvals.models.request import EventType
from event_approvals.schemas.event import EventOut
from event_approvals.services import event_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[EventOut])
def list_events(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    type: Optional[str] = Query(None),
    department_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """List published events with optional date-range, type and department filters."""
    event_type = None
    if type:
        try:
            event_type = EventType(type)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid event type: {type}")
    return event_service.list_events(
        db, start_date=start_date, end_date=end_date, event_type=event_type, department_id=department_id,
    )


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, db: Session = Depends(get_db)):
    return event_service.get_event(db, event_id)
