"""Public calendar service — publishes approved requests as events."""
import logging
from datetime import date, datetime
from typing import Optional

import pytz
from sqlalchemy.orm import Session

from event_approvals.config import settings
from event_approvals.errors import NotFound, ValidationError
from event_approvals.models.event import Event
from event_approvals.models.request import EventRequest, EventType

logger = logging.getLogger(__name__)


def _to_utc(day: date, local_time, tz_name: str) -> datetime:
    """Interpret a wall-clock time in the church's timezone and convert to UTC."""
    tz = pytz.timezone(tz_name)
    return tz.localize(datetime.combine(day, local_time)).astimezone(pytz.utc)


def build_event(request: EventRequest, tz_name: Optional[str] = None) -> Event:
    """Copy an approved request's content into an Event. Nothing is persisted."""
    missing = [
        field for field in ("event_date", "start_time", "end_time", "location")
        if getattr(request, field) in (None, "")
    ]
    if missing:
        raise ValidationError(
            f"Request {request.request_number} cannot be published; missing {', '.join(missing)}"
        )

    tz_name = tz_name or settings.CALENDAR_TIMEZONE
    return Event(
        request_id=request.request_id,
        title=request.title,
        event_type=request.event_type,
        department_id=request.department_id,
        event_date=request.event_date,
        start_time_utc=_to_utc(request.event_date, request.start_time, tz_name),
        end_time_utc=_to_utc(request.event_date, request.end_time, tz_name),
        location=request.location,
        description=request.description,
        expected_attendance=request.expected_attendance,
    )


def publish_event(db: Session, request: EventRequest) -> Event:
    """Add the Event for ``request`` to the caller's transaction."""
    event = build_event(request)
    db.add(event)
    db.flush()
    logger.info("Published event %s from request %s", event.event_id, request.request_number)
    return event


def list_events(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    event_type: Optional[EventType] = None,
    department_id: Optional[str] = None,
) -> list[Event]:
    query = db.query(Event)
    if start_date:
        query = query.filter(Event.event_date >= start_date)
    if end_date:
        query = query.filter(Event.event_date <= end_date)
    if event_type:
        query = query.filter(Event.event_type == EventType(event_type))
    if department_id:
        query = query.filter(Event.department_id == department_id)
    return query.order_by(Event.event_date, Event.start_time_utc).all()


def get_event(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFound("Event not found")
    return event
