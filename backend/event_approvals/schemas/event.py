"""Pydantic schemas for published calendar Events."""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel


class EventOut(BaseModel):
    event_id: str
    request_id: str
    title: str
    event_type: str
    department_id: str
    event_date: date
    start_time_utc: datetime
    end_time_utc: datetime
    location: str
    description: Optional[str] = None
    expected_attendance: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}
