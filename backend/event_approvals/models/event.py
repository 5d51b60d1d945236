"""Event ORM model — the published calendar entry created on approval."""
import uuid
from sqlalchemy import Column, String, Text, Date, DateTime, Integer, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from event_approvals.database import Base
from event_approvals.models.request import EventType


class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    request_id = Column(String(36), ForeignKey("event_requests.request_id"), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    event_type = Column(SAEnum(EventType), nullable=False)
    department_id = Column(String(36), ForeignKey("departments.department_id"), nullable=False)
    event_date = Column(Date, nullable=False)
    start_time_utc = Column(DateTime(timezone=True), nullable=False)
    end_time_utc = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    expected_attendance = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
