"""EventRequest ORM model — the proposal moving through the approval chain."""
import enum
import uuid
from sqlalchemy import (
    Column, String, Text, Date, Time, DateTime, Integer, Numeric, ForeignKey, Enum as SAEnum,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from event_approvals.database import Base
from event_approvals.models.user import Role


class RequestStatus(str, enum.Enum):
    draft = "draft"
    submitted = "submitted"
    under_review = "under_review"
    ready_for_approval = "ready_for_approval"
    approved = "approved"
    returned = "returned"
    deleted = "deleted"


class EventType(str, enum.Enum):
    sunday = "sunday"
    regional = "regional"
    local = "local"


# Fields a holder of the request may edit; identity and workflow fields are excluded.
CONTENT_FIELDS = (
    "title",
    "event_date",
    "start_time",
    "end_time",
    "location",
    "description",
    "expected_attendance",
    "budget",
    "special_requirements",
)


class EventRequest(Base):
    __tablename__ = "event_requests"

    request_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    request_number = Column(String(20), nullable=False, unique=True)

    creator_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    department_id = Column(String(36), ForeignKey("departments.department_id"), nullable=False)
    event_type = Column(SAEnum(EventType), nullable=False, default=EventType.local)

    status = Column(SAEnum(RequestStatus), nullable=False, default=RequestStatus.draft)
    assigned_admin_id = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    returned_to = Column(SAEnum(Role), nullable=True)

    title = Column(String(255), nullable=False)
    event_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    expected_attendance = Column(Integer, nullable=True)
    budget = Column(Numeric(10, 2), nullable=True)
    special_requirements = Column(Text, nullable=True)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    feedback = relationship(
        "RequestFeedback", back_populates="request", order_by="RequestFeedback.created_at",
    )
    changes = relationship(
        "RequestChange", back_populates="request", order_by="RequestChange.created_at",
    )
