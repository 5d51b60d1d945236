"""Pydantic schemas for event requests.

Two validation tiers: ``RequestDraft`` accepts an incomplete proposal (only
the title is required) and ``RequestSubmission`` is the full schema a request
must satisfy before it enters review.
"""
from __future__ import annotations
import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from event_approvals.models.request import EventType

_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


def _parse_time(value: Any) -> Any:
    """Accept ``HH:MM`` strings as well as ``time`` objects."""
    if isinstance(value, str):
        if not _TIME_RE.match(value):
            raise ValueError("Invalid time format (HH:MM)")
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    return value


class _RequestContent(BaseModel):
    """Content fields with the range checks shared by every tier."""

    event_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    expected_attendance: Optional[int] = Field(None, gt=0)
    budget: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    special_requirements: Optional[str] = Field(None, max_length=1000)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _check_time(cls, value):
        return _parse_time(value)


class RequestDraft(_RequestContent):
    title: str = Field(..., min_length=3, max_length=255)
    event_type: EventType = EventType.local
    department_id: Optional[str] = None


class RequestSubmission(_RequestContent):
    """Everything a request needs before an administrator sees it."""

    title: str = Field(..., min_length=3, max_length=255)
    event_type: EventType
    department_id: str
    event_date: date
    start_time: time
    end_time: time
    location: str = Field(..., min_length=2, max_length=255)

    @model_validator(mode="after")
    def _check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class RequestUpdate(_RequestContent):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    version: int  # required for optimistic locking

    model_config = {"extra": "forbid"}


class TransitionIn(BaseModel):
    target_status: str
    feedback: Optional[str] = None


class FeedbackIn(BaseModel):
    feedback: Optional[str] = None


class FeedbackOut(BaseModel):
    feedback_id: str
    user_id: str
    user_role: str
    action: str
    feedback: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ChangeOut(BaseModel):
    change_id: str
    user_id: str
    field_name: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RequestOut(BaseModel):
    request_id: str
    request_number: str
    creator_id: str
    department_id: str
    event_type: str
    status: str
    assigned_admin_id: Optional[str] = None
    returned_to: Optional[str] = None
    title: str
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location: Optional[str] = None
    description: Optional[str] = None
    expected_attendance: Optional[int] = None
    budget: Optional[Decimal] = None
    special_requirements: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RequestDetailOut(RequestOut):
    feedback: list[FeedbackOut] = []
    changes: list[ChangeOut] = []


class AllowedActionsOut(BaseModel):
    request_id: str
    status: str
    allowed_transitions: list[str]
    can_edit: bool
    can_delete: bool


class TransitionOut(BaseModel):
    message: str
    request: RequestOut
    event_id: Optional[str] = None
