"""Content validation tiers and feedback rules."""
from datetime import date, datetime
from typing import Any, Optional

import pydantic
import pytz

from event_approvals.config import settings
from event_approvals.errors import ValidationError
from event_approvals.models.request import CONTENT_FIELDS, EventRequest
from event_approvals.schemas.request import RequestDraft, RequestSubmission


def _issues(exc: pydantic.ValidationError) -> list[dict[str, Any]]:
    return [
        {"field": ".".join(str(p) for p in err["loc"]) or None, "message": err["msg"]}
        for err in exc.errors()
    ]


def calendar_today() -> date:
    return datetime.now(pytz.timezone(settings.CALENDAR_TIMEZONE)).date()


def validate_draft(fields: dict[str, Any]) -> RequestDraft:
    try:
        return RequestDraft(**fields)
    except pydantic.ValidationError as exc:
        raise ValidationError("Invalid request data", details=_issues(exc)) from exc


def validate_for_submission(request: EventRequest, check_date: bool = True) -> RequestSubmission:
    """Run the full schema over a stored request.

    ``check_date`` additionally rejects events dated before today in the
    church's timezone; approval skips it so a late decision is still possible.
    """
    data = {field: getattr(request, field) for field in CONTENT_FIELDS}
    data["event_type"] = request.event_type
    data["department_id"] = request.department_id
    try:
        submission = RequestSubmission(**data)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f"Request {request.request_number} is incomplete and cannot be submitted",
            details=_issues(exc),
        ) from exc

    if check_date and submission.event_date < calendar_today():
        raise ValidationError(
            "Event date cannot be in the past",
            details=[{"field": "event_date", "message": "Event date cannot be in the past"}],
        )
    return submission


def validate_feedback(
    feedback: Optional[str],
    required: bool,
    max_length: int,
    label: str = "Feedback",
) -> Optional[str]:
    """Strip and length-check free text; ``None`` means nothing was supplied."""
    text = feedback.strip() if feedback else ""
    if not text:
        if required:
            raise ValidationError(f"{label} is required for this action")
        return None
    if len(text) < settings.FEEDBACK_MIN_LENGTH:
        raise ValidationError(
            f"{label} must be at least {settings.FEEDBACK_MIN_LENGTH} characters"
        )
    if len(text) > max_length:
        raise ValidationError(f"{label} must not exceed {max_length} characters")
    return text
