"""Request service — drafting, editing and reading requests outside the state machine.

Status changes never happen here; see ``workflow_service``.
"""
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from event_approvals.errors import (
    ConcurrencyConflict, NotFound, PermissionDenied, PersistenceFailure, ValidationError, WorkflowError,
)
from event_approvals.models.audit_log import AuditAction, ResourceType
from event_approvals.models.department import Department
from event_approvals.models.feedback import RequestChange
from event_approvals.models.request import CONTENT_FIELDS, EventRequest, RequestStatus
from event_approvals.models.user import Role, User
from event_approvals.services import permissions, validation
from event_approvals.services.audit_service import AuditLogWriter, jsonable
from event_approvals.services.request_repository import SqlAlchemyRequestRepository

logger = logging.getLogger(__name__)


def _stringify(value: Any) -> Optional[str]:
    value = jsonable(value)
    return None if value is None else str(value)


def create_request(
    db: Session,
    actor_id: str,
    actor_role: Role,
    fields: dict[str, Any],
    ip_address: Optional[str] = None,
) -> EventRequest:
    """Create a draft. Only the title is mandatory at this stage."""
    if not permissions.can_create(actor_role):
        raise PermissionDenied("Only department leads can create event requests")

    draft = validation.validate_draft(fields)
    creator = db.query(User).filter(User.user_id == actor_id).first()
    if not creator:
        raise NotFound(f"User {actor_id} not found")

    department_id = draft.department_id or creator.department_id
    if not department_id:
        raise ValidationError("A department is required; the lead has no default department")
    if not db.query(Department).filter(Department.department_id == department_id).first():
        raise NotFound(f"Department {department_id} not found")

    data = draft.model_dump(exclude={"department_id"})
    try:
        request = SqlAlchemyRequestRepository(db).create(
            dict(data, creator_id=actor_id, department_id=department_id)
        )
        AuditLogWriter(db).log_action(
            AuditAction.created,
            ResourceType.event_request,
            request.request_id,
            user_id=actor_id,
            user_role=Role(actor_role).value,
            changes={"request_number": request.request_number, "title": request.title},
            ip_address=ip_address,
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not create request for %s", actor_id)
        raise PersistenceFailure("Could not create the request. Try again.") from exc

    db.refresh(request)
    logger.info("Created request %s (%s) by lead %s", request.request_number, request.request_id, actor_id)
    return request


def get_request(db: Session, actor_id: str, actor_role: Role, request_id: str) -> EventRequest:
    request = SqlAlchemyRequestRepository(db).find_by_id(request_id)
    if not permissions.can_view(actor_role, actor_id, request):
        raise PermissionDenied("You do not have permission to view this request")
    return request


def list_requests(
    db: Session,
    actor_id: str,
    actor_role: Role,
    statuses: Optional[list[RequestStatus]] = None,
    department_id: Optional[str] = None,
) -> list[EventRequest]:
    """Requests the actor may see, newest first. Deleted ones only when asked for."""
    role = Role(actor_role)
    if not permissions.can_list(role):
        raise PermissionDenied("You do not have permission to view requests")

    query = db.query(EventRequest)
    if role == Role.lead:
        query = query.filter(EventRequest.creator_id == actor_id)
    if statuses:
        query = query.filter(EventRequest.status.in_([RequestStatus(s) for s in statuses]))
    else:
        query = query.filter(EventRequest.status != RequestStatus.deleted)
    if department_id:
        query = query.filter(EventRequest.department_id == department_id)
    return query.order_by(EventRequest.created_at.desc(), EventRequest.request_number.desc()).all()


def update_request(
    db: Session,
    actor_id: str,
    actor_role: Role,
    request_id: str,
    updates: dict[str, Any],
    version: int,
    ip_address: Optional[str] = None,
) -> EventRequest:
    """Edit content fields under the edit matrix with optimistic locking.

    Administrator and super administrator edits leave one RequestChange per
    changed field; every edit leaves an ``updated`` audit entry.
    """
    role = Role(actor_role)
    repository = SqlAlchemyRequestRepository(db)
    request = repository.find_by_id(request_id)
    if not permissions.can_edit(role, actor_id, request):
        raise PermissionDenied(
            f"Role '{role.value}' cannot edit a request that is {RequestStatus(request.status).value}"
        )

    immutable = sorted(set(updates) - set(CONTENT_FIELDS))
    if immutable:
        raise ValidationError(f"Fields cannot be edited: {', '.join(immutable)}")

    if request.version != version:
        raise ConcurrencyConflict(
            f"Version mismatch: expected {request.version}, got {version}. Re-fetch and retry."
        )

    changes = {
        field: {"from": jsonable(getattr(request, field)), "to": jsonable(value)}
        for field, value in updates.items()
        if getattr(request, field) != value
    }
    if not changes:
        return request

    if "title" in updates and updates["title"] is None:
        raise ValidationError("Title cannot be removed")
    start = updates.get("start_time", request.start_time)
    end = updates.get("end_time", request.end_time)
    if start is not None and end is not None and end <= start:
        raise ValidationError("End time must be after start time")

    try:
        repository.save(
            request,
            RequestStatus(request.status),
            version,
            {field: updates[field] for field in changes},
        )
        if role in (Role.admin, Role.superadmin):
            for field, diff in changes.items():
                db.add(RequestChange(
                    request_id=request.request_id,
                    user_id=actor_id,
                    field_name=field,
                    old_value=_stringify(diff["from"]),
                    new_value=_stringify(diff["to"]),
                ))
        AuditLogWriter(db).log_action(
            AuditAction.updated,
            ResourceType.event_request,
            request.request_id,
            user_id=actor_id,
            user_role=role.value,
            changes=changes,
            ip_address=ip_address,
        )
        db.commit()
    except WorkflowError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not update request %s", request_id)
        raise PersistenceFailure(f"Could not save changes to request {request_id}. Try again.") from exc

    db.refresh(request)
    logger.info("Updated request %s fields %s (v%d)", request.request_number, sorted(changes), request.version)
    return request
