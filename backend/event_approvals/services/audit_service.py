"""Audit log writer and reporting queries.

Writes go into the caller's session and are committed with the change they
describe, so an audit entry exists exactly when the action took effect.
"""
import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from event_approvals.models.audit_log import AuditLog, AuditAction, ResourceType
from event_approvals.models.request import CONTENT_FIELDS, EventRequest

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


def jsonable(value: Any) -> Any:
    """Coerce column values into something the JSON column can hold."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "value"):  # enums
        return value.value
    return value


def request_snapshot(request: EventRequest) -> dict[str, Any]:
    """Serialize a request for forensic review after it leaves the workflow."""
    snapshot = {
        "request_id": request.request_id,
        "request_number": request.request_number,
        "creator_id": request.creator_id,
        "department_id": request.department_id,
        "event_type": jsonable(request.event_type),
        "status": jsonable(request.status),
        "assigned_admin_id": request.assigned_admin_id,
        "submitted_at": jsonable(request.submitted_at),
        "reviewed_at": jsonable(request.reviewed_at),
        "approved_at": jsonable(request.approved_at),
    }
    for field in CONTENT_FIELDS:
        snapshot[field] = jsonable(getattr(request, field))
    return snapshot


class AuditLogWriter:
    """Append-only sink for audit entries."""

    def __init__(self, db: Session):
        self._db = db

    def log_action(
        self,
        action: AuditAction,
        resource_type: ResourceType,
        resource_id: str,
        user_id: Optional[str] = None,
        user_role: Optional[str] = None,
        changes: Optional[dict[str, Any]] = None,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=user_id,
            user_role=jsonable(user_role),
            action=AuditAction(action),
            resource_type=ResourceType(resource_type),
            resource_id=resource_id,
            changes=changes,
            reason=reason,
            ip_address=ip_address,
        )
        self._db.add(entry)
        self._db.flush()
        logger.info(
            "Audit: %s %s %s by %s (%s)",
            entry.action.value, entry.resource_type.value, resource_id, user_id, entry.user_role,
        )
        return entry


def get_audit_log(
    db: Session,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    action: Optional[AuditAction] = None,
    resource_type: Optional[ResourceType] = None,
    limit: int = DEFAULT_LIMIT,
) -> list[AuditLog]:
    """Filter the audit log, newest first."""
    query = db.query(AuditLog)
    if request_id:
        query = query.filter(
            AuditLog.resource_type == ResourceType.event_request,
            AuditLog.resource_id == request_id,
        )
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)
    if start_date:
        query = query.filter(AuditLog.created_at >= start_date)
    if end_date:
        query = query.filter(AuditLog.created_at <= end_date)
    if action:
        query = query.filter(AuditLog.action == AuditAction(action))
    if resource_type:
        query = query.filter(AuditLog.resource_type == ResourceType(resource_type))
    return query.order_by(AuditLog.created_at.desc()).limit(limit).all()


def get_request_audit_log(db: Session, request_id: str) -> list[AuditLog]:
    """Full trail for one request, oldest first."""
    return (
        db.query(AuditLog)
        .filter(
            AuditLog.resource_type == ResourceType.event_request,
            AuditLog.resource_id == request_id,
        )
        .order_by(AuditLog.created_at)
        .all()
    )


def get_deletion_logs(db: Session, limit: int = DEFAULT_LIMIT) -> list[AuditLog]:
    return get_audit_log(db, action=AuditAction.deleted, limit=limit)
