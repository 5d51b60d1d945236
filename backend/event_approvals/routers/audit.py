"""Audit log routes — reporting for administrators."""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from event_approvals.database import get_db
from event_approvals.deps import Actor, get_actor
from event_approvals.errors import PermissionDenied
from event_approvals.models.audit_log import AuditAction, ResourceType
from event_approvals.schemas.audit import AuditLogOut
from event_approvals.services import audit_service, permissions

router = APIRouter()


@router.get("/", response_model=list[AuditLogOut])
def query_audit_log(
    request_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    limit: int = Query(audit_service.DEFAULT_LIMIT, ge=1, le=1000),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Filter the audit log (admin and superadmin only)."""
    if not permissions.can_view_audit(actor.role):
        raise PermissionDenied("Only administrators can view audit logs")
    try:
        action_filter = AuditAction(action) if action else None
        resource_filter = ResourceType(resource_type) if resource_type else None
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return audit_service.get_audit_log(
        db,
        request_id=request_id,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        action=action_filter,
        resource_type=resource_filter,
        limit=limit,
    )


@router.get("/deletions", response_model=list[AuditLogOut])
def deletion_log(
    limit: int = Query(audit_service.DEFAULT_LIMIT, ge=1, le=1000),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    if not permissions.can_view_audit(actor.role):
        raise PermissionDenied("Only administrators can view audit logs")
    return audit_service.get_deletion_logs(db, limit=limit)
