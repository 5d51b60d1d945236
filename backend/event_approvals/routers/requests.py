"""Event request API routes — drafting, editing and the approval workflow.

Every route takes the actor explicitly from ``get_actor``; workflow actions
delegate to the WorkflowEngine, which enforces the transition table no
matter what the client was offered.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from event_approvals.database import get_db
from event_approvals.deps import Actor, get_actor, get_engine, get_source_address
from event_approvals.errors import PermissionDenied, ValidationError
from event_approvals.models.request import RequestStatus
from event_approvals.schemas.audit import AuditLogOut
from event_approvals.schemas.request import (
    AllowedActionsOut,
    FeedbackIn,
    RequestDetailOut,
    RequestDraft,
    RequestOut,
    RequestUpdate,
    TransitionIn,
    TransitionOut,
)
from event_approvals.services import audit_service, permissions, request_service
from event_approvals.services.transitions import allowed_transitions
from event_approvals.services.workflow_service import TransitionResult, WorkflowEngine

logger = logging.getLogger(__name__)
router = APIRouter()


def _transition_out(result: TransitionResult) -> TransitionOut:
    return TransitionOut(
        message=result.message,
        request=RequestOut.model_validate(result.request),
        event_id=result.event.event_id if result.event is not None else None,
    )


@router.post("/", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def create_request(
    payload: RequestDraft,
    actor: Actor = Depends(get_actor),
    ip_address: Optional[str] = Depends(get_source_address),
    db: Session = Depends(get_db),
):
    """Save a new draft (leads only). Incomplete content is allowed until submission."""
    return request_service.create_request(
        db, actor.user_id, actor.role, payload.model_dump(exclude_unset=True), ip_address=ip_address,
    )


@router.get("/", response_model=list[RequestOut])
def list_requests(
    status_filter: Optional[str] = Query(None, alias="status", description="Comma-separated statuses"),
    department_id: Optional[str] = Query(None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    statuses = None
    if status_filter:
        try:
            statuses = [RequestStatus(s.strip()) for s in status_filter.split(",") if s.strip()]
        except ValueError as exc:
            raise ValidationError(f"Invalid status filter: {exc}")
    return request_service.list_requests(
        db, actor.user_id, actor.role, statuses=statuses, department_id=department_id,
    )


@router.get("/{request_id}", response_model=RequestDetailOut)
def get_request(request_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """Fetch a request with its feedback trail and field-change history."""
    return request_service.get_request(db, actor.user_id, actor.role, request_id)


@router.patch("/{request_id}", response_model=RequestOut)
def update_request(
    request_id: str,
    payload: RequestUpdate,
    actor: Actor = Depends(get_actor),
    ip_address: Optional[str] = Depends(get_source_address),
    db: Session = Depends(get_db),
):
    """Edit content (edit matrix applies, optimistic locking enforced)."""
    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    return request_service.update_request(
        db, actor.user_id, actor.role, request_id, updates, payload.version, ip_address=ip_address,
    )


@router.get("/{request_id}/actions", response_model=AllowedActionsOut)
def get_allowed_actions(request_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """What the caller may do with this request right now."""
    request = request_service.get_request(db, actor.user_id, actor.role, request_id)
    targets = allowed_transitions(request.status, actor.role, request.returned_to)
    if not permissions.can_transition(actor.role, actor.user_id, request):
        targets = []
    if not permissions.can_delete(actor.role, actor.user_id, request):
        targets = [t for t in targets if t != RequestStatus.deleted]
    targets = [t for t in targets if permissions.is_assigned_reviewer(actor.role, actor.user_id, request, t)]
    return AllowedActionsOut(
        request_id=request.request_id,
        status=RequestStatus(request.status).value,
        allowed_transitions=[t.value for t in targets],
        can_edit=permissions.can_edit(actor.role, actor.user_id, request),
        can_delete=permissions.can_delete(actor.role, actor.user_id, request),
    )


@router.get("/{request_id}/audit", response_model=list[AuditLogOut])
def get_request_audit(request_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """Audit trail for one request (admin and superadmin only)."""
    if not permissions.can_view_audit(actor.role):
        raise PermissionDenied("Only administrators can view audit logs")
    return audit_service.get_request_audit_log(db, request_id)


@router.post("/{request_id}/transition", response_model=TransitionOut)
def transition_request(
    request_id: str,
    payload: TransitionIn,
    actor: Actor = Depends(get_actor),
    ip_address: Optional[str] = Depends(get_source_address),
    engine: WorkflowEngine = Depends(get_engine),
):
    """Move a request to ``target_status`` if the transition table allows it."""
    result = engine.execute_transition(
        request_id, payload.target_status, actor.user_id, actor.role,
        feedback=payload.feedback, ip_address=ip_address,
    )
    return _transition_out(result)


def _action_route(action: str, summary: str):
    def run_action(
        request_id: str,
        payload: Optional[FeedbackIn] = None,
        actor: Actor = Depends(get_actor),
        ip_address: Optional[str] = Depends(get_source_address),
        engine: WorkflowEngine = Depends(get_engine),
    ):
        result = engine.execute_action(
            action, request_id, actor.user_id, actor.role,
            feedback=payload.feedback if payload else None, ip_address=ip_address,
        )
        return _transition_out(result)

    run_action.__name__ = f"{action}_request"
    router.add_api_route(
        f"/{{request_id}}/{action}",
        run_action,
        methods=["POST"],
        response_model=TransitionOut,
        summary=summary,
    )


_action_route("submit", "Submit a draft or resubmit a returned request (lead)")
_action_route("claim", "Claim a submitted request for review (admin)")
_action_route("forward", "Forward a reviewed request for final approval (admin)")
_action_route("approve", "Approve and publish to the calendar (superadmin)")
_action_route("return", "Return with feedback to the previous stage (admin, superadmin)")
_action_route("delete", "Delete a request awaiting approval (superadmin)")
