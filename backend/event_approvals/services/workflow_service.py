"""Workflow engine — the only code allowed to move a request between statuses.

For one call to ``execute_transition``:

1. Load the request (``NotFound`` if missing, nothing else happens).
2. Check the transition table for the actor's role (``InvalidTransition``),
   that a lead only moves their own request, and that only the claiming admin
   forwards or returns a request under review (``PermissionDenied``). A return
   without feedback fails before any of this (``ValidationError``).
   Rejected attempts leave no audit entry and send no notification.
3. Check feedback and content rules (``ValidationError``).
4. Compute the timestamp/assignment fields for the destination status.
5. Compare-and-set the row on the status we read, publish the Event when
   approving, append the audit entry and any feedback, then commit. All of
   it lands in one transaction or none of it does.
6. Hand the workflow event to the notification dispatcher, which never
   raises.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from event_approvals.config import settings
from event_approvals.errors import InvalidTransition, PermissionDenied, PersistenceFailure, WorkflowError
from event_approvals.models.audit_log import AuditLog, ResourceType
from event_approvals.models.event import Event
from event_approvals.models.feedback import RequestFeedback
from event_approvals.models.request import EventRequest, RequestStatus
from event_approvals.models.user import Role
from event_approvals.services import permissions, validation
from event_approvals.services.audit_service import AuditLogWriter, request_snapshot
from event_approvals.services.event_service import publish_event
from event_approvals.services.notification_service import EVENT_FOR_STATUS, NotificationDispatcher
from event_approvals.services.request_repository import RequestRepository, SqlAlchemyRequestRepository
from event_approvals.services.transitions import ACTIONS, AUDIT_ACTIONS, validate_transition

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    request: EventRequest
    from_status: RequestStatus
    to_status: RequestStatus
    audit_entry: AuditLog
    event: Optional[Event] = None
    feedback: Optional[RequestFeedback] = None
    success: bool = True

    @property
    def message(self) -> str:
        return f"Request successfully transitioned to '{self.to_status.value}'"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowEngine:
    def __init__(
        self,
        db: Session,
        repository: Optional[RequestRepository] = None,
        audit: Optional[AuditLogWriter] = None,
        notifier: Optional[NotificationDispatcher] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._db = db
        self.repository = repository or SqlAlchemyRequestRepository(db)
        self.audit = audit or AuditLogWriter(db)
        self.notifier = notifier or NotificationDispatcher(db)
        self._clock = clock

    # -- validation -------------------------------------------------------
    @staticmethod
    def _parse(target_status: Any, actor_role: Any) -> tuple[RequestStatus, Role]:
        try:
            target = RequestStatus(target_status)
        except ValueError:
            raise InvalidTransition(f"Unknown request status '{target_status}'")
        try:
            role = Role(actor_role)
        except ValueError:
            raise InvalidTransition(f"Unknown role '{actor_role}'")
        return target, role

    @staticmethod
    def _check_feedback(target: RequestStatus, feedback: Optional[str]) -> Optional[str]:
        if target == RequestStatus.returned:
            return validation.validate_feedback(
                feedback, required=True, max_length=settings.FEEDBACK_MAX_LENGTH,
            )
        if target == RequestStatus.deleted:
            return validation.validate_feedback(
                feedback, required=False, max_length=settings.DELETE_REASON_MAX_LENGTH, label="Reason",
            )
        return validation.validate_feedback(
            feedback, required=False, max_length=settings.FEEDBACK_MAX_LENGTH,
        )

    # -- side effects -----------------------------------------------------
    @staticmethod
    def _side_effects(
        current: RequestStatus,
        target: RequestStatus,
        actor_id: str,
        now: datetime,
    ) -> dict[str, Any]:
        values: dict[str, Any] = {"status": target}
        if target == RequestStatus.submitted:
            values.update(submitted_at=now, assigned_admin_id=None, returned_to=None)
        elif target == RequestStatus.under_review:
            # First claim wins: there is no under_review -> under_review edge.
            values.update(reviewed_at=now, assigned_admin_id=actor_id, returned_to=None)
        elif target == RequestStatus.approved:
            values["approved_at"] = now
        elif target == RequestStatus.returned:
            if current == RequestStatus.ready_for_approval:
                # Back to administrator review.
                values.update(reviewed_at=now, returned_to=Role.admin)
            else:
                values["returned_to"] = Role.lead
        elif target == RequestStatus.deleted:
            values["deleted_at"] = now
        return values

    # -- entry points -----------------------------------------------------
    def execute_transition(
        self,
        request_id: str,
        target_status: RequestStatus,
        actor_id: str,
        actor_role: Role,
        feedback: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> TransitionResult:
        target, role = self._parse(target_status, actor_role)
        request = self.repository.find_by_id(request_id)
        current = RequestStatus(request.status)
        read_version = request.version

        if target == RequestStatus.returned:
            # A return without feedback is invalid whatever the current status.
            note = self._check_feedback(target, feedback)

        reason = validate_transition(current, target, role, request.returned_to)
        if reason is None and target == RequestStatus.deleted and not permissions.can_delete(
            role, actor_id, request
        ):
            reason = f"Role '{role.value}' may not delete a request that is {current.value}"
        if reason:
            logger.warning(
                "Rejected %s -> %s on request %s by %s (%s): %s",
                current.value, target.value, request_id, actor_id, role.value, reason,
            )
            raise InvalidTransition(reason)
        if not permissions.can_transition(role, actor_id, request):
            logger.warning("User %s (%s) may not act on request %s", actor_id, role.value, request_id)
            raise PermissionDenied(f"You may not act on request {request.request_number}")
        if not permissions.is_assigned_reviewer(role, actor_id, request, target):
            logger.warning(
                "User %s may not move request %s to %s; it is assigned to %s",
                actor_id, request_id, target.value, request.assigned_admin_id,
            )
            raise PermissionDenied("You can only forward or return requests assigned to you")

        if target != RequestStatus.returned:
            note = self._check_feedback(target, feedback)
        if target == RequestStatus.submitted:
            validation.validate_for_submission(request)

        snapshot = request_snapshot(request) if target == RequestStatus.deleted else None
        values = self._side_effects(current, target, actor_id, self._clock())
        action = AUDIT_ACTIONS[target]

        try:
            self.repository.save(request, current, read_version, values)
            event = publish_event(self._db, request) if target == RequestStatus.approved else None

            changes: dict[str, Any] = {"status": {"from": current.value, "to": target.value}}
            if values.get("assigned_admin_id"):
                changes["assigned_admin_id"] = values["assigned_admin_id"]
            if "returned_to" in values and values["returned_to"] is not None:
                changes["returned_to"] = Role(values["returned_to"]).value
            if event is not None:
                changes["event_id"] = event.event_id
            if snapshot is not None:
                changes["snapshot"] = snapshot

            entry = self.audit.log_action(
                action,
                ResourceType.event_request,
                request.request_id,
                user_id=actor_id,
                user_role=role.value,
                changes=changes,
                reason=note,
                ip_address=ip_address,
            )

            feedback_entry = None
            if note:
                feedback_entry = RequestFeedback(
                    request_id=request.request_id,
                    user_id=actor_id,
                    user_role=role,
                    action=action.value,
                    feedback=note,
                )
                self._db.add(feedback_entry)
            self._db.commit()
        except WorkflowError:
            self._db.rollback()
            raise
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.exception("Could not persist %s -> %s for request %s", current.value, target.value, request_id)
            raise PersistenceFailure(
                f"Could not save the change to request {request_id}; it did not take effect. Try again."
            ) from exc

        self._db.refresh(request)
        logger.info(
            "Request %s moved %s -> %s by %s (%s)",
            request.request_number, current.value, target.value, actor_id, role.value,
        )

        self.notifier.notify(EVENT_FOR_STATUS[target], request)

        return TransitionResult(
            request=request,
            from_status=current,
            to_status=target,
            audit_entry=entry,
            event=event,
            feedback=feedback_entry,
        )

    def execute_action(
        self,
        action: str,
        request_id: str,
        actor_id: str,
        actor_role: Role,
        feedback: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> TransitionResult:
        """Run a named action (submit, claim, forward, approve, return, delete)."""
        if action not in ACTIONS:
            raise InvalidTransition(f"Unknown action '{action}'")
        return self.execute_transition(
            request_id, ACTIONS[action], actor_id, actor_role, feedback=feedback, ip_address=ip_address,
        )
