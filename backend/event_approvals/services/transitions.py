"""Transition table — the static set of legal request status changes.

Pure data plus lookups; nothing here touches the database. Each edge names
the roles that may take it. ``approved`` and ``deleted`` have no outgoing
edges.
"""
from dataclasses import dataclass
from typing import Optional

from event_approvals.models.audit_log import AuditAction
from event_approvals.models.request import RequestStatus
from event_approvals.models.user import Role


@dataclass(frozen=True)
class Transition:
    from_status: RequestStatus
    to_status: RequestStatus
    allowed_roles: frozenset


TRANSITIONS: tuple[Transition, ...] = (
    # Lead
    Transition(RequestStatus.draft, RequestStatus.submitted, frozenset({Role.lead})),
    # Administrator
    Transition(RequestStatus.submitted, RequestStatus.under_review, frozenset({Role.admin})),
    Transition(RequestStatus.under_review, RequestStatus.returned, frozenset({Role.admin})),
    Transition(RequestStatus.under_review, RequestStatus.ready_for_approval, frozenset({Role.admin})),
    # Super Administrator
    Transition(RequestStatus.ready_for_approval, RequestStatus.approved, frozenset({Role.superadmin})),
    Transition(RequestStatus.ready_for_approval, RequestStatus.returned, frozenset({Role.superadmin})),
    Transition(RequestStatus.ready_for_approval, RequestStatus.deleted, frozenset({Role.superadmin})),
    # Resubmission after a return
    Transition(RequestStatus.returned, RequestStatus.submitted, frozenset({Role.lead})),
    Transition(RequestStatus.returned, RequestStatus.under_review, frozenset({Role.admin})),
)

_BY_EDGE = {(t.from_status, t.to_status): t for t in TRANSITIONS}

TERMINAL_STATUSES = frozenset({RequestStatus.approved, RequestStatus.deleted})

# A returned request goes back to whoever it was returned to.
RESUBMIT_TARGETS = {
    Role.lead: RequestStatus.submitted,
    Role.admin: RequestStatus.under_review,
}

AUDIT_ACTIONS = {
    RequestStatus.draft: AuditAction.created,
    RequestStatus.submitted: AuditAction.submitted,
    RequestStatus.under_review: AuditAction.claimed,
    RequestStatus.ready_for_approval: AuditAction.forwarded,
    RequestStatus.approved: AuditAction.approved,
    RequestStatus.returned: AuditAction.returned,
    RequestStatus.deleted: AuditAction.deleted,
}

# Named workflow actions offered to callers.
ACTIONS = {
    "submit": RequestStatus.submitted,
    "claim": RequestStatus.under_review,
    "forward": RequestStatus.ready_for_approval,
    "approve": RequestStatus.approved,
    "return": RequestStatus.returned,
    "delete": RequestStatus.deleted,
}

STATUS_LABELS = {
    RequestStatus.draft: "Draft",
    RequestStatus.submitted: "Submitted",
    RequestStatus.under_review: "Under Review",
    RequestStatus.ready_for_approval: "Ready for Approval",
    RequestStatus.approved: "Approved",
    RequestStatus.returned: "Returned",
    RequestStatus.deleted: "Deleted",
}


def find_transition(from_status: RequestStatus, to_status: RequestStatus) -> Optional[Transition]:
    return _BY_EDGE.get((RequestStatus(from_status), RequestStatus(to_status)))


def validate_transition(
    from_status: RequestStatus,
    to_status: RequestStatus,
    role: Role,
    returned_to: Optional[Role] = None,
) -> Optional[str]:
    """Return ``None`` when the move is legal, otherwise the reason it is not."""
    from_status = RequestStatus(from_status)
    to_status = RequestStatus(to_status)
    role = Role(role)

    if from_status in TERMINAL_STATUSES:
        return f"Request is {from_status.value}; no further transitions are possible"

    transition = find_transition(from_status, to_status)
    if transition is None:
        return f"Invalid transition from '{from_status.value}' to '{to_status.value}'"

    if role not in transition.allowed_roles:
        return (
            f"Role '{role.value}' is not allowed to transition from "
            f"'{from_status.value}' to '{to_status.value}'"
        )

    if from_status == RequestStatus.returned and returned_to is not None:
        expected = RESUBMIT_TARGETS[Role(returned_to)]
        if to_status != expected:
            return (
                f"Request was returned to {Role(returned_to).value}; "
                f"it can only move to '{expected.value}'"
            )
    return None


def is_transition_allowed(
    from_status: RequestStatus,
    to_status: RequestStatus,
    role: Role,
    returned_to: Optional[Role] = None,
) -> bool:
    return validate_transition(from_status, to_status, role, returned_to) is None


def allowed_transitions(
    from_status: RequestStatus,
    role: Role,
    returned_to: Optional[Role] = None,
) -> list[RequestStatus]:
    """Targets ``role`` may move a request in ``from_status`` to, in table order."""
    return [
        t.to_status
        for t in TRANSITIONS
        if t.from_status == RequestStatus(from_status)
        and is_transition_allowed(t.from_status, t.to_status, role, returned_to)
    ]
