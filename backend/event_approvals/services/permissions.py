"""Permission predicates over (actor_role, actor_id, request).

Shared by the routers (to decide what to offer) and the workflow engine (to
enforce). No side effects.
"""
from event_approvals.models.request import EventRequest, RequestStatus
from event_approvals.models.user import Role

ADMIN_EDITABLE = frozenset({RequestStatus.submitted, RequestStatus.under_review})


def can_view(actor_role: Role, actor_id: str, request: EventRequest) -> bool:
    role = Role(actor_role)
    if role in (Role.superadmin, Role.admin):
        return True
    if role == Role.lead:
        return request.creator_id == actor_id
    return False


def can_edit(actor_role: Role, actor_id: str, request: EventRequest) -> bool:
    role = Role(actor_role)
    if role == Role.superadmin:
        return request.status == RequestStatus.ready_for_approval
    if role == Role.admin:
        return request.status in ADMIN_EDITABLE
    if role == Role.lead:
        return request.creator_id == actor_id and request.status == RequestStatus.draft
    return False


def can_delete(actor_role: Role, actor_id: str, request: EventRequest) -> bool:
    return Role(actor_role) == Role.superadmin and request.status not in (
        RequestStatus.approved,
        RequestStatus.deleted,
    )


def can_create(actor_role: Role) -> bool:
    return Role(actor_role) == Role.lead


def can_list(actor_role: Role) -> bool:
    return Role(actor_role) != Role.member


def can_view_audit(actor_role: Role) -> bool:
    return Role(actor_role) in (Role.admin, Role.superadmin)


def can_transition(actor_role: Role, actor_id: str, request: EventRequest) -> bool:
    """Leads only move their own requests; other roles are bound by the table alone."""
    role = Role(actor_role)
    if role == Role.lead:
        return request.creator_id == actor_id
    return role != Role.member


ASSIGNED_ONLY = (RequestStatus.ready_for_approval, RequestStatus.returned)


def is_assigned_reviewer(actor_role: Role, actor_id: str, request: EventRequest, target: RequestStatus) -> bool:
    """A claimed request is forwarded or returned only by the admin who claimed it."""
    if RequestStatus(request.status) != RequestStatus.under_review or RequestStatus(target) not in ASSIGNED_ONLY:
        return True
    return Role(actor_role) == Role.admin and request.assigned_admin_id == actor_id
