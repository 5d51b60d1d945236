"""Import every model so Base.metadata knows about all tables."""
from event_approvals.models.department import Department  # noqa: F401
from event_approvals.models.user import User, Role  # noqa: F401
from event_approvals.models.request import EventRequest, RequestStatus, EventType  # noqa: F401
from event_approvals.models.feedback import RequestFeedback, RequestChange  # noqa: F401
from event_approvals.models.audit_log import AuditLog, AuditAction, ResourceType  # noqa: F401
from event_approvals.models.notification import Notification, NotificationType  # noqa: F401
from event_approvals.models.event import Event  # noqa: F401
from event_approvals.models.request_counter import RequestCounter  # noqa: F401
