"""Notification dispatcher and in-app notification operations.

Every workflow event fans out to its recipients over two independent
channels, an in-app Notification row and an email. Each send is retried a
few times; whatever still fails is logged and dropped so a broken mail server
can never undo or block a transition.
"""
import enum
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from event_approvals.config import settings
from event_approvals.errors import NotFound
from event_approvals.models.notification import Notification, NotificationType
from event_approvals.models.request import EventRequest, RequestStatus
from event_approvals.models.user import Role, User
from event_approvals.services.email_service import SmtpEmailChannel

logger = logging.getLogger(__name__)


class WorkflowEvent(str, enum.Enum):
    submitted = "submitted"
    claimed = "claimed"
    forwarded = "forwarded"
    approved = "approved"
    returned = "returned"
    deleted = "deleted"


EVENT_FOR_STATUS = {
    RequestStatus.submitted: WorkflowEvent.submitted,
    RequestStatus.under_review: WorkflowEvent.claimed,
    RequestStatus.ready_for_approval: WorkflowEvent.forwarded,
    RequestStatus.approved: WorkflowEvent.approved,
    RequestStatus.returned: WorkflowEvent.returned,
    RequestStatus.deleted: WorkflowEvent.deleted,
}

_TEMPLATES = {
    WorkflowEvent.submitted: (
        "New Event Request Submitted",
        "{number} \"{title}\" has been submitted and is awaiting review.",
        NotificationType.info,
    ),
    WorkflowEvent.claimed: (
        "Request Under Review",
        "Your request {number} \"{title}\" is now being reviewed by an administrator.",
        NotificationType.info,
    ),
    WorkflowEvent.forwarded: (
        "Request Ready for Approval",
        "{number} \"{title}\" has been reviewed and is ready for final approval.",
        NotificationType.info,
    ),
    WorkflowEvent.approved: (
        "Event Request Approved",
        "{number} \"{title}\" has been approved and published to the calendar.",
        NotificationType.success,
    ),
    WorkflowEvent.returned: (
        "Event Request Returned",
        "{number} \"{title}\" was returned for changes.",
        NotificationType.warning,
    ),
    WorkflowEvent.deleted: (
        "Event Request Deleted",
        "{number} \"{title}\" has been deleted.",
        NotificationType.error,
    ),
}


def request_link(request: EventRequest) -> str:
    return f"{settings.APP_URL.rstrip('/')}/requests/{request.request_id}"


def build_message(event: WorkflowEvent, request: EventRequest) -> tuple[str, str, NotificationType]:
    event = WorkflowEvent(event)
    title, template, kind = _TEMPLATES[event]
    message = template.format(number=request.request_number, title=request.title)
    if event in (WorkflowEvent.returned, WorkflowEvent.deleted):
        latest = request.feedback[-1] if request.feedback else None
        if latest is not None and latest.action == event.value:
            message = f"{message} Feedback: {latest.feedback}"
    return title, message, kind


class InAppChannel:
    """Writes Notification rows; commits each one on its own."""

    def __init__(self, db: Session):
        self._db = db

    def send(
        self,
        user_id: str,
        title: str,
        message: str,
        kind: NotificationType,
        request_id: str,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=kind,
            resource_type="event_request",
            resource_id=request_id,
        )
        try:
            self._db.add(notification)
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            raise
        return notification


class NotificationDispatcher:
    """Resolves recipients for a workflow event and delivers over both channels.

    ``defer`` schedules the email sends (e.g. ``BackgroundTasks.add_task``);
    without it emails go out inline.
    """

    def __init__(
        self,
        db: Session,
        email_channel: Optional[SmtpEmailChannel] = None,
        in_app_channel: Optional[InAppChannel] = None,
        defer: Optional[Callable[..., Any]] = None,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        self._db = db
        self.email_channel = email_channel or SmtpEmailChannel()
        self.in_app_channel = in_app_channel or InAppChannel(db)
        self.defer = defer
        self.max_attempts = max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS
        self.backoff_seconds = (
            settings.NOTIFICATION_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )

    def _users_with_roles(self, *roles: Role) -> list[User]:
        return self._db.query(User).filter(User.role.in_(roles)).order_by(User.name).all()

    def _user(self, user_id: Optional[str]) -> list[User]:
        if not user_id:
            return []
        user = self._db.query(User).filter(User.user_id == user_id).first()
        return [user] if user else []

    def recipients(self, event: WorkflowEvent, request: EventRequest) -> list[User]:
        event = WorkflowEvent(event)
        if event == WorkflowEvent.submitted:
            users = self._users_with_roles(Role.admin, Role.superadmin)
        elif event == WorkflowEvent.claimed:
            users = self._user(request.creator_id)
        elif event == WorkflowEvent.forwarded:
            users = self._users_with_roles(Role.superadmin)
        elif event == WorkflowEvent.returned:
            if request.returned_to == Role.admin:
                users = self._user(request.assigned_admin_id)
            else:
                users = self._user(request.creator_id)
        else:  # approved, deleted
            users = self._user(request.creator_id) + self._user(request.assigned_admin_id)

        unique: dict[str, User] = {}
        for user in users:
            unique.setdefault(user.user_id, user)
        return list(unique.values())

    def _attempt(self, channel: str, send: Callable[..., Any], *args: Any) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                send(*args)
                return True
            except Exception as exc:  # channel failures must never reach the caller
                logger.warning(
                    "%s delivery failed (attempt %d/%d): %s", channel, attempt, self.max_attempts, exc,
                )
                if attempt < self.max_attempts and self.backoff_seconds:
                    time.sleep(self.backoff_seconds)
        logger.error("Giving up on %s delivery after %d attempts", channel, self.max_attempts)
        return False

    def notify(self, event: WorkflowEvent, request: EventRequest) -> None:
        """Deliver ``event`` for ``request``. Never raises."""
        request_id = None
        try:
            request_id = request.request_id
            event = WorkflowEvent(event)
            # Plain values only: a failed channel commit expires the ORM objects.
            targets = [(user.user_id, user.email) for user in self.recipients(event, request)]
            title, message, kind = build_message(event, request)
            subject = f"[{request.request_number}] {title}"
            email_body = f"{message}\n\nView the request: {request_link(request)}\n"
        except Exception:
            logger.exception("Could not prepare %s notifications for request %s", event, request_id)
            return

        for user_id, email in targets:
            self._attempt("in-app", self.in_app_channel.send, user_id, title, message, kind, request_id)
            if self.defer is not None:
                self.defer(self._attempt, "email", self.email_channel.send, email, subject, email_body)
            else:
                self._attempt("email", self.email_channel.send, email, subject, email_body)

        logger.info(
            "Dispatched %s for request %s to %d recipient(s)", event.value, request_id, len(targets),
        )


# ---------------------------------------------------------------------------
# Recipient-side operations
# ---------------------------------------------------------------------------
def _own_notification(db: Session, user_id: str, notification_id: str) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.notification_id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not notification:
        raise NotFound("Notification not found")
    return notification


def list_notifications(
    db: Session, user_id: str, unread_only: bool = False, limit: int = 50
) -> list[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def unread_count(db: Session, user_id: str) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
        .count()
    )


def mark_as_read(db: Session, user_id: str, notification_id: str) -> Notification:
    notification = _own_notification(db, user_id, notification_id)
    if notification.read_at is None:
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_as_read(db: Session, user_id: str) -> int:
    count = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
        .update({Notification.read_at: datetime.now(timezone.utc)}, synchronize_session=False)
    )
    db.commit()
    logger.info("Marked %d notification(s) read for user %s", count, user_id)
    return count


def dismiss_notification(db: Session, user_id: str, notification_id: str) -> None:
    notification = _own_notification(db, user_id, notification_id)
    db.delete(notification)
    db.commit()
