"""Request-scoped dependencies: who is acting, from where, through which engine."""
from dataclasses import dataclass
from typing import Optional

from fastapi import BackgroundTasks, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from event_approvals.database import get_db
from event_approvals.models.user import Role, User
from event_approvals.services.notification_service import NotificationDispatcher
from event_approvals.services.workflow_service import WorkflowEngine


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role


def get_actor(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the caller from the header set by the auth layer in front of us."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = db.query(User).filter(User.user_id == x_user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return Actor(user_id=user.user_id, role=Role(user.role))


def get_source_address(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def get_engine(background_tasks: BackgroundTasks, db: Session = Depends(get_db)) -> WorkflowEngine:
    """Workflow engine whose email sends run after the response goes out."""
    return WorkflowEngine(db, notifier=NotificationDispatcher(db, defer=background_tasks.add_task))
