"""Notification routes — the recipient's own in-app notifications."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from event_approvals.database import get_db
from event_approvals.deps import Actor, get_actor
from event_approvals.schemas.notification import MarkAllReadOut, NotificationOut, UnreadCountOut
from event_approvals.services import notification_service

router = APIRouter()


@router.get("/", response_model=list[NotificationOut])
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return notification_service.list_notifications(db, actor.user_id, unread_only=unread_only, limit=limit)


@router.get("/unread-count", response_model=UnreadCountOut)
def unread_count(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return {"unread": notification_service.unread_count(db, actor.user_id)}


@router.patch("/read-all", response_model=MarkAllReadOut)
def mark_all_read(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return {"updated": notification_service.mark_all_as_read(db, actor.user_id)}


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return notification_service.mark_as_read(db, actor.user_id, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def dismiss(notification_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """Dismiss (delete) one of the caller's notifications."""
    notification_service.dismiss_notification(db, actor.user_id, notification_id)
