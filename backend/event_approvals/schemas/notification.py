"""Pydantic schemas for in-app Notifications."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class NotificationOut(BaseModel):
    notification_id: str
    user_id: str
    title: str
    message: str
    type: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UnreadCountOut(BaseModel):
    unread: int


class MarkAllReadOut(BaseModel):
    updated: int
