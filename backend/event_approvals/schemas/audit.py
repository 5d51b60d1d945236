"""Pydantic schemas for AuditLog entries."""
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel


class AuditLogOut(BaseModel):
    audit_id: str
    user_id: Optional[str] = None
    user_role: Optional[str] = None
    action: str
    resource_type: str
    resource_id: str
    changes: Optional[dict[str, Any]] = None
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
