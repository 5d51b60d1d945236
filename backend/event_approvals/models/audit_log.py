"""AuditLog ORM model — system-wide, append-only record of state-affecting actions."""
import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, JSON, Enum as SAEnum
from event_approvals.database import Base


class AuditAction(str, enum.Enum):
    created = "created"
    submitted = "submitted"
    claimed = "claimed"
    updated = "updated"
    forwarded = "forwarded"
    approved = "approved"
    returned = "returned"
    deleted = "deleted"


class ResourceType(str, enum.Enum):
    event_request = "event_request"
    event = "event"
    user = "user"
    department = "department"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    audit_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # No foreign keys: entries outlive the rows they describe.
    user_id = Column(String(36), nullable=True, index=True)
    user_role = Column(String(20), nullable=True)
    action = Column(SAEnum(AuditAction), nullable=False)
    resource_type = Column(SAEnum(ResourceType), nullable=False)
    resource_id = Column(String(36), nullable=False, index=True)
    changes = Column(JSON, nullable=True)
    reason = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
