"""User ORM model — actors of the approval chain."""
import enum
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from event_approvals.database import Base


class Role(str, enum.Enum):
    member = "member"
    lead = "lead"
    admin = "admin"
    superadmin = "superadmin"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(SAEnum(Role), nullable=False, default=Role.member)
    department_id = Column(String(36), ForeignKey("departments.department_id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
