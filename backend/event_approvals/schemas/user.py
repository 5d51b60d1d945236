"""Pydantic schemas for Users."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: str = "member"
    department_id: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    name: str
    email: str
    role: str
    department_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
