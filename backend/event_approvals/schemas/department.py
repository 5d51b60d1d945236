"""Pydantic schemas for Departments."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    lead_name: Optional[str] = None
    lead_email: Optional[str] = None
    lead_phone: Optional[str] = None
    color: Optional[str] = None


class DepartmentOut(BaseModel):
    department_id: str
    name: str
    lead_name: Optional[str] = None
    lead_email: Optional[str] = None
    lead_phone: Optional[str] = None
    color: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
