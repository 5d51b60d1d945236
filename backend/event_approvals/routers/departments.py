"""Department API routes."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from event_approvals.database import get_db
from event_approvals.models.department import Department
from event_approvals.schemas.department import DepartmentCreate, DepartmentOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED)
def create_department(payload: DepartmentCreate, db: Session = Depends(get_db)):
    if db.query(Department).filter(Department.name == payload.name).first():
        raise HTTPException(status_code=409, detail="Department already exists")
    department = Department(**payload.model_dump())
    db.add(department)
    db.commit()
    db.refresh(department)
    logger.info("Created department '%s' (%s)", department.name, department.department_id)
    return department


@router.get("/", response_model=list[DepartmentOut])
def list_departments(db: Session = Depends(get_db)):
    """List departments for the contact page and request form."""
    return db.query(Department).order_by(Department.name).all()
