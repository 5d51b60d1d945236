"""RequestCounter ORM model — per-year counter behind request numbers."""
from sqlalchemy import Column, Integer
from event_approvals.database import Base


class RequestCounter(Base):
    __tablename__ = "request_counters"

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(Integer, nullable=False, default=0)
