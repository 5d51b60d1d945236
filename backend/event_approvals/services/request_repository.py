"""Request repository — persistence boundary for EventRequest entities.

The workflow engine only talks to the ``RequestRepository`` protocol. The
SQLAlchemy adapter implements ``save`` as a compare-and-set on the status
(and version) the caller read, so two actors racing on the same request can
never both win.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from event_approvals.errors import ConcurrencyConflict, NotFound
from event_approvals.models.request import EventRequest, RequestStatus
from event_approvals.models.request_counter import RequestCounter

logger = logging.getLogger(__name__)


class RequestRepository(Protocol):
    def find_by_id(self, request_id: str) -> EventRequest: ...

    def save(
        self,
        request: EventRequest,
        expected_status: RequestStatus,
        expected_version: int,
        values: dict[str, Any],
    ) -> EventRequest: ...

    def create(self, fields: dict[str, Any]) -> EventRequest: ...


def format_request_number(year: int, seq: int) -> str:
    return f"REQ-{year}-{seq:04d}"


class SqlAlchemyRequestRepository:
    """RequestRepository backed by a SQLAlchemy session.

    Never commits; the caller owns the transaction boundary.
    """

    def __init__(self, db: Session):
        self._db = db

    def find_by_id(self, request_id: str) -> EventRequest:
        request = (
            self._db.query(EventRequest)
            .filter(EventRequest.request_id == request_id)
            .populate_existing()
            .first()
        )
        if request is None:
            raise NotFound(f"Request {request_id} not found")
        return request

    def save(
        self,
        request: EventRequest,
        expected_status: RequestStatus,
        expected_version: int,
        values: dict[str, Any],
    ) -> EventRequest:
        """Write ``values`` only if the row still has the status and version we read."""
        stmt = (
            update(EventRequest)
            .where(
                EventRequest.request_id == request.request_id,
                EventRequest.status == expected_status,
                EventRequest.version == expected_version,
            )
            .values(**values, version=expected_version + 1, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        result = self._db.execute(stmt)
        if result.rowcount != 1:
            current = self._db.execute(
                select(EventRequest.status).where(EventRequest.request_id == request.request_id)
            ).scalar_one_or_none()
            if current is None:
                raise NotFound(f"Request {request.request_id} not found")
            logger.warning(
                "Lost update on request %s: expected %s/v%d, found %s",
                request.request_id, RequestStatus(expected_status).value, expected_version,
                RequestStatus(current).value,
            )
            raise ConcurrencyConflict(
                f"Request {request.request_number} was changed by someone else "
                f"(now '{RequestStatus(current).value}'). Reload and try again."
            )
        self._db.refresh(request)
        return request

    def next_request_number(self, year: Optional[int] = None) -> str:
        """Allocate the next ``REQ-<year>-<seq>`` from the per-year counter.

        The increment is a single UPDATE, so the counter row stays locked
        until the caller commits and concurrent creators serialize on it.
        """
        year = year or datetime.now(timezone.utc).year
        result = self._db.execute(
            update(RequestCounter)
            .where(RequestCounter.year == year)
            .values(last_value=RequestCounter.last_value + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # First request of the year; a racing creator hits the primary key.
            self._db.add(RequestCounter(year=year, last_value=1))
            self._db.flush()
            value = 1
        else:
            value = self._db.execute(
                select(RequestCounter.last_value).where(RequestCounter.year == year)
            ).scalar_one()
        number = format_request_number(year, value)
        logger.debug("Allocated request number %s", number)
        return number

    def create(self, fields: dict[str, Any]) -> EventRequest:
        request = EventRequest(
            request_number=self.next_request_number(),
            status=RequestStatus.draft,
            version=1,
            **fields,
        )
        self._db.add(request)
        self._db.flush()
        return request
