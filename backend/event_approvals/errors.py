"""Workflow error taxonomy.

Every error is an ``HTTPException`` so services can raise it directly and
FastAPI renders it; the ``detail`` payload always carries a stable ``code``,
a human-readable ``message`` and whether the caller may retry.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class WorkflowError(HTTPException):
    """Base class for all errors surfaced by the workflow core."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "WORKFLOW_ERROR"
    retryable = False

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        detail: dict[str, Any] = {
            "code": self.code,
            "message": message,
            "retryable": self.retryable,
        }
        if details is not None:
            detail["details"] = details
        super().__init__(status_code=self.status_code, detail=detail)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class NotFound(WorkflowError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class InvalidTransition(WorkflowError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_TRANSITION"


class ValidationError(WorkflowError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"


class PermissionDenied(WorkflowError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class ConcurrencyConflict(WorkflowError):
    """The optimistic write lost a race; re-read and retry the whole operation."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONCURRENCY_CONFLICT"
    retryable = True


class PersistenceFailure(WorkflowError):
    """The store failed for infrastructure reasons; the change did not take effect."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "PERSISTENCE_FAILURE"
    retryable = True
