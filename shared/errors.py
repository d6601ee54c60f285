# shared/errors.py
"""Error taxonomy shared by the scheduling and class management services.

Core operations raise these; routers turn them into ``HTTPException`` via
:func:`to_http_exception`. Every error carries a stable ``code`` plus a
``details`` dict (ids, counts, limits) so a caller can correct and retry.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class SchedulingError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "error"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(SchedulingError):
    """Malformed input, detected before any mutation."""
    default_code = "validation_error"


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class ConflictError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class CapacityError(SchedulingError):
    default_code = "capacity_exceeded"


class TransactionError(SchedulingError):
    """Storage failure after writes began. The transaction has been rolled back."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "transaction_failed"


def to_http_exception(error: SchedulingError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_dict())
