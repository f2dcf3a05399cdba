"""
Domain error taxonomy.

Services raise these; the handler registered in ``main.py`` renders them as
``{"error": message, **details}`` with the class's HTTP status.
"""
from typing import Any, Dict, Optional


class DispatchError(Exception):
    """Base class for errors reported to the caller with a specific status."""
    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.details}


class ValidationError(DispatchError):
    """Missing or malformed input."""
    status_code = 400


class UnauthorizedError(DispatchError):
    status_code = 401


class ForbiddenError(DispatchError):
    status_code = 403


class NotFoundError(DispatchError):
    status_code = 404


class ConflictError(DispatchError):
    """A state precondition does not hold (already quoted, wrong route status, lost race)."""
    status_code = 409


class ExternalServiceError(DispatchError):
    """Geocoding, routing or webhook failure with no fallback."""
    status_code = 400



class InternalError(DispatchError):
    """Unexpected failure, reported without internals."""
    status_code = 500
