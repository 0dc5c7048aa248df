"""
Domain exceptions raised by the booking services.

Each kind maps onto one HTTP status; route handlers let them propagate and
the application-level handler in ``roombook.main`` renders them.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainError(Exception):
    """Base class for all booking domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationError(DomainError):
    """Malformed input, e.g. an interval whose start is not before its end."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(DomainError):
    """A referenced room, booking or user does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainError):
    """The requested interval overlaps a non-terminal booking, or a unique name is taken."""

    status_code = status.HTTP_409_CONFLICT


class AuthorizationError(DomainError):
    """The acting user may not perform this operation."""

    status_code = status.HTTP_403_FORBIDDEN


class PreconditionError(DomainError):
    """The booking's current status does not permit the requested transition."""

    status_code = HTTP_422_UNPROCESSABLE


class DependencyError(DomainError):
    """The data store, cache or mail server is unavailable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
