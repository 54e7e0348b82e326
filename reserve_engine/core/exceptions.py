# reserve_engine/core/exceptions.py
"""
Domain-specific exceptions for the reservation engine.

The coordinator reports reservation outcomes as typed values (see
``reservation_errors``); these exceptions cover the remaining service and
data-access paths and convert to HTTP errors at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

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


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Wraps query failures so services never see raw driver errors. The
    original SQLAlchemy exception is kept as ``__cause__``.
    """


class CorruptReservationError(DomainException):
    """Raised when a stored reservation row cannot be read as an interval."""

    def __init__(self, reservation_id: Optional[str], error: str) -> None:
        super().__init__(
            f"Stored reservation {reservation_id} is malformed: {error}",
            details={"reservation_id": reservation_id, "error": error},
        )
        self.reservation_id = reservation_id
