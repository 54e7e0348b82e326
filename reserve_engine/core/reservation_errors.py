# reserve_engine/core/reservation_errors.py
"""
Closed error taxonomy returned by the reservation coordinator.

Every failure of ``create_reservation`` is reported as a ``ReservationError``
value carrying one ``ReservationErrorKind``. Callers branch on ``kind``
(never on message text) and may use ``http_status`` / ``to_http_exception``
to render the recommended API response.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Union

from fastapi import HTTPException, status

if TYPE_CHECKING:
    from ..schemas.reservation import ReservationRecord

HTTP_499_CLIENT_CLOSED_REQUEST = 499


class ReservationErrorKind(str, Enum):
    """Every way a reservation request can fail."""

    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    STAFF_NOT_FOUND = "STAFF_NOT_FOUND"
    TIME_SLOT_CONFLICT = "TIME_SLOT_CONFLICT"
    NO_ACTIVE_STAFF = "NO_ACTIVE_STAFF"
    NO_FREE_STAFF = "NO_FREE_STAFF"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    STORED_DATA_ERROR = "STORED_DATA_ERROR"
    TRANSIENT_STORE_ERROR = "TRANSIENT_STORE_ERROR"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"


_HTTP_STATUS_BY_KIND: Dict[ReservationErrorKind, int] = {
    ReservationErrorKind.CUSTOMER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReservationErrorKind.SERVICE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReservationErrorKind.STAFF_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReservationErrorKind.NO_ACTIVE_STAFF: status.HTTP_404_NOT_FOUND,
    ReservationErrorKind.TIME_SLOT_CONFLICT: status.HTTP_409_CONFLICT,
    ReservationErrorKind.NO_FREE_STAFF: status.HTTP_409_CONFLICT,
    ReservationErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ReservationErrorKind.STORED_DATA_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ReservationErrorKind.TRANSIENT_STORE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ReservationErrorKind.REQUEST_CANCELLED: HTTP_499_CLIENT_CLOSED_REQUEST,
}

RETRYABLE_KINDS = frozenset({ReservationErrorKind.TRANSIENT_STORE_ERROR})


@dataclass(frozen=True)
class ReservationError:
    """A typed reservation failure with enough context to build an API error."""

    kind: ReservationErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS_BY_KIND[self.kind]

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.http_status,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


@dataclass(frozen=True)
class ReservationSuccess:
    reservation: "ReservationRecord"

    ok = True


@dataclass(frozen=True)
class ReservationFailure:
    error: ReservationError

    ok = False

    @property
    def kind(self) -> ReservationErrorKind:
        return self.error.kind


ReservationResult = Union[ReservationSuccess, ReservationFailure]


def failure(
    kind: ReservationErrorKind, message: str, **details: Any
) -> ReservationFailure:
    """Shorthand for building a failed result."""
    return ReservationFailure(ReservationError(kind=kind, message=message, details=details))
