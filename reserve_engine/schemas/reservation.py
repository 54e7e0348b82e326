# reserve_engine/schemas/reservation.py
"""
Reservation schemas.

``ReservationCreate`` validates an incoming payload's shape. Whether the
date is in the past and whether the notes fit the configured limit are
decided by the coordinator, not here.
"""

from datetime import date, datetime
import re
from typing import TYPE_CHECKING, Optional

from pydantic import Field, field_validator

from ..core.time_slots import MINUTES_PER_DAY, from_minutes, interval_for, is_valid_time_format
from ._strict_base import StrictModel, StrictRequestModel

if TYPE_CHECKING:
    from ..models.reservation import Reservation

DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _ensure_date_only(value: object, field_name: str) -> object:
    if isinstance(value, str):
        candidate = value.strip()
        if not DATE_ONLY_REGEX.fullmatch(candidate):
            raise ValueError(f"{field_name} must be a YYYY-MM-DD date-only string")
        return candidate
    if isinstance(value, datetime):
        raise ValueError(f"{field_name} must be a calendar date without a time component")
    return value


class ReservationCreate(StrictRequestModel):
    """Payload for creating a reservation."""

    customer_id: str = Field(..., min_length=1, description="Customer making the reservation")
    service_id: str = Field(..., min_length=1, description="Service menu being booked")
    staff_id: Optional[str] = Field(
        None, description="Requested staff member; omit for no preference"
    )
    reserved_date: date = Field(..., description="Day of the reservation")
    reserved_time: str = Field(..., description="Start time as HH:MM")
    notes: Optional[str] = Field(None, description="Free-text notes")

    @field_validator("reserved_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return _ensure_date_only(v, "reserved_date")

    @field_validator("reserved_time")
    @classmethod
    def _validate_time(cls, v: str) -> str:
        if not is_valid_time_format(v):
            raise ValueError(f"Invalid time format: {v}. Expected HH:MM format.")
        return v

    @field_validator("staff_id", mode="before")
    @classmethod
    def _blank_staff_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("notes")
    @classmethod
    def _blank_notes_are_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class ReservationRecord(StrictModel):
    """
    Snapshot of a committed reservation.

    Built while the unit of work is still open so it can be returned and
    passed to notifiers after the session is closed.
    """

    id: str
    tenant_id: str
    customer_id: str
    service_id: str
    staff_id: Optional[str] = None
    reserved_date: date
    reserved_time: str
    end_time: str
    duration_minutes: int
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    service_name: Optional[str] = None
    staff_name: Optional[str] = None

    @classmethod
    def from_reservation(cls, reservation: "Reservation") -> "ReservationRecord":
        duration = reservation.service.duration_minutes
        _, end = interval_for(reservation.reserved_time, duration)
        return cls(
            id=reservation.id,
            tenant_id=reservation.tenant_id,
            customer_id=reservation.customer_id,
            service_id=reservation.service_id,
            staff_id=reservation.staff_id,
            reserved_date=reservation.reserved_date,
            reserved_time=reservation.reserved_time,
            end_time="24:00" if end == MINUTES_PER_DAY else from_minutes(end),
            duration_minutes=duration,
            status=reservation.status,
            notes=reservation.notes,
            created_at=reservation.created_at,
            customer_name=reservation.customer.name if reservation.customer else None,
            customer_email=reservation.customer.email if reservation.customer else None,
            service_name=reservation.service.name,
            staff_name=reservation.staff.name if reservation.staff else None,
        )
