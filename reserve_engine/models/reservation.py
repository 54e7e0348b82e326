# reserve_engine/models/reservation.py
"""
Reservation model.

A reservation books one service for one customer starting at a wall-clock
time on a calendar day, optionally with a named staff member. Reservations
without staff belong to the tenant's unassigned pool.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Optional, Tuple

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
import ulid

from ..core.time_slots import interval_for
from ..database import Base

logger = logging.getLogger(__name__)

# staff_scope value for reservations that have no staff member
POOL_SCOPE = "__pool__"


class ReservationStatus(str, Enum):
    """Reservation lifecycle statuses."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


# Statuses that hold their slot
ACTIVE_STATUSES: Tuple[str, ...] = (
    ReservationStatus.PENDING.value,
    ReservationStatus.CONFIRMED.value,
)

_ACTIVE_STATUS_SQL = "status IN ('PENDING', 'CONFIRMED')"

# Zero-padded 24h HH:MM, expressed with substr so SQLite and PostgreSQL agree
_TIME_FORMAT_SQL = (
    "length(reserved_time) = 5"
    " AND substr(reserved_time, 1, 2) BETWEEN '00' AND '23'"
    " AND substr(reserved_time, 2, 1) BETWEEN '0' AND '9'"
    " AND substr(reserved_time, 3, 1) = ':'"
    " AND substr(reserved_time, 4, 1) BETWEEN '0' AND '5'"
    " AND substr(reserved_time, 5, 1) BETWEEN '0' AND '9'"
)


def staff_scope_for(staff_id: Optional[str]) -> str:
    return staff_id if staff_id else POOL_SCOPE


class Reservation(Base):
    """
    Reservation record.

    ``staff_scope`` mirrors ``staff_id`` with a non-null sentinel for the pool
    so the active-slot unique index also covers pool reservations (NULLs never
    collide in a unique index).
    """

    __tablename__ = "reservations"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=False, index=True)

    customer_id = Column(String(26), ForeignKey("customers.id"), nullable=False)
    service_id = Column(String(26), ForeignKey("service_menus.id"), nullable=False)
    staff_id = Column(String(26), ForeignKey("staff.id"), nullable=True)
    staff_scope = Column(String(26), nullable=False)

    reserved_date = Column(Date, nullable=False, index=True)
    reserved_time = Column(String(5), nullable=False)
    status = Column(String(20), nullable=False, default=ReservationStatus.CONFIRMED.value)
    notes = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    customer = relationship("Customer", back_populates="reservations")
    service = relationship("ServiceMenu", back_populates="reservations")
    staff = relationship("Staff", back_populates="reservations")

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED', 'NO_SHOW')",
            name="ck_reservations_status",
        ),
        CheckConstraint(_TIME_FORMAT_SQL, name="ck_reservations_time_format"),
        Index(
            "uq_reservations_active_slot",
            "tenant_id",
            "staff_scope",
            "reserved_date",
            "reserved_time",
            unique=True,
            postgresql_where=text(_ACTIVE_STATUS_SQL),
            sqlite_where=text(_ACTIVE_STATUS_SQL),
        ),
        Index("ix_reservations_scope_date", "tenant_id", "staff_scope", "reserved_date"),
        Index("ix_reservations_customer_date", "tenant_id", "customer_id", "reserved_date"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = ReservationStatus.CONFIRMED.value
        if not self.staff_scope:
            self.staff_scope = staff_scope_for(self.staff_id)

    def __repr__(self) -> str:
        return (
            f"<Reservation {self.id}: tenant={self.tenant_id}, staff={self.staff_id}, "
            f"date={self.reserved_date}, time={self.reserved_time}, status={self.status}>"
        )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def duration_minutes(self) -> Optional[int]:
        return self.service.duration_minutes if self.service is not None else None

    def interval(self, duration_minutes: Optional[int] = None) -> Tuple[int, int]:
        """Return the ``[start, end)`` minute offsets of this reservation."""
        duration = duration_minutes if duration_minutes is not None else self.duration_minutes
        if duration is None:
            raise ValueError(f"Reservation {self.id} has no service duration loaded")
        return interval_for(self.reserved_time, duration)
