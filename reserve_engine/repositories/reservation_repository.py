# reserve_engine/repositories/reservation_repository.py
"""
Reservation Repository.

All reads used for conflict detection return only slot-holding reservations
(PENDING / CONFIRMED) with their service loaded, since the service duration
defines each reservation's interval.
"""

from datetime import date
import hashlib
import logging
from typing import Dict, Iterable, List

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..database.session_utils import POSTGRESQL, SQLITE
from ..models.reservation import ACTIVE_STATUSES, Reservation
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def slot_lock_key(tenant_id: str, staff_scope: str, reserved_date: date) -> int:
    """Stable signed 64-bit key for ``pg_advisory_xact_lock``."""
    raw = f"{tenant_id}:{staff_scope}:{reserved_date.isoformat()}".encode("utf-8")
    digest = hashlib.blake2b(raw, digest_size=8).digest()
    return int.from_bytes(digest, byteorder="big", signed=True)


class ReservationRepository(BaseRepository[Reservation]):
    """Data access for reservations and the per-slot transaction lock."""

    def __init__(self, db: Session):
        super().__init__(db, Reservation)
        self.logger = logging.getLogger(__name__)

    def _active_query(self, tenant_id: str, reserved_date: date):
        return (
            self.db.query(Reservation)
            .options(joinedload(Reservation.service))
            .filter(
                Reservation.tenant_id == tenant_id,
                Reservation.reserved_date == reserved_date,
                Reservation.status.in_(ACTIVE_STATUSES),
            )
        )

    def get_active_for_scope(
        self, tenant_id: str, staff_scope: str, reserved_date: date
    ) -> List[Reservation]:
        """Active reservations of one staff member (or the pool) on a day."""
        query = self._active_query(tenant_id, reserved_date).filter(
            Reservation.staff_scope == staff_scope
        )
        return self._execute_query(query.order_by(Reservation.reserved_time))

    def get_active_for_staff_ids(
        self, tenant_id: str, staff_ids: Iterable[str], reserved_date: date
    ) -> Dict[str, List[Reservation]]:
        """
        Active reservations for several staff members in one query.

        Returns:
            Mapping of staff id to its reservations; every requested id is present
        """
        ids = list(staff_ids)
        grouped: Dict[str, List[Reservation]] = {staff_id: [] for staff_id in ids}
        if not ids:
            return grouped

        query = self._active_query(tenant_id, reserved_date).filter(
            Reservation.staff_id.in_(ids)
        )
        for reservation in self._execute_query(query):
            grouped[reservation.staff_id].append(reservation)
        return grouped

    def get_active_for_customer(
        self, tenant_id: str, customer_id: str, reserved_date: date
    ) -> List[Reservation]:
        query = self._active_query(tenant_id, reserved_date).filter(
            Reservation.customer_id == customer_id
        )
        return self._execute_query(query)

    def acquire_slot_lock(self, tenant_id: str, staff_scope: str, reserved_date: date) -> None:
        """
        Serialise reservation transactions for one (tenant, staff-or-pool, date).

        PostgreSQL takes a transaction-scoped advisory lock that is released on
        commit or rollback; waiting is bounded by the connection's
        ``lock_timeout``. SQLite transactions already hold the database write
        lock from ``BEGIN IMMEDIATE`` (see ``database.engines``).

        Raises:
            RepositoryException: If the lock could not be taken
        """
        dialect = self.dialect_name
        if dialect == POSTGRESQL:
            key = slot_lock_key(tenant_id, staff_scope, reserved_date)
            try:
                self.db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})
            except SQLAlchemyError as e:
                self.logger.warning(
                    "Slot lock not acquired",
                    extra={
                        "tenant_id": tenant_id,
                        "staff_scope": staff_scope,
                        "reserved_date": reserved_date.isoformat(),
                        "error": str(e),
                    },
                )
                raise RepositoryException(f"Failed to acquire slot lock: {e}") from e
        elif dialect != SQLITE:
            self.logger.warning(
                "No slot lock available for dialect %s; relying on the active-slot index",
                dialect,
            )

    def create_reservation(self, **kwargs) -> Reservation:
        """
        Insert a reservation and flush it.

        IntegrityError is re-raised unchanged so callers can tell a lost race
        on the active-slot index apart from other storage failures.
        """
        try:
            reservation = Reservation(**kwargs)
            self.db.add(reservation)
            self.db.flush()
            return reservation
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            self.logger.error("Error creating reservation: %s", e)
            raise RepositoryException(f"Failed to create reservation: {e}") from e
