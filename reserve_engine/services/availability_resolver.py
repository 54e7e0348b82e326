# reserve_engine/services/availability_resolver.py
"""
Availability Resolver for the reservation engine.

Answers "who is free?" and "which slots are open?" questions from plain
reads of the caller's session. Nothing here holds a lock, so answers may be
stale by the time a reservation commits; the coordinator re-checks inside
its own transaction before inserting.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
import logging
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import CorruptReservationError, NotFoundException
from ..core.time_slots import generate_slots, interval_for, overlaps, to_minutes
from ..models.reservation import POOL_SCOPE, Reservation
from ..repositories.factory import RepositoryFactory
from .base import BaseService

if TYPE_CHECKING:
    from ..repositories.entity_lookup_repository import EntityLookupRepository
    from ..repositories.reservation_repository import ReservationRepository

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class StaffUnavailableReason(str, Enum):
    NO_ACTIVE_STAFF = "NO_ACTIVE_STAFF"
    NO_FREE_STAFF = "NO_FREE_STAFF"


@dataclass(frozen=True)
class StaffAssigned:
    staff_id: str

    found = True


@dataclass(frozen=True)
class StaffUnavailable:
    reason: StaffUnavailableReason

    found = False


StaffSearchResult = Union[StaffAssigned, StaffUnavailable]


@dataclass(frozen=True)
class SlotAvailability:
    time: str
    available: bool
    staff_id: Optional[str] = None


def find_overlapping(
    reservations: Iterable[Reservation], start: int, end: int
) -> Optional[Reservation]:
    """
    Return the first reservation whose interval intersects ``[start, end)``.

    Raises CorruptReservationError when a stored row has an unreadable time
    or duration.
    """
    for reservation in reservations:
        try:
            res_start, res_end = reservation.interval()
        except ValueError as e:
            raise CorruptReservationError(reservation.id, str(e)) from e
        if overlaps(start, end, res_start, res_end):
            return reservation
    return None


class AvailabilityResolver(BaseService):
    """
    Read-only availability queries over one session.

    The session is injected so the coordinator can run these reads inside
    its own unit of work.
    """

    reservation_repository: "ReservationRepository"
    entity_repository: "EntityLookupRepository"

    def __init__(
        self,
        db: Session,
        reservation_repository: Optional["ReservationRepository"] = None,
        entity_repository: Optional["EntityLookupRepository"] = None,
    ):
        super().__init__(db)
        self.reservation_repository = (
            reservation_repository or RepositoryFactory.create_reservation_repository(db)
        )
        self.entity_repository = (
            entity_repository or RepositoryFactory.create_entity_lookup_repository(db)
        )

    @BaseService.measure_operation("find_available_staff")
    def find_available_staff(
        self,
        tenant_id: str,
        reserved_date: date,
        reserved_time: str,
        duration_minutes: int,
    ) -> StaffSearchResult:
        """
        Pick the first active staff member free for the requested interval.

        Staff are scanned by creation time (then id); their reservations for
        the day are fetched in one query.

        Args:
            tenant_id: Tenant to search
            reserved_date: Day of the reservation
            reserved_time: Start time as HH:MM
            duration_minutes: Length of the requested service

        Returns:
            StaffAssigned with the chosen staff id, or StaffUnavailable with
            NO_ACTIVE_STAFF (tenant has no active staff) or NO_FREE_STAFF
            (everyone overlaps the interval)
        """
        start, end = interval_for(reserved_time, duration_minutes)

        active_staff = self.entity_repository.list_active_staff(tenant_id)
        if not active_staff:
            self.logger.info(
                "No active staff for tenant",
                extra={"tenant_id": tenant_id, "reserved_date": reserved_date.isoformat()},
            )
            return StaffUnavailable(StaffUnavailableReason.NO_ACTIVE_STAFF)

        by_staff = self.reservation_repository.get_active_for_staff_ids(
            tenant_id, [staff.id for staff in active_staff], reserved_date
        )

        for staff in active_staff:
            if find_overlapping(by_staff[staff.id], start, end) is None:
                return StaffAssigned(staff.id)

        self.logger.info(
            "All active staff are booked",
            extra={
                "tenant_id": tenant_id,
                "reserved_date": reserved_date.isoformat(),
                "reserved_time": reserved_time,
                "staff_count": len(active_staff),
            },
        )
        return StaffUnavailable(StaffUnavailableReason.NO_FREE_STAFF)

    def is_staff_free(
        self,
        tenant_id: str,
        staff_id: str,
        reserved_date: date,
        reserved_time: str,
        duration_minutes: int,
    ) -> bool:
        start, end = interval_for(reserved_time, duration_minutes)
        existing = self.reservation_repository.get_active_for_scope(
            tenant_id, staff_id, reserved_date
        )
        return find_overlapping(existing, start, end) is None

    def _store_hours(self, tenant_id: str) -> Tuple[str, str, int, List[str], Optional[Tuple[str, str]]]:
        store = self.entity_repository.get_store_settings(tenant_id)
        if store is None:
            return (
                settings.default_open_time,
                settings.default_close_time,
                settings.default_slot_interval_minutes,
                [],
                None,
            )
        break_window = (store.break_start, store.break_end) if store.has_break else None
        return (
            store.open_time,
            store.close_time,
            store.slot_interval_minutes,
            store.closed_day_names,
            break_window,
        )

    @BaseService.measure_operation("get_available_slots")
    def get_available_slots(
        self,
        tenant_id: str,
        reserved_date: date,
        service_id: str,
        staff_id: Optional[str] = None,
    ) -> List[SlotAvailability]:
        """
        List bookable start times for a service on a day.

        Candidate starts walk the store's opening hours at its slot interval;
        a start is kept only if the service finishes by closing time and does
        not run into the break. Each candidate is then checked against the
        requested staff member, against every active staff member (reporting
        the first free one), or against the unassigned pool when the tenant
        has no active staff.

        Returns:
            One entry per candidate start; empty on closed days

        Raises:
            NotFoundException: If the service or requested staff is unknown or inactive
        """
        service = self.entity_repository.get_active_service(tenant_id, service_id)
        if service is None:
            raise NotFoundException(
                "Service not found", code="SERVICE_NOT_FOUND", details={"service_id": service_id}
            )
        duration = service.duration_minutes

        open_time, close_time, interval, closed_days, break_window = self._store_hours(tenant_id)
        if WEEKDAY_NAMES[reserved_date.weekday()] in closed_days:
            return []

        close_minutes = to_minutes(close_time)
        candidates: List[Tuple[str, int, int]] = []
        for slot in generate_slots(open_time, close_time, interval):
            start, end = interval_for(slot, duration)
            if end > close_minutes:
                continue
            if break_window is not None and overlaps(
                start, end, to_minutes(break_window[0]), to_minutes(break_window[1])
            ):
                continue
            candidates.append((slot, start, end))

        if staff_id:
            staff = self.entity_repository.get_staff(tenant_id, staff_id)
            if staff is None or not staff.is_active:
                raise NotFoundException(
                    "Staff not found", code="STAFF_NOT_FOUND", details={"staff_id": staff_id}
                )
            existing = self.reservation_repository.get_active_for_scope(
                tenant_id, staff_id, reserved_date
            )
            return [
                SlotAvailability(slot, find_overlapping(existing, start, end) is None, staff_id)
                for slot, start, end in candidates
            ]

        active_staff = self.entity_repository.list_active_staff(tenant_id)
        if not active_staff:
            pool = self.reservation_repository.get_active_for_scope(
                tenant_id, POOL_SCOPE, reserved_date
            )
            return [
                SlotAvailability(slot, find_overlapping(pool, start, end) is None)
                for slot, start, end in candidates
            ]

        by_staff = self.reservation_repository.get_active_for_staff_ids(
            tenant_id, [staff.id for staff in active_staff], reserved_date
        )
        slots: List[SlotAvailability] = []
        for slot, start, end in candidates:
            free_staff = next(
                (
                    staff.id
                    for staff in active_staff
                    if find_overlapping(by_staff[staff.id], start, end) is None
                ),
                None,
            )
            slots.append(SlotAvailability(slot, free_staff is not None, free_staff))
        return slots
