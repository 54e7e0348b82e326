# reserve_engine/services/reservation_coordinator.py
"""
Reservation Transaction Coordinator.

Creates reservations so that concurrent requests for the same staff member
(or the unassigned pool) on the same day can never both commit an
overlapping interval:

1. Request shape is checked before any transaction is opened.
2. Inside one unit of work the customer, service and staff are validated,
   a staff member is auto-assigned when none was requested, the
   (tenant, staff-or-pool, date) slot lock is taken, and the day's active
   reservations are re-checked for overlap.
3. The reservation is inserted as CONFIRMED and committed. A unique index on
   active slots catches anything the lock could not (e.g. a store without
   advisory locks).

Every outcome is returned as a ReservationSuccess or ReservationFailure;
storage exceptions never escape. The coordinator never retries on its own.
"""

import asyncio
from datetime import date, datetime
import logging
import threading
from typing import Any, Optional, Union

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.clock import Clock, SystemClock
from ..core.config import Settings, settings
from ..core.exceptions import CorruptReservationError, RepositoryException
from ..core.reservation_errors import (
    ReservationErrorKind,
    ReservationFailure,
    ReservationResult,
    ReservationSuccess,
    failure,
)
from ..core.time_slots import (
    MINUTES_PER_DAY,
    InvalidDurationError,
    format_interval,
    interval_for,
    is_valid_time_format,
)
from ..database.sessions import SessionFactory, UnitOfWork, init_session_factory
from ..models.reservation import POOL_SCOPE, ReservationStatus, staff_scope_for
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.reservation import ReservationCreate, ReservationRecord
from .availability_resolver import (
    AvailabilityResolver,
    StaffUnavailable,
    StaffUnavailableReason,
    find_overlapping,
)
from .base import BaseService
from .notification_service import ReservationNotifier, build_notifier

logger = logging.getLogger(__name__)

ACTIVE_SLOT_INDEX = "uq_reservations_active_slot"

STAFF_CONFLICT_MESSAGE = "Staff member already has a reservation that overlaps this time"
POOL_CONFLICT_MESSAGE = "This time slot overlaps an existing unassigned reservation"
CUSTOMER_CONFLICT_MESSAGE = "Customer already has a reservation that overlaps this time"
GENERIC_CONFLICT_MESSAGE = "This time slot conflicts with an existing reservation"
TRANSIENT_MESSAGE = "The reservation store is temporarily unavailable; please retry"

# SQLSTATEs that mean "try again": serialization failure, deadlock, lock timeout,
# statement timeout
_TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "55P03", "57014"})


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_active_slot_violation(exc: IntegrityError) -> bool:
    """True if ``exc`` is a unique violation on the active-slot index."""
    orig = getattr(exc, "orig", None)
    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None) if diag is not None else None
    if constraint_name:
        return constraint_name == ACTIVE_SLOT_INDEX

    message = str(orig if orig is not None else exc).lower()
    if ACTIVE_SLOT_INDEX in message:
        return True
    # SQLite names the columns, not the index
    return "unique constraint failed: reservations.tenant_id" in message


class ReservationCoordinator(BaseService):
    """
    Service that turns a reservation request into a committed reservation.

    Each call opens its own unit of work from ``session_factory``; instances
    hold no per-request state and can be shared between threads.
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        *,
        clock: Optional[Clock] = None,
        notifier: Optional[ReservationNotifier] = None,
        config: Optional[Settings] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            session_factory: Callable returning a new Session per unit of work;
                defaults to the configured store
            clock: Source of "today" for past-date checks
            notifier: Receives confirmations after commit
            config: Settings override (tests)
        """
        super().__init__()
        self.config = config or settings
        self.session_factory = session_factory or init_session_factory()
        self.clock = clock or SystemClock(self.config.business_timezone)
        self.notifier = notifier if notifier is not None else build_notifier(self.config)

    # Public API

    @BaseService.measure_operation("create_reservation")
    def create_reservation(
        self,
        tenant_id: str,
        customer_id: str,
        service_id: str,
        reserved_date: Union[date, str],
        reserved_time: str,
        staff_id: Optional[str] = None,
        notes: Optional[str] = None,
        *,
        auto_assign: Optional[bool] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReservationResult:
        """
        Create a confirmed reservation.

        Args:
            tenant_id: Tenant the reservation belongs to
            customer_id: Customer making the reservation
            service_id: Service menu being booked; its duration sizes the interval
            reserved_date: Day as a date or ``YYYY-MM-DD`` string
            reserved_time: Start time as ``HH:MM``
            staff_id: Requested staff member, or None for no preference
            notes: Optional free text
            auto_assign: Pick a free staff member when ``staff_id`` is None;
                defaults to ``settings.auto_assign_staff``. When off, the
                reservation joins the unassigned pool.
            cancel_event: When set before commit, the transaction is rolled
                back and REQUEST_CANCELLED is returned

        Returns:
            ReservationSuccess with the committed record, or ReservationFailure
        """
        request_date = self._coerce_date(reserved_date)
        if isinstance(request_date, ReservationFailure):
            return self._finish(request_date, tenant_id)

        shape_error = self._validate_shape(tenant_id, request_date, reserved_time, notes)
        if shape_error is not None:
            return self._finish(shape_error, tenant_id)

        if cancel_event is not None and cancel_event.is_set():
            return self._finish(self._cancelled(), tenant_id)

        use_auto_assign = self.config.auto_assign_staff if auto_assign is None else auto_assign
        staff_id = staff_id or None
        notes = notes or None

        try:
            with UnitOfWork(self.session_factory) as uow:
                outcome = self._reserve_in_transaction(
                    uow.session,
                    tenant_id=tenant_id,
                    customer_id=customer_id,
                    service_id=service_id,
                    staff_id=staff_id,
                    reserved_date=request_date,
                    reserved_time=reserved_time,
                    notes=notes,
                    auto_assign=use_auto_assign,
                )
                if isinstance(outcome, ReservationFailure):
                    return self._finish(outcome, tenant_id)

                if cancel_event is not None and cancel_event.is_set():
                    return self._finish(self._cancelled(), tenant_id)

                uow.commit()
        except CorruptReservationError as exc:
            return self._finish(self._stored_data_error(exc), tenant_id)
        except IntegrityError as exc:
            return self._finish(
                self._from_integrity_error(exc, staff_id, request_date, reserved_time), tenant_id
            )
        except RepositoryException as exc:
            cause = exc.__cause__
            if isinstance(cause, IntegrityError):
                result = self._from_integrity_error(cause, staff_id, request_date, reserved_time)
            else:
                result = self._transient(exc)
            return self._finish(result, tenant_id)
        except (SQLAlchemyError, TimeoutError) as exc:
            return self._finish(self._transient(exc), tenant_id)

        self.log_operation(
            "reservation_created",
            reservation_id=outcome.id,
            tenant_id=tenant_id,
            staff_id=outcome.staff_id,
            reserved_date=outcome.reserved_date.isoformat(),
            reserved_time=outcome.reserved_time,
        )
        self._notify(outcome)
        return self._finish(ReservationSuccess(outcome), tenant_id)

    def create_from_request(
        self,
        tenant_id: str,
        payload: ReservationCreate,
        *,
        auto_assign: Optional[bool] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReservationResult:
        """Create a reservation from an already validated request payload."""
        return self.create_reservation(
            tenant_id,
            payload.customer_id,
            payload.service_id,
            payload.reserved_date,
            payload.reserved_time,
            staff_id=payload.staff_id,
            notes=payload.notes,
            auto_assign=auto_assign,
            cancel_event=cancel_event,
        )

    @BaseService.measure_operation("create_reservation_async")
    async def create_reservation_async(self, *args: Any, **kwargs: Any) -> ReservationResult:
        """
        Run ``create_reservation`` on a worker thread.

        Cancelling the awaiting task sets the request's cancel event: the
        reservation is rolled back if it has not committed yet, and stands if
        it already has.
        """
        cancel_event = threading.Event()
        kwargs["cancel_event"] = cancel_event
        try:
            return await asyncio.to_thread(self.create_reservation, *args, **kwargs)
        except asyncio.CancelledError:
            cancel_event.set()
            raise

    # Transaction body

    def _reserve_in_transaction(
        self,
        db: Session,
        *,
        tenant_id: str,
        customer_id: str,
        service_id: str,
        staff_id: Optional[str],
        reserved_date: date,
        reserved_time: str,
        notes: Optional[str],
        auto_assign: bool,
    ) -> Union[ReservationRecord, ReservationFailure]:
        lookups = RepositoryFactory.create_entity_lookup_repository(db)
        reservations = RepositoryFactory.create_reservation_repository(db)

        # 1. Referenced entities
        customer = lookups.get_customer(tenant_id, customer_id)
        if customer is None:
            return failure(
                ReservationErrorKind.CUSTOMER_NOT_FOUND,
                "Customer not found",
                customer_id=customer_id,
            )

        service = lookups.get_service(tenant_id, service_id)
        if service is None or not service.is_active:
            return failure(
                ReservationErrorKind.SERVICE_NOT_FOUND,
                "Service not found or not active",
                service_id=service_id,
                reason="inactive" if service is not None else "missing",
            )

        try:
            start, end = interval_for(reserved_time, service.duration_minutes)
        except InvalidDurationError:
            return failure(
                ReservationErrorKind.VALIDATION_ERROR,
                "Service has an invalid duration",
                service_id=service_id,
                duration_minutes=service.duration_minutes,
            )
        if end > MINUTES_PER_DAY:
            return failure(
                ReservationErrorKind.VALIDATION_ERROR,
                "Reservation must end by midnight",
                reserved_time=reserved_time,
                duration_minutes=service.duration_minutes,
            )

        if staff_id is not None:
            staff = lookups.get_staff(tenant_id, staff_id)
            if staff is None or not staff.is_active:
                return failure(
                    ReservationErrorKind.STAFF_NOT_FOUND,
                    "Staff member not found or not active",
                    staff_id=staff_id,
                    reason="inactive" if staff is not None else "missing",
                )
        elif auto_assign:
            # 2. Advisory pick; the locked re-check below decides
            resolver = AvailabilityResolver(db, reservations, lookups)
            found = resolver.find_available_staff(
                tenant_id, reserved_date, reserved_time, service.duration_minutes
            )
            if isinstance(found, StaffUnavailable):
                prometheus_metrics.record_staff_assignment(found.reason.value)
                return self._staff_unavailable(found.reason, reserved_date, reserved_time)
            prometheus_metrics.record_staff_assignment("assigned")
            staff_id = found.staff_id

        # 3. Lock the slot key and re-check under the lock
        scope = staff_scope_for(staff_id)
        reservations.acquire_slot_lock(tenant_id, scope, reserved_date)

        existing = reservations.get_active_for_scope(tenant_id, scope, reserved_date)
        clash = find_overlapping(existing, start, end)
        if clash is not None:
            conflict_scope = "pool" if scope == POOL_SCOPE else "staff"
            return failure(
                ReservationErrorKind.TIME_SLOT_CONFLICT,
                POOL_CONFLICT_MESSAGE if scope == POOL_SCOPE else STAFF_CONFLICT_MESSAGE,
                conflict_scope=conflict_scope,
                staff_id=staff_id,
                reserved_date=reserved_date.isoformat(),
                requested_interval=format_interval(start, end),
                conflicting_reservation_id=clash.id,
                conflicting_interval=format_interval(*clash.interval()),
            )

        if self.config.prevent_customer_double_booking:
            own = reservations.get_active_for_customer(tenant_id, customer_id, reserved_date)
            own_clash = find_overlapping(own, start, end)
            if own_clash is not None:
                return failure(
                    ReservationErrorKind.TIME_SLOT_CONFLICT,
                    CUSTOMER_CONFLICT_MESSAGE,
                    conflict_scope="customer",
                    customer_id=customer_id,
                    reserved_date=reserved_date.isoformat(),
                    requested_interval=format_interval(start, end),
                    conflicting_reservation_id=own_clash.id,
                    conflicting_interval=format_interval(*own_clash.interval()),
                )

        # 4. Insert
        reservation = reservations.create_reservation(
            tenant_id=tenant_id,
            customer_id=customer_id,
            service_id=service_id,
            staff_id=staff_id,
            staff_scope=scope,
            reserved_date=reserved_date,
            reserved_time=reserved_time,
            status=ReservationStatus.CONFIRMED.value,
            notes=notes,
        )
        return ReservationRecord.from_reservation(reservation)

    # Validation helpers

    @staticmethod
    def _coerce_date(value: Union[date, str]) -> Union[date, ReservationFailure]:
        if isinstance(value, datetime):
            return failure(
                ReservationErrorKind.VALIDATION_ERROR,
                "Reservation date must not include a time component",
                reserved_date=value.isoformat(),
            )
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                pass
        return failure(
            ReservationErrorKind.VALIDATION_ERROR,
            "Reservation date must be a YYYY-MM-DD calendar date",
            reserved_date=str(value),
        )

    def _validate_shape(
        self,
        tenant_id: str,
        reserved_date: date,
        reserved_time: str,
        notes: Optional[str],
    ) -> Optional[ReservationFailure]:
        if not tenant_id:
            return failure(ReservationErrorKind.VALIDATION_ERROR, "Tenant is required")
        if not is_valid_time_format(reserved_time):
            return failure(
                ReservationErrorKind.VALIDATION_ERROR,
                "Reservation time must use HH:MM",
                reserved_time=reserved_time,
            )
        today = self.clock.today()
        if reserved_date < today:
            return failure(
                ReservationErrorKind.VALIDATION_ERROR,
                "Cannot reserve a date in the past",
                reserved_date=reserved_date.isoformat(),
                today=today.isoformat(),
            )
        if notes is not None and len(notes) > self.config.notes_max_length:
            return failure(
                ReservationErrorKind.VALIDATION_ERROR,
                f"Notes must be at most {self.config.notes_max_length} characters",
                notes_length=len(notes),
            )
        return None

    # Failure mapping

    @staticmethod
    def _staff_unavailable(
        reason: StaffUnavailableReason, reserved_date: date, reserved_time: str
    ) -> ReservationFailure:
        if reason is StaffUnavailableReason.NO_ACTIVE_STAFF:
            return failure(
                ReservationErrorKind.NO_ACTIVE_STAFF,
                "No active staff available for reservations",
            )
        return failure(
            ReservationErrorKind.NO_FREE_STAFF,
            "All staff are booked at the requested time",
            reserved_date=reserved_date.isoformat(),
            reserved_time=reserved_time,
        )

    def _from_integrity_error(
        self,
        exc: IntegrityError,
        staff_id: Optional[str],
        reserved_date: date,
        reserved_time: str,
    ) -> ReservationFailure:
        if is_active_slot_violation(exc):
            self.logger.info(
                "Active-slot index rejected a concurrent reservation",
                extra={
                    "staff_id": staff_id,
                    "reserved_date": reserved_date.isoformat(),
                    "reserved_time": reserved_time,
                },
            )
            return failure(
                ReservationErrorKind.TIME_SLOT_CONFLICT,
                GENERIC_CONFLICT_MESSAGE,
                conflict_scope="pool" if staff_id is None else "staff",
                staff_id=staff_id,
                reserved_date=reserved_date.isoformat(),
                reserved_time=reserved_time,
            )
        # A referenced row disappeared mid-transaction; a retry sees the new state
        return self._transient(exc)

    def _transient(self, exc: Exception) -> ReservationFailure:
        root = exc.__cause__ if isinstance(exc, RepositoryException) and exc.__cause__ else exc
        sqlstate = _sqlstate(root) if isinstance(root, SQLAlchemyError) else None
        self.logger.warning(
            "Transient store failure during reservation",
            extra={
                "error_type": type(root).__name__,
                "sqlstate": sqlstate,
                "lock_contention": isinstance(root, OperationalError)
                and (sqlstate in _TRANSIENT_SQLSTATES or "locked" in str(root).lower()),
                "error": str(root),
            },
        )
        return failure(
            ReservationErrorKind.TRANSIENT_STORE_ERROR,
            TRANSIENT_MESSAGE,
            error_type=type(root).__name__,
            sqlstate=sqlstate,
        )

    def _stored_data_error(self, exc: CorruptReservationError) -> ReservationFailure:
        self.logger.error(
            "Stored reservation could not be read during overlap check",
            extra={"reservation_id": exc.reservation_id, "error": exc.details["error"]},
        )
        return failure(
            ReservationErrorKind.STORED_DATA_ERROR,
            "An existing reservation for this slot is malformed",
            reservation_id=exc.reservation_id,
        )

    @staticmethod
    def _cancelled() -> ReservationFailure:
        return failure(
            ReservationErrorKind.REQUEST_CANCELLED,
            "Reservation request was cancelled before it was committed",
        )

    # Post-commit

    def _notify(self, record: ReservationRecord) -> None:
        try:
            self.notifier.reservation_confirmed(record)
        except Exception as e:
            prometheus_metrics.record_notification("failed")
            self.logger.error(
                "Failed to send reservation confirmation",
                extra={"reservation_id": record.id, "error": str(e)},
            )
            return
        prometheus_metrics.record_notification("sent")

    def _finish(self, result: ReservationResult, tenant_id: str) -> ReservationResult:
        if isinstance(result, ReservationSuccess):
            prometheus_metrics.record_reservation_outcome("success")
            return result

        prometheus_metrics.record_reservation_outcome(result.kind.value)
        self.logger.info(
            "Reservation rejected",
            extra={
                "tenant_id": tenant_id,
                "error_kind": result.kind.value,
                "details": result.error.details,
            },
        )
        return result
