"""Service layer for the reservation engine."""

from .availability_resolver import (
    AvailabilityResolver,
    SlotAvailability,
    StaffAssigned,
    StaffUnavailable,
    StaffUnavailableReason,
)
from .notification_service import (
    ConsoleReservationNotifier,
    ReservationNotifier,
    ResendReservationNotifier,
    build_notifier,
)
from .reservation_coordinator import ReservationCoordinator

__all__ = [
    "AvailabilityResolver",
    "ConsoleReservationNotifier",
    "ReservationCoordinator",
    "ReservationNotifier",
    "ResendReservationNotifier",
    "SlotAvailability",
    "StaffAssigned",
    "StaffUnavailable",
    "StaffUnavailableReason",
    "build_notifier",
]
