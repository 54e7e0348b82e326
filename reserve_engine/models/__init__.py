"""SQLAlchemy models for the reservation store."""

from .customer import Customer
from .reservation import (
    ACTIVE_STATUSES,
    POOL_SCOPE,
    Reservation,
    ReservationStatus,
    staff_scope_for,
)
from .service_menu import ServiceMenu
from .staff import Staff
from .store_settings import StoreSettings

__all__ = [
    "ACTIVE_STATUSES",
    "POOL_SCOPE",
    "Customer",
    "Reservation",
    "ReservationStatus",
    "ServiceMenu",
    "Staff",
    "StoreSettings",
    "staff_scope_for",
]
