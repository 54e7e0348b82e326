# tests/helpers.py
"""Seed helpers and constants shared across test packages."""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import text
import ulid

from reserve_engine.models import (
    Customer,
    Reservation,
    ReservationStatus,
    ServiceMenu,
    Staff,
    StoreSettings,
)

TENANT_ID = "demo-salon"
OTHER_TENANT_ID = "other-salon"

# Monday
TODAY = date(2030, 1, 7)
TOMORROW = TODAY + timedelta(days=1)


class StoreSeeder:
    """Creates rows through short committed transactions."""

    def __init__(self, session_factory, tenant_id: str = TENANT_ID):
        self.session_factory = session_factory
        self.tenant_id = tenant_id
        self._staff_clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _save(self, entity):
        session = self.session_factory()
        try:
            session.add(entity)
            session.commit()
            return entity
        finally:
            session.close()

    def customer(self, name: str = "Hanako", email: Optional[str] = "hanako@example.com", **kw):
        return self._save(
            Customer(
                id=str(ulid.ULID()),
                tenant_id=kw.pop("tenant_id", self.tenant_id),
                name=name,
                email=email,
                **kw,
            )
        )

    def service(self, name: str = "Cut", duration_minutes: int = 60, is_active: bool = True, **kw):
        return self._save(
            ServiceMenu(
                id=str(ulid.ULID()),
                tenant_id=kw.pop("tenant_id", self.tenant_id),
                name=name,
                duration_minutes=duration_minutes,
                price=kw.pop("price", 5000),
                is_active=is_active,
                **kw,
            )
        )

    def staff(self, name: str = "Staff", is_active: bool = True, **kw):
        # Strictly increasing creation times keep assignment order predictable
        self._staff_clock += timedelta(minutes=1)
        return self._save(
            Staff(
                id=str(ulid.ULID()),
                tenant_id=kw.pop("tenant_id", self.tenant_id),
                name=name,
                is_active=is_active,
                created_at=kw.pop("created_at", self._staff_clock),
                **kw,
            )
        )

    def reservation(
        self,
        customer,
        service,
        reserved_time: str,
        staff=None,
        reserved_date: date = TOMORROW,
        status: ReservationStatus = ReservationStatus.CONFIRMED,
        **kw,
    ):
        return self._save(
            Reservation(
                id=str(ulid.ULID()),
                tenant_id=kw.pop("tenant_id", self.tenant_id),
                customer_id=customer.id,
                service_id=service.id,
                staff_id=staff.id if staff is not None else None,
                reserved_date=reserved_date,
                reserved_time=reserved_time,
                status=status.value,
                **kw,
            )
        )

    def store_settings(self, **kw):
        return self._save(StoreSettings(tenant_id=kw.pop("tenant_id", self.tenant_id), **kw))


def count_reservations(session_factory, tenant_id: str = TENANT_ID) -> int:
    session = session_factory()
    try:
        return session.query(Reservation).filter(Reservation.tenant_id == tenant_id).count()
    finally:
        session.close()


def write_unchecked(engine, statement: str, **params) -> None:
    """Run a write with CHECK constraints disabled, the way foreign tooling might."""
    with engine.begin() as conn:
        conn.exec_driver_sql("PRAGMA ignore_check_constraints = ON")
        try:
            conn.execute(text(statement), params)
        finally:
            conn.exec_driver_sql("PRAGMA ignore_check_constraints = OFF")
