# tests/conftest.py
"""
Pytest configuration shared by all test packages.

Every test that touches the store gets its own SQLite file so transactions
opened by the coordinator use real, separate connections.
"""

import os

# Set before any reserve_engine import so settings never read a developer .env
os.environ["CI"] = "1"
os.environ.setdefault("EMAIL_PROVIDER", "console")
os.environ.setdefault("ENVIRONMENT", "test")

from unittest.mock import patch  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from reserve_engine.core.clock import FixedClock  # noqa: E402
from reserve_engine.core.config import Settings  # noqa: E402
from reserve_engine.database import Base, build_session_factory, create_store_engine  # noqa: E402
import reserve_engine.models  # noqa: E402,F401
from reserve_engine.services.notification_service import (  # noqa: E402
    ConsoleReservationNotifier,
)
from reserve_engine.services.reservation_coordinator import (  # noqa: E402
    ReservationCoordinator,
)
from tests.helpers import TODAY, StoreSeeder  # noqa: E402


@pytest.fixture(autouse=True)
def _block_resend():
    """No test may reach the real Resend API."""
    with patch("resend.Emails.send") as mocked_send:
        mocked_send.return_value = {"id": "test-email-id"}
        yield mocked_send


@pytest.fixture
def store_engine(tmp_path):
    engine = create_store_engine(
        f"sqlite+pysqlite:///{tmp_path / 'store.db'}",
        lock_timeout_seconds=30,
        pool_name="Test",
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(store_engine):
    return build_session_factory(store_engine)


@pytest.fixture
def db(session_factory) -> Session:
    """A session for direct reads; close it before handing control to the coordinator."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(session_factory) -> StoreSeeder:
    return StoreSeeder(session_factory)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        auto_assign_staff=True,
        prevent_customer_double_booking=True,
        email_provider="console",
        business_timezone="Asia/Tokyo",
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture
def notifier() -> ConsoleReservationNotifier:
    return ConsoleReservationNotifier()


@pytest.fixture
def coordinator(session_factory, clock, notifier, test_settings) -> ReservationCoordinator:
    return ReservationCoordinator(
        session_factory, clock=clock, notifier=notifier, config=test_settings
    )
