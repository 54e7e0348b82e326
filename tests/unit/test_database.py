# tests/unit/test_database.py
"""Engine, session and unit-of-work behaviour against SQLite."""

from unittest.mock import Mock

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from reserve_engine.database import UnitOfWork, create_store_engine, get_dialect_name
from reserve_engine.models import Customer, Reservation
from tests.helpers import TENANT_ID, TOMORROW


def test_memory_sqlite_uses_static_pool():
    engine = create_store_engine("sqlite+pysqlite:///:memory:")
    try:
        assert isinstance(engine.pool, StaticPool)
    finally:
        engine.dispose()


def test_foreign_keys_enforced(store_engine):
    with store_engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1


def test_dialect_name_from_session(session_factory):
    session = session_factory()
    try:
        assert get_dialect_name(session) == "sqlite"
    finally:
        session.close()


def test_dialect_name_defaults_for_unbound_session():
    session = Mock()
    session.get_bind.return_value = None

    assert get_dialect_name(session, default="sqlite") == "sqlite"


class TestUnitOfWork:
    def test_rolls_back_without_commit(self, session_factory):
        with UnitOfWork(session_factory) as uow:
            uow.session.add(Customer(id="c" * 26, tenant_id=TENANT_ID, name="Hanako"))
            uow.session.flush()

        session = session_factory()
        try:
            assert session.query(Customer).count() == 0
        finally:
            session.close()

    def test_commit_persists(self, session_factory):
        with UnitOfWork(session_factory) as uow:
            uow.session.add(Customer(id="c" * 26, tenant_id=TENANT_ID, name="Hanako"))
            uow.commit()

        session = session_factory()
        try:
            assert session.query(Customer).count() == 1
        finally:
            session.close()

    def test_rolls_back_on_exception_and_closes(self, session_factory):
        with pytest.raises(RuntimeError):
            with UnitOfWork(session_factory) as uow:
                uow.session.add(Customer(id="c" * 26, tenant_id=TENANT_ID, name="Hanako"))
                uow.session.flush()
                raise RuntimeError("abort")

        assert uow.session is None
        session = session_factory()
        try:
            assert session.query(Customer).count() == 0
        finally:
            session.close()

    def test_missing_reference_is_integrity_error(self, session_factory):
        with pytest.raises(IntegrityError):
            with UnitOfWork(session_factory) as uow:
                uow.session.add(
                    Reservation(
                        tenant_id=TENANT_ID,
                        customer_id="missing-customer",
                        service_id="missing-service",
                        reserved_date=TOMORROW,
                        reserved_time="10:00",
                    )
                )
                uow.session.flush()
