# tests/repositories/test_reservation_repository.py
"""
Tests for ReservationRepository and EntityLookupRepository against SQLite.
"""

from datetime import date
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from reserve_engine.core.exceptions import RepositoryException
from reserve_engine.models import ReservationStatus
from reserve_engine.models.reservation import POOL_SCOPE
from reserve_engine.repositories import (
    EntityLookupRepository,
    RepositoryFactory,
    ReservationRepository,
)
from reserve_engine.repositories.reservation_repository import slot_lock_key
from tests.helpers import OTHER_TENANT_ID, TENANT_ID, TOMORROW, StoreSeeder


@pytest.fixture
def world(seed):
    customer = seed.customer()
    service = seed.service(duration_minutes=60)
    alice = seed.staff("Alice")
    bob = seed.staff("Bob")
    return customer, service, alice, bob


class TestActiveReads:
    def test_scope_reads_only_active_reservations(self, seed, world, db):
        customer, service, alice, _ = world
        kept = seed.reservation(customer, service, "10:00", staff=alice)
        seed.reservation(customer, service, "11:00", staff=alice, status=ReservationStatus.PENDING)
        seed.reservation(customer, service, "12:00", staff=alice, status=ReservationStatus.CANCELLED)
        seed.reservation(customer, service, "13:00", staff=alice, status=ReservationStatus.NO_SHOW)
        seed.reservation(customer, service, "14:00", staff=alice, status=ReservationStatus.COMPLETED)

        repo = ReservationRepository(db)
        found = repo.get_active_for_scope(TENANT_ID, alice.id, TOMORROW)

        assert [r.reserved_time for r in found] == ["10:00", "11:00"]
        assert found[0].id == kept.id
        assert found[0].interval() == (600, 660)

    def test_pool_scope_separate_from_staff(self, seed, world, db):
        customer, service, alice, _ = world
        seed.reservation(customer, service, "10:00", staff=alice)
        pooled = seed.reservation(customer, service, "10:00")

        repo = ReservationRepository(db)

        assert pooled.staff_scope == POOL_SCOPE
        assert [r.id for r in repo.get_active_for_scope(TENANT_ID, POOL_SCOPE, TOMORROW)] == [
            pooled.id
        ]

    def test_reads_are_tenant_and_date_scoped(self, session_factory, seed, world, db):
        customer, service, alice, _ = world
        seed.reservation(customer, service, "10:00", staff=alice, reserved_date=date(2030, 1, 9))
        other = StoreSeeder(session_factory, OTHER_TENANT_ID)
        other_customer = other.customer()
        other_service = other.service()
        other.reservation(other_customer, other_service, "10:00")

        repo = ReservationRepository(db)

        assert repo.get_active_for_scope(TENANT_ID, alice.id, TOMORROW) == []
        assert repo.get_active_for_scope(TENANT_ID, POOL_SCOPE, TOMORROW) == []
        assert len(repo.get_active_for_scope(OTHER_TENANT_ID, POOL_SCOPE, TOMORROW)) == 1

    def test_staff_ids_grouping_includes_every_id(self, seed, world, db):
        customer, service, alice, bob = world
        seed.reservation(customer, service, "10:00", staff=alice)
        seed.reservation(customer, service, "12:00", staff=alice)

        grouped = ReservationRepository(db).get_active_for_staff_ids(
            TENANT_ID, [alice.id, bob.id], TOMORROW
        )

        assert len(grouped[alice.id]) == 2
        assert grouped[bob.id] == []

    def test_staff_ids_grouping_with_no_ids(self, db):
        assert ReservationRepository(db).get_active_for_staff_ids(TENANT_ID, [], TOMORROW) == {}

    def test_get_by_id(self, seed, world, db):
        customer, service, alice, _ = world
        reservation = seed.reservation(customer, service, "10:00", staff=alice)

        repo = ReservationRepository(db)

        assert repo.get_by_id(reservation.id).reserved_time == "10:00"
        assert repo.get_by_id("missing") is None

    def test_customer_reads_span_staff_and_pool(self, seed, world, db):
        customer, service, alice, _ = world
        seed.reservation(customer, service, "10:00", staff=alice)
        seed.reservation(customer, service, "15:00")

        found = ReservationRepository(db).get_active_for_customer(TENANT_ID, customer.id, TOMORROW)

        assert sorted(r.reserved_time for r in found) == ["10:00", "15:00"]


class TestActiveSlotIndex:
    def test_duplicate_active_start_rejected(self, seed, world, db):
        customer, service, alice, _ = world
        seed.reservation(customer, service, "10:00", staff=alice)

        repo = ReservationRepository(db)
        with pytest.raises(IntegrityError) as exc_info:
            repo.create_reservation(
                tenant_id=TENANT_ID,
                customer_id=customer.id,
                service_id=service.id,
                staff_id=alice.id,
                reserved_date=TOMORROW,
                reserved_time="10:00",
            )
        db.rollback()
        assert "unique" in str(exc_info.value).lower()

    def test_cancelled_reservation_frees_its_start(self, seed, world, db):
        customer, service, alice, _ = world
        seed.reservation(customer, service, "10:00", staff=alice, status=ReservationStatus.CANCELLED)

        repo = ReservationRepository(db)
        created = repo.create_reservation(
            tenant_id=TENANT_ID,
            customer_id=customer.id,
            service_id=service.id,
            staff_id=alice.id,
            reserved_date=TOMORROW,
            reserved_time="10:00",
        )
        db.commit()

        assert created.status == ReservationStatus.CONFIRMED.value
        assert created.staff_scope == alice.id
        assert len(repo.get_active_for_scope(TENANT_ID, alice.id, TOMORROW)) == 1

    def test_pool_duplicates_rejected(self, seed, world, db):
        customer, service, _, _ = world
        seed.reservation(customer, service, "10:00")

        with pytest.raises(IntegrityError):
            ReservationRepository(db).create_reservation(
                tenant_id=TENANT_ID,
                customer_id=customer.id,
                service_id=service.id,
                reserved_date=TOMORROW,
                reserved_time="10:00",
            )
        db.rollback()


class TestCheckConstraints:
    @pytest.mark.parametrize("bad_time", ["9:00 ", "25:00", "10:60", "10-00", "ab:cd"])
    def test_malformed_time_rejected(self, seed, world, bad_time):
        customer, service, alice, _ = world

        with pytest.raises(IntegrityError):
            seed.reservation(customer, service, bad_time, staff=alice)

    @pytest.mark.parametrize("good_time", ["00:00", "09:30", "23:59"])
    def test_well_formed_time_accepted(self, seed, world, db, good_time):
        customer, service, alice, _ = world
        seed.reservation(customer, service, good_time, staff=alice)

        repo = ReservationRepository(db)
        assert len(repo.get_active_for_scope(TENANT_ID, alice.id, TOMORROW)) == 1

    def test_service_longer_than_a_day_rejected(self, seed):
        seed.service(duration_minutes=1440)

        with pytest.raises(IntegrityError):
            seed.service(duration_minutes=1441)


class TestSlotLock:
    def test_key_is_stable_and_signed_64_bit(self):
        key = slot_lock_key(TENANT_ID, "staff-1", TOMORROW)

        assert key == slot_lock_key(TENANT_ID, "staff-1", TOMORROW)
        assert -(2**63) <= key < 2**63

    def test_key_differs_per_component(self):
        base = slot_lock_key(TENANT_ID, "staff-1", TOMORROW)

        assert base != slot_lock_key(OTHER_TENANT_ID, "staff-1", TOMORROW)
        assert base != slot_lock_key(TENANT_ID, POOL_SCOPE, TOMORROW)
        assert base != slot_lock_key(TENANT_ID, "staff-1", date(2030, 1, 9))

    def test_sqlite_lock_is_a_no_op(self, db):
        ReservationRepository(db).acquire_slot_lock(TENANT_ID, POOL_SCOPE, TOMORROW)

    def test_postgres_lock_uses_advisory_lock(self):
        session = Mock()
        session.get_bind.return_value.dialect.name = "postgresql"

        ReservationRepository(session).acquire_slot_lock(TENANT_ID, "staff-1", TOMORROW)

        statement, params = session.execute.call_args.args
        assert "pg_advisory_xact_lock" in str(statement)
        assert params == {"key": slot_lock_key(TENANT_ID, "staff-1", TOMORROW)}

    def test_postgres_lock_failure_wrapped(self):
        session = Mock()
        session.get_bind.return_value.dialect.name = "postgresql"
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("lock timeout"))

        with pytest.raises(RepositoryException) as exc_info:
            ReservationRepository(session).acquire_slot_lock(TENANT_ID, "staff-1", TOMORROW)

        assert isinstance(exc_info.value.__cause__, OperationalError)


class TestEntityLookups:
    def test_lookups_are_tenant_scoped(self, session_factory, world, db):
        customer, service, alice, _ = world
        repo = EntityLookupRepository(db)

        assert repo.get_customer(TENANT_ID, customer.id).id == customer.id
        assert repo.get_customer(OTHER_TENANT_ID, customer.id) is None
        assert repo.get_service(OTHER_TENANT_ID, service.id) is None
        assert repo.get_staff(OTHER_TENANT_ID, alice.id) is None

    def test_active_service_filter(self, seed, db):
        inactive = seed.service(is_active=False)
        repo = EntityLookupRepository(db)

        assert repo.get_service(TENANT_ID, inactive.id) is not None
        assert repo.get_active_service(TENANT_ID, inactive.id) is None

    def test_active_staff_in_creation_order(self, seed, db):
        first = seed.staff("First")
        seed.staff("Retired", is_active=False)
        second = seed.staff("Second")

        staff = EntityLookupRepository(db).list_active_staff(TENANT_ID)

        assert [s.id for s in staff] == [first.id, second.id]

    def test_store_settings_lookup(self, seed, db):
        seed.store_settings(closed_days="Sunday, Monday", break_start="12:00", break_end="13:00")

        store = EntityLookupRepository(db).get_store_settings(TENANT_ID)

        assert store.closed_day_names == ["Sunday", "Monday"]
        assert store.has_break is True
        assert EntityLookupRepository(db).get_store_settings(OTHER_TENANT_ID) is None


def test_factory_builds_repositories(db):
    assert isinstance(RepositoryFactory.create_reservation_repository(db), ReservationRepository)
    assert isinstance(
        RepositoryFactory.create_entity_lookup_repository(db), EntityLookupRepository
    )
