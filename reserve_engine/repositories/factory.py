# reserve_engine/repositories/factory.py
"""
Repository Factory for the reservation engine.

Provides centralized creation of repository instances bound to a caller's
session.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .entity_lookup_repository import EntityLookupRepository
    from .reservation_repository import ReservationRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_reservation_repository(db: Session) -> "ReservationRepository":
        """Create repository for reservation reads, inserts and slot locks."""
        from .reservation_repository import ReservationRepository

        return ReservationRepository(db)

    @staticmethod
    def create_entity_lookup_repository(db: Session) -> "EntityLookupRepository":
        """Create repository for customer, service, staff and store lookups."""
        from .entity_lookup_repository import EntityLookupRepository

        return EntityLookupRepository(db)
