"""Repository layer for the reservation engine."""

from .base_repository import BaseRepository, IRepository
from .entity_lookup_repository import EntityLookupRepository
from .factory import RepositoryFactory
from .reservation_repository import ReservationRepository, slot_lock_key

__all__ = [
    "BaseRepository",
    "EntityLookupRepository",
    "IRepository",
    "RepositoryFactory",
    "ReservationRepository",
    "slot_lock_key",
]
