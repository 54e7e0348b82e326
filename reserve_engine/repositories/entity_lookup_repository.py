# reserve_engine/repositories/entity_lookup_repository.py
"""
Tenant-scoped lookups for the entities a reservation references.

Lookups return None rather than raising when the row is missing or belongs
to another tenant; callers decide which domain error that becomes.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.customer import Customer
from ..models.service_menu import ServiceMenu
from ..models.staff import Staff
from ..models.store_settings import StoreSettings
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class EntityLookupRepository(BaseRepository[Staff]):
    """Read-only access to customers, service menus, staff and store settings."""

    def __init__(self, db: Session):
        super().__init__(db, Staff)
        self.logger = logging.getLogger(__name__)

    def get_customer(self, tenant_id: str, customer_id: str) -> Optional[Customer]:
        try:
            return (
                self.db.query(Customer)
                .filter(Customer.id == customer_id, Customer.tenant_id == tenant_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error getting customer %s: %s", customer_id, e)
            raise RepositoryException(f"Failed to get customer: {e}") from e

    def get_service(self, tenant_id: str, service_id: str) -> Optional[ServiceMenu]:
        """Get a service menu of the tenant, active or not."""
        try:
            return (
                self.db.query(ServiceMenu)
                .filter(ServiceMenu.id == service_id, ServiceMenu.tenant_id == tenant_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error getting service %s: %s", service_id, e)
            raise RepositoryException(f"Failed to get service: {e}") from e

    def get_active_service(self, tenant_id: str, service_id: str) -> Optional[ServiceMenu]:
        service = self.get_service(tenant_id, service_id)
        return service if service is not None and service.is_active else None

    def get_staff(self, tenant_id: str, staff_id: str) -> Optional[Staff]:
        staff = self.get_by_id(staff_id)
        return staff if staff is not None and staff.tenant_id == tenant_id else None

    def list_active_staff(self, tenant_id: str) -> List[Staff]:
        """
        Active staff of a tenant in assignment order.

        Ordered by creation time, then id, so auto-assignment is deterministic.
        """
        query = (
            self.db.query(Staff)
            .filter(Staff.tenant_id == tenant_id, Staff.is_active.is_(True))
            .order_by(Staff.created_at.asc(), Staff.id.asc())
        )
        return self._execute_query(query)

    def get_store_settings(self, tenant_id: str) -> Optional[StoreSettings]:
        try:
            return self.db.get(StoreSettings, tenant_id)
        except SQLAlchemyError as e:
            self.logger.error("Error getting store settings for %s: %s", tenant_id, e)
            raise RepositoryException(f"Failed to get store settings: {e}") from e
