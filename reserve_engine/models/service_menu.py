# reserve_engine/models/service_menu.py
"""Bookable service menu entries."""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class ServiceMenu(Base):
    """A service a customer can book; its duration sizes the reserved interval."""

    __tablename__ = "service_menus"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    reservations = relationship("Reservation", back_populates="service")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_service_menus_duration_positive"),
        CheckConstraint("duration_minutes <= 1440", name="ck_service_menus_duration_max"),
        CheckConstraint("price >= 0", name="ck_service_menus_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<ServiceMenu {self.id}: {self.name} ({self.duration_minutes}min)>"
