# reserve_engine/models/staff.py
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class Staff(Base):
    __tablename__ = "staff"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    reservations = relationship("Reservation", back_populates="staff")

    # Auto-assignment walks staff in this order
    __table_args__ = (Index("ix_staff_tenant_active_created", "tenant_id", "is_active", "created_at"),)

    def __repr__(self) -> str:
        return f"<Staff {self.id}: {self.name} active={self.is_active}>"
