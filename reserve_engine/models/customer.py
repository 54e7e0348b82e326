# reserve_engine/models/customer.py
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)

    reservations = relationship("Reservation", back_populates="customer")

    def __repr__(self) -> str:
        return f"<Customer {self.id}: {self.name}>"
