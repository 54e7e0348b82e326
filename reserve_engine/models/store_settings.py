# reserve_engine/models/store_settings.py
"""Per-tenant opening hours used to build the bookable slot grid."""

from typing import List

from sqlalchemy import Column, Integer, String

from ..database import Base


class StoreSettings(Base):
    __tablename__ = "store_settings"

    tenant_id = Column(String(64), primary_key=True)
    open_time = Column(String(5), nullable=False, default="09:00")
    close_time = Column(String(5), nullable=False, default="20:00")
    slot_interval_minutes = Column(Integer, nullable=False, default=30)
    # Comma-separated English weekday names, e.g. "Sunday,Monday"
    closed_days = Column(String(100), nullable=False, default="")
    break_start = Column(String(5), nullable=True)
    break_end = Column(String(5), nullable=True)

    @property
    def closed_day_names(self) -> List[str]:
        return [day.strip() for day in (self.closed_days or "").split(",") if day.strip()]

    @property
    def has_break(self) -> bool:
        return bool(self.break_start and self.break_end)
