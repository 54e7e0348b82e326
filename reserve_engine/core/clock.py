# reserve_engine/core/clock.py
"""Calendar clocks used for past-date checks."""

from datetime import date, datetime
from typing import Optional, Protocol

import pytz

from .config import settings


class Clock(Protocol):
    def today(self) -> date: ...


class SystemClock:
    """Wall clock in the business timezone, so 'today' matches the store's calendar."""

    def __init__(self, timezone_name: Optional[str] = None) -> None:
        self.timezone = pytz.timezone(timezone_name or settings.business_timezone)

    def now(self) -> datetime:
        return datetime.now(self.timezone)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock pinned to a single day."""

    def __init__(self, current: date) -> None:
        self.current = current

    def today(self) -> date:
        return self.current
