# tests/unit/test_clock.py
from datetime import date, datetime
from unittest.mock import patch

import pytz

from reserve_engine.core.clock import FixedClock, SystemClock


def test_fixed_clock_returns_pinned_day():
    assert FixedClock(date(2030, 1, 7)).today() == date(2030, 1, 7)


def test_system_clock_uses_business_timezone():
    clock = SystemClock("Asia/Tokyo")

    assert clock.timezone.zone == "Asia/Tokyo"
    assert clock.now().tzinfo is not None


def test_system_clock_day_follows_timezone_not_utc():
    # 16:00 UTC is already the next day in Tokyo
    utc_instant = pytz.utc.localize(datetime(2030, 1, 7, 16, 0))
    clock = SystemClock("Asia/Tokyo")

    with patch.object(clock, "now", return_value=utc_instant.astimezone(clock.timezone)):
        assert clock.today() == date(2030, 1, 8)
