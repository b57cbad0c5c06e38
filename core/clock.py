# core/clock.py
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock for every time-based rule (expiry, inactivity)."""
    return datetime.now(timezone.utc)
