# app/core/clock.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from app.core.config import settings


class Clock(Protocol):
    def now(self) -> datetime:
        """Current instant, timezone-aware."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """
    Clock pinned to a fixed instant. Used by tests and by scripts that need
    reproducible booking-window checks.
    """

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("FrozenClock needs a timezone-aware datetime")
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **kwargs: float) -> None:
        self._instant = self._instant + timedelta(**kwargs)


system_clock = SystemClock()


def hospital_tz(name: Optional[str] = None) -> ZoneInfo:
    """
    The single timezone the hospital operates in. Weekdays, business hours,
    slot labels and appointment-number dates are all computed in it.
    """
    return ZoneInfo(name or settings.HOSPITAL_TIMEZONE)
