# app/modules/scheduling/timewindow.py
"""
Pure helpers for wall-clock slots.

Times cross the module boundary as "HH:MM" strings and are handled
internally as minutes since midnight.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List

MINUTES_PER_DAY = 24 * 60
DEFAULT_SLOT_MINUTES = 15

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: str) -> int:
    """'09:30' -> 570. Raises ValueError for anything that is not a valid 24h HH:MM."""
    match = _HHMM.match(value or "")
    if not match:
        raise ValueError(f"invalid HH:MM time: {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_hhmm(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True, order=True)
class TimeSlot:
    start: str
    end: str


def compute_slot_end(start: str, duration_minutes: int = DEFAULT_SLOT_MINUTES) -> str:
    """
    End of a slot starting at `start`. Wraps past midnight: 23:50 + 15 -> 00:05.
    """
    return format_hhmm(parse_hhmm(start) + duration_minutes)


def generate_daily_slots(
    day_start: str,
    day_end: str,
    step_minutes: int = DEFAULT_SLOT_MINUTES,
) -> List[TimeSlot]:
    """
    Consecutive non-overlapping slots from day_start up to day_end.
    Only full slots are returned; a trailing partial slot is dropped.
    Empty when day_start >= day_end.
    """
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    current = parse_hhmm(day_start)
    end = parse_hhmm(day_end)

    slots: List[TimeSlot] = []
    while current + step_minutes <= end:
        slots.append(TimeSlot(format_hhmm(current), format_hhmm(current + step_minutes)))
        current += step_minutes
    return slots


def slot_for_instant(
    instant: datetime,
    tz: tzinfo,
    duration_minutes: int = DEFAULT_SLOT_MINUTES,
) -> TimeSlot:
    """
    The wall-clock slot an aware instant falls on in `tz`.
    Seconds are truncated, the start is not rounded to the grid.
    """
    local = instant.astimezone(tz)
    start = format_hhmm(local.hour * 60 + local.minute)
    return TimeSlot(start, compute_slot_end(start, duration_minutes))
