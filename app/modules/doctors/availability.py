# app/modules/doctors/availability.py
"""
Which slots a doctor can take on a given day.

Works on anything shaped like a Doctor (available_days, leaves with
start_date/end_date); nothing here touches the database.
"""
from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Iterable, List, Optional, Union

from app.modules.scheduling.timewindow import DEFAULT_SLOT_MINUTES, generate_daily_slots

# Fixed English names, independent of the process locale.
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

DayLike = Union[date, datetime]


def normalize_day_name(name: str) -> str:
    """'monday ' -> 'Monday'. Raises ValueError for unknown names."""
    cleaned = (name or "").strip().capitalize()
    if cleaned not in WEEKDAYS:
        raise ValueError(f"unknown weekday: {name!r}")
    return cleaned


def local_date(day: DayLike, tz: Optional[tzinfo] = None) -> date:
    """
    Calendar date of `day` in the hospital timezone. Plain dates are
    returned as is; aware datetimes are converted first.
    """
    if isinstance(day, datetime):
        if day.tzinfo is not None and tz is not None:
            return day.astimezone(tz).date()
        return day.date()
    return day


def weekday_name(day: DayLike, tz: Optional[tzinfo] = None) -> str:
    return WEEKDAYS[local_date(day, tz).weekday()]


def is_service_day(doctor, day: DayLike, tz: Optional[tzinfo] = None) -> bool:
    served = {d.strip().lower() for d in (doctor.available_days or [])}
    return weekday_name(day, tz).lower() in served


def is_on_leave(doctor, day: DayLike, tz: Optional[tzinfo] = None) -> bool:
    target = local_date(day, tz)
    return any(
        leave.start_date <= target <= leave.end_date
        for leave in (doctor.leaves or [])
    )


def available_slots(
    doctor,
    day: DayLike,
    booked_starts: Iterable[str],
    *,
    day_start: str = "09:00",
    day_end: str = "17:00",
    step_minutes: int = DEFAULT_SLOT_MINUTES,
    tz: Optional[tzinfo] = None,
) -> List[str]:
    """
    Start times ("HH:MM", ascending) still free for `doctor` on `day`.
    Empty when the doctor does not work that weekday or is on leave.
    """
    if not is_service_day(doctor, day, tz) or is_on_leave(doctor, day, tz):
        return []

    taken = set(booked_starts)
    return [
        slot.start
        for slot in generate_daily_slots(day_start, day_end, step_minutes)
        if slot.start not in taken
    ]
