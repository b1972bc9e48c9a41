# app/modules/appointments/validators.py
"""
Field validators for booking requests.

Every validator returns a FieldCheck instead of raising, so a request with
several bad fields reports all of them at once (see validate_fields).
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Any, Dict, Mapping, Optional, Tuple

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from app.core.clock import hospital_tz
from app.core.config import Settings
from app.core.errors import ErrorKind, FieldError


@dataclass(frozen=True)
class BookingRules:
    tz: tzinfo
    slot_minutes: int = 15
    open_hour: int = 8
    close_hour: int = 20
    min_notice_hours: int = 24
    max_advance_months: int = 3
    conflict_window_minutes: int = 30
    text_max_length: int = 500
    patient_cancel_notice_hours: int = 24

    @classmethod
    def from_settings(cls, s: Settings) -> "BookingRules":
        return cls(
            tz=hospital_tz(s.HOSPITAL_TIMEZONE),
            slot_minutes=s.SLOT_MINUTES,
            open_hour=s.BUSINESS_OPEN_HOUR,
            close_hour=s.BUSINESS_CLOSE_HOUR,
            min_notice_hours=s.MIN_NOTICE_HOURS,
            max_advance_months=s.MAX_ADVANCE_MONTHS,
            conflict_window_minutes=s.CONFLICT_WINDOW_MINUTES,
            text_max_length=s.TEXT_MAX_LENGTH,
            patient_cancel_notice_hours=s.PATIENT_CANCEL_NOTICE_HOURS,
        )


@dataclass(frozen=True)
class FieldCheck:
    valid: bool
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    value: Any = None

    @classmethod
    def ok(cls, value: Any = None) -> "FieldCheck":
        return cls(True, value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "FieldCheck":
        return cls(False, error=error, kind=kind)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _hour_label(hour: int) -> str:
    suffix = "AM" if hour % 24 < 12 else "PM"
    return f"{(hour % 12) or 12}:00 {suffix}"


def validate_reference(value: Any, label: str, *, required: bool = True) -> FieldCheck:
    """
    Entity id check. A missing optional reference is valid (value None).
    """
    if _is_blank(value):
        if required:
            return FieldCheck.fail(ErrorKind.REQUIRED_FIELD, f"{label} is required")
        return FieldCheck.ok(None)
    try:
        parsed = value if isinstance(value, uuid.UUID) else uuid.UUID(str(value).strip())
    except ValueError:
        return FieldCheck.fail(ErrorKind.INVALID_REFERENCE, f"Invalid {label} format")
    return FieldCheck.ok(parsed)


def parse_instant(value: Any, tz: tzinfo) -> datetime:
    """
    ISO-8601 string (or datetime) to an aware datetime.
    Values without an offset are read as hospital wall-clock time.
    Raises ValueError when the value does not parse.
    """
    parsed = value if isinstance(value, datetime) else isoparse(str(value).strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def validate_appointment_date(value: Any, now: datetime, rules: BookingRules) -> FieldCheck:
    """
    Checks, in order: present, parses, in the future, minimum notice,
    maximum advance, business hours. The first failing rule is reported.
    """
    if _is_blank(value):
        return FieldCheck.fail(ErrorKind.REQUIRED_FIELD, "Appointment date is required")

    try:
        selected = parse_instant(value, rules.tz)
    except (ValueError, OverflowError):
        return FieldCheck.fail(ErrorKind.INVALID_DATE, "Invalid date format")

    if selected <= now:
        return FieldCheck.fail(ErrorKind.PAST_DATE, "Cannot book appointments in the past")

    if selected < now + timedelta(hours=rules.min_notice_hours):
        return FieldCheck.fail(
            ErrorKind.INSUFFICIENT_NOTICE,
            f"Appointments must be booked at least {rules.min_notice_hours} hours in advance",
        )

    latest = now.astimezone(rules.tz) + relativedelta(months=rules.max_advance_months)
    if selected > latest:
        return FieldCheck.fail(
            ErrorKind.BOOKING_WINDOW_EXCEEDED,
            f"Cannot book appointments more than {rules.max_advance_months} months in advance",
        )

    local_hour = selected.astimezone(rules.tz).hour
    if local_hour < rules.open_hour or local_hour >= rules.close_hour:
        return FieldCheck.fail(
            ErrorKind.OUTSIDE_BUSINESS_HOURS,
            "Appointments must be between "
            f"{_hour_label(rules.open_hour)} and {_hour_label(rules.close_hour)}",
        )

    return FieldCheck.ok(selected)


def validate_text_length(value: Optional[str], max_length: int, label: str = "Notes") -> FieldCheck:
    if value is None:
        return FieldCheck.ok(None)
    stripped = value.strip()
    if len(stripped) > max_length:
        return FieldCheck.fail(
            ErrorKind.TEXT_TOO_LONG, f"{label} must be less than {max_length} characters"
        )
    return FieldCheck.ok(stripped or None)


def validate_fields(checks: Mapping[str, FieldCheck]) -> Dict[str, FieldError]:
    """Collect every failing check, keyed by field name."""
    return {
        field: FieldError(check.kind, check.error)
        for field, check in checks.items()
        if not check.valid
    }


def validate_booking_request(
    data: Mapping[str, Any],
    now: datetime,
    rules: BookingRules,
    *,
    patient_required: bool,
) -> Tuple[Dict[str, FieldError], Dict[str, Any]]:
    """
    Validate a create-appointment payload.

    Returns (errors, cleaned). `cleaned` maps each valid field to its parsed
    value (UUIDs, aware datetime, stripped notes) and is only complete when
    `errors` is empty.
    """
    checks = {
        "hospital": validate_reference(data.get("hospital"), "Hospital ID"),
        "department": validate_reference(data.get("department"), "Department ID"),
        "doctor": validate_reference(data.get("doctor"), "Doctor ID", required=False),
        "date": validate_appointment_date(data.get("date"), now, rules),
        "notes": validate_text_length(data.get("notes"), rules.text_max_length),
    }
    if patient_required:
        checks["patient"] = validate_reference(data.get("patient"), "Patient ID")
    errors = validate_fields(checks)
    cleaned = {field: check.value for field, check in checks.items() if check.valid}
    return errors, cleaned
