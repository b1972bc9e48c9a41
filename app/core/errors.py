# app/core/errors.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    INVALID_REFERENCE = "InvalidReference"
    REQUIRED_FIELD = "RequiredField"
    INVALID_DATE = "InvalidDate"
    PAST_DATE = "PastDateError"
    INSUFFICIENT_NOTICE = "InsufficientNoticeError"
    BOOKING_WINDOW_EXCEEDED = "BookingWindowExceededError"
    OUTSIDE_BUSINESS_HOURS = "OutsideBusinessHoursError"
    TEXT_TOO_LONG = "TextTooLongError"
    DOCTOR_UNAVAILABLE = "DoctorUnavailable"


@dataclass(frozen=True)
class FieldError:
    kind: ErrorKind
    message: str


class SchedulingError(Exception):
    """
    Base class for every domain error raised by the scheduling services.
    Routers never catch these; app.main converts them into JSON responses.
    """

    status_code: int = 400
    error: str = "scheduling_error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.error
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(SchedulingError):
    """One or more request fields failed validation."""

    status_code = 400
    error = "Validation failed"

    def __init__(self, errors: Dict[str, FieldError]) -> None:
        super().__init__(self.error)
        self.errors = errors

    def to_payload(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "details": {field: err.message for field, err in self.errors.items()},
            "codes": {field: err.kind.value for field, err in self.errors.items()},
        }


class NotFoundError(SchedulingError):
    status_code = 404
    error = "not_found"


class InvalidStateError(SchedulingError):
    """The appointment is not in a status that allows the operation."""

    status_code = 409
    error = "invalid_state"


class SlotConflictError(SchedulingError):
    """
    Another active appointment already occupies the requested window.
    The competing appointment is never exposed to the caller.
    """

    status_code = 409
    error = "Time slot already booked. Please choose a different time."


class InvalidArgumentError(SchedulingError):
    status_code = 400
    error = "invalid_argument"


class ForbiddenError(SchedulingError):
    status_code = 403
    error = "forbidden"


class DoctorAlreadyExists(SchedulingError):
    status_code = 409
    error = "Doctor with this email already exists"


__all__ = [
    "ErrorKind",
    "FieldError",
    "SchedulingError",
    "ValidationError",
    "NotFoundError",
    "InvalidStateError",
    "SlotConflictError",
    "InvalidArgumentError",
    "ForbiddenError",
    "DoctorAlreadyExists",
]
