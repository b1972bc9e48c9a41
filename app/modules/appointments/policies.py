# app/modules/appointments/policies.py
"""
Cancellation rules per actor type and the staff status state machine.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Dict, FrozenSet, Optional

from app.core.errors import ErrorKind, FieldError
from app.core.security import ActorType
from app.modules.appointments.models import Appointment, AppointmentStatus
from app.modules.appointments.validators import BookingRules

# Returns None when cancelling is allowed, otherwise the error for the "date" field.
CancelPolicy = Callable[[Appointment, datetime, BookingRules], Optional[FieldError]]


def patient_cancel_policy(
    appointment: Appointment, now: datetime, rules: BookingRules
) -> Optional[FieldError]:
    if appointment.date <= now:
        return FieldError(ErrorKind.PAST_DATE, "Cannot cancel past appointments")
    if appointment.date - now < timedelta(hours=rules.patient_cancel_notice_hours):
        return FieldError(
            ErrorKind.INSUFFICIENT_NOTICE,
            "Cannot cancel appointments less than "
            f"{rules.patient_cancel_notice_hours} hours before scheduled time",
        )
    return None


def staff_cancel_policy(
    appointment: Appointment, now: datetime, rules: BookingRules
) -> Optional[FieldError]:
    return None


DEFAULT_CANCEL_POLICIES: Dict[ActorType, CancelPolicy] = {
    ActorType.PATIENT: patient_cancel_policy,
    ActorType.STAFF: staff_cancel_policy,
}


S = AppointmentStatus

# Staff-driven transitions. Cancel and reschedule have their own operations.
ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    S.BOOKED: frozenset({S.CONFIRMED, S.NO_SHOW}),
    S.CONFIRMED: frozenset({S.BOOKED, S.CHECKED_IN, S.NO_SHOW}),
    S.CHECKED_IN: frozenset({S.IN_PROGRESS}),
    S.IN_PROGRESS: frozenset({S.COMPLETED}),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())
