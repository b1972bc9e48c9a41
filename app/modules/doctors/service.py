# app/modules/doctors/service.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import DoctorAlreadyExists, InvalidArgumentError, NotFoundError
from app.core.security import hash_password
from app.modules.appointments.models import OCCUPYING_STATUSES
from app.modules.appointments.repository import list_booked_starts
from app.modules.appointments.validators import BookingRules
from app.modules.doctors import repository as repo
from app.modules.doctors.availability import (
    available_slots,
    is_on_leave,
    is_service_day,
    local_date,
    weekday_name,
)
from app.modules.doctors.models import Doctor, DoctorLeave
from app.modules.doctors.schemas import DoctorCreateRequest, LeaveCreateRequest
from app.modules.scheduling.timewindow import format_hhmm, parse_hhmm

logger = logging.getLogger(__name__)


async def _require_doctor(db: AsyncSession, doctor_id: UUID) -> Doctor:
    doctor = await repo.get_doctor(db, doctor_id)
    if doctor is None:
        raise NotFoundError("Doctor not found")
    return doctor


def _day_bounds(day: date, rules: BookingRules) -> Tuple[datetime, datetime]:
    """[local midnight, next local midnight) of `day` in the hospital timezone."""
    start = datetime.combine(day, time.min, tzinfo=rules.tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=rules.tz)
    return start, end


async def _booked_starts(
    db: AsyncSession, doctor_id: UUID, day: date, rules: BookingRules
) -> List[str]:
    start, end = _day_bounds(day, rules)
    return await list_booked_starts(
        db, doctor_id=doctor_id, day_start=start, day_end=end, statuses=OCCUPYING_STATUSES
    )


# REGISTER
async def register_doctor_svc(db: AsyncSession, payload: DoctorCreateRequest) -> Doctor:
    """
    Receptionist adds a doctor. Email must be unique; the initial password
    is stored as a bcrypt hash.
    """
    if await repo.get_by_email(db, payload.email) is not None:
        raise DoctorAlreadyExists()

    doctor = await repo.create_doctor(
        db,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password_hash=hash_password(payload.password.get_secret_value()),
        specialization=payload.specialization,
        experience_years=payload.experience_years,
        phone=payload.phone,
        available_days=payload.available_days,
    )
    logger.info("Doctor %s registered (%s)", doctor.id, doctor.specialization)
    return doctor


async def get_doctor_svc(db: AsyncSession, doctor_id: UUID) -> Doctor:
    return await _require_doctor(db, doctor_id)


# LEAVES
async def add_leave_svc(
    db: AsyncSession, doctor_id: UUID, payload: LeaveCreateRequest
) -> DoctorLeave:
    doctor = await _require_doctor(db, doctor_id)
    leave = await repo.add_leave(
        db,
        doctor,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
    )
    logger.info("Leave %s..%s recorded for doctor %s", leave.start_date, leave.end_date, doctor_id)
    return leave


async def list_leaves_svc(db: AsyncSession, doctor_id: UUID) -> List[DoctorLeave]:
    await _require_doctor(db, doctor_id)
    return await repo.list_leaves(db, doctor_id=doctor_id)


# AVAILABILITY
async def available_slots_svc(
    db: AsyncSession,
    doctor_id: UUID,
    day: Optional[Union[date, datetime]],
    rules: BookingRules,
    *,
    day_start: str,
    day_end: str,
) -> List[str]:
    """
    Free start times for the doctor on `day`, read fresh from the database.
    """
    if day is None:
        raise InvalidArgumentError("Date is required")
    doctor = await _require_doctor(db, doctor_id)
    target = local_date(day, rules.tz)

    booked = await _booked_starts(db, doctor.id, target, rules)
    return available_slots(
        doctor,
        target,
        booked,
        day_start=day_start,
        day_end=day_end,
        step_minutes=rules.slot_minutes,
        tz=rules.tz,
    )


async def check_doctor_availability_svc(
    db: AsyncSession,
    doctor_id: UUID,
    day: Optional[date],
    time_slot: Optional[str],
    rules: BookingRules,
) -> Dict[str, object]:
    """
    Receptionist check for one concrete slot: {"available": bool, "message": str}.
    """
    if day is None or not time_slot:
        raise InvalidArgumentError("Date and time slot are required")
    try:
        slot_start = format_hhmm(parse_hhmm(time_slot))
    except ValueError:
        raise InvalidArgumentError("Invalid time slot format") from None

    doctor = await _require_doctor(db, doctor_id)

    if not is_service_day(doctor, day, rules.tz):
        return {"available": False, "message": f"Doctor not available on {weekday_name(day, rules.tz)}"}
    if is_on_leave(doctor, day, rules.tz):
        return {"available": False, "message": "Doctor is on leave on this date"}
    if slot_start in await _booked_starts(db, doctor.id, day, rules):
        return {"available": False, "message": "Doctor already booked at this time slot"}
    return {"available": True, "message": "Doctor available for this slot"}
