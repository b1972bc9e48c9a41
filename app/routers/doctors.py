# app/routers/doctors.py
from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import Actor, Role
from app.db.sql import get_session
from app.dependencies import get_current_actor, get_rules, require_roles
from app.modules.appointments.validators import BookingRules
from app.modules.doctors.schemas import (
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    AvailableSlotsResponse,
    DoctorCreateRequest,
    DoctorPublic,
    LeaveCreateRequest,
    LeavePublic,
)
from app.modules.doctors.service import (
    add_leave_svc,
    available_slots_svc,
    check_doctor_availability_svc,
    get_doctor_svc,
    list_leaves_svc,
    register_doctor_svc,
)

router = APIRouter(tags=["doctors"])


@router.post(
    "/doctors",
    response_model=DoctorPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Add a doctor (receptionist/admin only)",
    responses={409: {"description": "Doctor with this email already exists"}},
)
async def doctors_create(
    payload: DoctorCreateRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(require_roles(Role.RECEPTIONIST.value, Role.ADMIN.value)),
):
    return DoctorPublic.model_validate(await register_doctor_svc(session, payload))


@router.get(
    "/doctors/{doctor_id}",
    response_model=DoctorPublic,
    summary="Doctor profile with service days and leaves",
)
async def doctors_get(
    doctor_id: UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return DoctorPublic.model_validate(await get_doctor_svc(session, doctor_id))


@router.post(
    "/doctors/{doctor_id}/leaves",
    response_model=LeavePublic,
    status_code=status.HTTP_201_CREATED,
    summary="Record a leave period (inclusive dates)",
)
async def doctors_add_leave(
    doctor_id: UUID,
    payload: LeaveCreateRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(
        require_roles(Role.DOCTOR.value, Role.RECEPTIONIST.value, Role.ADMIN.value)
    ),
):
    """
    Notes:
    - Doctors may only record their own leave.
    - Existing bookings inside the period are left untouched; staff
      reschedule or cancel them separately.
    """
    if actor.role == Role.DOCTOR.value and actor.id != doctor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="cannot_edit_other_doctor_leave",
        )
    return LeavePublic.model_validate(await add_leave_svc(session, doctor_id, payload))


@router.get(
    "/doctors/{doctor_id}/leaves",
    response_model=List[LeavePublic],
    summary="List a doctor's leave periods",
)
async def doctors_list_leaves(
    doctor_id: UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return [LeavePublic.model_validate(l) for l in await list_leaves_svc(session, doctor_id)]


@router.get(
    "/doctors/{doctor_id}/available-slots",
    response_model=AvailableSlotsResponse,
    summary="Free 15-minute slots for a doctor on one day",
)
async def doctors_available_slots(
    doctor_id: UUID,
    day: Optional[date] = Query(None, alias="date", description="YYYY-MM-DD"),
    session: AsyncSession = Depends(get_session),
    rules: BookingRules = Depends(get_rules),
    actor: Actor = Depends(get_current_actor),
):
    slots = await available_slots_svc(
        session,
        doctor_id,
        day,
        rules,
        day_start=settings.DAY_START,
        day_end=settings.DAY_END,
    )
    return AvailableSlotsResponse(doctor_id=doctor_id, day=day, slots=slots)


@router.post(
    "/doctors/{doctor_id}/availability-check",
    response_model=AvailabilityCheckResponse,
    summary="Check one slot for a doctor (staff)",
)
async def doctors_availability_check(
    doctor_id: UUID,
    payload: AvailabilityCheckRequest,
    session: AsyncSession = Depends(get_session),
    rules: BookingRules = Depends(get_rules),
    actor: Actor = Depends(
        require_roles(Role.RECEPTIONIST.value, Role.DOCTOR.value, Role.ADMIN.value)
    ),
):
    return await check_doctor_availability_svc(
        session, doctor_id, payload.day, payload.time_slot, rules
    )
