# app/routers/appointments.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.security import Actor, Role
from app.dependencies import get_current_actor, get_scheduler, require_roles
from app.modules.appointments.models import AppointmentStatus
from app.modules.appointments.schemas import (
    AppointmentCancelRequest,
    AppointmentCreateRequest,
    AppointmentListPage,
    AppointmentPublic,
    AppointmentRescheduleRequest,
    AppointmentStatusRequest,
)
from app.modules.appointments.service import (
    AppointmentScheduler,
    cancel_appointment_svc,
    change_appointment_status_svc,
    create_appointment_svc,
    get_appointment_svc,
    list_appointments_by_doctor_svc,
    list_patient_appointments_svc,
    reschedule_appointment_svc,
)

router = APIRouter(tags=["appointments"])

STAFF = (Role.RECEPTIONIST.value, Role.DOCTOR.value, Role.ADMIN.value)

# Scheduling errors (400/404/409) are rendered by the handlers in app.main.
ERROR_RESPONSES = {
    400: {"description": "Validation failed / invalid argument"},
    404: {"description": "Appointment or reference not found"},
    409: {"description": "Slot conflict or invalid status"},
}


def _status_filter(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return AppointmentStatus(value.upper()).value
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="invalid_status_filter",
        )


@router.post(
    "/appointments",
    response_model=AppointmentPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment slot",
    responses=ERROR_RESPONSES,
)
async def appointments_create(
    payload: AppointmentCreateRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    actor: Actor = Depends(get_current_actor),
):
    return await create_appointment_svc(scheduler, payload, actor)


@router.get(
    "/appointments/my",
    response_model=AppointmentListPage,
    summary="Retrieve current patient's appointments",
)
async def appointments_my(
    status_: Optional[str] = Query(None, alias="status"),
    upcoming: bool = Query(False, description="Only future BOOKED/CONFIRMED appointments"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    actor: Actor = Depends(require_roles(Role.PATIENT.value)),
):
    return await list_patient_appointments_svc(
        scheduler,
        actor.id,
        status=_status_filter(status_),
        upcoming=upcoming,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/appointments/doctor/{doctor_id}",
    response_model=AppointmentListPage,
    summary="A doctor's schedule",
)
async def appointments_for_doctor(
    doctor_id: UUID,
    status_: Optional[str] = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    actor: Actor = Depends(require_roles(*STAFF)),
):
    # Doctors only see their own schedule.
    if actor.role == Role.DOCTOR.value and actor.id != doctor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="cannot_view_other_doctor_schedule",
        )
    return await list_appointments_by_doctor_svc(
        scheduler, doctor_id, status=_status_filter(status_), limit=limit, offset=offset
    )


@router.get(
    "/appointments/patient/{patient_id}",
    response_model=AppointmentListPage,
    summary="A patient's appointments (staff view)",
)
async def appointments_for_patient(
    patient_id: UUID,
    status_: Optional[str] = Query(None, alias="status"),
    upcoming: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    actor: Actor = Depends(require_roles(Role.RECEPTIONIST.value, Role.ADMIN.value)),
):
    return await list_patient_appointments_svc(
        scheduler,
        patient_id,
        status=_status_filter(status_),
        upcoming=upcoming,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/appointments/{appointment_id}",
    response_model=AppointmentPublic,
    summary="Appointment details",
    responses={404: ERROR_RESPONSES[404]},
)
async def appointments_get(
    appointment_id: UUID,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    actor: Actor = Depends(get_current_actor),
):
    return await get_appointment_svc(scheduler, appointment_id, actor)


@router.patch(
    "/appointments/{appointment_id}/cancel",
    response_model=AppointmentPublic,
    summary="Cancel an appointment",
    responses=ERROR_RESPONSES,
)
async def appointments_cancel(
    appointment_id: UUID,
    payload: Optional[AppointmentCancelRequest] = None,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    actor: Actor = Depends(get_current_actor),
):
    """
    Patients may cancel their own BOOKED/CONFIRMED appointments up to 24h
    before the visit; staff may cancel any active appointment.
    """
    return await cancel_appointment_svc(scheduler, appointment_id, actor, payload)


@router.patch(
    "/appointments/{appointment_id}/reschedule",
    response_model=AppointmentPublic,
    summary="Move an appointment to a new date",
    responses=ERROR_RESPONSES,
)
async def appointments_reschedule(
    appointment_id: UUID,
    payload: AppointmentRescheduleRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    actor: Actor = Depends(get_current_actor),
):
    return await reschedule_appointment_svc(scheduler, appointment_id, payload, actor)


@router.patch(
    "/appointments/{appointment_id}/status",
    response_model=AppointmentPublic,
    summary="Confirm / check in / start / complete / mark no-show",
    responses=ERROR_RESPONSES,
)
async def appointments_status(
    appointment_id: UUID,
    payload: AppointmentStatusRequest,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    actor: Actor = Depends(require_roles(*STAFF)),
):
    return await change_appointment_status_svc(scheduler, appointment_id, payload, actor)
