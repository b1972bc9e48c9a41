# app/modules/appointments/service.py
from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.errors import (
    ErrorKind,
    FieldError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    SlotConflictError,
    ValidationError,
)
from app.core.security import Actor, ActorType
from app.modules.appointments import repository as repo
from app.modules.appointments.models import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    Priority,
)
from app.modules.appointments.policies import (
    DEFAULT_CANCEL_POLICIES,
    CancelPolicy,
    can_transition,
)
from app.modules.appointments.schemas import (
    AppointmentCancelRequest,
    AppointmentCreateRequest,
    AppointmentListItem,
    AppointmentListPage,
    AppointmentPublic,
    AppointmentRescheduleRequest,
    AppointmentStatusRequest,
)
from app.modules.appointments.validators import (
    BookingRules,
    validate_appointment_date,
    validate_booking_request,
)
from app.modules.doctors.availability import is_on_leave, is_service_day, weekday_name
from app.modules.doctors.models import Doctor
from app.modules.doctors.repository import get_doctor
from app.modules.hospitals.repository import get_department, get_hospital
from app.modules.notifications import (
    APPOINTMENT_CREATED,
    APPOINTMENT_RESCHEDULED,
    APPOINTMENT_UPDATED,
    Notifier,
    emit_safely,
)
from app.modules.patients.repository import get_patient
from app.modules.scheduling.timewindow import slot_for_instant

logger = logging.getLogger(__name__)

DEFAULT_REASON = "General consultation"


def generate_appointment_number(now: datetime, rules: BookingRules) -> str:
    """APT-YYYYMMDD-NNNNN, dated in the hospital timezone."""
    local = now.astimezone(rules.tz)
    return f"APT-{local:%Y%m%d}-{random.randint(0, 99999):05d}"


class AppointmentScheduler:
    """
    Create / cancel / reschedule / transition appointments for one DB session.

    Every write goes: validate -> resolve references -> lock the
    (hospital, department) scope -> conflict check -> flush -> notify.
    Notification failures are logged and never undo the write.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        clock: Clock,
        notifier: Notifier,
        rules: BookingRules,
        cancel_policies: Optional[Mapping[ActorType, CancelPolicy]] = None,
        number_generator: Callable[[datetime, BookingRules], str] = generate_appointment_number,
        number_attempts: int = 5,
    ) -> None:
        self.db = db
        self.clock = clock
        self.notifier = notifier
        self.rules = rules
        self.cancel_policies = dict(cancel_policies or DEFAULT_CANCEL_POLICIES)
        self.number_generator = number_generator
        self.number_attempts = number_attempts

    # ----------------
    # Conflict checks
    # ----------------

    async def find_conflict(
        self,
        hospital_id: UUID,
        department_id: UUID,
        candidate: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> Optional[Appointment]:
        """
        An active appointment of the same hospital department within
        +/- CONFLICT_WINDOW_MINUTES of `candidate` (inclusive), if any.
        """
        window = timedelta(minutes=self.rules.conflict_window_minutes)
        return await repo.find_conflicting(
            self.db,
            hospital_id=hospital_id,
            department_id=department_id,
            window_start=candidate - window,
            window_end=candidate + window,
            exclude_id=exclude_id,
        )

    async def _reserve(
        self,
        hospital_id: UUID,
        department_id: UUID,
        candidate: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> None:
        await repo.lock_scope(self.db, hospital_id=hospital_id, department_id=department_id)
        conflict = await self.find_conflict(hospital_id, department_id, candidate, exclude_id)
        if conflict is not None:
            logger.warning(
                "Slot conflict in hospital=%s department=%s at %s",
                hospital_id, department_id, candidate.isoformat(),
            )
            raise SlotConflictError()

    def _check_doctor_on(self, doctor: Doctor, when: datetime, field: str) -> None:
        if not is_service_day(doctor, when, self.rules.tz):
            day = weekday_name(when, self.rules.tz)
            raise ValidationError(
                {field: FieldError(ErrorKind.DOCTOR_UNAVAILABLE, f"Doctor not available on {day}")}
            )
        if is_on_leave(doctor, when, self.rules.tz):
            raise ValidationError(
                {field: FieldError(ErrorKind.DOCTOR_UNAVAILABLE, "Doctor is on leave on this date")}
            )

    async def _next_number(self, now: datetime) -> str:
        for _ in range(self.number_attempts):
            candidate = self.number_generator(now, self.rules)
            if not await repo.appointment_number_exists(self.db, candidate):
                return candidate
        raise InvalidStateError("Could not allocate an appointment number, please retry")

    async def _write(
        self,
        appointment: Appointment,
        patch: Mapping[str, Any],
        *,
        expected: Tuple[str, ...],
        refusal: str,
    ) -> Appointment:
        """
        Apply `patch` only while the stored status is still in `expected`.
        The status checked earlier may be stale by now; if another
        transaction moved the appointment first, raise InvalidStateError
        with `refusal` formatted against the stored status.
        """
        updated = await repo.update_appointment(
            self.db, appointment.id, patch, only_if_status=expected
        )
        if updated is not None:
            return updated
        stored = await repo.get_appointment(self.db, appointment.id)
        if stored is None:
            raise NotFoundError("Appointment not found")
        logger.warning(
            "Appointment %s changed concurrently (now %s)", stored.appointment_number, stored.status
        )
        raise InvalidStateError(refusal.format(status=stored.status))

    # -----
    # Read
    # -----

    async def get(self, appointment_id: UUID, actor: Actor) -> Appointment:
        """
        Patients only see their own appointments; anything else is reported
        as not found.
        """
        appointment = await repo.get_appointment(self.db, appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found")
        if actor.kind is ActorType.PATIENT and appointment.patient_id != actor.id:
            raise NotFoundError("Appointment not found")
        return appointment

    async def list_for_patient(
        self,
        patient_id: UUID,
        *,
        status: Optional[str] = None,
        upcoming: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Appointment], int]:
        statuses: Optional[Tuple[str, ...]] = (status,) if status else None
        since = None
        if upcoming:
            since = self.clock.now()
            statuses = statuses or ACTIVE_STATUSES
        return await repo.list_for_patient(
            self.db, patient_id=patient_id, statuses=statuses, since=since,
            limit=limit, offset=offset,
        )

    async def list_for_doctor(
        self,
        doctor_id: UUID,
        *,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Appointment], int]:
        return await repo.list_for_doctor(
            self.db, doctor_id=doctor_id, statuses=(status,) if status else None,
            limit=limit, offset=offset,
        )

    # -------
    # Create
    # -------

    async def create(self, request: Mapping[str, Any], actor: Actor) -> Appointment:
        """
        Book a slot. `request` carries hospital, department, date and the
        optional doctor, notes, priority; staff must also name the patient.

        Raises ValidationError (nothing written), NotFoundError for unknown
        references, SlotConflictError when the window is taken.
        """
        now = self.clock.now()
        errors, cleaned = validate_booking_request(
            request, now, self.rules, patient_required=actor.is_staff
        )
        if errors:
            raise ValidationError(errors)

        priority = request.get("priority") or Priority.NORMAL.value
        try:
            priority = Priority(priority).value
        except ValueError:
            raise InvalidArgumentError(f"Unknown priority: {priority}") from None

        hospital = await get_hospital(self.db, cleaned["hospital"])
        if hospital is None:
            raise NotFoundError("Hospital not found")
        department = await get_department(self.db, cleaned["department"])
        if department is None or department.hospital_id != hospital.id:
            raise NotFoundError("Department not found")

        patient_id = cleaned["patient"] if actor.is_staff else actor.id
        if await get_patient(self.db, patient_id) is None:
            raise NotFoundError("Patient not found")

        when: datetime = cleaned["date"]
        doctor_id = cleaned.get("doctor")
        if doctor_id is not None:
            doctor = await get_doctor(self.db, doctor_id)
            if doctor is None:
                raise NotFoundError("Doctor not found")
            self._check_doctor_on(doctor, when, "doctor")

        await self._reserve(hospital.id, department.id, when)

        slot = slot_for_instant(when, self.rules.tz, self.rules.slot_minutes)
        notes = cleaned.get("notes")
        appointment = Appointment(
            appointment_number=await self._next_number(now),
            patient_id=patient_id,
            hospital_id=hospital.id,
            department_id=department.id,
            doctor_id=doctor_id,
            date=when,
            time_slot_start=slot.start,
            time_slot_end=slot.end,
            status=AppointmentStatus.BOOKED.value,
            priority=priority,
            reason=notes or DEFAULT_REASON,
            notes=notes,
            created_by_id=actor.id,
            created_by_type=actor.kind.value,
        )
        try:
            await repo.insert_appointment(self.db, appointment)
        except IntegrityError as exc:
            message = str(exc.orig).lower() if exc.orig else str(exc).lower()
            if "appointment_number" in message:
                raise InvalidStateError("Could not allocate an appointment number, please retry") from exc
            raise

        appointment = await repo.get_appointment(self.db, appointment.id)
        logger.info(
            "Appointment %s booked for patient=%s at %s %s",
            appointment.appointment_number, patient_id, when.isoformat(), slot.start,
        )
        await emit_safely(
            self.notifier,
            APPOINTMENT_CREATED,
            self._payload(
                appointment,
                title="Appointment Booked",
                message=(
                    f"Your appointment {appointment.appointment_number} has been booked "
                    f"for {self._display(appointment.date)}"
                ),
            ),
        )
        return appointment

    # -------
    # Cancel
    # -------

    async def cancel(
        self,
        appointment_id: UUID,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Appointment:
        appointment = await self.get(appointment_id, actor)
        if appointment.status not in ACTIVE_STATUSES:
            raise InvalidStateError(f"Cannot cancel appointment with status: {appointment.status}")

        now = self.clock.now()
        policy = self.cancel_policies[actor.kind]
        denied = policy(appointment, now, self.rules)
        if denied is not None:
            raise ValidationError({"date": denied})

        default_reason = "Cancelled by patient" if actor.kind is ActorType.PATIENT else "Cancelled by staff"
        appointment = await self._write(
            appointment,
            {
                "status": AppointmentStatus.CANCELLED.value,
                "cancellation_reason": (reason or "").strip() or default_reason,
                "cancelled_by_id": actor.id,
                "cancelled_by_type": actor.kind.value,
                "cancelled_at": now,
            },
            expected=ACTIVE_STATUSES,
            refusal="Cannot cancel appointment with status: {status}",
        )
        logger.info("Appointment %s cancelled by %s %s", appointment.appointment_number, actor.kind.value, actor.id)
        await emit_safely(
            self.notifier,
            APPOINTMENT_UPDATED,
            self._payload(
                appointment,
                title="Appointment Cancelled",
                message=f"Your appointment {appointment.appointment_number} has been cancelled",
            ),
        )
        return appointment

    # -----------
    # Reschedule
    # -----------

    async def reschedule(self, appointment_id: UUID, new_date: Any, actor: Actor) -> Appointment:
        """
        Move an active appointment to a new instant in place (same id and
        number). Status goes back to BOOKED.
        """
        appointment = await self.get(appointment_id, actor)
        if appointment.status not in ACTIVE_STATUSES:
            raise InvalidStateError(
                f"Cannot reschedule appointment with status: {appointment.status}"
            )

        now = self.clock.now()
        if appointment.date <= now:
            raise InvalidStateError("Cannot reschedule past appointments")

        check = validate_appointment_date(new_date, now, self.rules)
        if not check.valid:
            raise ValidationError({"new_date": FieldError(check.kind, check.error)})
        when: datetime = check.value

        if appointment.doctor is not None:
            self._check_doctor_on(appointment.doctor, when, "new_date")

        await self._reserve(
            appointment.hospital_id, appointment.department_id, when, exclude_id=appointment.id
        )

        old_date = appointment.date
        slot = slot_for_instant(when, self.rules.tz, self.rules.slot_minutes)
        appointment = await self._write(
            appointment,
            {
                "date": when,
                "time_slot_start": slot.start,
                "time_slot_end": slot.end,
                "status": AppointmentStatus.BOOKED.value,
            },
            expected=ACTIVE_STATUSES,
            refusal="Cannot reschedule appointment with status: {status}",
        )
        logger.info(
            "Appointment %s rescheduled from %s to %s",
            appointment.appointment_number, old_date.isoformat(), when.isoformat(),
        )
        payload = self._payload(
            appointment,
            title="Appointment Rescheduled",
            message=(
                f"Your appointment {appointment.appointment_number} has been rescheduled "
                f"from {self._display(old_date)} to {self._display(when)}"
            ),
        )
        payload.update(old_date=old_date.isoformat(), new_date=when.isoformat())
        await emit_safely(self.notifier, APPOINTMENT_RESCHEDULED, payload)
        return appointment

    # ---------------------
    # Staff status changes
    # ---------------------

    async def transition(self, appointment_id: UUID, new_status: str, actor: Actor) -> Appointment:
        if not actor.is_staff:
            raise ForbiddenError("only_staff_can_change_status")
        try:
            target = AppointmentStatus(new_status)
        except ValueError:
            raise InvalidArgumentError(f"Unknown status: {new_status}") from None
        if target in (AppointmentStatus.CANCELLED, AppointmentStatus.RESCHEDULED):
            raise InvalidArgumentError("Use the cancel or reschedule operation instead")

        appointment = await self.get(appointment_id, actor)
        current = AppointmentStatus(appointment.status)
        if not can_transition(current, target):
            raise InvalidStateError(f"Cannot change status from {current.value} to {target.value}")

        patch: Dict[str, Any] = {"status": target.value}
        if target is AppointmentStatus.IN_PROGRESS:
            patch["consultation_started_at"] = self.clock.now()
        elif target is AppointmentStatus.COMPLETED:
            patch["consultation_ended_at"] = self.clock.now()

        appointment = await self._write(
            appointment,
            patch,
            expected=(current.value,),
            refusal=f"Cannot change status from {{status}} to {target.value}",
        )
        logger.info(
            "Appointment %s status %s -> %s by %s",
            appointment.appointment_number, current.value, target.value, actor.id,
        )
        await emit_safely(
            self.notifier,
            APPOINTMENT_UPDATED,
            self._payload(
                appointment,
                title="Appointment Updated",
                message=(
                    f"Your appointment {appointment.appointment_number} is now "
                    f"{target.value.replace('_', ' ').lower()}"
                ),
            ),
        )
        return appointment

    # --------
    # Helpers
    # --------

    def _display(self, instant: datetime) -> str:
        return instant.astimezone(self.rules.tz).strftime("%Y-%m-%d %H:%M")

    @staticmethod
    def _payload(appointment: Appointment, *, title: str, message: str) -> Dict[str, Any]:
        return {
            "recipient_id": str(appointment.patient_id),
            "recipient_type": ActorType.PATIENT.value,
            "type": "APPOINTMENT",
            "title": title,
            "message": message,
            "appointment_id": str(appointment.id),
            "appointment_number": appointment.appointment_number,
            "status": appointment.status,
        }


# ===========================
# Router-facing service calls
# ===========================

def _to_public(appt: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(appt)


def _to_page(rows: List[Appointment], total: int, limit: int, offset: int) -> AppointmentListPage:
    return AppointmentListPage(
        items=[AppointmentListItem.model_validate(a) for a in rows],
        total=total,
        limit=limit,
        offset=offset,
        has_next=offset + limit < total,
    )


# CREATE
async def create_appointment_svc(
    scheduler: AppointmentScheduler,
    payload: AppointmentCreateRequest,
    actor: Actor,
) -> AppointmentPublic:
    """
    Patients book for themselves; staff must pass `patient`.
    Runs the booking validator, then the conflict check for the hospital
    department (+/- 30 minutes), then persists the appointment as BOOKED.
    """
    return _to_public(await scheduler.create(payload.model_dump(), actor))


# READ
async def get_appointment_svc(
    scheduler: AppointmentScheduler,
    appointment_id: UUID,
    actor: Actor,
) -> AppointmentPublic:
    return _to_public(await scheduler.get(appointment_id, actor))


async def list_patient_appointments_svc(
    scheduler: AppointmentScheduler,
    patient_id: UUID,
    *,
    status: Optional[str],
    upcoming: bool,
    limit: int,
    offset: int,
) -> AppointmentListPage:
    rows, total = await scheduler.list_for_patient(
        patient_id, status=status, upcoming=upcoming, limit=limit, offset=offset
    )
    return _to_page(rows, total, limit, offset)


async def list_appointments_by_doctor_svc(
    scheduler: AppointmentScheduler,
    doctor_id: UUID,
    *,
    status: Optional[str],
    limit: int,
    offset: int,
) -> AppointmentListPage:
    rows, total = await scheduler.list_for_doctor(
        doctor_id, status=status, limit=limit, offset=offset
    )
    return _to_page(rows, total, limit, offset)


# CANCEL
async def cancel_appointment_svc(
    scheduler: AppointmentScheduler,
    appointment_id: UUID,
    actor: Actor,
    payload: Optional[AppointmentCancelRequest] = None,
) -> AppointmentPublic:
    reason = payload.reason if payload else None
    return _to_public(await scheduler.cancel(appointment_id, actor, reason=reason))


# RESCHEDULE
async def reschedule_appointment_svc(
    scheduler: AppointmentScheduler,
    appointment_id: UUID,
    payload: AppointmentRescheduleRequest,
    actor: Actor,
) -> AppointmentPublic:
    return _to_public(await scheduler.reschedule(appointment_id, payload.new_date, actor))


# STATUS
async def change_appointment_status_svc(
    scheduler: AppointmentScheduler,
    appointment_id: UUID,
    payload: AppointmentStatusRequest,
    actor: Actor,
) -> AppointmentPublic:
    return _to_public(await scheduler.transition(appointment_id, payload.status, actor))
