# app/modules/appointments/models.py
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin, UTCDateTime

if TYPE_CHECKING:
    from app.modules.doctors.models import Doctor
    from app.modules.hospitals.models import Department, Hospital
    from app.modules.patients.models import Patient


class AppointmentStatus(str, PyEnum):
    BOOKED = "BOOKED"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"
    RESCHEDULED = "RESCHEDULED"  # accepted on read; reschedules happen in place


# Statuses that hold a (hospital, department) window against other bookings.
ACTIVE_STATUSES = (AppointmentStatus.BOOKED.value, AppointmentStatus.CONFIRMED.value)

# Statuses that occupy a doctor's slot when listing free slots.
OCCUPYING_STATUSES = (
    AppointmentStatus.BOOKED.value,
    AppointmentStatus.CONFIRMED.value,
    AppointmentStatus.CHECKED_IN.value,
    AppointmentStatus.IN_PROGRESS.value,
)


class Priority(str, PyEnum):
    NORMAL = "NORMAL"
    URGENT = "URGENT"
    EMERGENCY = "EMERGENCY"


class Appointment(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    A reservation of one 15-minute slot for a patient at a hospital department,
    optionally with a named doctor. `date` (UTC) is authoritative; the
    time_slot_* columns are its wall-clock view in the hospital timezone.
    """

    __tablename__ = "appointments"

    appointment_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
    )
    hospital_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("hospitals.id", ondelete="RESTRICT"),
        nullable=False,
    )
    department_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("departments.id", ondelete="RESTRICT"),
        nullable=False,
    )
    doctor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("doctors.id", ondelete="SET NULL"),
        nullable=True,
    )

    date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    time_slot_start: Mapped[str] = mapped_column(String(5), nullable=False)
    time_slot_end: Mapped[str] = mapped_column(String(5), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AppointmentStatus.BOOKED.value,
        server_default=AppointmentStatus.BOOKED.value,
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Priority.NORMAL.value,
        server_default=Priority.NORMAL.value,
    )

    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500))
    cancelled_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(nullable=True)
    cancelled_by_type: Mapped[Optional[str]] = mapped_column(String(10))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)

    created_by_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    created_by_type: Mapped[str] = mapped_column(String(10), nullable=False)

    consultation_started_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)
    consultation_ended_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)

    patient: Mapped["Patient"] = relationship(lazy="joined")
    hospital: Mapped["Hospital"] = relationship(lazy="joined")
    department: Mapped["Department"] = relationship(lazy="joined")
    doctor: Mapped[Optional["Doctor"]] = relationship(lazy="joined")

    @property
    def time_slot(self) -> dict:
        return {"start": self.time_slot_start, "end": self.time_slot_end}

    __table_args__ = (
        Index("ix_appt_patient_date", "patient_id", "date"),
        Index("ix_appt_doctor_date", "doctor_id", "date"),
        Index("ix_appt_scope_date_status", "hospital_id", "department_id", "date", "status"),
        Index("ix_appt_status", "status"),
    )


class SchedulingLock(Base):
    """
    One row per (hospital, department). Bumping `version` inside the booking
    transaction serialises concurrent create/reschedule calls for that
    resource: a row lock on PostgreSQL, the database write lock on SQLite.
    """

    __tablename__ = "scheduling_locks"

    hospital_id: Mapped[uuid.UUID] = mapped_column(primary_key=True)
    department_id: Mapped[uuid.UUID] = mapped_column(primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
