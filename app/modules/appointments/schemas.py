# app/modules/appointments/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentCreateRequest(BaseModel):
    """
    Payload to create an appointment.
    - Ids and date are taken as raw strings so every bad field is reported
      together by the booking validator instead of failing on the first one.
    - `patient` is only read when staff book on behalf of a patient; for
      patients it is always the token subject.
    """
    hospital: Optional[str] = None
    department: Optional[str] = None
    doctor: Optional[str] = None
    date: Optional[str] = Field(default=None, description="ISO-8601; no offset = hospital local time")
    notes: Optional[str] = None
    priority: Optional[str] = None
    patient: Optional[str] = None


class AppointmentCancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class AppointmentRescheduleRequest(BaseModel):
    new_date: Optional[str] = Field(default=None, alias="newDate")

    class Config:
        populate_by_name = True


class AppointmentStatusRequest(BaseModel):
    status: str


class TimeSlotOut(BaseModel):
    start: str
    end: str


class HospitalRef(BaseModel):
    id: UUID
    name: str
    code: str

    class Config:
        from_attributes = True


class DoctorRef(BaseModel):
    id: UUID
    full_name: str
    specialization: str

    class Config:
        from_attributes = True


class PatientRef(BaseModel):
    id: UUID
    full_name: str
    health_card_id: str

    class Config:
        from_attributes = True


class AppointmentPublic(BaseModel):
    """
    DTO returns a detailed appointment with its references expanded.
    """
    id: UUID
    appointment_number: str
    patient: PatientRef
    hospital: HospitalRef
    department: HospitalRef
    doctor: Optional[DoctorRef] = None
    date: datetime
    time_slot: TimeSlotOut
    status: str
    priority: str
    reason: str
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by_id: Optional[UUID] = None
    cancelled_by_type: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_by_id: UUID
    created_by_type: str
    consultation_started_at: Optional[datetime] = None
    consultation_ended_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AppointmentListItem(BaseModel):
    """
    Used for lists
    """
    id: UUID
    appointment_number: str
    patient_id: UUID
    hospital: HospitalRef
    department: HospitalRef
    doctor: Optional[DoctorRef] = None
    date: datetime
    time_slot: TimeSlotOut
    status: str

    class Config:
        from_attributes = True


class AppointmentListPage(BaseModel):
    """
    Page the appointments list (with pagination).
    """
    items: List[AppointmentListItem]
    total: int
    limit: int
    offset: int
    has_next: bool
