# app/modules/doctors/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, SecretStr, StringConstraints, field_validator

from app.modules.doctors.availability import normalize_day_name

NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
PhoneStr = Annotated[str, StringConstraints(pattern=r"^\+?[0-9]{9,15}$")]
HHMM = Annotated[str, StringConstraints(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")]


class DoctorCreateRequest(BaseModel):
    """
    Payload for a receptionist adding a doctor.
    """
    first_name: NameStr
    last_name: NameStr
    email: EmailStr
    password: SecretStr = Field(..., min_length=8, description="Initial password, at least 8 chars")
    phone: Optional[PhoneStr] = None
    specialization: NameStr
    experience_years: int = Field(default=0, ge=0, le=70)
    available_days: List[str] = Field(default_factory=list, description='e.g. ["Monday", "Wednesday"]')

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("available_days")
    @classmethod
    def normalize_days(cls, v: List[str]) -> List[str]:
        days: List[str] = []
        for name in v:
            day = normalize_day_name(name)
            if day not in days:
                days.append(day)
        return days


class LeavePublic(BaseModel):
    id: UUID
    start_date: date
    end_date: date
    reason: Optional[str] = None

    class Config:
        from_attributes = True


class DoctorPublic(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    full_name: str
    email: EmailStr
    phone: Optional[str] = None
    specialization: str
    experience_years: int
    available_days: List[str]
    leaves: List[LeavePublic] = []
    created_at: datetime

    class Config:
        from_attributes = True


class LeaveCreateRequest(BaseModel):
    start_date: date
    end_date: date
    reason: Optional[str] = Field(default=None, max_length=255)

    @field_validator("end_date")
    @classmethod
    def _end_not_before_start(cls, v, info):
        start = info.data.get("start_date")
        if start and v < start:
            raise ValueError("end_date must not be before start_date")
        return v


class AvailableSlotsResponse(BaseModel):
    doctor_id: UUID
    day: date = Field(..., alias="date")
    slots: List[str]

    class Config:
        populate_by_name = True


class AvailabilityCheckRequest(BaseModel):
    day: date = Field(..., alias="date")
    time_slot: HHMM = Field(..., alias="timeSlot")

    class Config:
        populate_by_name = True


class AvailabilityCheckResponse(BaseModel):
    available: bool
    message: str
