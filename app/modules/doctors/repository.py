# app/modules/doctors/repository.py
from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import DoctorAlreadyExists
from app.modules.doctors.models import Doctor, DoctorLeave


async def get_doctor(db: AsyncSession, doctor_id: UUID) -> Optional[Doctor]:
    """
    Returns a Doctor (leaves loaded) by primary key or None.
    """
    return await db.get(Doctor, doctor_id, populate_existing=True)


async def get_by_email(db: AsyncSession, email: str) -> Optional[Doctor]:
    stmt = select(Doctor).where(Doctor.email == email.strip().lower())
    return (await db.execute(stmt)).scalar_one_or_none()


async def create_doctor(
    db: AsyncSession,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password_hash: str,
    specialization: str,
    experience_years: int = 0,
    phone: Optional[str] = None,
    available_days: Sequence[str] = (),
) -> Doctor:
    """
    Inserts a doctor and returns the persisted ORM instance.

    Notes:
    - Expects an already *hashed* password.
    - A unique-email violation becomes DoctorAlreadyExists.
    """
    doctor = Doctor(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email.strip().lower(),
        password_hash=password_hash,
        specialization=specialization.strip(),
        experience_years=experience_years,
        phone=phone,
        available_days=list(available_days),
        leaves=[],
    )
    db.add(doctor)
    try:
        await db.flush()
    except IntegrityError as exc:
        message = str(exc.orig).lower() if exc.orig else str(exc).lower()
        if "email" in message or "unique" in message:
            raise DoctorAlreadyExists() from exc
        raise
    return doctor


async def add_leave(
    db: AsyncSession,
    doctor: Doctor,
    *,
    start_date: date,
    end_date: date,
    reason: Optional[str] = None,
) -> DoctorLeave:
    # append through the relationship so doctor.leaves stays current
    leave = DoctorLeave(start_date=start_date, end_date=end_date, reason=reason)
    doctor.leaves.append(leave)
    await db.flush()
    return leave


async def list_leaves(db: AsyncSession, *, doctor_id: UUID) -> List[DoctorLeave]:
    stmt = (
        select(DoctorLeave)
        .where(DoctorLeave.doctor_id == doctor_id)
        .order_by(DoctorLeave.start_date)
    )
    return list((await db.execute(stmt)).scalars().all())
