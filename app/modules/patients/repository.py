# app/modules/patients/repository.py
from __future__ import annotations

import random
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.patients.models import Patient


def make_health_card_id(year: Optional[int] = None) -> str:
    """HC-YYYY-NNNNN"""
    year = year or date.today().year
    return f"HC-{year}-{random.randint(0, 99999):05d}"


async def get_patient(db: AsyncSession, patient_id: UUID) -> Optional[Patient]:
    return await db.get(Patient, patient_id)


async def create_patient(
    db: AsyncSession,
    *,
    full_name: str,
    email: str,
    phone: Optional[str] = None,
    health_card_id: Optional[str] = None,
) -> Patient:
    patient = Patient(
        full_name=full_name.strip(),
        email=email.strip().lower(),
        phone=phone,
        health_card_id=health_card_id or make_health_card_id(),
    )
    db.add(patient)
    await db.flush()
    return patient
