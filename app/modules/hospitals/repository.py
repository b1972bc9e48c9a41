# app/modules/hospitals/repository.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.hospitals.models import Department, Hospital


async def get_hospital(db: AsyncSession, hospital_id: UUID) -> Optional[Hospital]:
    return await db.get(Hospital, hospital_id)


async def get_department(db: AsyncSession, department_id: UUID) -> Optional[Department]:
    return await db.get(Department, department_id)


async def create_hospital(db: AsyncSession, *, name: str, code: str) -> Hospital:
    hospital = Hospital(name=name.strip(), code=code.strip().upper(), departments=[])
    db.add(hospital)
    await db.flush()
    return hospital


async def create_department(
    db: AsyncSession, hospital: Hospital, *, name: str, code: str
) -> Department:
    department = Department(name=name.strip(), code=code.strip().upper())
    hospital.departments.append(department)
    await db.flush()
    return department
