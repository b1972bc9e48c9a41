# app/modules/appointments/repository.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.appointments.models import (
    ACTIVE_STATUSES,
    Appointment,
    SchedulingLock,
)

_UPSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


async def get_appointment(db: AsyncSession, appointment_id: UUID) -> Optional[Appointment]:
    """
    Load one appointment with hospital/department/doctor/patient joined.
    Always refreshes the identity-mapped instance.
    """
    stmt = (
        select(Appointment)
        .where(Appointment.id == appointment_id)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).unique().scalar_one_or_none()


async def find_appointment(db: AsyncSession, **criteria: Any) -> Optional[Appointment]:
    """
    First appointment matching every column == value pair in `criteria`.
    """
    stmt = select(Appointment).filter_by(**criteria).limit(1)
    return (await db.execute(stmt)).unique().scalar_one_or_none()


async def appointment_number_exists(db: AsyncSession, number: str) -> bool:
    stmt = select(Appointment.id).where(Appointment.appointment_number == number).limit(1)
    return (await db.execute(stmt)).scalar_one_or_none() is not None


async def insert_appointment(db: AsyncSession, appointment: Appointment) -> Appointment:
    """
    INSERT and flush, so unique violations surface here as IntegrityError.
    """
    db.add(appointment)
    await db.flush()
    return appointment


async def update_appointment(
    db: AsyncSession,
    appointment_id: UUID,
    patch: Mapping[str, Any],
    *,
    only_if_status: Optional[Iterable[str]] = None,
) -> Optional[Appointment]:
    """
    UPDATE one appointment and return it reloaded.

    With `only_if_status` the write is a compare-and-set on the stored
    status: returns None when the row no longer has one of those statuses.
    """
    stmt = (
        update(Appointment)
        .where(Appointment.id == appointment_id)
        .values(**patch)
        .execution_options(synchronize_session=False)
    )
    if only_if_status is not None:
        stmt = stmt.where(Appointment.status.in_(tuple(only_if_status)))
    result = await db.execute(stmt)
    if result.rowcount != 1:
        return None
    return await get_appointment(db, appointment_id)


async def find_conflicting(
    db: AsyncSession,
    *,
    hospital_id: UUID,
    department_id: UUID,
    window_start: datetime,
    window_end: datetime,
    exclude_id: Optional[UUID] = None,
) -> Optional[Appointment]:
    """
    First active (BOOKED/CONFIRMED) appointment of the hospital department
    whose date lies in [window_start, window_end], both bounds inclusive.
    """
    stmt = select(Appointment).where(
        Appointment.hospital_id == hospital_id,
        Appointment.department_id == department_id,
        Appointment.status.in_(ACTIVE_STATUSES),
        Appointment.date >= window_start,
        Appointment.date <= window_end,
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)
    stmt = stmt.order_by(Appointment.date).limit(1)
    return (await db.execute(stmt)).unique().scalar_one_or_none()


async def list_booked_starts(
    db: AsyncSession,
    *,
    doctor_id: UUID,
    day_start: datetime,
    day_end: datetime,
    statuses: Iterable[str],
) -> List[str]:
    """
    time_slot_start of the doctor's appointments in [day_start, day_end).
    """
    stmt = select(Appointment.time_slot_start).where(
        Appointment.doctor_id == doctor_id,
        Appointment.status.in_(tuple(statuses)),
        Appointment.date >= day_start,
        Appointment.date < day_end,
    )
    return list((await db.execute(stmt)).scalars().all())


async def _paged(
    db: AsyncSession, conditions: Sequence[Any], order_by: Sequence[Any], limit: int, offset: int
) -> Tuple[List[Appointment], int]:
    total_stmt = select(func.count()).select_from(Appointment).where(*conditions)
    total = (await db.execute(total_stmt)).scalar_one()

    stmt = select(Appointment).where(*conditions).order_by(*order_by).limit(limit).offset(offset)
    rows = (await db.execute(stmt)).unique().scalars().all()
    return list(rows), total


async def list_for_patient(
    db: AsyncSession,
    *,
    patient_id: UUID,
    statuses: Optional[Sequence[str]] = None,
    since: Optional[datetime] = None,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[Appointment], int]:
    conditions: List[Any] = [Appointment.patient_id == patient_id]
    if statuses:
        conditions.append(Appointment.status.in_(tuple(statuses)))
    if since is not None:
        conditions.append(Appointment.date >= since)
    # upcoming lists read soonest-first, history newest-first
    order = Appointment.date.asc() if since is not None else Appointment.date.desc()
    return await _paged(db, conditions, [order], limit, offset)


async def list_for_doctor(
    db: AsyncSession,
    *,
    doctor_id: UUID,
    statuses: Optional[Sequence[str]] = None,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[Appointment], int]:
    conditions: List[Any] = [Appointment.doctor_id == doctor_id]
    if statuses:
        conditions.append(Appointment.status.in_(tuple(statuses)))
    return await _paged(db, conditions, [Appointment.date.asc()], limit, offset)


async def lock_scope(db: AsyncSession, *, hospital_id: UUID, department_id: UUID) -> None:
    """
    Take the (hospital, department) booking lock for the current transaction.

    Upserts the lock row and bumps its version. Concurrent transactions for
    the same scope queue on that write until the holder commits or rolls back.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert_fn = _UPSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"scheduling lock not supported on {dialect}") from None

    stmt = insert_fn(SchedulingLock).values(
        hospital_id=hospital_id, department_id=department_id, version=1
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[SchedulingLock.hospital_id, SchedulingLock.department_id],
        set_={"version": SchedulingLock.version + 1},
    )
    await db.execute(stmt)
