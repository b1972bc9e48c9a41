"""Shared fixtures: async SQLite database, frozen clock, seeded references."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.clock import FrozenClock
from app.core.security import Actor, hash_password
from app.db.base import Base
from app.models import load_models
from app.modules.appointments.service import AppointmentScheduler
from app.modules.appointments.validators import BookingRules
from app.modules.doctors.models import Doctor
from app.modules.doctors.repository import create_doctor
from app.modules.hospitals.models import Department, Hospital
from app.modules.hospitals.repository import create_department, create_hospital
from app.modules.notifications import RecordingNotifier
from app.modules.patients.models import Patient
from app.modules.patients.repository import create_patient

load_models()

COLOMBO = ZoneInfo("Asia/Colombo")

# Sunday 2025-06-01 09:00 in Colombo. 2025-06-10 is a Tuesday.
NOW = datetime(2025, 6, 1, 9, 0, tzinfo=COLOMBO)

# bcrypt is slow; hash once for every seeded doctor.
_PASSWORD_HASH = hash_password("s3cret-pass")


@dataclass
class World:
    hospital: Hospital
    department: Department
    other_department: Department
    doctor: Doctor
    patient: Patient
    other_patient: Patient


async def create_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_world(session: AsyncSession) -> World:
    hospital = await create_hospital(session, name="Colombo General Hospital", code="CGH")
    department = await create_department(session, hospital, name="Outpatient", code="OPD")
    other = await create_department(session, hospital, name="Cardiology", code="CARD")
    doctor = await create_doctor(
        session,
        first_name="Nimal",
        last_name="Perera",
        email="nimal@example.org",
        password_hash=_PASSWORD_HASH,
        specialization="General Medicine",
        experience_years=10,
        available_days=["Monday", "Wednesday", "Friday"],
    )
    patient = await create_patient(session, full_name="Kasun Silva", email="kasun@example.org")
    other_patient = await create_patient(session, full_name="Dilini Fernando", email="dilini@example.org")
    return World(hospital, department, other, doctor, patient, other_patient)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False, class_=AsyncSession)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def world(session) -> World:
    world = await seed_world(session)
    await session.commit()
    return world


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def rules() -> BookingRules:
    return BookingRules(tz=COLOMBO)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def scheduler(session, clock, notifier, rules) -> AppointmentScheduler:
    return AppointmentScheduler(session, clock=clock, notifier=notifier, rules=rules)


@pytest.fixture
def patient_actor(world) -> Actor:
    return Actor(id=world.patient.id, role="patient")


@pytest.fixture
def staff_actor() -> Actor:
    return Actor(id=uuid.uuid4(), role="receptionist")


def booking(world: World, when: str, **extra) -> dict:
    """Create-appointment request for the seeded hospital department."""
    payload = {
        "hospital": str(world.hospital.id),
        "department": str(world.department.id),
        "date": when,
    }
    payload.update(extra)
    return payload
