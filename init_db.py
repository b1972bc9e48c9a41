# init_db.py
import argparse
import asyncio
import logging

from app.db.base import Base
from app.db.sql import AsyncSessionLocal, engine
from app.core.security import hash_password
from app.models import load_models

# IMPORTANT: import all models so that Base.metadata knows them
load_models()

from app.modules.doctors.repository import create_doctor  # noqa: E402
from app.modules.hospitals.repository import create_department, create_hospital  # noqa: E402
from app.modules.patients.repository import create_patient  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database schema recreated successfully!")


async def seed_demo():
    """One hospital, two departments, a doctor and a patient for local testing."""
    async with AsyncSessionLocal() as session:
        hospital = await create_hospital(session, name="Colombo General Hospital", code="CGH")
        opd = await create_department(session, hospital, name="Outpatient", code="OPD")
        await create_department(session, hospital, name="Cardiology", code="CARD")
        doctor = await create_doctor(
            session,
            first_name="Nimal",
            last_name="Perera",
            email="nimal.perera@example.org",
            password_hash=hash_password("changeme123"),
            specialization="General Medicine",
            experience_years=12,
            available_days=["Monday", "Wednesday", "Friday"],
        )
        patient = await create_patient(session, full_name="Kasun Silva", email="kasun@example.org")
        await session.commit()

    logger.info("Seeded hospital=%s department=%s doctor=%s patient=%s", hospital.id, opd.id, doctor.id, patient.id)


async def main(seed: bool):
    await init_models()
    if seed:
        await seed_demo()
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Recreate the database schema")
    parser.add_argument("--seed", action="store_true", help="insert demo hospital/doctor/patient rows")
    asyncio.run(main(parser.parse_args().seed))
