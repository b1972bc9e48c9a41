# app/modules/patients/models.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class Patient(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    Patient record as seen by the booking core. Registration and profile
    editing live in the patient-portal service; rows here are read-only
    references for appointments.
    """

    __tablename__ = "patients"

    full_name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    # HC-YYYY-NNNNN
    health_card_id: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    __table_args__ = (
        CheckConstraint("email = lower(email)", name="ck_patients_email_lower"),
    )
