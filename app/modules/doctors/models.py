# app/modules/doctors/models.py
from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy import JSON, CheckConstraint, Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class Doctor(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    Doctor profile plus weekly service days and leave periods.
    available_days holds English weekday names ("Monday", ...).
    """

    __tablename__ = "doctors"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    specialization: Mapped[str] = mapped_column(String(120), nullable=False)
    experience_years: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_days: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    leaves: Mapped[List["DoctorLeave"]] = relationship(
        back_populates="doctor",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="DoctorLeave.start_date",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    __table_args__ = (
        CheckConstraint("experience_years >= 0", name="ck_doctors_experience_nonneg"),
    )


class DoctorLeave(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """A leave period; both bounds are inclusive calendar dates."""

    __tablename__ = "doctor_leaves"

    doctor_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255))

    doctor: Mapped[Doctor] = relationship(back_populates="leaves")

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_leave_date_order"),
        Index("ix_leave_doctor_start", "doctor_id", "start_date"),
    )
