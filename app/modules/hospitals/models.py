# app/modules/hospitals/models.py
from __future__ import annotations

import uuid
from typing import List

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class Hospital(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    __tablename__ = "hospitals"

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    departments: Mapped[List["Department"]] = relationship(
        back_populates="hospital",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class Department(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    A department inside one hospital. Appointment conflicts are scoped to
    (hospital, department).
    """

    __tablename__ = "departments"

    hospital_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("hospitals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False)

    hospital: Mapped[Hospital] = relationship(back_populates="departments", lazy="joined")

    __table_args__ = (
        UniqueConstraint("hospital_id", "code", name="uq_department_hospital_code"),
    )
