"""initial scheduling schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from app.db.base import UTCDateTime

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", UTCDateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "hospitals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("code", sa.String(20), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        "departments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("hospital_id", sa.Uuid(), sa.ForeignKey("hospitals.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("code", sa.String(20), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("hospital_id", "code", name="uq_department_hospital_code"),
    )
    op.create_index("ix_departments_hospital_id", "departments", ["hospital_id"])

    op.create_table(
        "patients",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("full_name", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30)),
        sa.Column("health_card_id", sa.String(20), nullable=False, unique=True),
        *_timestamps(),
        sa.CheckConstraint("email = lower(email)", name="ck_patients_email_lower"),
    )
    op.create_index("ix_patients_email", "patients", ["email"], unique=True)

    op.create_table(
        "doctors",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30)),
        sa.Column("specialization", sa.String(120), nullable=False),
        sa.Column("experience_years", sa.Integer(), nullable=False),
        sa.Column("available_days", sa.JSON(), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("experience_years >= 0", name="ck_doctors_experience_nonneg"),
    )
    op.create_index("ix_doctors_email", "doctors", ["email"], unique=True)

    op.create_table(
        "doctor_leaves",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("doctor_id", sa.Uuid(), sa.ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(255)),
        *_timestamps(),
        sa.CheckConstraint("start_date <= end_date", name="ck_leave_date_order"),
    )
    op.create_index("ix_leave_doctor_start", "doctor_leaves", ["doctor_id", "start_date"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("appointment_number", sa.String(20), nullable=False, unique=True),
        sa.Column("patient_id", sa.Uuid(), sa.ForeignKey("patients.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("hospital_id", sa.Uuid(), sa.ForeignKey("hospitals.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("department_id", sa.Uuid(), sa.ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("doctor_id", sa.Uuid(), sa.ForeignKey("doctors.id", ondelete="SET NULL")),
        sa.Column("date", UTCDateTime(), nullable=False),
        sa.Column("time_slot_start", sa.String(5), nullable=False),
        sa.Column("time_slot_end", sa.String(5), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="BOOKED"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="NORMAL"),
        sa.Column("reason", sa.String(500), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("cancellation_reason", sa.String(500)),
        sa.Column("cancelled_by_id", sa.Uuid()),
        sa.Column("cancelled_by_type", sa.String(10)),
        sa.Column("cancelled_at", UTCDateTime()),
        sa.Column("created_by_id", sa.Uuid(), nullable=False),
        sa.Column("created_by_type", sa.String(10), nullable=False),
        sa.Column("consultation_started_at", UTCDateTime()),
        sa.Column("consultation_ended_at", UTCDateTime()),
        *_timestamps(),
    )
    op.create_index("ix_appt_patient_date", "appointments", ["patient_id", "date"])
    op.create_index("ix_appt_doctor_date", "appointments", ["doctor_id", "date"])
    op.create_index(
        "ix_appt_scope_date_status", "appointments", ["hospital_id", "department_id", "date", "status"]
    )
    op.create_index("ix_appt_status", "appointments", ["status"])

    op.create_table(
        "scheduling_locks",
        sa.Column("hospital_id", sa.Uuid(), primary_key=True),
        sa.Column("department_id", sa.Uuid(), primary_key=True),
        sa.Column("version", sa.Integer(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("scheduling_locks")
    op.drop_index("ix_appt_status", table_name="appointments")
    op.drop_index("ix_appt_scope_date_status", table_name="appointments")
    op.drop_index("ix_appt_doctor_date", table_name="appointments")
    op.drop_index("ix_appt_patient_date", table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("ix_leave_doctor_start", table_name="doctor_leaves")
    op.drop_table("doctor_leaves")
    op.drop_index("ix_doctors_email", table_name="doctors")
    op.drop_table("doctors")
    op.drop_index("ix_patients_email", table_name="patients")
    op.drop_table("patients")
    op.drop_index("ix_departments_hospital_id", table_name="departments")
    op.drop_table("departments")
    op.drop_table("hospitals")
