"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- clinic, user
- clinic-scoped tables (patient, appointment, prescription, invoice,
  document, vital_sign, lab_test, reminder, queue_entry, custom_field,
  prescription_template, clinical_template)
- system_metric, audit_log
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

CLINIC_SCOPED_TABLES = (
    "patient",
    "appointment",
    "prescription",
    "invoice",
    "document",
    "vital_sign",
    "lab_test",
    "reminder",
    "queue_entry",
    "custom_field",
    "prescription_template",
    "clinical_template",
)


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _clinic_fk() -> sa.Column:
    return sa.Column(
        "clinic_id",
        sa.String(36),
        sa.ForeignKey("clinic.id", ondelete="CASCADE"),
        nullable=False,
    )


def _fk(name: str, target: str, nullable: bool = False, cascade: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.String(36),
        sa.ForeignKey(target, ondelete="CASCADE" if cascade else None),
        nullable=nullable,
    )


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "clinic",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("timezone", sa.Text(), nullable=False, server_default="UTC"),
        sa.Column("tier", sa.String(32), nullable=False, server_default="CAPTURE"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "user",
        _id(),
        sa.Column("clinic_id", sa.String(36), sa.ForeignKey("clinic.id"), nullable=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="DOCTOR"),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_user_email"),
    )
    op.create_index("ix_user_clinic_id", "user", ["clinic_id"])

    op.create_table(
        "patient",
        _id(),
        _clinic_fk(),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("phone_number", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("gender", sa.String(16), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("blood_group", sa.String(8), nullable=True),
        sa.Column("allergies", sa.Text(), nullable=True),
        sa.Column("medical_history", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_patient_clinic_updated", "patient", ["clinic_id", "updated_at"])

    op.create_table(
        "appointment",
        _id(),
        _clinic_fk(),
        _fk("patient_id", "patient.id"),
        _fk("doctor_id", "user.id", nullable=True, cascade=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="scheduled"),
        sa.Column("type", sa.String(32), nullable=False, server_default="consultation"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_appointment_clinic_start", "appointment", ["clinic_id", "start_time"])

    op.create_table(
        "prescription",
        _id(),
        _clinic_fk(),
        _fk("patient_id", "patient.id"),
        _fk("appointment_id", "appointment.id", nullable=True, cascade=False),
        sa.Column("medications", sa.JSON(), nullable=False),
        sa.Column("instructions", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "invoice",
        _id(),
        _clinic_fk(),
        _fk("patient_id", "patient.id"),
        _fk("appointment_id", "appointment.id", nullable=True, cascade=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        *_timestamps(),
    )

    op.create_table(
        "document",
        _id(),
        _clinic_fk(),
        _fk("patient_id", "patient.id"),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("mime_type", sa.Text(), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "vital_sign",
        _id(),
        _clinic_fk(),
        _fk("patient_id", "patient.id"),
        _fk("appointment_id", "appointment.id", nullable=True, cascade=False),
        sa.Column("height_cm", sa.Numeric(5, 1), nullable=True),
        sa.Column("weight_kg", sa.Numeric(5, 1), nullable=True),
        sa.Column("blood_pressure", sa.String(16), nullable=True),
        sa.Column("pulse", sa.Integer(), nullable=True),
        sa.Column("temperature_c", sa.Numeric(4, 1), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "lab_test",
        _id(),
        _clinic_fk(),
        _fk("patient_id", "patient.id"),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="ordered"),
        sa.Column("result", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "reminder",
        _id(),
        _clinic_fk(),
        _fk("appointment_id", "appointment.id"),
        sa.Column("channel", sa.String(16), nullable=False, server_default="whatsapp"),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        *_timestamps(),
    )

    op.create_table(
        "queue_entry",
        _id(),
        _clinic_fk(),
        _fk("patient_id", "patient.id"),
        _fk("appointment_id", "appointment.id", nullable=True, cascade=False),
        sa.Column("token_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="waiting"),
        *_timestamps(),
    )

    op.create_table(
        "custom_field",
        _id(),
        _clinic_fk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("field_type", sa.String(16), nullable=False),
        sa.Column("options", sa.JSON(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "prescription_template",
        _id(),
        _clinic_fk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("medications", sa.JSON(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "clinical_template",
        _id(),
        _clinic_fk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("content", sa.JSON(), nullable=False),
        *_timestamps(),
    )

    for table in CLINIC_SCOPED_TABLES:
        op.create_index(f"ix_{table}_clinic_id", table, ["clinic_id"])

    op.create_table(
        "system_metric",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("value", sa.Numeric(14, 4), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "audit_log",
        _id(),
        sa.Column("clinic_id", sa.String(36), nullable=True),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("resource_type", sa.String(64), nullable=False),
        sa.Column("resource_id", sa.String(36), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_audit_clinic_created", "audit_log", ["clinic_id", "created_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_audit_clinic_created", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("system_metric")

    for table in reversed(CLINIC_SCOPED_TABLES):
        op.drop_index(f"ix_{table}_clinic_id", table_name=table)
    op.drop_index("idx_appointment_clinic_start", table_name="appointment")
    op.drop_index("idx_patient_clinic_updated", table_name="patient")
    for table in reversed(CLINIC_SCOPED_TABLES):
        op.drop_table(table)

    op.drop_index("ix_user_clinic_id", table_name="user")
    op.drop_table("user")
    op.drop_table("clinic")
