"""SQLAlchemy ORM models for the clinic domain.

Every tenant-scoped model carries a non-null ``clinic_id``; the list of
models the interceptor scopes lives in ``backend.app.tenancy.registry``.
"""

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class ClinicScopedMixin(TimestampMixin):
    """Columns shared by every tenant-scoped table."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    @declared_attr
    def clinic_id(cls) -> Mapped[str]:
        return mapped_column(
            String(36), ForeignKey("clinic.id", ondelete="CASCADE"), nullable=False, index=True
        )


class Clinic(TimestampMixin, Base):
    """Clinic table - top-level tenancy boundary."""

    __tablename__ = "clinic"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    timezone: Mapped[str] = mapped_column(Text, default="UTC", nullable=False)
    tier: Mapped[str] = mapped_column(String(32), default="CAPTURE", nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class User(TimestampMixin, Base):
    """User table - clinic staff accounts."""

    __tablename__ = "user"
    __table_args__ = (UniqueConstraint("email", name="uq_user_email"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    clinic_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("clinic.id"), nullable=True, index=True
    )
    email: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(32), default="DOCTOR", nullable=False)


class Patient(ClinicScopedMixin, Base):
    __tablename__ = "patient"
    __table_args__ = (Index("idx_patient_clinic_updated", "clinic_id", "updated_at"),)

    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    phone_number: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    gender: Mapped[str] = mapped_column(String(16), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    blood_group: Mapped[str | None] = mapped_column(String(8), nullable=True)
    allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    medical_history: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)


class Appointment(ClinicScopedMixin, Base):
    __tablename__ = "appointment"
    __table_args__ = (Index("idx_appointment_clinic_start", "clinic_id", "start_time"),)

    patient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("patient.id", ondelete="CASCADE"), nullable=False
    )
    doctor_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("user.id"), nullable=True
    )
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="scheduled", nullable=False)
    type: Mapped[str] = mapped_column(String(32), default="consultation", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class Prescription(ClinicScopedMixin, Base):
    __tablename__ = "prescription"

    patient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("patient.id", ondelete="CASCADE"), nullable=False
    )
    appointment_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("appointment.id"), nullable=True
    )
    medications: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)


class Invoice(ClinicScopedMixin, Base):
    __tablename__ = "invoice"

    patient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("patient.id", ondelete="CASCADE"), nullable=False
    )
    appointment_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("appointment.id"), nullable=True
    )
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False)


class Document(ClinicScopedMixin, Base):
    __tablename__ = "document"

    patient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("patient.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    mime_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)


class VitalSign(ClinicScopedMixin, Base):
    __tablename__ = "vital_sign"

    patient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("patient.id", ondelete="CASCADE"), nullable=False
    )
    appointment_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("appointment.id"), nullable=True
    )
    height_cm: Mapped[Decimal | None] = mapped_column(Numeric(5, 1), nullable=True)
    weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(5, 1), nullable=True)
    blood_pressure: Mapped[str | None] = mapped_column(String(16), nullable=True)
    pulse: Mapped[int | None] = mapped_column(Integer, nullable=True)
    temperature_c: Mapped[Decimal | None] = mapped_column(Numeric(4, 1), nullable=True)


class LabTest(ClinicScopedMixin, Base):
    __tablename__ = "lab_test"

    patient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("patient.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="ordered", nullable=False)
    result: Mapped[str | None] = mapped_column(Text, nullable=True)


class Reminder(ClinicScopedMixin, Base):
    __tablename__ = "reminder"

    appointment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("appointment.id", ondelete="CASCADE"), nullable=False
    )
    channel: Mapped[str] = mapped_column(String(16), default="whatsapp", nullable=False)
    scheduled_for: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False)


class QueueEntry(ClinicScopedMixin, Base):
    __tablename__ = "queue_entry"

    patient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("patient.id", ondelete="CASCADE"), nullable=False
    )
    appointment_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("appointment.id"), nullable=True
    )
    token_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="waiting", nullable=False)


class CustomField(ClinicScopedMixin, Base):
    __tablename__ = "custom_field"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    field_type: Mapped[str] = mapped_column(String(16), nullable=False)
    options: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)


class PrescriptionTemplate(ClinicScopedMixin, Base):
    __tablename__ = "prescription_template"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    medications: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)


class ClinicalTemplate(ClinicScopedMixin, Base):
    __tablename__ = "clinical_template"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)


class SystemMetric(Base):
    """Platform-wide metric samples; not tenant-scoped."""

    __tablename__ = "system_metric"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


class AuditLog(Base):
    """Audit trail; written with an explicit clinic_id, not auto-scoped."""

    __tablename__ = "audit_log"
    __table_args__ = (Index("idx_audit_clinic_created", "clinic_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    clinic_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


MODELS: dict[str, type[Base]] = {
    model.__name__: model
    for model in (
        Clinic,
        User,
        Patient,
        Appointment,
        Prescription,
        Invoice,
        Document,
        VitalSign,
        LabTest,
        Reminder,
        QueueEntry,
        CustomField,
        PrescriptionTemplate,
        ClinicalTemplate,
        SystemMetric,
        AuditLog,
    )
}
