"""
SQLAlchemy ORM models for MediSync.

Defines the complete database schema:
- Patients: one row per natural-key tuple (no storage-level constraint)
- Appointments: inferred identity, soft-deleted via deleted_at
- Invoices / Services: invoice natural key (invoice_number, centre)
- ScraperActivity: append-only audit and checkpoint log
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        default=None,
        onupdate=utcnow,
        nullable=True,
    )


# =============================================================================
# Patient Model
# =============================================================================


class Patient(Base, TimestampMixin):
    """Patient record keyed by (first_name, last_name, date_of_birth, insurance_number)."""

    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    # Natural key
    first_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    insurance_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Identification
    patient_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    title: Mapped[str | None] = mapped_column(String(50), nullable=True)
    courtesy_title: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Address
    address_complement: Mapped[str | None] = mapped_column(String(200), nullable=True)
    street: Mapped[str | None] = mapped_column(String(200), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    locality: Mapped[str | None] = mapped_column(String(200), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Contact
    phone1_label: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone1: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone2_label: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone2: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone3_label: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone3: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    sms_notification: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Personal
    language: Mapped[str | None] = mapped_column(String(50), nullable=True)
    nationality: Mapped[str | None] = mapped_column(String(100), nullable=True)
    date_of_death: Mapped[date | None] = mapped_column(Date, nullable=True)
    employer: Mapped[str | None] = mapped_column(String(200), nullable=True)
    profession: Mapped[str | None] = mapped_column(String(200), nullable=True)
    marital_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    maiden_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    sex: Mapped[str | None] = mapped_column(String(20), nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Care relationships
    family_doctor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    coordination: Mapped[str | None] = mapped_column(String(200), nullable=True)
    debtor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    contact: Mapped[str | None] = mapped_column(String(200), nullable=True)
    legal_representative: Mapped[str | None] = mapped_column(String(200), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    appointments: Mapped[list["Appointment"]] = relationship(
        "Appointment",
        back_populates="patient",
        passive_deletes=True,
    )
    invoices: Mapped[list["Invoice"]] = relationship(
        "Invoice",
        back_populates="patient",
        passive_deletes=True,
    )

    __table_args__ = (
        Index(
            "ix_patient_natural_key",
            "last_name",
            "first_name",
            "date_of_birth",
            "insurance_number",
        ),
    )

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name='{self.first_name} {self.last_name}')>"


# =============================================================================
# Appointment Model
# =============================================================================


class Appointment(Base, TimestampMixin):
    """Agenda entry. Identity is inferred by reconciliation; never purged."""

    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    patient_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    event_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    contact: Mapped[str | None] = mapped_column(String(200), nullable=True)
    centre: Mapped[str | None] = mapped_column(String(200), nullable=True)
    practitioner: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Tombstone
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)

    patient: Mapped["Patient"] = relationship("Patient", back_populates="appointments")

    __table_args__ = (
        Index("ix_appointment_patient_scheduled", "patient_id", "scheduled_at"),
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, at={self.scheduled_at})>"


# =============================================================================
# Invoice Model
# =============================================================================


class Invoice(Base, TimestampMixin):
    """Invoice keyed by (invoice_number, centre) when both are present."""

    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    patient_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    centre: Mapped[str | None] = mapped_column(String(200), nullable=True)
    invoice_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    patient_insurance_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    insured_person_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reimbursement_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    law: Mapped[str | None] = mapped_column(String(50), nullable=True)
    treatment_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    insured_card_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    treatment_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    treatment_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    service_location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    prescribing_doctor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    prescribing_doctor_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    case_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    decision_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    patient: Mapped["Patient"] = relationship("Patient", back_populates="invoices")
    services: Mapped[list["Service"]] = relationship(
        "Service",
        back_populates="invoice",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_invoice_number_centre", "invoice_number", "centre"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', centre='{self.centre}')>"


# =============================================================================
# Service Model
# =============================================================================


class Service(Base):
    """Invoice line item. Replaced wholesale whenever its invoice is resynced."""

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    service_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    position_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    points: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    point_value: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="services")

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, invoice_id={self.invoice_id}, position='{self.position_number}')>"


# =============================================================================
# Scraper Activity Model
# =============================================================================


class ScraperActivity(Base):
    """Append-only record of one processed patient within a run."""

    __tablename__ = "scraper_activity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    patient_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    page_index: Mapped[int] = mapped_column(Integer, nullable=False)
    patient_index: Mapped[int] = mapped_column(Integer, nullable=False)
    action_type: Mapped[str] = mapped_column(String(20), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_activity_run_position", "run_id", "page_index", "patient_index"),
    )

    def __repr__(self) -> str:
        return (
            f"<ScraperActivity(run_id={self.run_id}, page={self.page_index}, "
            f"row={self.patient_index}, action='{self.action_type}')>"
        )
