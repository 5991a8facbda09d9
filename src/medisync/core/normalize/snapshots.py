"""
Freshly observed records, as produced by the portal automation and the
document extractor.

A snapshot carries typed values (dates, Decimals) rather than raw strings;
the mapping from portal text happens in the ``from_raw`` constructors.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from .parsing import (
    clean_text,
    parse_amount,
    parse_date_value,
    parse_datetime_value,
    parse_duration_minutes,
    parse_flag,
)


# =============================================================================
# Patient
# =============================================================================


@dataclass
class PatientSnapshot:
    """Patient detail as shown on the portal."""

    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    insurance_number: str | None = None  # N° AVS

    patient_number: str | None = None
    title: str | None = None
    courtesy_title: str | None = None
    address_complement: str | None = None
    street: str | None = None
    postal_code: str | None = None
    locality: str | None = None
    country: str | None = None
    phone1_label: str | None = None
    phone1: str | None = None
    phone2_label: str | None = None
    phone2: str | None = None
    phone3_label: str | None = None
    phone3: str | None = None
    email: str | None = None
    sms_notification: bool | None = None
    language: str | None = None
    nationality: str | None = None
    date_of_death: date | None = None
    employer: str | None = None
    profession: str | None = None
    marital_status: str | None = None
    maiden_name: str | None = None
    family_doctor: str | None = None
    sex: str | None = None
    gender: str | None = None
    coordination: str | None = None
    debtor: str | None = None
    contact: str | None = None
    legal_representative: str | None = None
    comment: str | None = None

    @property
    def natural_key(self) -> tuple[str | None, str | None, date | None, str | None]:
        return (self.first_name, self.last_name, self.date_of_birth, self.insurance_number)

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or "<unnamed>"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "PatientSnapshot":
        """Build a snapshot from scraped strings keyed by field name."""
        values: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in raw:
                continue
            value = raw[f.name]
            if f.name in ("date_of_birth", "date_of_death"):
                values[f.name] = parse_date_value(value)
            elif f.name == "sms_notification":
                values[f.name] = parse_flag(value)
            else:
                values[f.name] = clean_text(value)
        return cls(**values)


PATIENT_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(PatientSnapshot))


# =============================================================================
# Appointment
# =============================================================================


@dataclass
class AppointmentSnapshot:
    """One row of the patient's agenda."""

    scheduled_at: datetime | None = None
    status: str | None = None
    duration_minutes: int | None = None
    event_name: str | None = None
    contact: str | None = None
    centre: str | None = None
    practitioner: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "AppointmentSnapshot":
        return cls(
            scheduled_at=parse_datetime_value(raw.get("scheduled_at")),
            status=clean_text(raw.get("status")),
            duration_minutes=parse_duration_minutes(raw.get("duration_minutes")),
            event_name=clean_text(raw.get("event_name")),
            contact=clean_text(raw.get("contact")),
            centre=clean_text(raw.get("centre")),
            practitioner=clean_text(raw.get("practitioner")),
        )


APPOINTMENT_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(AppointmentSnapshot))


# =============================================================================
# Invoice
# =============================================================================


@dataclass
class ServiceSnapshot:
    """A single invoiced service line (prestation)."""

    service_date: date | None = None
    quantity: Decimal | None = None
    position_number: str | None = None
    description: str | None = None
    unit_value: Decimal | None = None
    points: Decimal | None = None
    point_value: Decimal | None = None
    amount: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "ServiceSnapshot":
        return cls(
            service_date=parse_date_value(raw.get("service_date")),
            quantity=parse_amount(raw.get("quantity")),
            position_number=clean_text(raw.get("position_number")),
            description=clean_text(raw.get("description")),
            unit_value=parse_amount(raw.get("unit_value")),
            points=parse_amount(raw.get("points")),
            point_value=parse_amount(raw.get("point_value")),
            amount=parse_amount(raw.get("amount")),
        )


SERVICE_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(ServiceSnapshot))


@dataclass
class InvoiceSnapshot:
    """An invoice with its service lines."""

    invoice_number: str | None = None
    centre: str | None = None
    invoice_date: date | None = None
    patient_insurance_number: str | None = None
    insured_person_number: str | None = None
    reimbursement_type: str | None = None
    law: str | None = None
    treatment_type: str | None = None
    insured_card_number: str | None = None
    treatment_start: date | None = None
    treatment_end: date | None = None
    service_location: str | None = None
    prescribing_doctor: str | None = None
    prescribing_doctor_address: str | None = None
    case_date: date | None = None
    decision_number: str | None = None
    total_amount: Decimal | None = None

    services: list[ServiceSnapshot] = field(default_factory=list)

    @property
    def has_natural_key(self) -> bool:
        return bool(self.invoice_number) and bool(self.centre)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_raw(
        cls,
        raw: dict[str, Any],
        services: list[ServiceSnapshot] | None = None,
    ) -> "InvoiceSnapshot":
        dates = ("invoice_date", "treatment_start", "treatment_end", "case_date")
        values: dict[str, Any] = {}
        for name in INVOICE_FIELDS:
            if name not in raw:
                continue
            if name in dates:
                values[name] = parse_date_value(raw[name])
            elif name == "total_amount":
                values[name] = parse_amount(raw[name])
            else:
                values[name] = clean_text(raw[name])
        return cls(**values, services=list(services or []))


INVOICE_FIELDS: tuple[str, ...] = tuple(
    f.name for f in fields(InvoiceSnapshot) if f.name != "services"
)


# =============================================================================
# Search filter
# =============================================================================


@dataclass
class PatientFilter:
    """Search criteria applied before traversal. Blank fields match everything."""

    last_name: str = ""
    first_name: str = ""
    date_of_birth: str = ""
