"""Snapshot types and value parsing."""

from .parsing import (
    ParsedDate,
    clean_text,
    normalize_whitespace,
    parse_amount,
    parse_date,
    parse_date_value,
    parse_datetime_value,
    parse_duration_minutes,
    parse_flag,
    parse_int,
)
from .snapshots import (
    APPOINTMENT_FIELDS,
    INVOICE_FIELDS,
    PATIENT_FIELDS,
    SERVICE_FIELDS,
    AppointmentSnapshot,
    InvoiceSnapshot,
    PatientFilter,
    PatientSnapshot,
    ServiceSnapshot,
)

__all__ = [
    # Parsing
    "ParsedDate",
    "clean_text",
    "normalize_whitespace",
    "parse_amount",
    "parse_date",
    "parse_date_value",
    "parse_datetime_value",
    "parse_duration_minutes",
    "parse_flag",
    "parse_int",
    # Snapshots
    "APPOINTMENT_FIELDS",
    "INVOICE_FIELDS",
    "PATIENT_FIELDS",
    "SERVICE_FIELDS",
    "AppointmentSnapshot",
    "InvoiceSnapshot",
    "PatientFilter",
    "PatientSnapshot",
    "ServiceSnapshot",
]
