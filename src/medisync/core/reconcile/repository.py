"""
Storage capabilities consumed by the reconciliation engine and the
activity tracker.

Stored records are returned as objects exposing the same attribute names
as the snapshot dataclasses plus ``id`` (and ``deleted_at`` for
appointments). Implementations wrap storage failures in RepositoryError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Sequence

from ..normalize.snapshots import (
    AppointmentSnapshot,
    InvoiceSnapshot,
    PatientSnapshot,
    ServiceSnapshot,
)


class SyncRepository(ABC):
    """Repository capability set."""

    # Patients

    @abstractmethod
    async def find_patient_by_natural_key(
        self,
        first_name: str | None,
        last_name: str | None,
        date_of_birth: date | None,
        insurance_number: str | None,
    ) -> Any | None:
        """Find a patient; a None key part matches only a stored NULL."""

    @abstractmethod
    async def insert_patient(self, snapshot: PatientSnapshot) -> str:
        """Insert a patient and return its generated id."""

    @abstractmethod
    async def update_patient(self, patient_id: str, snapshot: PatientSnapshot) -> None:
        """Overwrite every mapped field of a patient."""

    @abstractmethod
    async def delete_patient(self, patient_id: str) -> None:
        """Physically delete a patient with its dependent rows."""

    # Appointments

    @abstractmethod
    async def list_active_appointments(self, patient_id: str) -> Sequence[Any]:
        """Non-tombstoned appointments of a patient, in storage order."""

    @abstractmethod
    async def insert_appointment(self, patient_id: str, snapshot: AppointmentSnapshot) -> str:
        ...

    @abstractmethod
    async def update_appointment(self, appointment_id: str, snapshot: AppointmentSnapshot) -> None:
        ...

    @abstractmethod
    async def soft_delete_appointment(self, appointment_id: str) -> None:
        """Set the deletion timestamp; the row is kept."""

    # Invoices

    @abstractmethod
    async def find_invoice(self, invoice_number: str, centre: str) -> Any | None:
        ...

    @abstractmethod
    async def insert_invoice(self, patient_id: str, snapshot: InvoiceSnapshot) -> str:
        """Insert the invoice row only; services go through replace_services."""

    @abstractmethod
    async def update_invoice(
        self,
        invoice_id: str,
        patient_id: str,
        snapshot: InvoiceSnapshot,
    ) -> None:
        ...

    @abstractmethod
    async def replace_services(
        self,
        invoice_id: str,
        services: Sequence[ServiceSnapshot],
    ) -> None:
        """Delete every stored service of the invoice, then insert ``services``."""

    # Activity

    @abstractmethod
    async def insert_activity_record(
        self,
        run_id: str,
        patient_id: str,
        page_index: int,
        patient_index: int,
        action_type: str,
    ) -> None:
        ...
