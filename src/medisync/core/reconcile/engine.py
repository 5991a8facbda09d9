"""
Reconciliation engine.

Merges a freshly scraped patient (with appointments and invoices) into
stored state with create / update / skip / soft-delete semantics. Every
operation is safe to repeat: the retry supervisor may hand the same
patient over more than once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Awaitable, Callable, Sequence

from ..errors import RepositoryError
from ..logging import get_logger
from ..normalize.snapshots import (
    APPOINTMENT_FIELDS,
    INVOICE_FIELDS,
    PATIENT_FIELDS,
    AppointmentSnapshot,
    InvoiceSnapshot,
    PatientSnapshot,
)
from .diff import FieldChange, compute_diff
from .matching import plan_appointments
from .repository import SyncRepository

logger = get_logger("reconcile")


class SyncAction(str, Enum):
    """Outcome classification for a record or a whole patient."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass
class ReconcileCounts:
    """Per-collection outcome counts."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    deleted: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.deleted)

    def to_dict(self) -> dict[str, int]:
        return {
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "deleted": self.deleted,
        }


@dataclass
class PatientUpsert:
    """Outcome of the patient upsert."""

    patient_id: str
    action: SyncAction
    changes: list[FieldChange] = field(default_factory=list)

    @property
    def created(self) -> bool:
        return self.action is SyncAction.CREATED


@dataclass
class SyncResult:
    """Everything one patient's synchronisation did."""

    patient: PatientUpsert
    appointments: ReconcileCounts
    invoices: ReconcileCounts

    @property
    def patient_id(self) -> str:
        return self.patient.patient_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "patient_id": self.patient.patient_id,
            "patient": self.patient.action.value,
            "appointments": self.appointments.to_dict(),
            "invoices": self.invoices.to_dict(),
        }


SyncCallback = Callable[[SyncResult], Awaitable[None]]


class ReconciliationEngine:
    """Diffs fresh snapshots against the repository and applies the result."""

    def __init__(
        self,
        repository: SyncRepository,
        today: Callable[[], date] = date.today,
    ):
        """Initialize the engine.

        Args:
            repository: Storage capabilities
            today: Clock used for the past/future appointment split
        """
        self.repository = repository
        self.today = today

    # =========================================================================
    # Patient
    # =========================================================================

    async def upsert_patient(self, snapshot: PatientSnapshot) -> PatientUpsert:
        """Insert or overwrite a patient found by its natural key."""
        existing = await self.repository.find_patient_by_natural_key(*snapshot.natural_key)

        if existing is None:
            patient_id = await self.repository.insert_patient(snapshot)
            logger.debug(f"Created patient {snapshot.display_name} ({patient_id})")
            return PatientUpsert(patient_id=patient_id, action=SyncAction.CREATED)

        diff = compute_diff(existing, snapshot, PATIENT_FIELDS)
        if not diff.has_changes:
            return PatientUpsert(patient_id=existing.id, action=SyncAction.SKIPPED)

        await self.repository.update_patient(existing.id, snapshot)
        logger.debug(f"Updated patient {existing.id}: {diff.summary}")
        return PatientUpsert(
            patient_id=existing.id,
            action=SyncAction.UPDATED,
            changes=diff.changes,
        )

    # =========================================================================
    # Appointments
    # =========================================================================

    async def reconcile_appointments(
        self,
        patient_id: str,
        fresh: Sequence[AppointmentSnapshot],
    ) -> ReconcileCounts:
        """Apply create / update / skip / tombstone to a patient's agenda."""
        counts = ReconcileCounts()
        stored = await self.repository.list_active_appointments(patient_id)
        plan = plan_appointments(stored, fresh, self.today())

        counts.skipped += len(plan.duplicates)

        for match in plan.matches:
            diff = compute_diff(match.stored, match.fresh, APPOINTMENT_FIELDS)
            if diff.has_changes:
                await self.repository.update_appointment(match.stored.id, match.fresh)
                counts.updated += 1
                logger.debug(
                    f"Updated appointment {match.stored.id} ({match.kind} match): {diff.summary}"
                )
            else:
                counts.skipped += 1

        for gone in plan.deletions:
            await self.repository.soft_delete_appointment(gone.id)
            counts.deleted += 1

        for entry in plan.inserts:
            await self.repository.insert_appointment(patient_id, entry)
            counts.created += 1

        return counts

    # =========================================================================
    # Invoices
    # =========================================================================

    async def reconcile_invoices(
        self,
        patient_id: str,
        fresh: Sequence[InvoiceSnapshot],
    ) -> ReconcileCounts:
        """Upsert invoices by (invoice_number, centre), replacing services on change."""
        counts = ReconcileCounts()

        for invoice in fresh:
            existing = None
            if invoice.has_natural_key:
                existing = await self.repository.find_invoice(
                    invoice.invoice_number,  # type: ignore[arg-type]
                    invoice.centre,  # type: ignore[arg-type]
                )

            if existing is None:
                invoice_id = await self.repository.insert_invoice(patient_id, invoice)
                await self.repository.replace_services(invoice_id, invoice.services)
                counts.created += 1
                continue

            diff = compute_diff(existing, invoice, INVOICE_FIELDS)
            if not diff.has_changes:
                counts.skipped += 1
                continue

            await self.repository.update_invoice(existing.id, patient_id, invoice)
            await self.repository.replace_services(existing.id, invoice.services)
            counts.updated += 1
            logger.debug(f"Updated invoice {invoice.invoice_number}: {diff.summary}")

        return counts

    # =========================================================================
    # Whole patient
    # =========================================================================

    async def synchronize(
        self,
        patient: PatientSnapshot,
        appointments: Sequence[AppointmentSnapshot],
        invoices: Sequence[InvoiceSnapshot],
        on_synced: SyncCallback | None = None,
    ) -> SyncResult:
        """Reconcile one patient's snapshot.

        ``on_synced`` runs inside the compensation scope: if it raises, a
        patient created by this call is deleted again, like any other
        failure after the patient insert.

        Raises:
            Whatever the repository or ``on_synced`` raised, after compensation
        """
        upsert = await self.upsert_patient(patient)

        try:
            result = SyncResult(
                patient=upsert,
                appointments=await self.reconcile_appointments(upsert.patient_id, appointments),
                invoices=await self.reconcile_invoices(upsert.patient_id, invoices),
            )
            if on_synced is not None:
                await on_synced(result)
        except Exception:
            if upsert.created:
                await self._compensate(upsert.patient_id)
            raise

        return result

    async def _compensate(self, patient_id: str) -> None:
        """Remove a patient created in the failed iteration."""
        logger.warning(f"Rolling back newly created patient {patient_id}")
        try:
            await self.repository.delete_patient(patient_id)
        except RepositoryError:
            logger.exception(f"Compensation failed; patient {patient_id} left in storage")
