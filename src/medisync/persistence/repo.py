"""
Repository for database operations.

SqlRepository binds the reconciliation engine's storage capabilities to
SQLAlchemy. Every write commits immediately, so a failure part way
through a patient leaves the earlier writes in place.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, AsyncIterator, Sequence

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import RepositoryError
from ..core.normalize.snapshots import (
    INVOICE_FIELDS,
    AppointmentSnapshot,
    InvoiceSnapshot,
    PatientSnapshot,
    ServiceSnapshot,
)
from ..core.reconcile.repository import SyncRepository
from .models import (
    Appointment,
    Invoice,
    Patient,
    ScraperActivity,
    Service,
    new_id,
    utcnow,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute


def _null_aware(column: "InstrumentedAttribute[Any]", value: Any):
    """Equality that matches a None value only against a stored NULL."""
    if value is None:
        return column.is_(None)
    return column == value


def _invoice_values(snapshot: InvoiceSnapshot) -> dict[str, Any]:
    return {name: getattr(snapshot, name) for name in INVOICE_FIELDS}


@dataclass
class RunSummary:
    """Aggregate of the activity rows of one run."""

    run_id: str
    patients: int
    started_at: datetime
    last_activity_at: datetime


class SqlRepository(SyncRepository):
    """SQLAlchemy implementation of the repository capability set."""

    def __init__(self, session: "AsyncSession"):
        self.session = session

    @asynccontextmanager
    async def _write(self, action: str) -> AsyncIterator[None]:
        """Commit on success; roll back and wrap storage errors."""
        try:
            yield
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise RepositoryError(f"Failed to {action}: {e}", cause=e) from e

    @asynccontextmanager
    async def _read(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise RepositoryError(f"Failed to {action}: {e}", cause=e) from e

    # =========================================================================
    # Patients
    # =========================================================================

    async def find_patient_by_natural_key(
        self,
        first_name: str | None,
        last_name: str | None,
        date_of_birth: date | None,
        insurance_number: str | None,
    ) -> Patient | None:
        stmt = (
            select(Patient)
            .where(
                and_(
                    _null_aware(Patient.first_name, first_name),
                    _null_aware(Patient.last_name, last_name),
                    _null_aware(Patient.date_of_birth, date_of_birth),
                    _null_aware(Patient.insurance_number, insurance_number),
                )
            )
            .order_by(Patient.created_at)
            .limit(1)
        )
        async with self._read("find patient"):
            result = await self.session.execute(stmt)
            return result.scalars().first()

    async def insert_patient(self, snapshot: PatientSnapshot) -> str:
        patient = Patient(id=new_id(), **snapshot.to_dict())
        async with self._write("insert patient"):
            self.session.add(patient)
            await self.session.flush()
        return patient.id

    async def update_patient(self, patient_id: str, snapshot: PatientSnapshot) -> None:
        stmt = update(Patient).where(Patient.id == patient_id).values(**snapshot.to_dict())
        async with self._write("update patient"):
            await self.session.execute(stmt)

    async def delete_patient(self, patient_id: str) -> None:
        invoice_ids = select(Invoice.id).where(Invoice.patient_id == patient_id)
        async with self._write("delete patient"):
            await self.session.execute(delete(Service).where(Service.invoice_id.in_(invoice_ids)))
            await self.session.execute(delete(Invoice).where(Invoice.patient_id == patient_id))
            await self.session.execute(delete(Appointment).where(Appointment.patient_id == patient_id))
            await self.session.execute(
                delete(ScraperActivity).where(ScraperActivity.patient_id == patient_id)
            )
            await self.session.execute(delete(Patient).where(Patient.id == patient_id))

    async def get_patient(self, patient_id: str) -> Patient | None:
        async with self._read("get patient"):
            return await self.session.get(Patient, patient_id)

    async def count_patients(self) -> int:
        async with self._read("count patients"):
            result = await self.session.execute(select(func.count(Patient.id)))
            return result.scalar_one()

    # =========================================================================
    # Appointments
    # =========================================================================

    async def list_active_appointments(self, patient_id: str) -> Sequence[Appointment]:
        stmt = (
            select(Appointment)
            .where(
                Appointment.patient_id == patient_id,
                Appointment.deleted_at.is_(None),
            )
            .order_by(Appointment.scheduled_at, Appointment.created_at)
        )
        async with self._read("list appointments"):
            result = await self.session.execute(stmt)
            return result.scalars().all()

    async def list_appointments(
        self,
        patient_id: str,
        include_deleted: bool = False,
    ) -> Sequence[Appointment]:
        stmt = select(Appointment).where(Appointment.patient_id == patient_id)
        if not include_deleted:
            stmt = stmt.where(Appointment.deleted_at.is_(None))
        stmt = stmt.order_by(Appointment.scheduled_at, Appointment.created_at)
        async with self._read("list appointments"):
            result = await self.session.execute(stmt)
            return result.scalars().all()

    async def insert_appointment(self, patient_id: str, snapshot: AppointmentSnapshot) -> str:
        appointment = Appointment(id=new_id(), patient_id=patient_id, **snapshot.to_dict())
        async with self._write("insert appointment"):
            self.session.add(appointment)
            await self.session.flush()
        return appointment.id

    async def update_appointment(self, appointment_id: str, snapshot: AppointmentSnapshot) -> None:
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .values(**snapshot.to_dict())
        )
        async with self._write("update appointment"):
            await self.session.execute(stmt)

    async def soft_delete_appointment(self, appointment_id: str) -> None:
        stmt = (
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.deleted_at.is_(None),
            )
            .values(deleted_at=utcnow())
        )
        async with self._write("soft delete appointment"):
            await self.session.execute(stmt)

    # =========================================================================
    # Invoices
    # =========================================================================

    async def find_invoice(self, invoice_number: str, centre: str) -> Invoice | None:
        stmt = (
            select(Invoice)
            .where(Invoice.invoice_number == invoice_number, Invoice.centre == centre)
            .order_by(Invoice.created_at)
            .limit(1)
        )
        async with self._read("find invoice"):
            result = await self.session.execute(stmt)
            return result.scalars().first()

    async def list_invoices(self, patient_id: str) -> Sequence[Invoice]:
        stmt = (
            select(Invoice)
            .where(Invoice.patient_id == patient_id)
            .order_by(Invoice.invoice_date, Invoice.created_at)
        )
        async with self._read("list invoices"):
            result = await self.session.execute(stmt)
            return result.scalars().all()

    async def insert_invoice(self, patient_id: str, snapshot: InvoiceSnapshot) -> str:
        invoice = Invoice(id=new_id(), patient_id=patient_id, **_invoice_values(snapshot))
        async with self._write("insert invoice"):
            self.session.add(invoice)
            await self.session.flush()
        return invoice.id

    async def update_invoice(
        self,
        invoice_id: str,
        patient_id: str,
        snapshot: InvoiceSnapshot,
    ) -> None:
        stmt = (
            update(Invoice)
            .where(Invoice.id == invoice_id)
            .values(patient_id=patient_id, **_invoice_values(snapshot))
        )
        async with self._write("update invoice"):
            await self.session.execute(stmt)

    async def replace_services(
        self,
        invoice_id: str,
        services: Sequence[ServiceSnapshot],
    ) -> None:
        async with self._write("replace services"):
            await self.session.execute(delete(Service).where(Service.invoice_id == invoice_id))
            self.session.add_all(
                Service(invoice_id=invoice_id, **service.to_dict()) for service in services
            )
            await self.session.flush()

    async def list_services(self, invoice_id: str) -> Sequence[Service]:
        stmt = select(Service).where(Service.invoice_id == invoice_id).order_by(Service.id)
        async with self._read("list services"):
            result = await self.session.execute(stmt)
            return result.scalars().all()

    # =========================================================================
    # Activity
    # =========================================================================

    async def insert_activity_record(
        self,
        run_id: str,
        patient_id: str,
        page_index: int,
        patient_index: int,
        action_type: str,
    ) -> None:
        activity = ScraperActivity(
            run_id=run_id,
            patient_id=patient_id,
            page_index=page_index,
            patient_index=patient_index,
            action_type=action_type,
        )
        async with self._write("insert activity record"):
            self.session.add(activity)
            await self.session.flush()

    async def list_activities(
        self,
        run_id: str | None = None,
        limit: int = 50,
    ) -> Sequence[ScraperActivity]:
        """Most recent activity rows first."""
        stmt = select(ScraperActivity)
        if run_id is not None:
            stmt = stmt.where(ScraperActivity.run_id == run_id)
        stmt = stmt.order_by(ScraperActivity.id.desc()).limit(limit)
        async with self._read("list activities"):
            result = await self.session.execute(stmt)
            return result.scalars().all()

    async def last_position(self, run_id: str) -> tuple[int, int] | None:
        """(page_index, patient_index) of the last activity row of a run."""
        activities = await self.list_activities(run_id=run_id, limit=1)
        if not activities:
            return None
        return (activities[0].page_index, activities[0].patient_index)

    async def list_runs(self, limit: int = 20) -> list[RunSummary]:
        stmt = (
            select(
                ScraperActivity.run_id,
                func.count(ScraperActivity.id),
                func.min(ScraperActivity.created_at),
                func.max(ScraperActivity.created_at),
            )
            .group_by(ScraperActivity.run_id)
            .order_by(func.max(ScraperActivity.created_at).desc())
            .limit(limit)
        )
        async with self._read("list runs"):
            result = await self.session.execute(stmt)
            return [
                RunSummary(
                    run_id=run_id,
                    patients=count,
                    started_at=started,
                    last_activity_at=last,
                )
                for run_id, count, started, last in result.all()
            ]

    async def count_by_action(self, run_id: str) -> dict[str, int]:
        stmt = (
            select(ScraperActivity.action_type, func.count(ScraperActivity.id))
            .where(ScraperActivity.run_id == run_id)
            .group_by(ScraperActivity.action_type)
        )
        async with self._read("count activities"):
            result = await self.session.execute(stmt)
            return {action: count for action, count in result.all()}

    async def record_counts(self) -> dict[str, int]:
        """Row counts per table for status output."""
        counts: dict[str, int] = {}
        async with self._read("count records"):
            for label, stmt in (
                ("patients", select(func.count(Patient.id))),
                (
                    "appointments",
                    select(func.count(Appointment.id)).where(Appointment.deleted_at.is_(None)),
                ),
                (
                    "appointments_deleted",
                    select(func.count(Appointment.id)).where(Appointment.deleted_at.is_not(None)),
                ),
                ("invoices", select(func.count(Invoice.id))),
                ("services", select(func.count(Service.id))),
                ("activities", select(func.count(ScraperActivity.id))),
            ):
                result = await self.session.execute(stmt)
                counts[label] = result.scalar_one()
        return counts
