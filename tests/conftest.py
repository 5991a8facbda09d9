"""Pytest configuration and shared fixtures.

This module provides:
- An in-memory SQLite database per test (aiosqlite)
- A SqlRepository bound to it
- A scripted FakePortal standing in for the browser automation
- Snapshot builders
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from medisync.core.errors import NotAPatientRow, PortalError, RowAbsent
from medisync.core.normalize.snapshots import (
    AppointmentSnapshot,
    InvoiceSnapshot,
    PatientSnapshot,
    ServiceSnapshot,
)
from medisync.core.portals.base import PortalAutomation
from medisync.persistence.models import Base
from medisync.persistence.repo import SqlRepository

TODAY = date(2025, 6, 15)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine():
    """In-memory database with the full schema, shared across connections."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
def repository(db_session) -> SqlRepository:
    return SqlRepository(db_session)


# =============================================================================
# Snapshot Builders
# =============================================================================


def make_patient(**overrides) -> PatientSnapshot:
    values = {
        "first_name": "Jean",
        "last_name": "Dupont",
        "date_of_birth": date(1980, 2, 1),
        "insurance_number": "756.1234.5678.97",
        "locality": "Lausanne",
    }
    values.update(overrides)
    return PatientSnapshot(**values)


def make_appointment(when: datetime, **overrides) -> AppointmentSnapshot:
    values = {
        "scheduled_at": when,
        "status": "Confirmé",
        "duration_minutes": 45,
        "event_name": "Physiothérapie",
        "centre": "Lausanne",
        "practitioner": "M. Favre",
    }
    values.update(overrides)
    return AppointmentSnapshot(**values)


def make_invoice(number: str | None = "F-1001", centre: str | None = "Lausanne", **overrides) -> InvoiceSnapshot:
    values = {
        "invoice_number": number,
        "centre": centre,
        "invoice_date": date(2025, 3, 1),
        "law": "LAMal",
        "services": [
            ServiceSnapshot(position_number="7301", description="Séance", quantity=None),
        ],
    }
    values.update(overrides)
    return InvoiceSnapshot(**values)


def days_from_today(days: int, hour: int = 10) -> datetime:
    return datetime.combine(TODAY + timedelta(days=days), datetime.min.time()).replace(hour=hour)


# =============================================================================
# Fake portal
# =============================================================================


@dataclass
class FakeRow:
    """One scripted patient row of the result grid."""

    patient: PatientSnapshot
    appointments: list[AppointmentSnapshot] = field(default_factory=list)
    invoices: list[InvoiceSnapshot] = field(default_factory=list)


@dataclass
class PortalScript:
    """State shared by every FakePortal instance of one test.

    ``pages`` lists the result pages; a ``None`` row is a third-party-payer
    line. ``failures`` maps ``(step, page, row)`` to how many times that step
    fails at that position before succeeding.
    """

    pages: list[list[FakeRow | None]]
    failures: dict[tuple[str, int, int | None], int] = field(default_factory=dict)
    calls: list[tuple] = field(default_factory=list)
    connects: int = 0
    closes: int = 0
    login_error: Exception | None = None


class FakePortal(PortalAutomation):
    """Scripted PortalAutomation."""

    def __init__(self, script: PortalScript):
        self.script = script
        self.page_index: int | None = None
        self.row_index: int | None = None

    def _fail_if_scripted(self, step: str, page: int | None, row: int | None) -> None:
        key = (step, page, row)
        remaining = self.script.failures.get(key, 0)
        if remaining > 0:
            self.script.failures[key] = remaining - 1
            raise PortalError(f"{step} failed at page {page}, row {row}")

    def _current(self) -> FakeRow:
        row = self.script.pages[self.page_index - 1][self.row_index]
        assert row is not None
        return row

    async def connect(self, url, credentials) -> None:
        self.script.calls.append(("connect", url))
        if self.script.login_error is not None:
            raise self.script.login_error
        self.script.connects += 1

    async def apply_filter(self, criteria) -> None:
        self.script.calls.append(("apply_filter", criteria))

    async def goto_result_page(self, page_index: int) -> bool:
        self.script.calls.append(("goto_result_page", page_index))
        self._fail_if_scripted("goto_result_page", page_index, None)
        if page_index < 1 or page_index > len(self.script.pages):
            return False
        self.page_index = page_index
        return True

    async def goto_patient_row(self, row_index: int) -> bool:
        self.script.calls.append(("goto_patient_row", self.page_index, row_index))
        self._fail_if_scripted("goto_patient_row", self.page_index, row_index)
        rows = self.script.pages[self.page_index - 1]
        if row_index >= len(rows):
            raise RowAbsent(row_index)
        if rows[row_index] is None:
            raise NotAPatientRow(row_index)
        self.row_index = row_index
        return row_index == len(rows) - 1

    async def scrape_patient(self) -> PatientSnapshot:
        self._fail_if_scripted("scrape_patient", self.page_index, self.row_index)
        return self._current().patient

    async def scrape_appointments(self) -> list[AppointmentSnapshot]:
        self._fail_if_scripted("scrape_appointments", self.page_index, self.row_index)
        return list(self._current().appointments)

    async def scrape_invoices(self, insurance_number) -> list[InvoiceSnapshot]:
        self._fail_if_scripted("scrape_invoices", self.page_index, self.row_index)
        return list(self._current().invoices)

    async def go_back(self) -> None:
        self.script.calls.append(("go_back", self.page_index, self.row_index))

    async def close(self) -> None:
        self.script.closes += 1


@pytest.fixture
def make_script():
    def _make(pages, failures=None) -> PortalScript:
        return PortalScript(pages=pages, failures=dict(failures or {}))

    return _make
