"""
Portal automation base class and interfaces.

Defines the contract the traversal depends on. Concrete portals drive a
browser; the core never sees anything below this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from medisync.core.config.loader import Credentials
    from medisync.core.normalize.snapshots import (
        AppointmentSnapshot,
        InvoiceSnapshot,
        PatientFilter,
        PatientSnapshot,
    )


class PortalAutomation(ABC):
    """Stateful automation of one portal session.

    A single instance owns one exclusive UI context and must be driven
    sequentially. Instances are not reused across sessions: after
    ``close()`` a new one is created.
    """

    @abstractmethod
    async def connect(self, url: str, credentials: Credentials) -> None:
        """Open the portal and authenticate.

        Args:
            url: Portal landing page
            credentials: Username and password
        """

    @abstractmethod
    async def apply_filter(self, criteria: PatientFilter) -> None:
        """Run the patient search that the traversal walks over."""

    @abstractmethod
    async def goto_result_page(self, page_index: int) -> bool:
        """Show result page ``page_index`` (1-based).

        Returns:
            False if that page does not exist
        """

    @abstractmethod
    async def goto_patient_row(self, row_index: int) -> bool:
        """Open the patient at ``row_index`` (0-based) of the current page.

        Returns:
            True if the row was the last data row of the page

        Raises:
            RowAbsent: No row at that index
            NotAPatientRow: The row has no patient detail
        """

    @abstractmethod
    async def scrape_patient(self) -> PatientSnapshot:
        """Read the open patient's detail form."""

    @abstractmethod
    async def scrape_appointments(self) -> list[AppointmentSnapshot]:
        """Read the open patient's agenda."""

    @abstractmethod
    async def scrape_invoices(self, insurance_number: str | None) -> list[InvoiceSnapshot]:
        """Read the open patient's invoices with their service lines."""

    @abstractmethod
    async def go_back(self) -> None:
        """Return from a patient detail to the search results."""

    @abstractmethod
    async def close(self) -> None:
        """Release the browser resources. Safe to call more than once."""

    async def __aenter__(self) -> "PortalAutomation":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
