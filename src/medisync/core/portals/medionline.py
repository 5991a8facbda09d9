"""
MediOnline portal automation.

Drives the MediOnline web application through PlaywrightBackend: login
through the identity provider popup, the patient search grid with its
ASP.NET pager, and the patient detail with its agenda and invoice tabs.
"""

from __future__ import annotations

import re
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator

from ..backends.base import BackendError, ElementNotFound
from ..backends.playwright_backend import PlaywrightBackend
from ..config.synonyms import APPOINTMENT_HEADERS, INVOICE_HEADERS, SERVICE_HEADERS
from ..errors import NotAPatientRow, PortalError, RowAbsent
from ..extract.tables import HeaderMappedTableExtractor, grid_data_rows
from ..fetch.retries import RetryConfig, retry_async
from ..logging import get_logger
from ..normalize.snapshots import (
    AppointmentSnapshot,
    InvoiceSnapshot,
    PatientFilter,
    PatientSnapshot,
    ServiceSnapshot,
)
from .base import PortalAutomation

if TYPE_CHECKING:
    from ..config.loader import Credentials
    from ..config.models import PortalConfig

logger = get_logger("portal.medionline")

_PAGE_ARGUMENT = re.compile(r"Page\$(\d+)")

# Upper bound on pager clicks for one page change
MAX_PAGER_HOPS = 200


def _edit_button_name(row, selector: str) -> str | None:
    buttons = row.cssselect(selector)
    return buttons[0].get("name") if buttons else None


class MediOnlinePortal(PortalAutomation):
    """PortalAutomation over the MediOnline web application."""

    def __init__(self, config: "PortalConfig", backend: PlaywrightBackend | None = None):
        """Initialize the portal.

        Args:
            config: Portal configuration (selectors, timeouts)
            backend: Browser backend (default: one built from ``config``)
        """
        self.config = config
        self.selectors = config.selectors
        self.backend = backend or PlaywrightBackend(
            headless=config.headless,
            timeout_ms=config.default_timeout_ms,
            browser_type=config.browser,
            screenshots_path=config.screenshots_path,
            screenshots_on_error=config.screenshots_on_error,
        )
        pager_class = self.selectors.search.pager_row_class
        self.appointment_table = HeaderMappedTableExtractor(APPOINTMENT_HEADERS, pager_class=pager_class)
        self.invoice_table = HeaderMappedTableExtractor(INVOICE_HEADERS, pager_class=pager_class)
        self.service_table = HeaderMappedTableExtractor(SERVICE_HEADERS, pager_class=pager_class)

    # =========================================================================
    # Helpers
    # =========================================================================

    @asynccontextmanager
    async def _step(self, name: str) -> AsyncIterator[None]:
        """Convert backend failures of one automation step into PortalError."""
        try:
            yield
        except BackendError as e:
            screenshot = e.screenshot_path or await self.backend.capture_screenshot(
                name.replace(" ", "_")
            )
            raise PortalError(f"{name} failed: {e}", cause=e, screenshot_path=screenshot) from e

    async def _ready(self, selector: str) -> None:
        """Wait for a UI element with a short, bounded number of attempts."""
        await retry_async(
            self.backend.wait_for_selector,
            selector,
            timeout_ms=self.config.readiness_timeout_ms,
            config=RetryConfig(
                max_attempts=self.config.readiness_attempts,
                retry_exceptions=(ElementNotFound,),
            ),
        )

    def _patient_field(self, suffix: str) -> str:
        return f"#{self.selectors.patient.form_prefix}{suffix}"

    # =========================================================================
    # Session
    # =========================================================================

    async def connect(self, url: str, credentials: "Credentials") -> None:
        sel = self.selectors.login
        async with self._step("login"):
            await self.backend.start()
            await self.backend.open(url)

            landing = await self.backend.click_for_popup(sel.landing_login_link)
            await self.backend.click(sel.popup_login_button)
            await self.backend.click(sel.submit_button)

            await self._ready(sel.username_input)
            await self.backend.fill(sel.username_input, credentials.username)
            await self.backend.fill(sel.password_input, credentials.password)
            await self.backend.click(sel.submit_button)

            await self.backend.click(
                sel.dismiss_dialog_button,
                timeout_ms=self.config.readiness_timeout_ms,
                optional=True,
            )

            await self.backend.close_page(landing)
            await self.backend.wait_for_network_idle()

        logger.info("MediOnline login successful")

    async def close(self) -> None:
        await self.backend.close()

    # =========================================================================
    # Search results
    # =========================================================================

    async def apply_filter(self, criteria: PatientFilter) -> None:
        sel = self.selectors.search
        async with self._step("patient search"):
            await self.backend.click(sel.search_shortcut)
            await self._ready(sel.last_name_input)

            await self.backend.fill(sel.last_name_input, criteria.last_name)
            await self.backend.fill(sel.first_name_input, criteria.first_name)
            await self.backend.fill(sel.birth_date_input, criteria.date_of_birth)
            await self.backend.click(sel.search_button)

            await self.backend.wait_for_network_idle()
            await self._ready(sel.result_table)

    async def _current_page_number(self) -> int:
        """Number of the displayed result page; a grid without pager has one."""
        text = await self.backend.text(self.selectors.search.current_page_marker)
        if text is None:
            return 1
        digits = re.search(r"\d+", text)
        return int(digits.group()) if digits else 1

    async def _pager_targets(self) -> list[int]:
        hrefs = await self.backend.attribute_values(self.selectors.search.pager_links, "href")
        pages = {int(m.group(1)) for href in hrefs for m in _PAGE_ARGUMENT.finditer(href)}
        return sorted(pages)

    async def goto_result_page(self, page_index: int) -> bool:
        """Select a result page through the grid pager.

        The pager only lists a window of page numbers, so distant pages are
        reached by hopping to the listed number closest to the target.
        """
        sel = self.selectors.search
        async with self._step(f"result page {page_index}"):
            await self._ready(sel.result_table)

            for _ in range(MAX_PAGER_HOPS):
                current = await self._current_page_number()
                if current == page_index:
                    return True

                targets = await self._pager_targets()
                if page_index in targets:
                    hop = page_index
                elif page_index > current:
                    ahead = [p for p in targets if current < p < page_index]
                    if not ahead:
                        return False
                    hop = max(ahead)
                else:
                    behind = [p for p in targets if page_index < p < current]
                    if not behind:
                        return False
                    hop = min(behind)

                link = sel.pager_link_template.replace("<page>", str(hop))
                await self.backend.click(link)
                await self.backend.wait_for_network_idle()
                await self._ready(sel.result_table)

        raise PortalError(f"Result page {page_index} not reached after {MAX_PAGER_HOPS} pager clicks")

    async def goto_patient_row(self, row_index: int) -> bool:
        sel = self.selectors.search
        async with self._step(f"patient row {row_index}"):
            await self._ready(sel.result_table)
            html = await self.backend.outer_html(sel.result_table)

        rows = grid_data_rows(html, header_rows=sel.header_rows, pager_class=sel.pager_row_class)
        if row_index < 0 or row_index >= len(rows):
            raise RowAbsent(row_index)

        names = [_edit_button_name(row, sel.edit_button) for row in rows]
        name = names[row_index]
        if not name:
            raise NotAPatientRow(row_index)

        async with self._step(f"open patient row {row_index}"):
            await self.backend.click(f'input[name="{name}"]')
            await self.backend.wait_for_network_idle()
            await self._ready(self._patient_field(self.selectors.patient.fields["last_name"]))

        # Trailing third-party-payer rows do not count; the page ends at its last patient
        return not any(names[row_index + 1:])

    # =========================================================================
    # Patient detail
    # =========================================================================

    async def scrape_patient(self) -> PatientSnapshot:
        raw: dict[str, str | None] = {}
        async with self._step("scrape patient"):
            for field_name, suffix in self.selectors.patient.fields.items():
                raw[field_name] = await self.backend.field_value(self._patient_field(suffix))
        return PatientSnapshot.from_raw(raw)

    async def _open_tab(self, tab: str, table: str) -> str | None:
        """Open a detail tab and return its grid markup, None when it has no grid."""
        await self.backend.click(tab)
        await self.backend.wait_for_network_idle()
        try:
            await self._ready(table)
        except ElementNotFound:
            return None
        return await self.backend.outer_html(table)

    async def scrape_appointments(self) -> list[AppointmentSnapshot]:
        sel = self.selectors.patient
        async with self._step("scrape appointments"):
            html = await self._open_tab(sel.appointments_tab, sel.appointments_table)
        if html is None:
            return []

        extraction = self.appointment_table.extract(html)
        if extraction.records and "scheduled_at" not in extraction.mapped_fields:
            logger.warning("Agenda grid has no recognisable date column; appointments will be undated")
        if extraction.unmapped_headers:
            logger.debug(f"Unmapped agenda columns: {extraction.unmapped_headers}")
        return [AppointmentSnapshot.from_raw(record) for record in extraction.records]

    async def scrape_invoices(self, insurance_number: str | None) -> list[InvoiceSnapshot]:
        sel = self.selectors.patient
        async with self._step("scrape invoices"):
            html = await self._open_tab(sel.invoices_tab, sel.invoices_table)
            if html is None:
                return []

            records = self.invoice_table.extract(html).records
            links = len(await self.backend.attribute_values(sel.invoice_detail_link, "id"))

            invoices: list[InvoiceSnapshot] = []
            for index, record in enumerate(records):
                services: list[ServiceSnapshot] = []
                if index < links:
                    services = await self._scrape_services(index)
                record.setdefault("patient_insurance_number", insurance_number or "")
                invoices.append(InvoiceSnapshot.from_raw(record, services))

        return invoices

    async def _scrape_services(self, invoice_index: int) -> list[ServiceSnapshot]:
        sel = self.selectors.patient
        await self.backend.click_nth(sel.invoice_detail_link, invoice_index)
        await self.backend.wait_for_network_idle()
        try:
            await self._ready(sel.services_table)
            html = await self.backend.outer_html(sel.services_table)
        except ElementNotFound:
            html = None

        # Back to the invoice list for the next detail link
        await self.backend.click(sel.invoices_tab)
        await self.backend.wait_for_network_idle()
        await self._ready(sel.invoices_table)

        if html is None:
            return []
        return [ServiceSnapshot.from_raw(r) for r in self.service_table.extract(html).records]

    async def go_back(self) -> None:
        async with self._step("back to results"):
            await self.backend.click(self.selectors.patient.back_button)
            await self.backend.wait_for_network_idle()
            await self._ready(self.selectors.search.result_table)
