"""Tests for the MediOnline portal against a scripted browser backend."""

import re
from datetime import date, datetime

import pytest

from medisync.core.backends.base import ActionFailed, ElementNotFound
from medisync.core.config.models import PortalConfig
from medisync.core.errors import NotAPatientRow, PortalError, RowAbsent
from medisync.core.normalize.snapshots import PatientFilter
from medisync.core.portals import MediOnlinePortal

CONFIG = PortalConfig(readiness_attempts=1)
SEARCH = CONFIG.selectors.search
PATIENT = CONFIG.selectors.patient

AGENDA = """
<table id="ctl00_CPH_ctl00_GridViewRdv">
  <tr><th>Date / heure</th><th>Statut</th><th>Durée</th><th>Thérapeute</th></tr>
  <tr><td>16.06.2025 10:00</td><td>Confirmé</td><td>45 min</td><td>M. Rochat</td></tr>
</table>
"""


class FakeBackend:
    """Serves a paged result grid and records every click.

    ``pages`` holds one list per result page; each entry is a patient name,
    or None for a third-party-payer row. The pager lists ``window`` pages on
    each side of the current one.
    """

    def __init__(self, pages, window=3, fields=None, tables=None, missing=()):
        self.pages = pages
        self.window = window
        self.fields = fields or {}
        self.tables = tables or {}
        self.missing = set(missing)
        self.current = 1
        self.clicks: list[str] = []
        self.fills: list[tuple[str, str]] = []

    def _row(self, page, index, name):
        if name is None:
            return "<tr><td></td><td>Tiers payant</td></tr>"
        button = f"ctl00$CPH$GridView1$ctl{page:02d}{index:02d}$btnEdit"
        return f'<tr><td><input type="submit" name="{button}"/></td><td>{name}</td></tr>'

    def _grid(self):
        rows = [self._row(self.current, i, n) for i, n in enumerate(self.pages[self.current - 1])]
        pager = "".join(
            f"<td><a href=\"javascript:__doPostBack('GridView1','Page${p}')\">{p}</a></td>"
            for p in self._visible_pages()
        )
        return (
            '<table id="ctl00_CPH_ctl00_PatientSearchResult_GridView1">'
            "<tr><th></th><th>Nom</th></tr>"
            "<tr><td></td><td><input type=\"text\"/></td></tr>"
            + "".join(rows)
            + f'<tr class="pager"><td colspan="2"><table><tr><td><span>{self.current}</span></td>'
            + pager
            + "</tr></table></td></tr></table>"
        )

    def _visible_pages(self):
        low = max(1, self.current - self.window)
        high = min(len(self.pages), self.current + self.window)
        return [p for p in range(low, high + 1) if p != self.current]

    async def click(self, selector, timeout_ms=None, optional=False):
        if selector in self.missing:
            raise ActionFailed(f"Click on {selector} failed", selector=selector)
        self.clicks.append(selector)
        page = re.search(r"Page\$(\d+)", selector)
        if page:
            self.current = int(page.group(1))
        return True

    async def fill(self, selector, value, timeout_ms=None):
        self.fills.append((selector, value))

    async def wait_for_selector(self, selector, state="visible", timeout_ms=None):
        if selector in self.missing:
            raise ElementNotFound(f"Element not found: {selector}", selector=selector)

    async def wait_for_network_idle(self, timeout_ms=None):
        pass

    async def outer_html(self, selector):
        if selector == SEARCH.result_table:
            return self._grid()
        return self.tables[selector]

    async def text(self, selector):
        if selector == SEARCH.current_page_marker and len(self.pages) > 1:
            return str(self.current)
        return None

    async def attribute_values(self, selector, attribute):
        if selector == SEARCH.pager_links:
            return [f"javascript:__doPostBack('GridView1','Page${p}')" for p in self._visible_pages()]
        return []

    async def field_value(self, selector):
        return self.fields.get(selector)

    async def capture_screenshot(self, prefix):
        return f"snapshots/{prefix}.png"


def portal_with(backend) -> MediOnlinePortal:
    return MediOnlinePortal(CONFIG, backend=backend)


def field(name: str) -> str:
    return f"#{PATIENT.form_prefix}{PATIENT.fields[name]}"


class TestPatientRows:
    async def test_opens_row_by_its_button(self):
        backend = FakeBackend([["AEBI Luc", "BLANC Eva"]])

        last = await portal_with(backend).goto_patient_row(0)

        assert last is False
        assert backend.clicks[-1] == 'input[name="ctl00$CPH$GridView1$ctl0100$btnEdit"]'

    async def test_last_patient_row(self):
        backend = FakeBackend([["AEBI Luc", "BLANC Eva"]])

        assert await portal_with(backend).goto_patient_row(1) is True

    async def test_trailing_payer_rows_do_not_count(self):
        backend = FakeBackend([["AEBI Luc", None, None]])

        assert await portal_with(backend).goto_patient_row(0) is True

    async def test_payer_row_signalled(self):
        backend = FakeBackend([["AEBI Luc", None, "BLANC Eva"]])

        with pytest.raises(NotAPatientRow):
            await portal_with(backend).goto_patient_row(1)

    async def test_row_past_end_signalled(self):
        backend = FakeBackend([["AEBI Luc"]])

        with pytest.raises(RowAbsent):
            await portal_with(backend).goto_patient_row(1)


class TestResultPages:
    async def test_first_page_without_pager(self):
        backend = FakeBackend([["AEBI Luc"]])

        assert await portal_with(backend).goto_result_page(1) is True
        assert backend.clicks == []

    async def test_hops_across_pager_window(self):
        backend = FakeBackend([["x"]] * 12, window=3)

        assert await portal_with(backend).goto_result_page(9) is True
        assert backend.current == 9
        hops = [int(re.search(r"Page\$(\d+)", c).group(1)) for c in backend.clicks]
        assert hops == [4, 7, 9]

    async def test_hops_backwards(self):
        backend = FakeBackend([["x"]] * 12, window=3)
        backend.current = 10

        assert await portal_with(backend).goto_result_page(2) is True
        assert backend.current == 2

    async def test_page_past_end_unreachable(self):
        backend = FakeBackend([["x"]] * 3)

        assert await portal_with(backend).goto_result_page(5) is False


class TestScraping:
    async def test_patient_fields(self):
        backend = FakeBackend(
            [[]],
            fields={
                field("last_name"): "Dupont",
                field("first_name"): " Jean ",
                field("date_of_birth"): "01.02.1980",
                field("sms_notification"): "true",
                field("email"): "",
            },
        )

        snapshot = await portal_with(backend).scrape_patient()

        assert (snapshot.last_name, snapshot.first_name) == ("Dupont", "Jean")
        assert snapshot.date_of_birth == date(1980, 2, 1)
        assert snapshot.sms_notification is True
        assert snapshot.email is None

    async def test_appointments(self):
        backend = FakeBackend([[]], tables={PATIENT.appointments_table: AGENDA})

        appointments = await portal_with(backend).scrape_appointments()

        assert len(appointments) == 1
        assert appointments[0].scheduled_at == datetime(2025, 6, 16, 10, 0)
        assert appointments[0].duration_minutes == 45
        assert appointments[0].practitioner == "M. Rochat"
        assert backend.clicks[0] == PATIENT.appointments_tab

    async def test_tab_without_grid(self):
        backend = FakeBackend([[]], missing={PATIENT.appointments_table})

        assert await portal_with(backend).scrape_appointments() == []


class TestFailures:
    async def test_backend_error_becomes_portal_error(self):
        backend = FakeBackend([[]], missing={SEARCH.search_shortcut})

        with pytest.raises(PortalError) as exc_info:
            await portal_with(backend).apply_filter(PatientFilter())

        assert isinstance(exc_info.value.cause, ActionFailed)
        assert exc_info.value.screenshot_path == "snapshots/patient_search.png"

    async def test_filter_fields_filled(self):
        backend = FakeBackend([[]])

        await portal_with(backend).apply_filter(PatientFilter(last_name="Dup"))

        assert (SEARCH.last_name_input, "Dup") in backend.fills
        assert backend.clicks[-1] == SEARCH.search_button
