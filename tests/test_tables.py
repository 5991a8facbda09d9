"""Tests for grid parsing and header mapping."""

from medisync.core.config.synonyms import APPOINTMENT_HEADERS
from medisync.core.extract.tables import HeaderMappedTableExtractor, grid_data_rows

AGENDA = """
<table id="GridViewRdv">
  <tr><th>Date / heure</th><th>Statut</th><th>Durée</th><th>Thérapeut</th><th>Remarque</th></tr>
  <tr><td>16.06.2025 10:00</td><td>Confirmé</td><td>45</td><td>M. Rochat</td><td>-</td></tr>
  <tr><td>18.06.2025 11:30</td><td> </td><td>30</td><td>M. Rochat</td><td></td></tr>
  <tr class="pager"><td colspan="5"><table><tr><td>1</td><td>2</td></tr></table></td></tr>
</table>
"""

RESULTS = """
<table id="GridView1">
  <tr><th>Nom</th><th>Prénom</th></tr>
  <tr><td><input type="text" name="filter"/></td><td></td></tr>
  <tr><td><input type="submit" name="row0$btnEdit"/>AEBI</td><td>Luc</td></tr>
  <tr><td>Tiers payant</td><td></td></tr>
  <tr><td colspan="2"><table><tr><td><span>1</span></td></tr></table></td></tr>
</table>
"""


class TestHeaderMapping:
    def test_exact_and_fuzzy(self):
        extraction = HeaderMappedTableExtractor(APPOINTMENT_HEADERS).extract(AGENDA)

        by_field = {m.canonical_field: m for m in extraction.field_mappings}
        assert by_field["scheduled_at"].match_type == "exact"
        assert by_field["practitioner"].match_type == "fuzzy"
        assert by_field["practitioner"].column_index == 3
        assert extraction.unmapped_headers == ["Remarque"]

    def test_records_skip_pager_and_blank_cells(self):
        extraction = HeaderMappedTableExtractor(APPOINTMENT_HEADERS).extract(AGENDA)

        assert len(extraction.records) == 2
        assert extraction.records[0]["status"] == "Confirmé"
        assert "status" not in extraction.records[1]
        assert extraction.records[1]["duration_minutes"] == "30"

    def test_duplicate_field_left_unmapped(self):
        html = "<table><tr><th>Date</th><th>Date rdv</th></tr><tr><td>a</td><td>b</td></tr></table>"

        extraction = HeaderMappedTableExtractor(APPOINTMENT_HEADERS).extract(html)

        assert extraction.records == [{"scheduled_at": "a"}]
        assert extraction.unmapped_headers == ["Date rdv"]

    def test_no_table(self):
        extraction = HeaderMappedTableExtractor(APPOINTMENT_HEADERS).extract("<div>vide</div>")

        assert extraction.records == []
        assert extraction.field_mappings == []


class TestGridRows:
    def test_header_and_pager_rows_dropped(self):
        rows = grid_data_rows(RESULTS, header_rows=2)

        assert len(rows) == 2
        assert rows[0].cssselect('input[name*="btnEdit"]')
        assert not rows[1].cssselect('input[name*="btnEdit"]')

    def test_classed_pager_row_dropped(self):
        rows = grid_data_rows(AGENDA, header_rows=1)

        assert len(rows) == 2

    def test_empty_markup(self):
        assert grid_data_rows("") == []

    def test_mapped_fields(self):
        extraction = HeaderMappedTableExtractor(APPOINTMENT_HEADERS).extract(AGENDA)

        assert extraction.mapped_fields == {"scheduled_at", "status", "duration_minutes", "practitioner"}
