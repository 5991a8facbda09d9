"""
Table extraction with header alias mapping.

Parses the portal's ASP.NET grids and maps their columns to snapshot
fields using an alias dictionary (exact match first, then fuzzy).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from lxml import html as lxml_html
from lxml.html import HtmlElement
from thefuzz import fuzz

from ..config.synonyms import find_canonical_field


# Minimum fuzzy match score to consider a match
FUZZY_MATCH_THRESHOLD = 80


@dataclass
class FieldMapping:
    """Mapping of a table header to a field."""

    header_text: str
    canonical_field: str
    column_index: int
    match_type: str = "exact"  # exact, fuzzy


@dataclass
class TableExtraction:
    """Rows of one table, keyed by field name."""

    records: list[dict[str, str]] = field(default_factory=list)
    field_mappings: list[FieldMapping] = field(default_factory=list)
    unmapped_headers: list[str] = field(default_factory=list)

    @property
    def mapped_fields(self) -> set[str]:
        return {m.canonical_field for m in self.field_mappings}


def cell_text(cell: HtmlElement) -> str:
    """Whitespace-normalized text content of a cell."""
    return re.sub(r"\s+", " ", cell.text_content()).strip()


def parse_table(html: str) -> HtmlElement | None:
    """Parse markup and return its first table element."""
    if not html or not html.strip():
        return None
    doc = lxml_html.fromstring(html)
    if doc.tag == "table":
        return doc
    tables = doc.xpath("//table")
    return tables[0] if tables else None


def table_rows(table: HtmlElement) -> list[HtmlElement]:
    """Direct rows of a table, ignoring rows of nested tables."""
    return table.xpath("./thead/tr | ./tbody/tr | ./tr | ./tfoot/tr")


def is_pager_row(row: HtmlElement, pager_class: str = "pager") -> bool:
    """True for a grid pager row (classed, or holding a nested table)."""
    classes = (row.get("class") or "").lower().split()
    if pager_class.lower() in classes:
        return True
    return bool(row.xpath("./td/table"))


def grid_data_rows(
    html: str,
    header_rows: int = 1,
    pager_class: str = "pager",
) -> list[HtmlElement]:
    """Data rows of a grid: skip the leading header rows, drop pager rows.

    Args:
        html: Markup of the grid table
        header_rows: Rows before the first data row
        pager_class: Class marking pager rows

    Returns:
        Data row elements in display order
    """
    table = parse_table(html)
    if table is None:
        return []
    rows = table_rows(table)[header_rows:]
    return [row for row in rows if not is_pager_row(row, pager_class)]


class HeaderMappedTableExtractor:
    """Extract records from a table by mapping its headers to fields.

    Header cells are matched against ``header_aliases`` exactly
    (case-insensitive), then by fuzzy ratio. Columns with no match are
    reported in ``unmapped_headers`` and ignored.
    """

    def __init__(
        self,
        header_aliases: dict[str, list[str]],
        fuzzy_threshold: int = FUZZY_MATCH_THRESHOLD,
        pager_class: str = "pager",
    ):
        """Initialize extractor.

        Args:
            header_aliases: Field name -> accepted header texts
            fuzzy_threshold: Minimum fuzzy match score (0-100)
            pager_class: Class marking grid pager rows
        """
        self.header_aliases = header_aliases
        self.fuzzy_threshold = fuzzy_threshold
        self.pager_class = pager_class

    def extract(self, html: str) -> TableExtraction:
        """Extract records from the first table in ``html``.

        Args:
            html: Table markup (or a fragment containing one)

        Returns:
            TableExtraction; empty when there is no table or header
        """
        result = TableExtraction()

        table = parse_table(html)
        if table is None:
            return result

        rows = table_rows(table)
        header_index = self._find_header_row(rows)
        if header_index is None:
            return result

        headers = [cell_text(c) for c in rows[header_index].xpath("./th | ./td")]
        used: set[str] = set()
        for i, header in enumerate(headers):
            mapping = self._map_header(header, i)
            if mapping is None or mapping.canonical_field in used:
                if header:
                    result.unmapped_headers.append(header)
                continue
            used.add(mapping.canonical_field)
            result.field_mappings.append(mapping)

        for row in rows[header_index + 1:]:
            if is_pager_row(row, self.pager_class):
                continue
            cells = row.xpath("./td")
            if not cells:
                continue

            record: dict[str, str] = {}
            for mapping in result.field_mappings:
                if mapping.column_index < len(cells):
                    value = cell_text(cells[mapping.column_index])
                    if value:
                        record[mapping.canonical_field] = value

            if record:
                result.records.append(record)

        return result

    def _find_header_row(self, rows: list[HtmlElement]) -> int | None:
        for i, row in enumerate(rows):
            if row.xpath("./th"):
                return i
        return 0 if rows else None

    def _map_header(self, header: str, column_index: int) -> FieldMapping | None:
        """Match a header text to a field name."""
        normalized = header.lower().strip()
        if not normalized:
            return None

        canonical = find_canonical_field(normalized, self.header_aliases)
        if canonical:
            return FieldMapping(header, canonical, column_index, "exact")

        best_match: str | None = None
        best_score = 0
        for field_name, aliases in self.header_aliases.items():
            for alias in aliases:
                score = fuzz.ratio(normalized, alias.lower())
                if score > best_score and score >= self.fuzzy_threshold:
                    best_score = score
                    best_match = field_name

        if best_match is None:
            return None
        return FieldMapping(header, best_match, column_index, "fuzzy")
