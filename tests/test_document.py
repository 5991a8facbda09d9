"""Tests for patient sheet parsing."""

from datetime import date

import pytest

from medisync.core.extract.document import (
    PdfPatientExtractor,
    parse_patient_text,
    split_patient_name,
)

SHEET = """
Patient DUPONT Jean
Titre Monsieur
Titre courrier Cher Monsieur
Rue Avenue de la Gare 12
NPA 1003
Localité Lausanne
Localité Genève
Né(e) le 01.02.1980
N° AVS 756.1234.5678.97
No Tél. 1 021 555 12 34
Langue
"""


class TestParsePatientText:
    def test_name_split(self):
        snapshot = parse_patient_text(SHEET)

        assert snapshot.last_name == "DUPONT"
        assert snapshot.first_name == "Jean"

    def test_longest_label_wins(self):
        snapshot = parse_patient_text(SHEET)

        assert snapshot.title == "Monsieur"
        assert snapshot.courtesy_title == "Cher Monsieur"

    def test_first_value_kept(self):
        assert parse_patient_text(SHEET).locality == "Lausanne"

    def test_typed_fields(self):
        snapshot = parse_patient_text(SHEET)

        assert snapshot.date_of_birth == date(1980, 2, 1)
        assert snapshot.insurance_number == "756.1234.5678.97"
        assert snapshot.phone1 == "021 555 12 34"

    def test_label_without_value_ignored(self):
        assert parse_patient_text(SHEET).language is None

    def test_label_needs_word_boundary(self):
        snapshot = parse_patient_text("Titrexyz Madame\nRuelle 4")

        assert snapshot.title is None
        assert snapshot.street is None

    def test_empty_text(self):
        snapshot = parse_patient_text("")

        assert snapshot.last_name is None
        assert snapshot.first_name is None


class TestSplitPatientName:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("DUPONT Jean", ("DUPONT", "Jean")),
            ("VAN DER BERG Anne Marie", ("VAN DER BERG", "Anne Marie")),
            ("Dupont, Jean", ("Dupont", "Jean")),
            ("Dupont Jean", ("Dupont", "Jean")),
            ("DUPONT", ("DUPONT", None)),
            ("", (None, None)),
        ],
    )
    def test_split(self, value, expected):
        assert split_patient_name(value) == expected


class TestPdfPatientExtractor:
    def test_extract_file_reads_bytes(self, tmp_path, monkeypatch):
        path = tmp_path / "export.pdf"
        path.write_bytes(b"%PDF-1.4 fake")
        received = []

        def fake_extract(self, data):
            received.append(data)
            return []

        monkeypatch.setattr(PdfPatientExtractor, "extract", fake_extract)

        assert PdfPatientExtractor().extract_file(str(path)) == []
        assert received == [b"%PDF-1.4 fake"]
