"""
Patient extraction from exported PDF sheets.

The portal can export one patient sheet per page. Each page is a list of
``<label> <value>`` lines; ``parse_patient_text`` turns one page's text
into a PatientSnapshot.
"""

from __future__ import annotations

import io
import re
from pathlib import Path

import pdfplumber

from ..logging import get_logger
from ..normalize.parsing import normalize_whitespace
from ..normalize.snapshots import PatientSnapshot

logger = get_logger("extract.document")


# Line label -> snapshot field. "Patient" is handled separately.
PATIENT_LABELS: dict[str, str] = {
    "Titre": "title",
    "Titre courrier": "courtesy_title",
    "Compl. adresse": "address_complement",
    "Rue": "street",
    "NPA": "postal_code",
    "Localité": "locality",
    "Tél. 1": "phone1_label",
    "No Tél. 1": "phone1",
    "Tél. 2": "phone2_label",
    "No Tél. 2": "phone2",
    "Tél. 3": "phone3_label",
    "Né(e) le": "date_of_birth",
    "N° Patient": "patient_number",
    "Employeur": "employer",
    "N° AVS": "insurance_number",
    "Nom jeune fille": "maiden_name",
    "Nationalite": "nationality",
    "Profession": "profession",
    "H/F": "gender",
    "Etat civil": "marital_status",
    "Coord.": "coordination",
    "Déb.": "debtor",
    "Ctct": "contact",
    "Langue": "language",
}

NAME_LABEL = "Patient"

# Longest first, so "Titre courrier" is tried before "Titre"
_LABELS_BY_LENGTH = sorted([*PATIENT_LABELS, NAME_LABEL], key=len, reverse=True)


def split_patient_name(value: str) -> tuple[str | None, str | None]:
    """Split a "LASTNAME Firstname" value into (last_name, first_name).

    Handles "Last, First" too. The leading run of upper-case words is the
    last name; without one, the first word is.
    """
    value = normalize_whitespace(value)
    if not value:
        return None, None

    if "," in value:
        last, _, first = value.partition(",")
        return last.strip() or None, first.strip() or None

    words = value.split(" ")
    upper_run = 0
    for word in words:
        if word.isupper():
            upper_run += 1
        else:
            break
    if upper_run == 0 or upper_run == len(words):
        upper_run = 1

    last = " ".join(words[:upper_run])
    first = " ".join(words[upper_run:])
    return last or None, first or None


def _match_label(line: str) -> tuple[str, str] | None:
    for label in _LABELS_BY_LENGTH:
        if line.startswith(label):
            rest = line[len(label):]
            # Label must end at a word boundary
            if rest and not re.match(r"[\s:]", rest):
                continue
            return label, rest.lstrip(" :\t")
    return None


def parse_patient_text(text: str) -> PatientSnapshot:
    """Parse one exported sheet's text.

    Lines are matched against the known labels, the longest label winning.
    The first line for a label is kept; later ones are ignored.
    """
    raw: dict[str, str] = {}
    name: str | None = None

    for line in (normalize_whitespace(line) for line in text.splitlines()):
        if not line:
            continue
        matched = _match_label(line)
        if matched is None:
            continue
        label, value = matched
        if not value:
            continue

        if label == NAME_LABEL:
            if name is None:
                name = value
            continue

        field_name = PATIENT_LABELS[label]
        raw.setdefault(field_name, value)

    if name:
        last_name, first_name = split_patient_name(name)
        raw["last_name"] = last_name or ""
        raw["first_name"] = first_name or ""

    return PatientSnapshot.from_raw(raw)


class PdfPatientExtractor:
    """Extract patient snapshots from an exported PDF."""

    def extract(self, data: bytes) -> list[PatientSnapshot]:
        """Parse every page of the PDF.

        Pages without a patient name are skipped.

        Args:
            data: PDF file content

        Returns:
            One snapshot per patient page
        """
        snapshots: list[PatientSnapshot] = []
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for number, page in enumerate(pdf.pages, start=1):
                text = page.extract_text() or ""
                snapshot = parse_patient_text(text)
                if snapshot.last_name is None and snapshot.first_name is None:
                    logger.debug(f"Page {number}: no patient name, skipped")
                    continue
                snapshots.append(snapshot)
        return snapshots

    def extract_file(self, path: Path | str) -> list[PatientSnapshot]:
        return self.extract(Path(path).read_bytes())
