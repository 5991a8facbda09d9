"""Extraction of portal tables and exported documents."""

from .document import PdfPatientExtractor, parse_patient_text, split_patient_name
from .tables import (
    FieldMapping,
    HeaderMappedTableExtractor,
    TableExtraction,
    grid_data_rows,
)

__all__ = [
    "FieldMapping",
    "HeaderMappedTableExtractor",
    "PdfPatientExtractor",
    "TableExtraction",
    "grid_data_rows",
    "parse_patient_text",
    "split_patient_name",
]
