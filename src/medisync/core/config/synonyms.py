"""
Header synonym mappings for the portal's result tables.

Maps snapshot field names to the header texts MediOnline shows above its
agenda, invoice and service grids. Used by HeaderMappedTableExtractor for
column mapping; headers not listed fall back to fuzzy matching.
"""

from __future__ import annotations

# =============================================================================
# Agenda
# =============================================================================

APPOINTMENT_HEADERS: dict[str, list[str]] = {
    "scheduled_at": [
        "date",
        "date / heure",
        "date et heure",
        "date rdv",
        "rendez-vous",
    ],
    "status": [
        "statut",
        "etat",
        "état",
        "status",
    ],
    "duration_minutes": [
        "durée",
        "duree",
        "durée (min)",
        "duration",
    ],
    "event_name": [
        "événement",
        "evenement",
        "prestation",
        "motif",
        "libellé",
    ],
    "contact": [
        "contact",
        "interlocuteur",
    ],
    "centre": [
        "centre",
        "lieu",
        "site",
    ],
    "practitioner": [
        "thérapeute",
        "therapeute",
        "praticien",
        "intervenant",
        "collaborateur",
    ],
}


# =============================================================================
# Invoices
# =============================================================================

INVOICE_HEADERS: dict[str, list[str]] = {
    "centre": [
        "centre",
        "site",
    ],
    "invoice_date": [
        "date",
        "date facture",
        "date de facture",
    ],
    "invoice_number": [
        "n° facture",
        "no facture",
        "numéro de facture",
        "facture",
    ],
    "insured_person_number": [
        "n° assuré",
        "no assuré",
        "numéro d'assuré",
    ],
    "reimbursement_type": [
        "type de remboursement",
        "remboursement",
        "tiers",
    ],
    "law": [
        "loi",
        "loi d'assurance",
    ],
    "treatment_type": [
        "type de traitement",
        "traitement",
        "motif du traitement",
    ],
    "insured_card_number": [
        "n° carte d'assuré",
        "no carte",
        "carte d'assuré",
    ],
    "treatment_start": [
        "début traitement",
        "début",
        "date début",
    ],
    "treatment_end": [
        "fin traitement",
        "fin",
        "date fin",
    ],
    "service_location": [
        "lieu de prestation",
        "lieu",
    ],
    "prescribing_doctor": [
        "médecin prescripteur",
        "prescripteur",
    ],
    "prescribing_doctor_address": [
        "adresse prescripteur",
        "adresse du prescripteur",
    ],
    "case_date": [
        "date du cas",
        "date cas",
        "date accident",
    ],
    "decision_number": [
        "n° décision",
        "no décision",
        "décision",
    ],
    "total_amount": [
        "montant",
        "total",
        "montant total",
        "montant chf",
    ],
}


# =============================================================================
# Service lines
# =============================================================================

SERVICE_HEADERS: dict[str, list[str]] = {
    "service_date": [
        "date",
        "date prestation",
    ],
    "quantity": [
        "nombre",
        "qté",
        "quantité",
        "nb",
    ],
    "position_number": [
        "position",
        "n° position",
        "no position",
        "tarif",
    ],
    "description": [
        "libellé",
        "description",
        "désignation",
    ],
    "unit_value": [
        "valeur unitaire",
        "prix unitaire",
        "pu",
    ],
    "points": [
        "nombre de points",
        "pts",
        "points",
    ],
    "point_value": [
        "valeur du point",
        "vpt",
        "valeur point",
    ],
    "amount": [
        "montant",
        "total",
        "montant chf",
    ],
}


def find_canonical_field(header_text: str, aliases: dict[str, list[str]]) -> str | None:
    """Find the field name for a header text by exact alias match.

    Args:
        header_text: Raw header text from table
        aliases: Field name -> header texts

    Returns:
        Field name if found, None otherwise
    """
    normalized = header_text.lower().strip()

    for canonical, synonyms in aliases.items():
        if normalized in [s.lower() for s in synonyms]:
            return canonical

    return None
