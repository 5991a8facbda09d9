"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create initial database schema."""

    # Patients table
    op.create_table(
        "patients",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("first_name", sa.String(length=200), nullable=True),
        sa.Column("last_name", sa.String(length=200), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("insurance_number", sa.String(length=50), nullable=True),
        sa.Column("patient_number", sa.String(length=50), nullable=True),
        sa.Column("title", sa.String(length=50), nullable=True),
        sa.Column("courtesy_title", sa.String(length=100), nullable=True),
        sa.Column("address_complement", sa.String(length=200), nullable=True),
        sa.Column("street", sa.String(length=200), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("locality", sa.String(length=200), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("phone1_label", sa.String(length=50), nullable=True),
        sa.Column("phone1", sa.String(length=50), nullable=True),
        sa.Column("phone2_label", sa.String(length=50), nullable=True),
        sa.Column("phone2", sa.String(length=50), nullable=True),
        sa.Column("phone3_label", sa.String(length=50), nullable=True),
        sa.Column("phone3", sa.String(length=50), nullable=True),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("sms_notification", sa.Boolean(), nullable=True),
        sa.Column("language", sa.String(length=50), nullable=True),
        sa.Column("nationality", sa.String(length=100), nullable=True),
        sa.Column("date_of_death", sa.Date(), nullable=True),
        sa.Column("employer", sa.String(length=200), nullable=True),
        sa.Column("profession", sa.String(length=200), nullable=True),
        sa.Column("marital_status", sa.String(length=50), nullable=True),
        sa.Column("maiden_name", sa.String(length=200), nullable=True),
        sa.Column("sex", sa.String(length=20), nullable=True),
        sa.Column("gender", sa.String(length=20), nullable=True),
        sa.Column("family_doctor", sa.String(length=200), nullable=True),
        sa.Column("coordination", sa.String(length=200), nullable=True),
        sa.Column("debtor", sa.String(length=200), nullable=True),
        sa.Column("contact", sa.String(length=200), nullable=True),
        sa.Column("legal_representative", sa.String(length=200), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_patient_natural_key",
        "patients",
        ["last_name", "first_name", "date_of_birth", "insurance_number"],
    )

    # Appointments table
    op.create_table(
        "appointments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("patient_id", sa.String(length=36), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=100), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("event_name", sa.String(length=500), nullable=True),
        sa.Column("contact", sa.String(length=200), nullable=True),
        sa.Column("centre", sa.String(length=200), nullable=True),
        sa.Column("practitioner", sa.String(length=200), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_deleted_at", "appointments", ["deleted_at"])
    op.create_index(
        "ix_appointment_patient_scheduled", "appointments", ["patient_id", "scheduled_at"]
    )

    # Invoices table
    op.create_table(
        "invoices",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("patient_id", sa.String(length=36), nullable=False),
        sa.Column("invoice_number", sa.String(length=100), nullable=True),
        sa.Column("centre", sa.String(length=200), nullable=True),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("patient_insurance_number", sa.String(length=50), nullable=True),
        sa.Column("insured_person_number", sa.String(length=100), nullable=True),
        sa.Column("reimbursement_type", sa.String(length=50), nullable=True),
        sa.Column("law", sa.String(length=50), nullable=True),
        sa.Column("treatment_type", sa.String(length=100), nullable=True),
        sa.Column("insured_card_number", sa.String(length=100), nullable=True),
        sa.Column("treatment_start", sa.Date(), nullable=True),
        sa.Column("treatment_end", sa.Date(), nullable=True),
        sa.Column("service_location", sa.String(length=200), nullable=True),
        sa.Column("prescribing_doctor", sa.String(length=200), nullable=True),
        sa.Column("prescribing_doctor_address", sa.String(length=500), nullable=True),
        sa.Column("case_date", sa.Date(), nullable=True),
        sa.Column("decision_number", sa.String(length=100), nullable=True),
        sa.Column("total_amount", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invoices_patient_id", "invoices", ["patient_id"])
    op.create_index("ix_invoice_number_centre", "invoices", ["invoice_number", "centre"])

    # Services table
    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("invoice_id", sa.String(length=36), nullable=False),
        sa.Column("service_date", sa.Date(), nullable=True),
        sa.Column("quantity", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("position_number", sa.String(length=50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit_value", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("points", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("point_value", sa.Numeric(precision=10, scale=4), nullable=True),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_services_invoice_id", "services", ["invoice_id"])

    # Scraper activity table
    op.create_table(
        "scraper_activity",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("run_id", sa.String(length=36), nullable=False),
        sa.Column("patient_id", sa.String(length=36), nullable=True),
        sa.Column("page_index", sa.Integer(), nullable=False),
        sa.Column("patient_index", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scraper_activity_run_id", "scraper_activity", ["run_id"])
    op.create_index("ix_scraper_activity_patient_id", "scraper_activity", ["patient_id"])
    op.create_index("ix_scraper_activity_created_at", "scraper_activity", ["created_at"])
    op.create_index(
        "ix_activity_run_position",
        "scraper_activity",
        ["run_id", "page_index", "patient_index"],
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("scraper_activity")
    op.drop_table("services")
    op.drop_table("invoices")
    op.drop_table("appointments")
    op.drop_table("patients")
