"""
Pydantic configuration models for MediSync.

These models provide type-safe configuration with validation for:
- Portal connection and selectors
- Retry supervision
- Database and logging
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# Portal Selectors
# =============================================================================


class LoginSelectors(BaseModel):
    """Selectors used by the authentication handshake."""

    landing_login_link: str = Field(
        default="a.inputBtnLogin",
        description="Link on the landing page that opens the login popup",
    )
    popup_login_button: str = Field(
        default=".inputBtnLogin",
        description="Login button inside the popup page",
    )
    submit_button: str = Field(
        default=".apmui-button.apmui-button-submit",
        description="Identity provider submit button",
    )
    username_input: str = Field(
        default='input[name="username"]',
        description="Username input",
    )
    password_input: str = Field(
        default='input[name="password"]',
        description="Password input",
    )
    dismiss_dialog_button: str = Field(
        default='button.ui-button.ui-corner-all.ui-widget:has-text("Annuler")',
        description="Optional dialog shown after login",
    )


class SearchSelectors(BaseModel):
    """Selectors of the patient search form and its result grid."""

    home_button: str = Field(default='a[id="ctl00_home"]')
    search_shortcut: str = Field(default='input[name="ctl00$btnShortcut2"]')
    last_name_input: str = Field(
        default='input[name="ctl00$CPH$ctl00$patientSearch1$txtLastName"]'
    )
    first_name_input: str = Field(
        default='input[name="ctl00$CPH$ctl00$patientSearch1$txtFirstName"]'
    )
    birth_date_input: str = Field(
        default='input[name="ctl00$CPH$ctl00$patientSearch1$txtBirthdate"]'
    )
    search_button: str = Field(
        default='input[name="ctl00$CPH$ctl00$patientSearch1$btnAdvancedSearch"]'
    )
    result_table: str = Field(
        default="table#ctl00_CPH_ctl00_PatientSearchResult_GridView1",
        description="Patient search result grid",
    )
    header_rows: int = Field(
        default=2,
        ge=0,
        description="Rows of the grid body before the first data row",
    )
    pager_row_class: str = Field(
        default="pager",
        description="Class of the grid's pager row, excluded from data rows",
    )
    pager_links: str = Field(
        default="table#ctl00_CPH_ctl00_PatientSearchResult_GridView1 a[href*=\"Page$\"]",
        description="Every pager link of the result grid",
    )
    pager_link_template: str = Field(
        default="table#ctl00_CPH_ctl00_PatientSearchResult_GridView1 a[href*=\"'Page$<page>'\"]",
        description="Pager link for a result page; <page> is replaced with the page number",
    )
    current_page_marker: str = Field(
        default="table#ctl00_CPH_ctl00_PatientSearchResult_GridView1 tr.pager span",
        description="Element holding the number of the currently displayed page",
    )
    edit_button: str = Field(
        default='input[name*="btnEdit"]',
        description="Per-row button opening the patient detail",
    )


class PatientSelectors(BaseModel):
    """Selectors of the patient detail page."""

    form_prefix: str = Field(
        default="ctl00_CPH_ctl00_pati_info_011_",
        description="Id prefix shared by the patient form inputs",
    )
    fields: dict[str, str] = Field(
        default_factory=lambda: {
            "patient_number": "txtNoPatient",
            "insurance_number": "txtNoAVS",
            "title": "ddlTitre",
            "courtesy_title": "txtTitreCourrier",
            "last_name": "txtNom",
            "first_name": "txtPrenom",
            "address_complement": "txtAdresseCompl",
            "street": "txtRue",
            "postal_code": "txtNPA",
            "locality": "txtLocalite",
            "phone1_label": "ddlTel1",
            "phone1": "txtTel1",
            "phone2_label": "ddlTel2",
            "phone2": "txtTel2",
            "phone3_label": "ddlTel3",
            "phone3": "txtTel3",
            "date_of_birth": "txtDateNaissance",
            "language": "ddlLangue",
            "nationality": "ddlNationalite",
            "date_of_death": "txtDateDeces",
            "employer": "txtEmployeur",
            "profession": "txtProfession",
            "marital_status": "ddlEtatCivil",
            "maiden_name": "txtNomJeuneFille",
            "family_doctor": "txtMedecinTraitant",
            "sex": "ddlSexe",
            "gender": "ddlGenre",
            "country": "ddlPays",
            "coordination": "txtCoord",
            "email": "txtEmail",
            "sms_notification": "chkNotificationSMS",
            "debtor": "txtDebiteur",
            "contact": "txtContact",
            "legal_representative": "txtRepresentantLegal",
            "comment": "txtCommentaire",
        },
        description="Patient field name -> input id suffix",
    )
    appointments_tab: str = Field(default='a[id="ctl00_CPH_ctl00_pati_tabs_011_lbtnAgenda"]')
    appointments_table: str = Field(default="table[id$='GridViewRdv']")
    invoices_tab: str = Field(default='a[id="ctl00_CPH_ctl00_pati_tabs_011_lbtnFactures"]')
    invoices_table: str = Field(default="table[id$='GridViewFactures']")
    invoice_detail_link: str = Field(
        default="a[id*='lnkFacture']",
        description="Per-invoice link opening its service lines",
    )
    services_table: str = Field(default="table[id$='GridViewPrestations']")
    back_button: str = Field(default='input[id="ctl00_CPH_ctl00_btnRetour"]')


class PortalSelectors(BaseModel):
    """All selectors used against the portal."""

    login: LoginSelectors = Field(default_factory=LoginSelectors)
    search: SearchSelectors = Field(default_factory=SearchSelectors)
    patient: PatientSelectors = Field(default_factory=PatientSelectors)


# =============================================================================
# Portal Configuration
# =============================================================================


class PortalConfig(BaseModel):
    """Portal connection and browser settings."""

    url: str = Field(
        default="https://www.medionline.ch/MediOnlineNet",
        description="Portal landing page",
    )
    headless: bool = Field(
        default_factory=lambda: _env_flag("HEADLESS_MODE"),
        description="Run the browser headless",
    )
    browser: str = Field(
        default="chromium",
        description="Browser to use: chromium, firefox, webkit",
    )
    default_timeout_ms: int = Field(
        default=60000,
        ge=1000,
        le=600000,
        description="Default timeout for every automation step",
    )
    readiness_timeout_ms: int = Field(
        default=5000,
        ge=100,
        le=60000,
        description="Bounded wait for individual UI-readiness checks",
    )
    readiness_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for short UI-readiness steps",
    )
    screenshots_on_error: bool = Field(
        default=True,
        description="Capture screenshot on errors",
    )
    screenshots_path: Path = Field(
        default=Path("snapshots"),
        description="Directory for error screenshots",
    )
    selectors: PortalSelectors = Field(default_factory=PortalSelectors)

    @field_validator("browser")
    @classmethod
    def _known_browser(cls, value: str) -> str:
        if value not in ("chromium", "firefox", "webkit"):
            raise ValueError(f"Unsupported browser: {value}")
        return value


# =============================================================================
# Retry Configuration
# =============================================================================


class RetryPolicyConfig(BaseModel):
    """Retry supervisor settings."""

    max_attempts: int = Field(
        default=3,
        ge=0,
        le=20,
        description="Consecutive failures allowed at one position before the run aborts",
    )
    base_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=300.0,
        description="Backoff unit; the wait before retry n is base_delay * n",
    )


# =============================================================================
# Database Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite:///data/medisync.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging)",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Connection pool size",
    )


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=Path("logs/medisync.log"),
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    data_dir: Path = Field(
        default=Path("data"),
        description="Data storage directory",
    )

    portal: PortalConfig = Field(default_factory=PortalConfig)
    retry: RetryPolicyConfig = Field(default_factory=RetryPolicyConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.portal.screenshots_path.mkdir(parents=True, exist_ok=True)
        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
