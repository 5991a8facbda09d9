"""
Domain error taxonomy.

Control signals (NotAPatientRow, RowAbsent) share the hierarchy with real
failures so callers can tell domain errors from unexpected ones with a
single isinstance check.
"""

from __future__ import annotations


class MediSyncError(Exception):
    """Base exception for all domain errors."""

    code = "MEDISYNC_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


# =============================================================================
# Session errors
# =============================================================================


class CredentialsError(MediSyncError):
    """Username or password missing."""

    code = "CREDENTIALS_MISSING"

    def __init__(self, message: str = "Portal username and password are required"):
        super().__init__(message)


class LoginError(MediSyncError):
    """Authentication handshake failed."""

    code = "LOGIN_FAILED"

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class NotConnectedError(MediSyncError):
    """Operation requires a connected session."""

    code = "NOT_CONNECTED"

    def __init__(self, message: str = "Session is not connected"):
        super().__init__(message)


# =============================================================================
# Portal row signals
# =============================================================================


class NotAPatientRow(MediSyncError):
    """Result row is a third-party-payer line without patient detail."""

    code = "TIERS_PATIENT_ROW"

    def __init__(self, row_index: int):
        super().__init__(f"Row {row_index} is not a patient row")
        self.row_index = row_index


class RowAbsent(MediSyncError):
    """No result row exists at the requested index."""

    code = "ROW_ABSENT"

    def __init__(self, row_index: int):
        super().__init__(f"No result row at index {row_index}")
        self.row_index = row_index


class PortalError(MediSyncError):
    """An automation step against the portal failed."""

    code = "PORTAL_ERROR"

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        screenshot_path: str | None = None,
    ):
        super().__init__(message)
        self.cause = cause
        self.screenshot_path = screenshot_path


# =============================================================================
# Run errors
# =============================================================================


class TraversalError(MediSyncError):
    """A traversal step failed at a known checkpoint position."""

    code = "TRAVERSAL_ERROR"

    def __init__(self, page_index: int, patient_index: int, cause: Exception):
        super().__init__(
            f"Traversal failed at page {page_index}, patient index {patient_index}: {cause}"
        )
        self.page_index = page_index
        self.patient_index = patient_index
        self.cause = cause

    @property
    def position(self) -> tuple[int, int]:
        return (self.page_index, self.patient_index)


class RepositoryError(MediSyncError):
    """Storage operation failed."""

    code = "REPOSITORY_ERROR"

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause
