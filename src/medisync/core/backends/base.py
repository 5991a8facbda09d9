"""
Browser backend errors.

Everything a backend raises derives from BackendError; the portal layer
converts these into PortalError at its boundary.
"""

from __future__ import annotations


class BackendError(Exception):
    """Base exception for backend errors."""

    def __init__(
        self,
        message: str,
        selector: str | None = None,
        cause: Exception | None = None,
        screenshot_path: str | None = None,
    ):
        super().__init__(message)
        self.selector = selector
        self.cause = cause
        self.screenshot_path = screenshot_path


class BrowserError(BackendError):
    """Base exception for browser errors."""
    pass


class NavigationTimeout(BrowserError):
    """Page didn't load in time."""
    pass


class ElementNotFound(BrowserError):
    """Selector didn't match any element."""
    pass


class ActionFailed(BrowserError):
    """Click/fill/submit failed."""
    pass
