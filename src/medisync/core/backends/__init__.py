"""Browser backend owning the portal session resource."""

from .base import (
    ActionFailed,
    BackendError,
    BrowserError,
    ElementNotFound,
    NavigationTimeout,
)
from .playwright_backend import PlaywrightBackend

__all__ = [
    # Errors
    "BackendError",
    "BrowserError",
    "NavigationTimeout",
    "ElementNotFound",
    "ActionFailed",
    # Playwright backend
    "PlaywrightBackend",
]
