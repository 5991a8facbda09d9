"""Portal automation implementations."""

from .base import PortalAutomation
from .medionline import MediOnlinePortal

__all__ = [
    "PortalAutomation",
    "MediOnlinePortal",
]
