"""
Session controller.

Owns the connect/disconnect lifecycle of the exclusive portal session:

    disconnected -> connecting -> connected -> disconnected

Each connect builds a fresh automation instance from the factory, so a
reconnect after a failure never reuses a broken browser.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable

from .errors import CredentialsError, LoginError, MediSyncError, NotConnectedError
from .logging import get_logger

if TYPE_CHECKING:
    from .config.loader import Credentials
    from .portals.base import PortalAutomation


PortalFactory = Callable[[], "PortalAutomation"]


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class SessionController:
    """Connect/disconnect lifecycle around one PortalAutomation."""

    def __init__(
        self,
        portal_factory: PortalFactory,
        url: str,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        """Initialize the controller.

        Args:
            portal_factory: Builds a new automation instance per connection
            url: Portal landing page
            logger: Logger to report transitions on
        """
        self.portal_factory = portal_factory
        self.url = url
        self.logger = logger or get_logger("session")
        self.state = SessionState.DISCONNECTED
        self._portal: PortalAutomation | None = None

    @property
    def is_connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    @property
    def portal(self) -> "PortalAutomation":
        """The connected automation instance.

        Raises:
            NotConnectedError: If no session is connected
        """
        if self.state is not SessionState.CONNECTED or self._portal is None:
            raise NotConnectedError()
        return self._portal

    async def connect(self, credentials: "Credentials") -> None:
        """Acquire a portal session and log in.

        A call while connecting or connected returns without doing anything.

        Raises:
            CredentialsError: Username or password empty
            LoginError: Authentication failed (unless the cause was already a
                domain error, which propagates unchanged)
        """
        if self.state is not SessionState.DISCONNECTED:
            self.logger.debug(f"connect() ignored, session is {self.state.value}")
            return

        if not credentials.username or not credentials.password:
            raise CredentialsError()

        self.state = SessionState.CONNECTING
        self.logger.info(f"Connecting to {self.url}")

        portal: PortalAutomation | None = None
        try:
            portal = self.portal_factory()
            await portal.connect(self.url, credentials)
        except Exception as e:
            if portal is not None:
                await self._release(portal)
            self.state = SessionState.DISCONNECTED
            if isinstance(e, MediSyncError):
                raise
            raise LoginError(f"Login to {self.url} failed: {e}", cause=e) from e

        self._portal = portal
        self.state = SessionState.CONNECTED
        self.logger.info("Session connected")

    async def disconnect(self) -> None:
        """Close the session.

        Raises:
            NotConnectedError: If not connected
        """
        if self.state is not SessionState.CONNECTED:
            raise NotConnectedError()

        portal, self._portal = self._portal, None
        try:
            if portal is not None:
                await self._release(portal)
        finally:
            self.state = SessionState.DISCONNECTED
        self.logger.info("Session disconnected")

    async def _release(self, portal: "PortalAutomation") -> None:
        try:
            await portal.close()
        except Exception as e:
            self.logger.warning(f"Error closing portal session: {e}")
