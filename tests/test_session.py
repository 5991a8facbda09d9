"""Tests for the session controller lifecycle."""

import pytest

from medisync.core.config.loader import Credentials
from medisync.core.errors import CredentialsError, LoginError, NotConnectedError, PortalError
from medisync.core.session import SessionController, SessionState

from conftest import FakePortal

CREDENTIALS = Credentials(username="physio", password="secret")


@pytest.fixture
def script(make_script):
    return make_script(pages=[[]])


@pytest.fixture
def controller(script):
    return SessionController(lambda: FakePortal(script), "https://portal.test")


class TestConnect:
    async def test_connects(self, controller, script):
        await controller.connect(CREDENTIALS)

        assert controller.state is SessionState.CONNECTED
        assert controller.is_connected
        assert isinstance(controller.portal, FakePortal)
        assert script.connects == 1

    @pytest.mark.parametrize(
        "credentials",
        [Credentials("", "secret"), Credentials("physio", "")],
    )
    async def test_empty_credentials_rejected(self, controller, script, credentials):
        with pytest.raises(CredentialsError):
            await controller.connect(credentials)

        assert controller.state is SessionState.DISCONNECTED
        assert script.calls == []

    async def test_second_connect_is_noop(self, controller, script):
        await controller.connect(CREDENTIALS)
        portal = controller.portal

        await controller.connect(CREDENTIALS)

        assert controller.portal is portal
        assert script.connects == 1

    async def test_unexpected_failure_wrapped_as_login_error(self, controller, script):
        script.login_error = TimeoutError("identity provider did not answer")

        with pytest.raises(LoginError) as exc_info:
            await controller.connect(CREDENTIALS)

        assert isinstance(exc_info.value.cause, TimeoutError)
        assert controller.state is SessionState.DISCONNECTED
        assert script.closes == 1

    async def test_domain_error_propagates_unchanged(self, controller, script):
        script.login_error = PortalError("login failed")

        with pytest.raises(PortalError):
            await controller.connect(CREDENTIALS)

        assert controller.state is SessionState.DISCONNECTED
        assert script.closes == 1


    async def test_portal_construction_failure_resets_state(self, script):
        def broken_factory():
            raise RuntimeError("browser launch failed")

        controller = SessionController(broken_factory, "https://portal.test")

        with pytest.raises(LoginError) as exc_info:
            await controller.connect(CREDENTIALS)

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert controller.state is SessionState.DISCONNECTED

    async def test_connect_after_construction_failure(self, script):
        attempts = []

        def flaky_factory():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("browser launch failed")
            return FakePortal(script)

        controller = SessionController(flaky_factory, "https://portal.test")
        with pytest.raises(LoginError):
            await controller.connect(CREDENTIALS)

        await controller.connect(CREDENTIALS)

        assert controller.is_connected
        assert script.connects == 1


class TestDisconnect:
    async def test_releases_portal(self, controller, script):
        await controller.connect(CREDENTIALS)

        await controller.disconnect()

        assert controller.state is SessionState.DISCONNECTED
        assert script.closes == 1
        with pytest.raises(NotConnectedError):
            controller.portal

    async def test_requires_connection(self, controller):
        with pytest.raises(NotConnectedError):
            await controller.disconnect()

    async def test_reconnect_builds_new_portal(self, controller):
        await controller.connect(CREDENTIALS)
        first = controller.portal
        await controller.disconnect()

        await controller.connect(CREDENTIALS)

        assert controller.portal is not first
