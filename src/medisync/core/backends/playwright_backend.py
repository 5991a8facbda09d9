"""
Playwright backend for browser automation.

Owns the exclusive browser resource of one portal session:
- Browser, context and the active page
- Popup handoff (the login link opens a new page)
- Click / fill / wait primitives with error mapping
- Screenshot capture on errors
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .base import ActionFailed, BackendError, BrowserError, ElementNotFound, NavigationTimeout

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)


# Reads a form control the way a user sees it: the selected option's text
# for a select, the checked state for a checkbox, the value otherwise.
_FIELD_VALUE_SCRIPT = """
(el) => {
    const tag = el.tagName.toLowerCase();
    if (tag === 'select') {
        return el.selectedIndex >= 0 ? el.options[el.selectedIndex].text : '';
    }
    if (tag === 'input' && (el.type === 'checkbox' || el.type === 'radio')) {
        return el.checked ? 'true' : 'false';
    }
    if ('value' in el) {
        return el.value;
    }
    return el.textContent;
}
"""


class PlaywrightBackend:
    """Playwright browser session.

    One instance is one exclusive browser. It is started once, driven
    sequentially and closed; it is never restarted.
    """

    def __init__(
        self,
        headless: bool = True,
        timeout_ms: int = 60000,
        browser_type: str = "chromium",
        viewport_width: int = 1920,
        viewport_height: int = 1080,
        screenshots_path: Path | str | None = None,
        screenshots_on_error: bool = True,
    ):
        """Initialize Playwright backend.

        Args:
            headless: Run browser in headless mode
            timeout_ms: Default timeout of every browser operation
            browser_type: Browser to use (chromium, firefox, webkit)
            viewport_width: Browser viewport width
            viewport_height: Browser viewport height
            screenshots_path: Directory for error screenshots
            screenshots_on_error: Capture screenshots on errors
        """
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.browser_type = browser_type
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.screenshots_on_error = screenshots_on_error
        self.screenshots_path = Path(screenshots_path) if screenshots_path else Path("snapshots")

        # Playwright objects (initialized by start)
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def started(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @property
    def page(self) -> "Page":
        """The page currently driven."""
        if self._page is None or self._page.is_closed():
            raise BrowserError("No active page")
        return self._page

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Launch the browser and create the context."""
        if self.started:
            return

        self._playwright = await async_playwright().start()

        if self.browser_type == "firefox":
            browser_launcher = self._playwright.firefox
        elif self.browser_type == "webkit":
            browser_launcher = self._playwright.webkit
        else:
            browser_launcher = self._playwright.chromium

        try:
            self._browser = await browser_launcher.launch(headless=self.headless)
        except PlaywrightError as e:
            raise BackendError(
                f"Failed to launch {self.browser_type} browser. "
                f"Run: playwright install {self.browser_type}",
                cause=e,
            ) from e

        self._context = await self._browser.new_context(
            viewport={"width": self.viewport_width, "height": self.viewport_height},
            locale="fr-CH",
            timezone_id="Europe/Zurich",
        )
        self._context.set_default_timeout(self.timeout_ms)

        logger.info(f"Launched {self.browser_type} browser (headless={self.headless})")

    async def open(self, url: str) -> "Page":
        """Open ``url`` in a new page and make it the active page."""
        if self._context is None:
            raise BrowserError("Browser not started")

        page = await self._context.new_page()
        self._page = page
        try:
            await page.goto(url, wait_until="domcontentloaded")
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"Navigation timeout: {url}", cause=e) from e
        except PlaywrightError as e:
            raise BrowserError(f"Browser error opening {url}: {e}", cause=e) from e
        return page

    async def click_for_popup(self, selector: str) -> "Page":
        """Click an element that opens a new page and switch to that page.

        Returns:
            The page that was active before the click
        """
        if self._context is None:
            raise BrowserError("Browser not started")

        opener = self.page
        try:
            async with self._context.expect_page() as popup_info:
                await opener.click(selector, no_wait_after=True)
            popup = await popup_info.value
        except PlaywrightError as e:
            raise await self._failure(ActionFailed, f"Popup from {selector} failed: {e}", selector, e) from e

        await popup.wait_for_load_state("domcontentloaded")
        self._page = popup
        return opener

    async def close_page(self, page: "Page") -> None:
        if not page.is_closed():
            await page.close()

    async def close(self) -> None:
        """Close browser and clean up resources."""
        self._page = None

        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.info("Playwright backend closed")

    # =========================================================================
    # Actions
    # =========================================================================

    async def click(
        self,
        selector: str,
        timeout_ms: int | None = None,
        optional: bool = False,
    ) -> bool:
        """Click an element on the active page.

        Args:
            selector: CSS selector for element to click
            timeout_ms: Timeout in milliseconds
            optional: Return False instead of raising when the click fails

        Returns:
            True if clicked
        """
        page = self.page
        try:
            await page.click(selector, timeout=timeout_ms or self.timeout_ms)
            return True
        except PlaywrightError as e:
            if optional:
                logger.debug(f"Optional click on {selector} skipped: {e}")
                return False
            raise await self._failure(ActionFailed, f"Click on {selector} failed: {e}", selector, e) from e

    async def fill(self, selector: str, value: str, timeout_ms: int | None = None) -> None:
        """Fill a text input, replacing its content."""
        page = self.page
        try:
            await page.fill(selector, value, timeout=timeout_ms or self.timeout_ms)
        except PlaywrightError as e:
            raise await self._failure(ActionFailed, f"Fill of {selector} failed: {e}", selector, e) from e

    async def wait_for_selector(
        self,
        selector: str,
        state: str = "visible",
        timeout_ms: int | None = None,
    ) -> None:
        """Wait for an element.

        Raises:
            ElementNotFound: If the element does not reach ``state`` in time
        """
        page = self.page
        try:
            await page.wait_for_selector(selector, state=state, timeout=timeout_ms or self.timeout_ms)  # type: ignore[arg-type]
        except PlaywrightError as e:
            raise ElementNotFound(f"Element not found: {selector}", selector=selector, cause=e) from e

    async def wait_for_network_idle(self, timeout_ms: int | None = None) -> None:
        page = self.page
        try:
            await page.wait_for_load_state("networkidle", timeout=timeout_ms or self.timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout("Page did not settle", cause=e) from e

    # =========================================================================
    # Reading
    # =========================================================================

    async def exists(self, selector: str) -> bool:
        """True if at least one element currently matches."""
        return await self.page.locator(selector).count() > 0

    async def outer_html(self, selector: str) -> str:
        """Markup of the first matching element."""
        locator = self.page.locator(selector).first
        try:
            return await locator.evaluate("(el) => el.outerHTML")
        except PlaywrightError as e:
            raise await self._failure(ElementNotFound, f"Cannot read {selector}: {e}", selector, e) from e

    async def text(self, selector: str) -> str | None:
        """Text of the first matching element, None if absent."""
        locator = self.page.locator(selector)
        if await locator.count() == 0:
            return None
        return await locator.first.inner_text()

    async def field_value(self, selector: str) -> str | None:
        """Displayed value of a form control, None if absent."""
        locator = self.page.locator(selector)
        if await locator.count() == 0:
            return None
        try:
            return await locator.first.evaluate(_FIELD_VALUE_SCRIPT)
        except PlaywrightError as e:
            raise await self._failure(BrowserError, f"Cannot read {selector}: {e}", selector, e) from e

    async def attribute_values(self, selector: str, attribute: str) -> list[str]:
        """Values of ``attribute`` on every matching element."""
        values: list[Any] = await self.page.locator(selector).evaluate_all(
            "(els, name) => els.map((el) => el.getAttribute(name))",
            attribute,
        )
        return [v for v in values if v]

    async def click_nth(self, selector: str, index: int) -> None:
        """Click the ``index``-th element (0-based) matching ``selector``."""
        try:
            await self.page.locator(selector).nth(index).click(timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise await self._failure(
                ActionFailed, f"Click on {selector} #{index} failed: {e}", selector, e
            ) from e

    # =========================================================================
    # Screenshots
    # =========================================================================

    async def capture_screenshot(self, prefix: str = "error") -> str | None:
        """Capture a screenshot of the active page for debugging."""
        if not self.screenshots_on_error or self._page is None or self._page.is_closed():
            return None

        try:
            self.screenshots_path.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filepath = self.screenshots_path / f"{prefix}_{timestamp}.png"

            await self._page.screenshot(path=str(filepath), full_page=True)
            logger.info(f"Screenshot saved: {filepath}")

            return str(filepath)
        except PlaywrightError as e:
            logger.warning(f"Failed to capture screenshot: {e}")
            return None

    async def _failure(
        self,
        error_type: type[BrowserError],
        message: str,
        selector: str,
        cause: Exception,
    ) -> BrowserError:
        screenshot_path = await self.capture_screenshot("error")
        return error_type(message, selector=selector, cause=cause, screenshot_path=screenshot_path)
