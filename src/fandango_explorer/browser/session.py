"""A single headless browser session: one browser, one context, one page."""

import asyncio
import logging
import secrets
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Route,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright_stealth import Stealth

from fandango_explorer.browser.cookies import consent_cookies
from fandango_explorer.browser.headers import (
    DEFAULT_USER_AGENT,
    HeaderStrategy,
    StaticHeaders,
)
from fandango_explorer.config import settings
from fandango_explorer.scraper.models import ErrorKind, StepResult
from fandango_explorer.scraper.selectors import first_existing

logger = logging.getLogger(__name__)

# Flags needed to run Chromium inside containers without a user namespace
SANDBOX_ARGS = [
    "--disable-dev-shm-usage",
    "--disable-setuid-sandbox",
    "--no-sandbox",
    "--disable-gpu",
]

DEFAULT_REFERER = "https://www.google.com/"

CONSENT_BUTTONS = (
    "button:has-text('Accept'), button:has-text('Accept All'), button:has-text('I Accept')"
)

SEARCH_INPUT_SELECTORS = [
    "#global-header-search-input",
    "[data-qa='search-input']",
    "input[placeholder*='Search']",
    "input[id*='search']",
    "input[id*='Search']",
    "input[class*='search']",
    "input[class*='Search']",
]

SEARCH_BUTTON_SELECTORS = [
    "#global-header-go-btn",
    "button[id*='search']",
    "button[id*='Search']",
    "button[type='submit']",
    "button.nav-bar__go-btn",
]

_SUBMIT_FIRST_SEARCH_FORM_JS = """
() => {
    for (const form of document.querySelectorAll("form")) {
        if (form.querySelector("input[type='text'], input[type='search']")) {
            form.submit();
            return true;
        }
    }
    return false;
}
"""


class SessionNotInitialisedError(RuntimeError):
    """A page operation was attempted before ``initialise()`` completed."""


class BrowserLaunchError(RuntimeError):
    """The browser, context or page could not be created."""


def new_session_id() -> str:
    """Session identifiers are derived from the creation timestamp."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def screenshot_filename(name: str) -> str:
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S-%f")[:-3]
    return f"{name}_{timestamp}.png"


class BrowserSession:
    """
    Owns one browser process (or remote connection), one context and one page.

    The page is not safe for concurrent navigation, so callers must hold
    ``lock`` for the duration of any multi-step operation.
    """

    def __init__(
        self,
        session_id: str | None = None,
        *,
        timeout: float | None = None,
        screenshot_dir: Path | None = None,
        header_strategy: HeaderStrategy | None = None,
        on_close: Callable[[str], None] | None = None,
    ) -> None:
        self.session_id = session_id or new_session_id()
        self.timeout = timeout if timeout is not None else settings.scrape_timeout
        self.screenshot_dir = screenshot_dir or settings.screenshot_dir
        self.headers = header_strategy or StaticHeaders()
        self.has_error = False
        self.lock = asyncio.Lock()
        self.created_at = time.monotonic()
        self.last_used = self.created_at

        self._on_close = on_close
        self._manager = None
        self._playwright: Playwright | None = None
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self._page: Page | None = None
        self._closed = False
        # Every screenshot written by this session, in order
        self.screenshots: list[str] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def page(self) -> Page:
        if self._page is None:
            raise SessionNotInitialisedError(
                f"Session {self.session_id} used before initialise()"
            )
        return self._page

    @property
    def is_initialised(self) -> bool:
        return self._page is not None and not self._closed

    @property
    def timeout_ms(self) -> float:
        return self.timeout * 1000

    @property
    def idle_seconds(self) -> float:
        return time.monotonic() - self.last_used

    def touch(self) -> None:
        self.last_used = time.monotonic()

    async def initialise(self) -> None:
        """Launch (or connect to) the browser and prepare the page."""
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)

        try:
            if settings.use_stealth:
                self._manager = Stealth().use_async(async_playwright())
            else:
                self._manager = async_playwright()
            self._playwright = await self._manager.__aenter__()

            self.browser = await self._launch(self._playwright)
            self.context = await self.browser.new_context(
                viewport={"width": 1280, "height": 720},
                user_agent=DEFAULT_USER_AGENT,
                device_scale_factor=1,
                has_touch=False,
                ignore_https_errors=True,
                java_script_enabled=True,
                locale="en-US",
                timezone_id="America/New_York",
                permissions=["geolocation"],
                color_scheme="light",
            )
            page = await self.context.new_page()
            page.set_default_timeout(self.timeout_ms)
            page.set_default_navigation_timeout(self.timeout_ms)
            await page.set_extra_http_headers(self.headers.base_headers())
            await page.route("**/*", self._add_referer)
            self._page = page
        except Exception as e:
            logger.error(f"Session {self.session_id}: browser initialisation failed: {e}", exc_info=True)
            if self._closed:
                await self._release_resources()
            else:
                await self.close()
            raise BrowserLaunchError(f"Failed to initialize browser: {e}") from e

        if self._closed:
            # close() ran while the launch was in flight
            await self._release_resources()
            raise BrowserLaunchError(f"Session {self.session_id} was closed during initialisation")

        logger.info(f"Session {self.session_id}: browser ready")

    async def _launch(self, playwright: Playwright) -> Browser:
        endpoint = settings.browser_ws_endpoint
        if endpoint:
            logger.info(f"Connecting to remote browser at {endpoint}")
            if settings.browser_use_cdp:
                return await playwright.chromium.connect_over_cdp(endpoint, timeout=self.timeout_ms)
            return await playwright.chromium.connect(endpoint, timeout=self.timeout_ms)

        return await playwright.chromium.launch(
            headless=settings.headless,
            executable_path=settings.browser_executable_path or None,
            args=SANDBOX_ARGS if settings.browser_no_sandbox else [],
            timeout=self.timeout_ms,
        )

    @staticmethod
    async def _add_referer(route: Route) -> None:
        """Give top-level document requests a plausible Referer."""
        request = route.request
        if request.resource_type != "document":
            await route.continue_()
            return

        headers = dict(request.headers)
        if "referer" not in {k.lower() for k in headers}:
            headers["Referer"] = DEFAULT_REFERER
        await route.continue_(headers=headers)

    async def close(self) -> None:
        """Release page, context and browser in that order. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        await self._release_resources()
        logger.info(f"Session {self.session_id}: closed")

        if self._on_close is not None:
            self._on_close(self.session_id)

    async def _release_resources(self) -> None:
        page, context, browser, manager = self._page, self.context, self.browser, self._manager
        self._page = None
        self.context = None
        self.browser = None
        self._manager = None

        for name, resource in (
            ("page", page),
            ("context", context),
            ("browser", browser),
        ):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"Session {self.session_id}: error closing {name}: {e}")

        if manager is not None:
            try:
                await manager.__aexit__(None, None, None)
            except Exception as e:
                logger.warning(f"Session {self.session_id}: error stopping playwright: {e}")

    # ------------------------------------------------------------------
    # Page primitives
    # ------------------------------------------------------------------

    async def wait_for_navigation(self, timeout: float = 15.0) -> None:
        """Wait for the network to settle; a timeout is not an error."""
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout * 1000)
        except PlaywrightTimeoutError:
            logger.debug("Network did not go idle in time, continuing")

    async def navigate_to_site(self) -> StepResult:
        """Load the site root and try to dismiss the consent overlay."""
        try:
            logger.info("Navigating to Fandango...")
            await self.page.goto(
                settings.site_base_url + "/",
                wait_until="domcontentloaded",
                timeout=self.timeout_ms,
            )
        except PlaywrightError as e:
            logger.warning(f"Error during navigation to Fandango: {e}")
            return StepResult.fail(f"Could not load Fandango: {e}")

        await self.page.wait_for_timeout(500)
        await self.dismiss_consent()
        return StepResult.ok("Loaded Fandango")

    async def dismiss_consent(self) -> bool:
        """Click an accept button on the consent overlay if one is shown."""
        try:
            buttons = self.page.locator(CONSENT_BUTTONS)
            if await buttons.count() > 0:
                await buttons.first.click(timeout=5000)
                await self.page.wait_for_timeout(500)
                return True
        except PlaywrightError as e:
            logger.debug(f"Consent overlay not dismissed: {e}")
        return False

    async def manage_cookies(self) -> bool:
        """Seed consent and visitor cookies. Never raises."""
        if self.context is None:
            return False
        try:
            existing = await self.context.cookies()
            logger.debug(f"Current cookies count: {len(existing)}")
            await self.context.add_cookies(consent_cookies())
            return True
        except Exception as e:
            logger.warning(f"Error managing cookies: {e}")
            return False

    async def perform_search(self, search_text: str) -> StepResult:
        """Type ``search_text`` into the site search and submit it."""
        logger.info(f"Searching for: {search_text}")
        try:
            found = await first_existing(self.page, SEARCH_INPUT_SELECTORS)
            if not found:
                logger.error("Could not find search box")
                return StepResult.fail("Could not find search box")

            selector, search_box = found
            logger.debug(f"Found search box with selector: {selector}")
            search_box = search_box.first
            await search_box.click()
            await search_box.fill("")
            await search_box.fill(search_text)

            try:
                await search_box.press("Enter")
            except PlaywrightError as e:
                logger.warning(f"Enter key submission failed: {e}")
                if not await self._submit_search_fallback():
                    return StepResult.fail("Could not submit search")

            await self.page.wait_for_load_state("domcontentloaded")
            await self.page.wait_for_timeout(1000)
        except PlaywrightTimeoutError as e:
            return StepResult.fail(f"Search timed out: {e}", ErrorKind.TIMEOUT)
        except PlaywrightError as e:
            logger.error(f"Error during search: {e}")
            return StepResult.fail(f"Search error: {e}")

        return StepResult.ok(f"Searched for: {search_text}")

    async def _submit_search_fallback(self) -> bool:
        found = await first_existing(self.page, SEARCH_BUTTON_SELECTORS)
        if found:
            selector, button = found
            await button.first.click()
            logger.info(f"Clicked search button: {selector}")
            return True

        try:
            submitted = await self.page.evaluate(_SUBMIT_FIRST_SEARCH_FORM_JS)
        except PlaywrightError as e:
            logger.error(f"Form submission failed: {e}")
            return False
        if submitted:
            logger.info("Submitted search using form submit")
        return bool(submitted)

    async def take_screenshot(self, name: str, selector: str | None = None) -> str | None:
        """
        Capture the page (or one element) to the screenshot directory.

        Falls back to a full-page capture when the element capture fails.

        Returns:
            The public relative path, or None if nothing could be captured
        """
        filename = screenshot_filename(name)
        path = self.screenshot_dir / filename
        relative = f"{settings.screenshot_url_prefix}/{filename}"

        if selector:
            try:
                await self.page.locator(selector).first.screenshot(path=str(path))
                self.screenshots.append(relative)
                return relative
            except PlaywrightError as e:
                logger.warning(f"Element screenshot of {selector!r} failed, using full page: {e}")

        try:
            await self.page.screenshot(path=str(path))
        except PlaywrightError as e:
            logger.error(f"Error taking screenshot {name!r}: {e}")
            return None
        self.screenshots.append(relative)
        return relative

    async def snap(self, into: list[str], name: str, selector: str | None = None) -> None:
        """Take a screenshot and append its path to ``into`` if one was written."""
        shot = await self.take_screenshot(name, selector)
        if shot:
            into.append(shot)
