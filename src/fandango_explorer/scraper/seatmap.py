"""Seat-map capture for a chosen showtime.

Two entry points: ``navigate_safely`` opens a time-slot URL in a fresh
session after warming up a referer chain, and ``continue_to_seat_map``
clicks the chosen showtime on the theater page an existing session is
already showing.
"""

import logging
import random
import re
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page, Response
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from fandango_explorer.browser.headers import HeaderStrategy, get_header_strategy
from fandango_explorer.browser.session import BrowserSession
from fandango_explorer.config import settings
from fandango_explorer.scraper.models import ErrorKind, StepResult
from fandango_explorer.scraper.selectors import LocatorStrategy, first_located
from fandango_explorer.utils.time import SpecificTime, try_parse_time

logger = logging.getLogger(__name__)

# (selector, screenshot name, message), most specific shape first
SEAT_MAP_SHAPES = [
    ("#mapZoom.seat-map__container", "seat_map_zoom", "Successfully captured seat map container"),
    (".seat-map__container", "seat_map", "Successfully navigated to seat map"),
    (
        "div:has(.seat-map__seat), .seat-map, .seating-chart",
        "seat_map",
        "Found seat map (alternative selector)",
    ),
]
SEATING_PAGE_INDICATORS = (
    "select your seats",
    "select seats",
    "choose your seats",
    "seat map",
    "reserved seating",
)

ACCESS_DENIED_MARKERS = ("Access Denied", "You don't have permission")
ACCESS_DENIED_ERROR = (
    "Access Denied: Fandango has blocked access to the seat map. "
    "This may be due to anti-scraping measures."
)
ACCESS_DENIED_MESSAGE = "Could not access seat selection page due to website restrictions"

SHOWTIME_ELEMENTS = ".showtime-btn, a[href*='showtime'], a.btn, button.btn, span.showtime-text"

_MARK_SHOWTIME_JS = """
(renderings) => {
    const wanted = new Set(renderings);
    for (const el of document.querySelectorAll("a, button, span, div")) {
        const text = (el.innerText || "").trim().toLowerCase();
        if (text && text.length <= 10 && wanted.has(text)) {
            el.setAttribute("data-selected-showtime", "1");
            return true;
        }
    }
    return false;
}
"""
MARKED_SHOWTIME = "[data-selected-showtime='1']"


def referer_page(time_slot_url: str, base_url: str | None = None) -> str | None:
    """
    Page to visit before a time-slot URL, derived from its query string.

    A movie id (``mid``) wins over a theater id (``tid``).
    """
    base_url = (base_url or settings.site_base_url).rstrip("/")
    params = parse_qs(urlparse(time_slot_url).query)
    for key in ("mid", "tid"):
        values = params.get(key)
        if values and values[0]:
            logger.info(f"Extracted {key}={values[0]} from time slot URL")
            return f"{base_url}/{values[0]}"
    return None


def is_access_denied(html: str) -> bool:
    return any(marker in html for marker in ACCESS_DENIED_MARKERS)


def looks_like_seating_page(html: str) -> bool:
    text = BeautifulSoup(html, "html.parser").get_text(" ", strip=True).lower()
    return any(indicator in text for indicator in SEATING_PAGE_INDICATORS)


def _css_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def showtime_strategies(time_slot_url: str, selected_time: str) -> list[LocatorStrategy]:
    """Cascade for finding the chosen showtime on the live theater page."""
    parsed = urlparse(time_slot_url)
    relative = parsed.path + (f"?{parsed.query}" if parsed.query else "")
    target = SpecificTime.parse(selected_time)
    exact_text = re.compile(rf"^\s*{re.escape(selected_time.strip())}\s*$", re.IGNORECASE)

    async def by_href(page: Page) -> Locator | None:
        for href in dict.fromkeys(h for h in (time_slot_url, relative) if h):
            locator = page.locator(f"a[href={_css_string(href)}]")
            if await locator.count() > 0:
                return locator.first
        return None

    async def by_exact_text(page: Page) -> Locator | None:
        locator = page.locator(SHOWTIME_ELEMENTS).filter(has_text=exact_text)
        if await locator.count() > 0:
            return locator.first
        return None

    async def by_normalised_text(page: Page) -> Locator | None:
        candidates = page.locator(SHOWTIME_ELEMENTS)
        texts = await candidates.all_inner_texts()
        for index, text in enumerate(texts):
            text = text.strip()
            if text and target.matches(text, try_parse_time(text)):
                return candidates.nth(index)
        return None

    async def by_page_scan(page: Page) -> Locator | None:
        renderings = sorted(target.renderings | {selected_time.strip().lower()})
        if await page.evaluate(_MARK_SHOWTIME_JS, renderings):
            return page.locator(MARKED_SHOWTIME).first
        return None

    return [
        LocatorStrategy("exact href", by_href),
        LocatorStrategy("exact text", by_exact_text),
        LocatorStrategy("normalised text", by_normalised_text),
        LocatorStrategy("page scan", by_page_scan),
    ]


class SeatMapNavigator:
    """Moves a session from a showtime to its seat-selection page and captures the map."""

    def __init__(
        self,
        session: BrowserSession,
        header_strategy: HeaderStrategy | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.session = session
        self.headers = header_strategy or get_header_strategy(settings.rotate_user_agents)
        self.rng = rng or random.Random()

    @property
    def page(self) -> Page:
        return self.session.page

    async def _pause(self, low_ms: float, high_ms: float) -> None:
        await self.page.wait_for_timeout(self.rng.uniform(low_ms, high_ms))

    def _access_denied(self, screenshots: list[str]) -> StepResult:
        logger.warning("Access Denied response from Fandango")
        return StepResult.fail(
            ACCESS_DENIED_ERROR,
            ErrorKind.SITE_DEFENSE,
            message=ACCESS_DENIED_MESSAGE,
            screenshots=screenshots,
        )

    async def navigate_safely(self, time_slot_url: str) -> StepResult:
        """Warm up cookies and a referer, then open ``time_slot_url``."""
        logger.info(f"Attempting to navigate safely to time slot: {time_slot_url}")
        screenshots: list[str] = []

        try:
            await self.session.navigate_to_site()
            await self.session.manage_cookies()

            referer = referer_page(time_slot_url)
            if referer:
                logger.info(f"Visiting {referer} before the time slot")
                await self.page.goto(referer, wait_until="domcontentloaded")
                await self.session.wait_for_navigation()
                await self.session.manage_cookies()
            else:
                logger.info("Could not extract ids, using Fandango homepage as referer")
                referer = settings.site_base_url.rstrip("/") + "/"

            return await self.open_time_slot(time_slot_url, referer)
        except PlaywrightTimeoutError as e:
            await self.session.snap(screenshots, "safe_navigation_timeout")
            return StepResult.fail(
                f"Timed out navigating to time slot: {e}", ErrorKind.TIMEOUT, screenshots=screenshots
            )
        except PlaywrightError as e:
            logger.error(f"Error in safe navigation: {e}")
            await self.session.snap(screenshots, "safe_navigation_error")
            return StepResult.fail(
                f"Failed in safe navigation to time slot: {e}", screenshots=screenshots
            )

    async def open_time_slot(self, time_slot_url: str, referer: str) -> StepResult:
        """Navigate to the time slot with navigation headers and a human-like pause."""
        screenshots: list[str] = []
        headers = self.headers.navigation_headers(referer)
        logger.info(f"Navigating to time slot with user agent: {headers.get('User-Agent', 'default')}")

        await self.page.set_extra_http_headers(headers)
        try:
            await self.page.evaluate("() => window.scrollTo(0, 100)")
            await self._pause(500, 1500)
            response = await self.page.goto(time_slot_url, wait_until="domcontentloaded")

            if await self._blocked(response):
                await self.session.snap(screenshots, "access_denied_page")
                return self._access_denied(screenshots)

            await self.session.wait_for_navigation()
            await self.page.wait_for_timeout(1000)
            return await self.detect_seat_map(screenshots)
        finally:
            await self.page.set_extra_http_headers(self.session.headers.base_headers())

    async def _blocked(self, response: Response | None) -> bool:
        if response is not None and response.status == 403:
            return True
        return is_access_denied(await self.page.content())

    async def continue_to_seat_map(self, time_slot_url: str, selected_time: str) -> StepResult:
        """
        Click ``selected_time`` on the page the session already shows.

        Falls back to ``navigate_safely`` when the session has no page
        loaded yet.
        """
        if not self.page.url.startswith("http"):
            logger.info("Session has no page loaded, navigating to time slot directly")
            return await self.navigate_safely(time_slot_url)

        logger.info(f"Continuing session to seat map for showtime {selected_time!r}")
        screenshots: list[str] = []
        try:
            found = await first_located(showtime_strategies(time_slot_url, selected_time), self.page)
            if found is None:
                await self.session.snap(screenshots, "showtime_not_found")
                return StepResult.fail(
                    f"Showtime '{selected_time}' not found on the current page",
                    screenshots=screenshots,
                )

            strategy, button = found
            logger.info(f"Found showtime {selected_time!r} via {strategy}")
            await button.hover()
            await self._pause(300, 1200)
            await button.click()
            await self.session.wait_for_navigation()

            if is_access_denied(await self.page.content()):
                await self.session.snap(screenshots, "access_denied_page")
                return self._access_denied(screenshots)

            return await self.detect_seat_map(screenshots)
        except PlaywrightTimeoutError as e:
            await self.session.snap(screenshots, "seat_map_timeout")
            return StepResult.fail(
                f"Timed out opening seat map: {e}", ErrorKind.TIMEOUT, screenshots=screenshots
            )
        except PlaywrightError as e:
            logger.error(f"Error continuing to seat map: {e}")
            await self.session.snap(screenshots, "time_slot_error")
            return StepResult.fail(f"Failed to navigate to time slot: {e}", screenshots=screenshots)

    async def detect_seat_map(self, screenshots: list[str]) -> StepResult:
        """Capture the first recognised seat-map shape, else the whole page."""
        for selector, name, message in SEAT_MAP_SHAPES:
            if await self.page.locator(selector).count() > 0:
                logger.info(f"Found seat map using {selector}")
                await self.session.snap(screenshots, name, selector)
                return StepResult.ok(message, screenshots=screenshots)

        if looks_like_seating_page(await self.page.content()):
            logger.info("Seating page recognised by its text")
            await self.session.snap(screenshots, "seat_selection_page")
            return StepResult.ok("Reached seat selection page", screenshots=screenshots)

        await self.session.snap(screenshots, "time_slot_page")
        return StepResult.fail("Could not find seat map container", screenshots=screenshots)
