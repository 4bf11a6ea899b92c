"""Site navigation: search, then resolve a city, theater or movie from the results."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from fandango_explorer.browser.session import BrowserSession
from fandango_explorer.config import settings
from fandango_explorer.scraper.models import ErrorKind, NavState, StepResult
from fandango_explorer.scraper.selectors import (
    LocatorStrategy,
    first_existing,
    first_located,
    located,
)
from fandango_explorer.utils.text import collapse_whitespace, contains_text

logger = logging.getLogger(__name__)

CITIES_SECTION = "#search-results-cities"
THEATERS_SECTION = "#search-results-theaters"
MOVIES_SECTION = "#search-results-movies"

NEARBY_THEATER_DROPDOWNS = [
    "#nearby-theaters-select-list",
    "select.nearby-theaters__select",
    "select.js-nearby-theaters",
]
NEARBY_THEATER_GO_BUTTON = "button.nearby-theaters__go-btn, button.go-btn, input[type='submit']"
PLACEHOLDER_OPTION_LABEL = "Select Theater"
PLACEHOLDER_OPTION_VALUE = "#"

BUY_TICKETS_SELECTORS = [
    "a.btn:has-text('Buy Tickets')",
    "a:has-text('Buy Tickets')",
    "button:has-text('Buy Tickets')",
]


@dataclass(frozen=True)
class TheaterOption:
    """One ``<option>`` of the nearby-theaters dropdown."""

    label: str
    value: str

    @property
    def is_placeholder(self) -> bool:
        return self.label == PLACEHOLDER_OPTION_LABEL or self.value == PLACEHOLDER_OPTION_VALUE

    @property
    def is_path(self) -> bool:
        return self.value.startswith("/")

    @property
    def is_url(self) -> bool:
        return self.value.startswith(("http://", "https://"))


def dropdown_options(html: str, selector: str) -> list[TheaterOption]:
    """Read the options of the dropdown matched by ``selector`` from a page snapshot."""
    soup = BeautifulSoup(html, "html.parser")
    select = soup.select_one(selector)
    if select is None:
        return []
    return [
        TheaterOption(
            label=collapse_whitespace(option.get_text()),
            value=str(option.get("value", "")).strip(),
        )
        for option in select.find_all("option")
    ]


def match_theater_option(options: Sequence[TheaterOption], theater_name: str) -> TheaterOption | None:
    """First non-placeholder option whose label contains ``theater_name``."""
    for option in options:
        if option.is_placeholder:
            continue
        if contains_text(option.label, theater_name):
            logger.info(f"Found matching theater: {option.label}")
            return option
    return None


class SiteNavigator:
    """
    Drives the site's search box and result pages for one request.

    Every step returns a ``StepResult``; an element that cannot be found
    is reported through ``error`` naming the step and its target.
    """

    def __init__(self, session: BrowserSession) -> None:
        self.session = session
        self.state = NavState.START

    @property
    def page(self) -> Page:
        return self.session.page

    def _advance(self, state: NavState, result: StepResult) -> StepResult:
        self.state = NavState.FAILED if result.failed else state
        if result.failed:
            logger.info(f"Navigation step failed: {result.error}")
        return result

    async def _resolve_search_result(
        self,
        search_text: str,
        *,
        section: str,
        strategies: Sequence[LocatorStrategy],
        noun: str,
        plural: str,
    ) -> StepResult:
        """Search for ``search_text`` and click the first matching result link."""
        searched = await self.session.perform_search(search_text)
        if searched.failed:
            return searched

        try:
            if await self.page.locator(section).count() == 0:
                return StepResult.fail(f"No {plural} section found in search results")
            logger.info(f"Found {plural} results section")

            found = await first_located(strategies, self.page)
            if found is None:
                return StepResult.fail(f"{noun.capitalize()} link not found for: {search_text}")

            strategy, link = found
            logger.info(f"Found link for {noun} {search_text!r} via {strategy}")
            await link.click()
            await self.session.wait_for_navigation()
        except PlaywrightTimeoutError as e:
            return StepResult.fail(f"Timed out selecting {noun}: {e}", ErrorKind.TIMEOUT)
        except PlaywrightError as e:
            logger.error(f"Error selecting {noun} {search_text!r}: {e}")
            return StepResult.fail(f"Error selecting {noun}: {e}")

        return StepResult.ok(f"Successfully navigated to {noun}: {search_text}")

    async def search_city(self, city: str) -> StepResult:
        logger.info(f"Searching for city: {city}")
        result = await self._resolve_search_result(
            city,
            section=CITIES_SECTION,
            strategies=[located(f"{CITIES_SECTION} a", city)],
            noun="city",
            plural="cities",
        )
        return self._advance(NavState.CITY_RESOLVED, result)

    async def search_theater(self, theater: str) -> StepResult:
        logger.info(f"Searching for theater: {theater}")
        result = await self._resolve_search_result(
            theater,
            section=THEATERS_SECTION,
            strategies=[
                located(f"{THEATERS_SECTION} .heading-size-m", theater),
                located(f"{THEATERS_SECTION} a", theater),
            ],
            noun="theater",
            plural="theaters",
        )
        return self._advance(NavState.THEATER_RESOLVED, result)

    async def search_movie(self, movie: str) -> StepResult:
        """Open the movie's own page, following the Buy Tickets link if offered."""
        logger.info(f"Searching for movie: {movie}")
        result = await self._resolve_search_result(
            movie,
            section=MOVIES_SECTION,
            strategies=[
                located(f"{MOVIES_SECTION} .search__movie-title", movie),
                located(f"{MOVIES_SECTION} a", movie),
            ],
            noun="movie",
            plural="movies",
        )
        if not result.failed:
            await self._click_buy_tickets()
        return self._advance(NavState.MOVIE_RESOLVED, result)

    async def _click_buy_tickets(self) -> bool:
        try:
            found = await first_existing(self.page, BUY_TICKETS_SELECTORS)
            if not found:
                return False
            _, button = found
            await button.first.click()
            logger.info("Clicked Buy Tickets button")
            await self.session.wait_for_navigation()
            return True
        except PlaywrightError as e:
            logger.warning(f"Buy Tickets click failed: {e}")
            return False

    async def select_nearby_theater(self, theater_name: str) -> StepResult:
        """
        Pick a theater from the nearby-theaters dropdown on a city page.

        Tries, in order: direct navigation when the option value is a path,
        selecting the option and waiting for the page to navigate itself,
        clicking a Go button, and finally navigating to the option value.
        """
        logger.info(f"Looking for theater '{theater_name}' in nearby theaters dropdown")
        not_found = f"Theater '{theater_name}' not found in nearby theaters dropdown or navigation failed"

        try:
            found = await first_existing(self.page, NEARBY_THEATER_DROPDOWNS)
            if not found:
                return self._advance(
                    NavState.FAILED,
                    StepResult.fail("Nearby theaters dropdown not found on this page"),
                )

            selector, dropdown = found
            options = dropdown_options(await self.page.content(), selector)
            logger.info(f"Found {len(options)} theater options in dropdown")

            option = match_theater_option(options, theater_name)
            if option is None or not await self._follow_theater_option(dropdown.first, option):
                return self._advance(NavState.FAILED, StepResult.fail(not_found))
        except PlaywrightError as e:
            logger.error(f"Error selecting nearby theater: {e}")
            return self._advance(
                NavState.FAILED, StepResult.fail(f"Error selecting nearby theater: {e}")
            )

        return self._advance(
            NavState.THEATER_RESOLVED,
            StepResult.ok(f"Successfully selected theater: {theater_name}"),
        )

    async def _follow_theater_option(self, dropdown: Locator, option: TheaterOption) -> bool:
        if option.is_path:
            return await self._goto_option(option)

        try:
            await dropdown.select_option(value=option.value)
            logger.info(f"Selected theater option with value: {option.value}")
            await self.page.wait_for_timeout(2000)

            if option.value and option.value in self.page.url:
                logger.info("Page navigated automatically after selection")
                return True

            go_button = self.page.locator(NEARBY_THEATER_GO_BUTTON)
            if await go_button.count() > 0:
                logger.info("Found Go/Submit button, clicking it")
                await go_button.first.click()
                await self.session.wait_for_navigation()
                return True
        except PlaywrightError as e:
            logger.warning(f"Error during theater selection: {e}")

        if option.is_url:
            return await self._goto_option(option)
        return False

    async def _goto_option(self, option: TheaterOption) -> bool:
        url = urljoin(settings.site_base_url, option.value)
        logger.info(f"Navigating directly to theater URL: {url}")
        try:
            await self.page.goto(url, wait_until="domcontentloaded")
        except PlaywrightError as e:
            logger.warning(f"Direct navigation to {url} failed: {e}")
            return False
        await self.session.wait_for_navigation()
        return True
