"""Showtime extraction from a theater's listings page.

The live page is only used for screenshots and in-page highlighting; all
lookups run against a BeautifulSoup snapshot of ``page.content()`` so the
selector cascades can be exercised against saved HTML.
"""

import logging
from dataclasses import dataclass, field
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Error as PlaywrightError
from rapidfuzz import fuzz

from fandango_explorer.browser.session import BrowserSession
from fandango_explorer.config import settings
from fandango_explorer.scraper.models import ErrorKind, StepResult, TimeRange, TimeSlot
from fandango_explorer.scraper.selectors import (
    Strategy,
    element_text,
    first_match,
    href_contains,
    text_equals,
)
from fandango_explorer.utils.text import contains_text, file_safe, normalise_title, slugify
from fandango_explorer.utils.time import TimeFilter

logger = logging.getLogger(__name__)

THEATER_NAME_SELECTOR = ".theater-name, .fd-theater-name, h1"
LISTINGS_SECTION_SELECTOR = (
    "#lazyload-movie-times, .thtr-mv-list, .fd-panel, li.shared-movie-showtimes"
)
TITLE_SELECTOR = ".thtr-mv-list__detail-title, .shared-movie-showtimes__movie-title"
TITLE_CANDIDATE_SELECTOR = f"{TITLE_SELECTOR}, h2"
CONTAINER_SELECTORS = (
    "li.thtr-mv-list__panel",
    "li.shared-movie-showtimes",
    "li",
    "div.thtr-mv-list__panel",
    ".fd-panel",
)
DEDICATED_SHOWTIME_SELECTOR = ".showtimes-btn-list .showtime-btn"
BROAD_SHOWTIME_SELECTOR = (
    ".showtimes-btn-list .showtime-btn, .showtime-btn, .btn, "
    'a[href*="showtime"], span.showtime-text, button.btn'
)

# Longer text is a label swept up by the generic selectors, not a time
MAX_SHOWTIME_TEXT = 10
FUZZY_THRESHOLD = 85

_HIGHLIGHT_JS = """
([containerSelector, times]) => {
    const container = containerSelector ? document.querySelector(containerSelector) : null;
    const scope = container || document;
    if (container) {
        container.style.outline = "3px solid #e4002b";
        container.scrollIntoView({block: "center"});
    }
    const wanted = new Set(times);
    let marked = 0;
    scope.querySelectorAll(".showtime-btn, a[href*='showtime'], .btn").forEach((el) => {
        if (wanted.has(el.innerText.trim())) {
            el.style.backgroundColor = "#ffd400";
            el.style.outline = "2px solid #e4002b";
            marked += 1;
        }
    });
    return marked;
}
"""


@dataclass
class ShowtimeListing:
    """What a theater page snapshot says about one movie."""

    movie_title: str
    theater_name: str | None = None
    time_slots: list[TimeSlot] = field(default_factory=list)
    container_selector: str | None = None
    strategy: str | None = None
    error: str | None = None
    note: str | None = None


def movie_strategies(movie: str) -> list[Strategy]:
    """Exact-title cascade, most specific markup first."""
    return [
        text_equals("li[id*='movie'] h2", movie, "list-item heading"),
        text_equals(TITLE_SELECTOR, movie, "detail title"),
        text_equals(".thtr-mv-list__detail-link", movie, "detail link"),
        text_equals("h1, h2, h3, h4", movie, "heading"),
        href_contains(slugify(movie), name="slug link"),
        text_equals("a", movie, "link"),
    ]


def read_theater_name(soup: Tag) -> str | None:
    element = soup.select_one(THEATER_NAME_SELECTOR)
    if element is None:
        return None
    return element_text(element) or None


def find_movie_element(soup: Tag, movie: str) -> tuple[str, Tag, str] | None:
    """
    Locate the element naming ``movie`` on the page.

    Exact matches are tried first, then a case-insensitive substring match
    over title-like elements, then a fuzzy match.

    Returns:
        Tuple of (strategy name, element, display title) or None
    """
    found = first_match(movie_strategies(movie), soup)
    if found:
        strategy, element = found
        return strategy, element, element_text(element) or movie

    candidates = [(el, element_text(el)) for el in soup.select(TITLE_CANDIDATE_SELECTOR)]
    logger.debug(f"Exact match for {movie!r} not found, {len(candidates)} title candidates")

    for element, text in candidates:
        if contains_text(text, movie):
            logger.info(f"Found partial match: {text!r}")
            return "partial", element, text

    target = normalise_title(movie).lower()
    best_score = 0.0
    best: tuple[Tag, str] | None = None
    for element, text in candidates:
        score = fuzz.ratio(target, normalise_title(text).lower())
        if score > best_score:
            best_score, best = score, (element, text)

    if best and best_score >= FUZZY_THRESHOLD:
        logger.info(f"Fuzzy match: {best_score:.1f}% - {movie!r} -> {best[1]!r}")
        return "fuzzy", best[0], best[1]
    return None


def movie_container(element: Tag) -> Tag | None:
    """Nearest list-item or panel enclosing ``element``."""
    for css in CONTAINER_SELECTORS:
        container = element.css.closest(css)
        if container is not None:
            return container
    return None


def fallback_scope(soup: Tag, title: str) -> Tag:
    """Container of any heading mentioning ``title``, else the whole page."""
    for heading in soup.select(f"h2, {TITLE_SELECTOR}"):
        if contains_text(element_text(heading), title):
            scope = movie_container(heading) or heading.parent
            if scope is not None:
                return scope
    logger.warning(f"No heading mentions {title!r}, harvesting showtimes page-wide")
    return soup


def showtime_url(button: Tag, page_url: str) -> str | None:
    """Href of the button or its nearest enclosing link, resolved against the page."""
    link = button if button.name == "a" else button.find_parent("a")
    if link is None:
        return None
    href = str(link.get("href", "")).strip()
    if not href or href == "#" or href.startswith("javascript:"):
        return None
    return urljoin(page_url, href)


def harvest_showtimes(scope: Tag, page_url: str, time_filter: TimeFilter) -> list[TimeSlot]:
    """Collect showtime buttons within ``scope`` and flag the ones to highlight."""
    buttons = scope.select(DEDICATED_SHOWTIME_SELECTOR) or scope.select(BROAD_SHOWTIME_SELECTOR)

    slots: list[TimeSlot] = []
    seen: set[tuple[str, str | None]] = set()
    for button in buttons:
        text = element_text(button)
        if not text or len(text) > MAX_SHOWTIME_TEXT:
            continue
        url = showtime_url(button, page_url)
        if (text, url) in seen:
            continue
        seen.add((text, url))
        slots.append(TimeSlot(time=text, url=url, is_highlighted=time_filter.should_highlight(text, url)))
    return slots


def container_selector(container: Tag | None) -> str | None:
    if container is None or not container.get("id"):
        return None
    return f"[id='{container['id']}']"


def parse_listing(html: str, movie: str, page_url: str, time_filter: TimeFilter) -> ShowtimeListing:
    """Find ``movie`` in a theater page snapshot and harvest its showtimes."""
    soup = BeautifulSoup(html, "html.parser")
    listing = ShowtimeListing(movie_title=movie, theater_name=read_theater_name(soup))

    if soup.select_one(LISTINGS_SECTION_SELECTOR) is None:
        listing.error = "Movie listings section not found on theater page"
        return listing

    found = find_movie_element(soup, movie)
    if found is None:
        listing.error = f"Movie '{movie}' not found on theater page"
        return listing

    listing.strategy, element, listing.movie_title = found
    logger.info(f"Found movie {movie!r} using {listing.strategy} as {listing.movie_title!r}")

    container = movie_container(element)
    if container is None:
        listing.note = "Movie container not found, showtimes collected by title"
        logger.warning(listing.note)
        scope = fallback_scope(soup, listing.movie_title)
    else:
        scope = container
        listing.container_selector = container_selector(container)

    listing.time_slots = harvest_showtimes(scope, page_url, time_filter)
    if not listing.time_slots:
        listing.error = f"No showtimes found for '{listing.movie_title}'"
    return listing


class ShowtimeExtractor:
    """Extracts one movie's showtimes from the theater page a session is on."""

    def __init__(self, session: BrowserSession, ambiguous_pm_cutoff: int | None = None) -> None:
        self.session = session
        self.ambiguous_pm_cutoff = (
            ambiguous_pm_cutoff if ambiguous_pm_cutoff is not None else settings.ambiguous_pm_cutoff
        )

    def build_filter(
        self, time_range: TimeRange | None, specific_times: list[str] | None
    ) -> TimeFilter:
        return TimeFilter.build(
            start=time_range.start if time_range else None,
            end=time_range.end if time_range else None,
            specific_times=specific_times,
            ambiguous_pm_cutoff=self.ambiguous_pm_cutoff,
        )

    async def extract(
        self,
        movie: str,
        time_range: TimeRange | None = None,
        specific_times: list[str] | None = None,
    ) -> StepResult:
        """
        Harvest showtimes for ``movie`` from the current page.

        Never raises for missing markup: a missing section, movie or
        showtime list comes back as ``error`` together with whatever was
        gathered.
        """
        page = self.session.page
        time_filter = self.build_filter(time_range, specific_times)
        logger.info(f"Looking for movie {movie!r} on theater page ({time_filter})")

        screenshots: list[str] = []
        await self.session.snap(screenshots, "debug_full_page")

        try:
            await page.wait_for_timeout(1000)
            html = await page.content()
        except PlaywrightError as e:
            logger.error(f"Could not read theater page: {e}")
            return StepResult.fail(
                f"Could not read theater page: {e}",
                screenshots=screenshots,
                time_slots=[],
                movie_title=movie,
            )

        listing = parse_listing(html, movie, page.url, time_filter)
        common = {
            "screenshots": screenshots,
            "time_slots": listing.time_slots,
            "movie_title": listing.movie_title,
            "theater_name": listing.theater_name,
        }

        if listing.error and not listing.time_slots:
            logger.info(listing.error)
            return StepResult.fail(listing.error, ErrorKind.NAVIGATION, **common)

        await self._highlight(listing)
        await self.session.snap(
            screenshots, f"movie_{file_safe(listing.movie_title)}", listing.container_selector
        )

        highlighted = sum(1 for slot in listing.time_slots if slot.is_highlighted)
        logger.info(
            f"Extracted {len(listing.time_slots)} showtimes for {listing.movie_title!r} "
            f"({highlighted} highlighted)"
        )
        message = f"Found {len(listing.time_slots)} showtimes for {listing.movie_title}"
        if listing.note:
            message = f"{message} ({listing.note})"
        return StepResult.ok(message, **common)

    async def _highlight(self, listing: ShowtimeListing) -> None:
        """Outline the movie and colour highlighted showtimes before the capture."""
        times = [slot.time for slot in listing.time_slots if slot.is_highlighted]
        try:
            marked = await self.session.page.evaluate(
                _HIGHLIGHT_JS, [listing.container_selector, times]
            )
            logger.debug(f"Highlighted {marked} showtime buttons in page")
        except PlaywrightError as e:
            logger.debug(f"In-page highlighting skipped: {e}")
