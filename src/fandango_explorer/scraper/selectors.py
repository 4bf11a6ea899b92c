"""Ordered selector cascades.

A cascade is a list of named strategies tried in order; the first one
that yields an element wins. Two flavours exist:

- ``Strategy`` works on a parsed HTML snapshot (BeautifulSoup ``Tag``)
  and is synchronous, so it can be unit-tested against fixture HTML.
- ``LocatorStrategy`` works on the live Playwright ``Page`` and is used
  where the element must be clicked or filled.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from bs4 import Tag
from playwright.async_api import Locator, Page

from fandango_explorer.utils.text import collapse_whitespace, contains_text, same_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Strategy:
    """A named way of finding one element in an HTML snapshot."""

    name: str
    find: Callable[[Tag], Tag | None]


@dataclass(frozen=True)
class LocatorStrategy:
    """A named way of finding one element on the live page."""

    name: str
    find: Callable[[Page], Awaitable[Locator | None]]


def first_match(strategies: Sequence[Strategy], root: Tag) -> tuple[str, Tag] | None:
    """Return ``(strategy name, element)`` for the first strategy that matches."""
    for strategy in strategies:
        element = strategy.find(root)
        logger.debug(f"Strategy '{strategy.name}': {'hit' if element else 'miss'}")
        if element is not None:
            return strategy.name, element
    return None


async def first_located(
    strategies: Sequence[LocatorStrategy], page: Page
) -> tuple[str, Locator] | None:
    """Async counterpart of :func:`first_match` for live-page strategies."""
    for strategy in strategies:
        locator = await strategy.find(page)
        logger.debug(f"Locator strategy '{strategy.name}': {'hit' if locator else 'miss'}")
        if locator is not None:
            return strategy.name, locator
    return None


async def first_existing(page: Page, selectors: Sequence[str]) -> tuple[str, Locator] | None:
    """Return the first selector with at least one match on the page."""
    for selector in selectors:
        locator = page.locator(selector)
        if await locator.count() > 0:
            return selector, locator
    return None


def located(css: str, has_text: str | None = None, name: str | None = None) -> LocatorStrategy:
    """First element matching ``css`` (and containing ``has_text``) on the live page."""

    async def find(page: Page) -> Locator | None:
        locator = page.locator(css, has_text=has_text) if has_text else page.locator(css)
        if await locator.count() > 0:
            return locator.first
        return None

    return LocatorStrategy(name or (f"{css} has {has_text!r}" if has_text else css), find)


# ---------------------------------------------------------------------------
# Snapshot strategy factories
# ---------------------------------------------------------------------------


def element_text(element: Tag) -> str:
    """Visible text of an element with whitespace collapsed."""
    return collapse_whitespace(element.get_text(" ", strip=True))


def text_equals(css: str, text: str, name: str | None = None) -> Strategy:
    """First element matching ``css`` whose text equals ``text`` (case-insensitive)."""

    def find(root: Tag) -> Tag | None:
        for element in root.select(css):
            if same_text(element_text(element), text):
                return element
        return None

    return Strategy(name or f"{css} == {text!r}", find)


def text_contains(css: str, text: str, name: str | None = None) -> Strategy:
    """First element matching ``css`` whose text contains ``text``."""

    def find(root: Tag) -> Tag | None:
        for element in root.select(css):
            if contains_text(element_text(element), text):
                return element
        return None

    return Strategy(name or f"{css} ~= {text!r}", find)


def href_contains(fragment: str, css: str = "a[href]", name: str | None = None) -> Strategy:
    """First link whose href contains ``fragment``."""

    def find(root: Tag) -> Tag | None:
        if not fragment:
            return None
        for element in root.select(css):
            if fragment in str(element.get("href", "")).lower():
                return element
        return None

    return Strategy(name or f"href*={fragment!r}", find)
