"""Unit tests for selector cascades."""

from bs4 import BeautifulSoup

from fakes import FakePage
from fandango_explorer.scraper.selectors import (
    Strategy,
    first_existing,
    first_located,
    first_match,
    href_contains,
    located,
    text_contains,
    text_equals,
)

HTML = """
<div>
  <h2>Dune: Part Two</h2>
  <h2>Kung Fu Panda 4</h2>
  <a href="/dune-part-two-2024/movie-overview">Overview</a>
</div>
"""


def soup() -> BeautifulSoup:
    return BeautifulSoup(HTML, "html.parser")


def test_text_equals_is_exact_but_case_insensitive() -> None:
    assert text_equals("h2", "dune: part two").find(soup()) is not None
    assert text_equals("h2", "Dune").find(soup()) is None


def test_text_contains_matches_substring() -> None:
    element = text_contains("h2", "panda").find(soup())
    assert element is not None
    assert element.get_text() == "Kung Fu Panda 4"


def test_href_contains_ignores_empty_fragment() -> None:
    assert href_contains("dune-part-two").find(soup()) is not None
    assert href_contains("").find(soup()) is None


def test_first_match_returns_first_hit_in_order() -> None:
    strategies = [
        Strategy("never", lambda root: None),
        text_contains("h2", "dune", name="heading"),
        href_contains("dune", name="slug"),
    ]

    name, element = first_match(strategies, soup())

    assert name == "heading"
    assert element.name == "h2"


def test_first_match_returns_none_when_nothing_hits() -> None:
    assert first_match([text_equals("h2", "Wicked")], soup()) is None


async def test_first_existing_skips_missing_selectors() -> None:
    page = FakePage(counts={"#b": 2})

    selector, locator = await first_existing(page, ["#a", "#b", "#c"])

    assert selector == "#b"
    assert await locator.count() == 2


async def test_located_uses_text_filter() -> None:
    page = FakePage(counts={("#results a", "Chicago"): 1})

    hit = await first_located([located("#results a", "Boston"), located("#results a", "Chicago")], page)

    assert hit is not None
    assert hit[0] == "#results a has 'Chicago'"
