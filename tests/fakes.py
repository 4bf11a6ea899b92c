"""In-memory stand-ins for the parts of Playwright's Page/Locator the scraper uses."""

import asyncio
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import Error as PlaywrightError


@dataclass
class FakeResponse:
    status: int = 200


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str, has_text: Any = None, index: int | None = None):
        self.page = page
        self.selector = selector
        self.has_text = has_text
        self.index = index

    def _key(self) -> Any:
        if self.has_text is None:
            return self.selector
        text = self.has_text.pattern if isinstance(self.has_text, re.Pattern) else self.has_text
        return (self.selector, text)

    async def count(self) -> int:
        return self.page.counts.get(self._key(), 0)

    @property
    def first(self) -> "FakeLocator":
        return FakeLocator(self.page, self.selector, self.has_text, 0)

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(self.page, self.selector, self.has_text, index)

    def filter(self, has_text: Any = None) -> "FakeLocator":
        return FakeLocator(self.page, self.selector, has_text)

    def _record(self, action: str, *args: Any) -> None:
        self.page.actions.append((action, self._key(), *args))

    async def click(self, **kwargs: Any) -> None:
        self._record("click")
        handler = self.page.on_click.get(self._key())
        if handler:
            handler(self.page)

    async def hover(self) -> None:
        self._record("hover")

    async def fill(self, value: str) -> None:
        self._record("fill", value)

    async def press(self, key: str) -> None:
        self._record("press", key)
        if self.page.fail_enter:
            raise PlaywrightError("Enter failed")

    async def select_option(self, value: str | None = None) -> None:
        self._record("select_option", value)

    async def screenshot(self, path: str) -> None:
        if self.page.fail_element_screenshots:
            raise PlaywrightError("element not visible")
        self.page.screenshots.append((path, self._key()))

    async def all_inner_texts(self) -> list[str]:
        return list(self.page.inner_texts.get(self.selector, []))


class FakePage:
    """
    A page whose selector matches are declared up front.

    ``counts`` maps a selector, or ``(selector, has_text)`` for filtered
    locators, to the number of matching elements.
    """

    def __init__(
        self,
        html: str = "<html><body></body></html>",
        counts: dict[Any, int] | None = None,
        url: str = "https://www.fandango.com/",
    ) -> None:
        self.html = html
        self.counts: dict[Any, int] = dict(counts or {})
        self.url = url
        self.actions: list[tuple] = []
        self.screenshots: list[tuple[str, Any]] = []
        self.extra_headers: list[dict[str, str]] = []
        self.on_click: dict[Any, Callable[["FakePage"], None]] = {}
        self.inner_texts: dict[str, list[str]] = {}
        self.evaluate_result: Any = None
        self.goto_status: dict[str, int] = {}
        self.fail_enter = False
        self.fail_element_screenshots = False

    def locator(self, selector: str, has_text: Any = None) -> FakeLocator:
        return FakeLocator(self, selector, has_text)

    async def goto(self, url: str, **kwargs: Any) -> FakeResponse:
        self.actions.append(("goto", url))
        self.url = url
        return FakeResponse(self.goto_status.get(url, 200))

    async def content(self) -> str:
        return self.html

    async def wait_for_timeout(self, ms: float) -> None:
        await asyncio.sleep(0)

    async def wait_for_load_state(self, state: str = "load", **kwargs: Any) -> None:
        await asyncio.sleep(0)

    async def screenshot(self, path: str, **kwargs: Any) -> None:
        self.screenshots.append((path, None))

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.actions.append(("evaluate", arg))
        return self.evaluate_result

    async def set_extra_http_headers(self, headers: dict[str, str]) -> None:
        self.extra_headers.append(dict(headers))


class FakeContext:
    def __init__(self) -> None:
        self.cookies_added: list[dict] = []

    async def cookies(self) -> list[dict]:
        return list(self.cookies_added)

    async def add_cookies(self, cookies: list[dict]) -> None:
        self.cookies_added.extend(cookies)


@dataclass
class FakeBrowserSession:
    """Registry-facing stand-in that never launches a browser."""

    session_id: str
    on_close: Callable[[str], None] | None = None
    fail_initialise: bool = False
    launch_gate: asyncio.Event | None = None
    initialised: int = 0
    closed: int = 0
    has_error: bool = False
    screenshots: list[str] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_used: float = field(default_factory=time.monotonic)

    @property
    def idle_seconds(self) -> float:
        return time.monotonic() - self.last_used

    def touch(self) -> None:
        self.last_used = time.monotonic()

    async def initialise(self) -> None:
        self.initialised += 1
        if self.launch_gate is not None:
            await self.launch_gate.wait()
        if self.fail_initialise:
            raise RuntimeError("no browser")

    async def close(self) -> None:
        self.closed += 1
        if self.on_close:
            self.on_close(self.session_id)
