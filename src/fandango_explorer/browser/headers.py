"""Request header strategies.

Headers are chosen by a pluggable strategy so a deployment can swap the
fingerprinting approach without touching navigation code. The static
strategy mirrors the browser context's own user agent; the rotating one
picks a plausible desktop browser per navigation and emits client hints
that agree with it.
"""

import random
import re
from typing import Protocol

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)

USER_AGENTS: tuple[str, ...] = (
    DEFAULT_USER_AGENT,
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36 Edg/123.0.0.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:124.0) Gecko/20100101 Firefox/124.0",
)

_ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
    "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
)

_CHROME_VERSION_RE = re.compile(r"Chrome/(\d+)")


class HeaderStrategy(Protocol):
    """Produces extra HTTP headers for the page."""

    def base_headers(self) -> dict[str, str]:
        """Headers installed once when the page is created."""
        ...

    def navigation_headers(self, referer: str | None = None) -> dict[str, str]:
        """Headers for a deliberate document navigation (e.g. into seat selection)."""
        ...


def platform_for(user_agent: str) -> str:
    if "Windows" in user_agent:
        return "Windows"
    if "Mac" in user_agent:
        return "macOS"
    return "Linux"


def client_hints(user_agent: str) -> dict[str, str]:
    """
    Return ``sec-ch-ua*`` headers consistent with ``user_agent``.

    Only Chromium-based browsers send client hints, so Firefox and Safari
    user agents get none.
    """
    m = _CHROME_VERSION_RE.search(user_agent)
    if not m:
        return {}
    version = m.group(1)
    brand = "Microsoft Edge" if "Edg/" in user_agent else "Google Chrome"
    return {
        "sec-ch-ua": f'"{brand}";v="{version}", "Not:A-Brand";v="8", "Chromium";v="{version}"',
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": f'"{platform_for(user_agent)}"',
    }


class StaticHeaders:
    """Fixed desktop Chrome fingerprint matching the browser context."""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT) -> None:
        self.user_agent = user_agent

    def base_headers(self) -> dict[str, str]:
        return {
            "Accept": _ACCEPT,
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "max-age=0",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
            "Upgrade-Insecure-Requests": "1",
            **client_hints(self.user_agent),
        }

    def navigation_headers(self, referer: str | None = None) -> dict[str, str]:
        headers = {
            **self.base_headers(),
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
            "Sec-Fetch-Site": "same-origin",
        }
        if referer:
            headers["Referer"] = referer
        return headers


class RotatingHeaders(StaticHeaders):
    """Picks a different plausible user agent for each navigation."""

    def __init__(
        self,
        user_agents: tuple[str, ...] = USER_AGENTS,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(user_agents[0])
        self.user_agents = user_agents
        self.rng = rng or random.Random()

    def navigation_headers(self, referer: str | None = None) -> dict[str, str]:
        user_agent = self.rng.choice(self.user_agents)
        headers = {
            "Accept": _ACCEPT,
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate, br",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "same-origin",
            "Sec-Fetch-User": "?1",
            "Upgrade-Insecure-Requests": "1",
            "User-Agent": user_agent,
            **client_hints(user_agent),
        }
        if referer:
            headers["Referer"] = referer
        return headers


def get_header_strategy(rotate: bool) -> HeaderStrategy:
    return RotatingHeaders() if rotate else StaticHeaders()
