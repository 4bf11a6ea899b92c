"""Browser session management."""

from fandango_explorer.browser.registry import SessionLimitError, SessionRegistry
from fandango_explorer.browser.session import (
    BrowserLaunchError,
    BrowserSession,
    SessionNotInitialisedError,
)

__all__ = [
    "BrowserLaunchError",
    "BrowserSession",
    "SessionLimitError",
    "SessionNotInitialisedError",
    "SessionRegistry",
]
