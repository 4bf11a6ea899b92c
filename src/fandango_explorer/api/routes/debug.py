"""Deployment diagnostics."""

import logging
import platform
import sys
from typing import Any

from fastapi import APIRouter, Depends

from fandango_explorer.api.deps import get_registry
from fandango_explorer.browser import BrowserSession, SessionRegistry
from fandango_explorer.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()

PROBE_TIMEOUT = 20


async def probe_browser() -> dict[str, Any]:
    """Launch a throwaway session the same way requests do and report what started."""
    session = BrowserSession(timeout=PROBE_TIMEOUT)
    try:
        await session.initialise()
        user_agent = await session.page.evaluate("() => navigator.userAgent")
        return {
            "success": True,
            "browserVersion": session.browser.version if session.browser else None,
            "userAgent": user_agent,
        }
    except Exception as e:
        logger.error(f"Browser probe failed: {e}", exc_info=True)
        return {"success": False, "error": str(e)}
    finally:
        await session.close()


@router.get("/debug")
async def debug_info(
    probe: bool = False,
    registry: SessionRegistry = Depends(get_registry),
) -> dict[str, Any]:
    """
    Report runtime and browser configuration.

    Pass ``probe=true`` to also launch a headless browser and report its
    version and user agent.
    """
    info: dict[str, Any] = {
        "platform": platform.platform(),
        "python": sys.version.split()[0],
        "browser": {
            "headless": settings.headless,
            "noSandbox": settings.browser_no_sandbox,
            "executablePath": settings.browser_executable_path,
            "remoteEndpoint": bool(settings.browser_ws_endpoint),
            "useCdp": settings.browser_use_cdp,
            "stealth": settings.use_stealth,
        },
        "sessions": {"active": len(registry), "max": registry.max_sessions},
        "screenshotDir": str(settings.screenshot_dir),
        "scrapeTimeout": settings.scrape_timeout,
    }
    if probe:
        info["probe"] = await probe_browser()
    return info
