"""Scheduled job that closes idle browser sessions."""

import logging

from fandango_explorer.browser import SessionRegistry

logger = logging.getLogger(__name__)


async def run_session_sweep(registry: SessionRegistry) -> None:
    """Close sessions idle past the TTL. Errors are logged so the scheduler keeps running."""
    try:
        closed = await registry.sweep_idle()
    except Exception as e:
        logger.error(f"Session sweep failed: {e}", exc_info=True)
        return
    if closed:
        logger.info(f"Session sweep closed {closed} idle sessions ({len(registry)} remain)")
