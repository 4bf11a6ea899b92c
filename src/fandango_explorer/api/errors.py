"""Mapping of scraper outcomes and exceptions to HTTP responses."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fandango_explorer.browser import (
    BrowserLaunchError,
    BrowserSession,
    SessionLimitError,
    SessionNotInitialisedError,
)
from fandango_explorer.config import settings
from fandango_explorer.schemas import ScraperResult
from fandango_explorer.scraper.models import ErrorKind, StepResult
from fandango_explorer.services.query_extractor import QueryExtractionError

logger = logging.getLogger(__name__)

SITE_DEFENSE_COPY = (
    "Access to seat availability is restricted by Fandango. "
    "This is normal and doesn't affect the showtime information."
)
SITE_DEFENSE_MESSAGE = (
    "Fandango restricts access to seat information for third-party applications."
)
TIMEOUT_COPY = (
    "The operation took too long. Try a narrower query, "
    "for example by adding a theater or a time range."
)


async def guarded(
    operation: Coroutine[Any, Any, StepResult],
    session: BrowserSession,
    timeout: float | None = None,
) -> StepResult:
    """
    Await ``operation`` under the whole-request wall-clock limit.

    On expiry the operation is left running rather than cancelled (browser
    calls cannot be interrupted mid-flight) and a TIMEOUT result carrying
    the screenshots the session took in the meantime is returned instead.
    """
    limit = timeout if timeout is not None else settings.request_timeout
    taken_before = len(session.screenshots)
    task = asyncio.ensure_future(operation)
    try:
        return await asyncio.wait_for(asyncio.shield(task), limit)
    except asyncio.TimeoutError:
        logger.warning(f"Request exceeded {limit:.0f}s, abandoning session {session.session_id}")
        task.add_done_callback(_log_abandoned)
        return StepResult.fail(
            f"Request exceeded {limit:.0f}s",
            ErrorKind.TIMEOUT,
            screenshots=session.screenshots[taken_before:],
            session_id=session.session_id,
        )


def _log_abandoned(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.info(f"Abandoned operation ended with {type(error).__name__}: {error}")
    else:
        logger.info("Abandoned operation finished after its request timed out")


def render_result(result: StepResult) -> ScraperResult | JSONResponse:
    """Turn an orchestrator or seat-map result into the response body."""
    kind = result.error_kind if result.failed else None

    if kind is ErrorKind.INPUT:
        raise HTTPException(status_code=400, detail=result.error)
    if kind is ErrorKind.RESOURCE:
        raise HTTPException(status_code=500, detail=result.error)
    if kind is ErrorKind.TIMEOUT:
        body = ScraperResult.from_step(result, error=TIMEOUT_COPY)
        return JSONResponse(status_code=504, content=body.model_dump(mode="json", by_alias=True))
    if kind is ErrorKind.SITE_DEFENSE:
        return ScraperResult.from_step(
            result, error=SITE_DEFENSE_COPY, message=SITE_DEFENSE_MESSAGE
        )
    return ScraperResult.from_step(result)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
        for err in exc.errors()
    )
    return _error(400, f"Invalid request: {problems}")


async def session_limit_handler(request: Request, exc: SessionLimitError) -> JSONResponse:
    logger.warning(str(exc))
    return _error(503, str(exc))


async def browser_launch_handler(request: Request, exc: BrowserLaunchError) -> JSONResponse:
    return _error(500, str(exc))


async def query_extraction_handler(request: Request, exc: QueryExtractionError) -> JSONResponse:
    return _error(502, str(exc))


async def session_not_initialised_handler(request: Request, exc: SessionNotInitialisedError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return _error(500, "Browser session is not ready, please retry the request")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return _error(500, "Internal server error")


def install_error_handlers(app: FastAPI) -> None:
    """Render every error as an ``{"error": ...}`` body."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SessionLimitError, session_limit_handler)
    app.add_exception_handler(BrowserLaunchError, browser_launch_handler)
    app.add_exception_handler(SessionNotInitialisedError, session_not_initialised_handler)
    app.add_exception_handler(QueryExtractionError, query_extraction_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
