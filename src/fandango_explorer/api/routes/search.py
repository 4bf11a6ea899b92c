"""Showtime search endpoint."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from fandango_explorer.api.deps import get_registry
from fandango_explorer.api.errors import guarded, render_result
from fandango_explorer.browser import SessionRegistry
from fandango_explorer.config import settings
from fandango_explorer.schemas import ErrorResponse, ScraperResult, SearchRequest
from fandango_explorer.scraper.orchestrator import NO_PARAMETERS_ERROR, QueryOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/search",
    response_model=ScraperResult,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
)
async def search_showtimes(
    body: SearchRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> ScraperResult | JSONResponse:
    """
    Run a showtime query in a new browser session.

    The session stays open after a successful search (unless disabled in
    settings) so the returned ``sessionId`` can be used for ``/seatmap``.
    """
    query = body.to_query()
    logger.info(f"Query parameters: {body.model_dump(exclude_none=True)}")
    if not query.is_actionable:
        raise HTTPException(status_code=400, detail=NO_PARAMETERS_ERROR)

    async with registry.lease() as (session, _):
        keep = False
        try:
            result = await guarded(QueryOrchestrator(session).process(query), session)
            keep = settings.keep_search_sessions and not result.failed
        finally:
            if not keep:
                logger.info(f"Cleaning up session {session.session_id}")
                await registry.close(session.session_id)

    return render_result(result)
