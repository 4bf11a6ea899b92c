"""Seat-map endpoint."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from fandango_explorer.api.deps import get_registry
from fandango_explorer.api.errors import guarded, render_result
from fandango_explorer.browser import SessionRegistry
from fandango_explorer.schemas import ErrorResponse, ScraperResult, SeatMapRequest
from fandango_explorer.scraper.models import ErrorKind, StepResult
from fandango_explorer.scraper.seatmap import SeatMapNavigator

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/seatmap",
    response_model=ScraperResult,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
)
async def get_seat_map(
    body: SeatMapRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> ScraperResult | JSONResponse:
    """
    Capture the seat map for a showtime.

    With a live ``sessionId`` and a ``selectedTime`` the showtime is
    clicked on the page that session already shows; otherwise a fresh
    session opens ``timeSlotUrl`` directly. A fresh session that fails is
    closed; reused sessions are left open unless the request timed out
    while browser work was still running on their page.
    """
    async with registry.lease(body.session_id) as (session, created):
        continuing = not created and bool(body.selected_time)
        result: StepResult | None = None
        try:
            navigator = SeatMapNavigator(session)
            if continuing:
                operation = navigator.continue_to_seat_map(body.time_slot_url, body.selected_time)
            else:
                operation = navigator.navigate_safely(body.time_slot_url)
            result = await guarded(operation, session)

            result.session_id = session.session_id
            if result.failed:
                session.has_error = True
        except Exception:
            session.has_error = True
            raise
        finally:
            timed_out = result is not None and result.error_kind is ErrorKind.TIMEOUT
            if session.has_error and (created or timed_out):
                await registry.close(session.session_id)

    return render_result(result)
