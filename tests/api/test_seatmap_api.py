"""Tests for the seat-map endpoint."""

import asyncio

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from fandango_explorer.api.errors import SITE_DEFENSE_COPY, SITE_DEFENSE_MESSAGE, TIMEOUT_COPY
from fandango_explorer.api.routes import seatmap
from fandango_explorer.browser import SessionRegistry
from fandango_explorer.config import settings
from fandango_explorer.scraper.models import ErrorKind, StepResult
from fandango_explorer.scraper.seatmap import ACCESS_DENIED_ERROR, ACCESS_DENIED_MESSAGE

SLOT_URL = "https://tickets.fandango.com/transaction/ticketing/mobile/jump.aspx?mid=235964&tid=AAECB"


@pytest.fixture
def seat_map_calls(monkeypatch):
    """Record which seat-map entry point ran, returning ``outcome[0]``."""
    calls: list[tuple] = []
    outcome = [StepResult.ok("Successfully captured seat map container", screenshots=["/screenshots/seat_map.png"])]

    class StubSeatMapNavigator:
        def __init__(self, session) -> None:
            self.session = session

        async def navigate_safely(self, time_slot_url: str) -> StepResult:
            calls.append(("navigate_safely", self.session.session_id, time_slot_url))
            return outcome[0]

        async def continue_to_seat_map(self, time_slot_url: str, selected_time: str) -> StepResult:
            calls.append(("continue_to_seat_map", self.session.session_id, selected_time))
            return outcome[0]

    monkeypatch.setattr(seatmap, "SeatMapNavigator", StubSeatMapNavigator)
    return calls, outcome


async def post_seatmap(app: FastAPI, payload: dict):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.post("/api/seatmap", json=payload)


async def test_fresh_session_navigates_to_time_slot(
    test_app: FastAPI, registry: SessionRegistry, seat_map_calls
) -> None:
    calls, _ = seat_map_calls

    response = await post_seatmap(test_app, {"timeSlotUrl": SLOT_URL})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Successfully captured seat map container"
    assert data["screenshots"] == ["/screenshots/seat_map.png"]
    assert calls == [("navigate_safely", data["sessionId"], SLOT_URL)]
    assert data["sessionId"] in registry


async def test_existing_session_continues_from_theater_page(
    test_app: FastAPI, registry: SessionRegistry, seat_map_calls
) -> None:
    calls, outcome = seat_map_calls
    outcome[0] = StepResult.fail("Showtime '7:40p' not found on the current page")
    session, _ = await registry.get_or_create()

    response = await post_seatmap(
        test_app,
        {"timeSlotUrl": SLOT_URL, "sessionId": session.session_id, "selectedTime": "7:40p"},
    )

    assert response.status_code == 200
    assert response.json()["sessionId"] == session.session_id
    assert calls == [("continue_to_seat_map", session.session_id, "7:40p")]
    assert session.closed == 0
    assert session.has_error is True


async def test_existing_session_without_selected_time_navigates(
    test_app: FastAPI, registry: SessionRegistry, seat_map_calls
) -> None:
    calls, _ = seat_map_calls
    session, _ = await registry.get_or_create()

    await post_seatmap(test_app, {"timeSlotUrl": SLOT_URL, "sessionId": session.session_id})

    assert calls[0][:2] == ("navigate_safely", session.session_id)


async def test_unknown_session_id_gets_fresh_session(
    test_app: FastAPI, registry: SessionRegistry, seat_map_calls
) -> None:
    calls, _ = seat_map_calls

    response = await post_seatmap(
        test_app, {"timeSlotUrl": SLOT_URL, "sessionId": "expired", "selectedTime": "7:40p"}
    )

    assert calls[0][0] == "navigate_safely"
    assert response.json()["sessionId"] != "expired"


async def test_site_defense_is_reported_with_friendly_copy(
    test_app: FastAPI, registry: SessionRegistry, seat_map_calls
) -> None:
    _, outcome = seat_map_calls
    outcome[0] = StepResult.fail(
        ACCESS_DENIED_ERROR,
        ErrorKind.SITE_DEFENSE,
        message=ACCESS_DENIED_MESSAGE,
        screenshots=["/screenshots/access_denied_page.png"],
    )

    response = await post_seatmap(test_app, {"timeSlotUrl": SLOT_URL})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["error"] == SITE_DEFENSE_COPY
    assert data["message"] == SITE_DEFENSE_MESSAGE
    assert data["screenshots"] == ["/screenshots/access_denied_page.png"]
    assert len(registry) == 0


async def test_missing_time_slot_url(test_app: FastAPI, seat_map_calls) -> None:
    calls, _ = seat_map_calls

    response = await post_seatmap(test_app, {"sessionId": "abc"})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid request: timeSlotUrl")
    assert calls == []


async def test_timed_out_continuation_closes_reused_session(
    test_app: FastAPI, registry: SessionRegistry, monkeypatch
) -> None:
    class SlowSeatMapNavigator:
        def __init__(self, session) -> None:
            self.session = session

        async def continue_to_seat_map(self, time_slot_url: str, selected_time: str) -> StepResult:
            self.session.screenshots.append("/screenshots/theater_page.png")
            await asyncio.sleep(0.1)
            return StepResult.ok()

    monkeypatch.setattr(seatmap, "SeatMapNavigator", SlowSeatMapNavigator)
    monkeypatch.setattr(settings, "request_timeout_factor", 0.001)
    monkeypatch.setattr(settings, "scrape_timeout", 10)
    session, _ = await registry.get_or_create()

    response = await post_seatmap(
        test_app,
        {"timeSlotUrl": SLOT_URL, "sessionId": session.session_id, "selectedTime": "7:40p"},
    )
    await asyncio.sleep(0.2)

    assert response.status_code == 504
    data = response.json()
    assert data["error"] == TIMEOUT_COPY
    assert data["screenshots"] == ["/screenshots/theater_page.png"]
    assert data["sessionId"] == session.session_id
    assert session.closed == 1
    assert session.session_id not in registry
