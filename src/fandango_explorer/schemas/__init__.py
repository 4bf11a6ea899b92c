"""Pydantic schemas for API requests and responses."""

from fandango_explorer.schemas.query import ExtractRequest, SearchRequest, TimeRangeIn
from fandango_explorer.schemas.result import ErrorResponse, ScraperResult, TimeSlotResponse
from fandango_explorer.schemas.seatmap import SeatMapRequest

__all__ = [
    "ErrorResponse",
    "ExtractRequest",
    "ScraperResult",
    "SearchRequest",
    "SeatMapRequest",
    "TimeRangeIn",
    "TimeSlotResponse",
]
