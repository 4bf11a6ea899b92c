"""Pydantic schemas for showtime queries."""

from pydantic import BaseModel, Field, field_validator

from fandango_explorer.scraper.models import Query, TimeRange


class TimeRangeIn(BaseModel):
    """Inclusive 24-hour "HH:MM" bounds."""

    start: str | None = Field(default=None, examples=["17:00"])
    end: str | None = Field(default=None, examples=["22:00"])


class SearchRequest(BaseModel):
    """Structured showtime query, as produced by the extraction service."""

    movie: str | None = None
    location: str | None = None
    theater: str | None = None
    time_range: TimeRangeIn | None = None
    specific_times: list[str] = Field(default_factory=list)

    @field_validator("movie", "location", "theater")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("specific_times", mode="before")
    @classmethod
    def null_times(cls, value):
        return value or []

    def to_query(self) -> Query:
        time_range = None
        if self.time_range and (self.time_range.start or self.time_range.end):
            time_range = TimeRange(start=self.time_range.start, end=self.time_range.end)
        return Query(
            movie=self.movie,
            location=self.location,
            theater=self.theater,
            time_range=time_range,
            specific_times=list(self.specific_times),
        )


class ExtractRequest(BaseModel):
    """Free-text question to turn into a ``SearchRequest``."""

    query: str = Field(min_length=1)
