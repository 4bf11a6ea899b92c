"""Pydantic schemas for scraper results."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fandango_explorer.scraper.models import StepResult


class CamelModel(BaseModel):
    """Serialises with camelCase keys while accepting either form on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TimeSlotResponse(CamelModel):
    """One showtime button."""

    time: str
    url: str | None = None
    is_highlighted: bool = False


class ScraperResult(CamelModel):
    """Aggregate response for search and seat-map requests."""

    success: bool | None = None
    message: str | None = None
    error: str | None = None
    screenshots: list[str] = Field(default_factory=list)
    time_slots: list[TimeSlotResponse] | None = None
    movie_title: str | None = None
    theater_name: str | None = None
    session_id: str | None = None

    @classmethod
    def from_step(cls, result: StepResult, **overrides) -> "ScraperResult":
        payload = cls.model_validate(result)
        return payload.model_copy(update=overrides) if overrides else payload


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str
