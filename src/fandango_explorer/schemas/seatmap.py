"""Pydantic schemas for seat-map requests."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SeatMapRequest(BaseModel):
    """Showtime to open; continues an existing session when one is given."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    time_slot_url: str = Field(min_length=1)
    session_id: str | None = None
    selected_time: str | None = None
