"""Data models shared by the navigator, extractor and orchestrator."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class TimeRange:
    """Inclusive "HH:MM" 24-hour bounds; either side may be open."""

    start: str | None = None
    end: str | None = None


@dataclass
class Query:
    """
    Structured showtime query.

    All fields are optional, but at least one of movie, location or
    theater must be set for the query to be processed.
    """

    movie: str | None = None
    location: str | None = None
    theater: str | None = None
    time_range: TimeRange | None = None
    specific_times: list[str] = field(default_factory=list)

    @property
    def is_actionable(self) -> bool:
        return bool(self.movie or self.location or self.theater)


@dataclass(frozen=True)
class TimeSlot:
    """One showtime button harvested from a theater page."""

    time: str  # Display text as rendered by the site
    url: str | None = None  # Deep link to seat selection
    is_highlighted: bool = False


class ErrorKind(str, Enum):
    """Category of an expected failure, used by the HTTP layer for copy and status."""

    INPUT = "input"
    NAVIGATION = "navigation"
    SITE_DEFENSE = "site_defense"
    TIMEOUT = "timeout"
    RESOURCE = "resource"


class NavState(str, Enum):
    """Progress of one logical request through the site."""

    START = "start"
    CITY_RESOLVED = "city_resolved"
    THEATER_RESOLVED = "theater_resolved"
    MOVIE_RESOLVED = "movie_resolved"
    DONE = "done"
    FAILED = "failed"


@dataclass
class StepResult:
    """
    Outcome of a navigator/extractor step or of a whole query.

    Expected failures (element not found, blocked page) are reported
    through ``error`` instead of raising. Screenshots accumulate whatever
    the outcome.
    """

    success: bool | None = None
    message: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    screenshots: list[str] = field(default_factory=list)
    time_slots: list[TimeSlot] | None = None
    movie_title: str | None = None
    theater_name: str | None = None
    session_id: str | None = None

    @classmethod
    def ok(cls, message: str | None = None, **kwargs) -> "StepResult":
        return cls(success=True, message=message, **kwargs)

    @classmethod
    def fail(
        cls,
        error: str,
        kind: ErrorKind = ErrorKind.NAVIGATION,
        **kwargs,
    ) -> "StepResult":
        return cls(success=False, error=error, error_kind=kind, **kwargs)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def absorb(self, other: "StepResult") -> "StepResult":
        """Fold a sub-step's output into this aggregate result."""
        self.screenshots.extend(other.screenshots)
        if other.time_slots:
            self.time_slots = list(other.time_slots)
        if other.movie_title:
            self.movie_title = other.movie_title
        if other.theater_name:
            self.theater_name = other.theater_name
        if other.error:
            self.error = other.error
            self.error_kind = other.error_kind
            self.success = False
        return self
