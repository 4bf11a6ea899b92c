"""Showtime string parsing and time-filter matching.

Fandango renders showtimes in several shapes depending on the page
("5:10p", "10:25 AM", "17:10", "1730"). Everything is normalised to
minutes since midnight so that range and exact-match filters can be
applied uniformly.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable

MINUTES_PER_DAY = 24 * 60
LAST_MINUTE = MINUTES_PER_DAY - 1

# "5:10p", "11a", "510p"
_SUFFIX_RE = re.compile(r"^([\d:]+)\s?([ap])$")
# "10:25 AM", "7pm", "7:00 p.m."
_AM_PM_RE = re.compile(r"([\d:]+)\s*([ap])\.?m\.?")
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def _split_clock(digits: str) -> tuple[int, int] | None:
    """Split a meridiem-free clock string into (hours, minutes)."""
    digits = digits.strip()
    if ":" in digits:
        m = _CLOCK_RE.match(digits)
        if not m:
            return None
        hours, minutes = int(m.group(1)), int(m.group(2))
    elif digits.isdigit():
        if len(digits) <= 2:
            hours, minutes = int(digits), 0
        elif len(digits) == 3:
            hours, minutes = int(digits[0]), int(digits[1:])
        elif len(digits) == 4:
            hours, minutes = int(digits[:2]), int(digits[2:])
        else:
            return None
    else:
        return None

    if hours > 23 or minutes > 59:
        return None
    return hours, minutes


def try_parse_time(text: str | None, *, ambiguous_pm_cutoff: int = 0) -> int | None:
    """Like :func:`parse_time` but returns None for text that is not a time."""
    if not text:
        return None

    cleaned = text.strip().lower()
    meridiem: str | None = None

    m = _SUFFIX_RE.match(cleaned)
    if m:
        digits, meridiem = m.group(1), m.group(2)
    else:
        m = _AM_PM_RE.search(cleaned)
        if m:
            digits, meridiem = m.group(1), m.group(2)
        else:
            digits = cleaned

    parsed = _split_clock(digits)
    if parsed is None:
        return None
    hours, minutes = parsed

    if meridiem == "p" and hours < 12:
        hours += 12
    elif meridiem == "a" and hours == 12:
        hours = 0
    elif meridiem is None and 0 < hours < ambiguous_pm_cutoff:
        hours += 12

    return hours * 60 + minutes


def parse_time(text: str | None, *, ambiguous_pm_cutoff: int = 0) -> int:
    """
    Convert a showtime string to minutes since midnight.

    Accepted formats, in order of precedence:
    1. ``a``/``p`` suffix straight after the digits: "5:10p", "11a"
    2. Embedded am/pm, with or without a space: "10:25 AM", "7pm"
    3. Colon-delimited 24-hour clock: "17:10", "9:05"
    4. Bare digits: "7" (hour), "930" (H+MM), "1730" (HH+MM)

    12 AM is midnight (0) and 12 PM stays noon (720). Malformed or empty
    input yields 0 rather than raising.

    Args:
        text: Raw showtime text
        ambiguous_pm_cutoff: When > 0, an hour without meridiem that is
            between 1 and the cutoff (exclusive) is read as PM.

    Returns:
        Minutes since midnight
    """
    minutes = try_parse_time(text, ambiguous_pm_cutoff=ambiguous_pm_cutoff)
    return minutes if minutes is not None else 0


def format_minutes(minutes: int) -> str:
    """Render minutes since midnight as a zero-padded 24-hour "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def time_renderings(minutes: int) -> set[str]:
    """
    Return the textual forms a showtime may take on the site.

    For 17:10 this yields {"17:10", "5:10p", "5:10 pm"}; for 09:05,
    {"9:05", "9:05a", "9:05 am"}. All lowercase.
    """
    hours, mins = divmod(minutes, 60)
    twelve = hours - 12 if hours > 12 else (hours or 12)
    suffix = "p" if hours >= 12 else "a"
    return {
        f"{hours}:{mins:02d}",
        f"{twelve}:{mins:02d}{suffix}",
        f"{twelve}:{mins:02d} {suffix}m",
    }


def to_24_hour(text: str) -> str:
    """
    Normalise a user-supplied time to "HH:MM" 24-hour form.

    Times already in "H:MM"/"HH:MM" without a meridiem are returned
    unchanged; anything carrying am/pm is converted.
    """
    stripped = text.strip()
    if _CLOCK_RE.match(stripped):
        return stripped
    return format_minutes(parse_time(stripped))


@dataclass(frozen=True)
class SpecificTime:
    """A query-supplied showtime with its precomputed comparison forms."""

    original: str
    minutes: int | None
    renderings: frozenset[str]

    @classmethod
    def parse(cls, text: str) -> "SpecificTime":
        minutes = try_parse_time(text)
        renderings = {text.strip().lower()}
        if minutes is not None:
            renderings |= time_renderings(minutes)
        return cls(original=text, minutes=minutes, renderings=frozenset(renderings))

    def matches(self, slot_text: str, slot_minutes: int | None) -> bool:
        if slot_minutes is not None and slot_minutes == self.minutes:
            return True
        return slot_text.strip().lower() in self.renderings


@dataclass(frozen=True)
class TimeFilter:
    """
    Time filter built from a query's ``time_range`` and ``specific_times``.

    A slot is highlighted when it falls inside the (inclusive) range or
    matches any specific time. With no filter at all, only slots that
    carry a booking URL are highlighted.
    """

    start: int | None = None
    end: int | None = None
    specific: tuple[SpecificTime, ...] = field(default_factory=tuple)
    ambiguous_pm_cutoff: int = 0

    @classmethod
    def build(
        cls,
        start: str | None = None,
        end: str | None = None,
        specific_times: Iterable[str] | None = None,
        ambiguous_pm_cutoff: int = 0,
    ) -> "TimeFilter":
        return cls(
            start=try_parse_time(start),
            end=try_parse_time(end),
            specific=tuple(SpecificTime.parse(t) for t in specific_times or () if t),
            ambiguous_pm_cutoff=ambiguous_pm_cutoff,
        )

    @property
    def has_range(self) -> bool:
        return self.start is not None or self.end is not None

    @property
    def is_empty(self) -> bool:
        return not self.has_range and not self.specific

    def in_range(self, minutes: int) -> bool:
        if not self.has_range:
            return False
        start = self.start if self.start is not None else 0
        end = self.end if self.end is not None else LAST_MINUTE
        return start <= minutes <= end

    def matches(self, slot_text: str) -> bool:
        """Return True if the slot satisfies the range or a specific time."""
        minutes = try_parse_time(slot_text, ambiguous_pm_cutoff=self.ambiguous_pm_cutoff)
        if minutes is not None and self.in_range(minutes):
            return True
        return any(spec.matches(slot_text, minutes) for spec in self.specific)

    def should_highlight(self, slot_text: str, url: str | None) -> bool:
        if self.is_empty:
            return bool(url)
        return self.matches(slot_text)
