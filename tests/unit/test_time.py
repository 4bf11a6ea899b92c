"""Unit tests for showtime parsing and time filters."""

import pytest

from fandango_explorer.utils.time import (
    TimeFilter,
    format_minutes,
    parse_time,
    time_renderings,
    to_24_hour,
    try_parse_time,
)


class TestParseTime:
    @pytest.mark.parametrize("text", ["5:10p", "5:10pm", "17:10", "1710"])
    def test_equivalent_forms_of_ten_past_five_pm(self, text: str) -> None:
        assert parse_time(text) == 1030

    def test_midnight_am(self) -> None:
        assert parse_time("12:00a") == 0

    def test_noon_pm(self) -> None:
        assert parse_time("12:00p") == 720

    def test_embedded_am_with_space(self) -> None:
        assert parse_time("10:25 AM") == 625

    def test_embedded_pm_without_minutes(self) -> None:
        assert parse_time("7pm") == 19 * 60

    def test_dotted_meridiem(self) -> None:
        assert parse_time("7:00 p.m.") == 19 * 60

    def test_pm_suffix_on_afternoon_hour_is_not_doubled(self) -> None:
        assert parse_time("13:20p") == 13 * 60 + 20

    def test_three_digit_bare_time(self) -> None:
        assert parse_time("930") == 9 * 60 + 30

    def test_hour_only(self) -> None:
        assert parse_time("7") == 7 * 60

    @pytest.mark.parametrize("text", ["", None, "Sold out", "25:00", "12:75", "12345"])
    def test_malformed_input_yields_zero(self, text) -> None:
        assert parse_time(text) == 0

    def test_try_parse_distinguishes_malformed_from_midnight(self) -> None:
        assert try_parse_time("Sold out") is None
        assert try_parse_time("0:00") == 0

    def test_ambiguous_cutoff_reads_early_hours_as_pm(self) -> None:
        assert parse_time("7:30", ambiguous_pm_cutoff=8) == 19 * 60 + 30
        assert parse_time("9:30", ambiguous_pm_cutoff=8) == 9 * 60 + 30

    def test_ambiguous_cutoff_is_off_by_default(self) -> None:
        assert parse_time("7:30") == 7 * 60 + 30

    def test_ambiguous_cutoff_ignores_explicit_meridiem(self) -> None:
        assert parse_time("7:30a", ambiguous_pm_cutoff=8) == 7 * 60 + 30


class TestRenderings:
    def test_format_minutes_pads(self) -> None:
        assert format_minutes(545) == "09:05"

    def test_afternoon_renderings(self) -> None:
        assert time_renderings(1030) == {"17:10", "5:10p", "5:10 pm"}

    def test_midnight_renderings(self) -> None:
        assert time_renderings(0) == {"0:00", "12:00a", "12:00 am"}

    def test_noon_renderings(self) -> None:
        assert time_renderings(720) == {"12:00", "12:00p", "12:00 pm"}

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("5:10 PM", "17:10"), ("7pm", "19:00"), ("12:15 am", "00:15"), ("17:10", "17:10")],
    )
    def test_to_24_hour(self, text: str, expected: str) -> None:
        assert to_24_hour(text) == expected


class TestTimeFilter:
    def test_range_is_inclusive(self) -> None:
        time_filter = TimeFilter.build(start="17:00", end="18:00")
        assert time_filter.matches("17:10")
        assert time_filter.matches("17:00")
        assert time_filter.matches("18:00")
        assert not time_filter.matches("16:59")
        assert not time_filter.matches("18:01")

    def test_range_compares_across_formats(self) -> None:
        time_filter = TimeFilter.build(start="17:00", end="18:00")
        assert time_filter.matches("5:10p")
        assert not time_filter.matches("5:10a")

    def test_open_ended_range(self) -> None:
        time_filter = TimeFilter.build(start="20:00")
        assert time_filter.matches("11:00p")
        assert not time_filter.matches("7:45p")

    def test_specific_time_matches_other_format(self) -> None:
        time_filter = TimeFilter.build(specific_times=["17:10"])
        assert time_filter.matches("5:10p")
        assert not time_filter.matches("5:20p")

    def test_specific_time_with_meridiem(self) -> None:
        time_filter = TimeFilter.build(specific_times=["10:25 AM"])
        assert time_filter.matches("10:25a")

    def test_unparseable_slot_never_matches_range(self) -> None:
        time_filter = TimeFilter.build(start="00:00", end="23:59")
        assert not time_filter.matches("Sold out")

    def test_slot_matching_either_range_or_specific(self) -> None:
        time_filter = TimeFilter.build(start="20:00", end="22:00", specific_times=["1:00p"])
        assert time_filter.matches("13:00")
        assert time_filter.matches("9:15p")
        assert not time_filter.matches("4:00p")

    def test_no_filter_highlights_slots_with_url(self) -> None:
        time_filter = TimeFilter.build()
        assert time_filter.is_empty
        assert time_filter.should_highlight("7:00p", "https://tickets.fandango.com/x")
        assert not time_filter.should_highlight("7:00p", None)
        assert not time_filter.should_highlight("7:00p", "")

    def test_filter_ignores_url_when_set(self) -> None:
        time_filter = TimeFilter.build(start="17:00", end="18:00")
        assert not time_filter.should_highlight("20:00", "https://tickets.fandango.com/x")
        assert time_filter.should_highlight("17:30", None)
