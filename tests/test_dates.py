"""
Tests for the dates module.

Tests cover:
- Month name and index resolution, including the January default
- Day parsing
- Year rollover for recurring month/day deadlines
- Full-date strings and Excel serial numbers
"""

from datetime import date, datetime

import pytest

from awards.dates import (
    DEFAULT_MONTH,
    DeadlineParts,
    InvalidDateFormat,
    excel_serial_to_date,
    normalize_date_value,
    normalize_month_day,
    parse_day,
    parse_full_date,
    parse_iso_date,
    resolve_month,
)


class TestResolveMonth:
    """Tests for month resolution."""

    def test_full_name(self):
        """Test full English month names."""
        assert resolve_month("March") == (3, "March")
        assert resolve_month("December") == (12, "December")

    def test_abbreviation(self):
        """Test three-letter and Sept abbreviations."""
        assert resolve_month("Mar") == (3, "March")
        assert resolve_month("Sept") == (9, "September")

    def test_numeric_string(self):
        """Test that numeric strings are month indices."""
        assert resolve_month("3") == (3, "March")
        assert resolve_month("12") == (12, "December")

    def test_number(self):
        """Test numeric cells from Excel."""
        assert resolve_month(7) == (7, "July")
        assert resolve_month(7.0) == (7, "July")

    def test_unknown_defaults_to_january(self):
        """Test that unrecognized input resolves to January."""
        assert DEFAULT_MONTH == 1
        assert resolve_month("Marchh") == (1, "January")
        assert resolve_month("") == (1, "January")
        assert resolve_month(None) == (1, "January")

    def test_lookup_is_case_sensitive(self):
        """Test that lowercase names are not recognized."""
        assert resolve_month("march") == (1, "January")

    def test_out_of_range_index_defaults_to_january(self):
        """Test that indices outside 1-12 resolve to January."""
        assert resolve_month("13") == (1, "January")
        assert resolve_month(0) == (1, "January")


class TestParseDay:
    """Tests for day parsing."""

    def test_plain_numbers(self):
        assert parse_day("15") == 15
        assert parse_day(15) == 15
        assert parse_day(15.0) == 15

    def test_leading_integer(self):
        """Test that trailing text after the number is ignored."""
        assert parse_day("15th") == 15

    def test_empty_defaults_to_first(self):
        """Test that empty or non-numeric cells fall back to day 1."""
        assert parse_day("") == 1
        assert parse_day(None) == 1
        assert parse_day("soon") == 1

    def test_out_of_range(self):
        """Test that days above 31 are rejected."""
        with pytest.raises(InvalidDateFormat):
            parse_day("32")


class TestNormalizeMonthDay:
    """Tests for recurring deadline normalization."""

    def test_future_date_keeps_current_year(self):
        """Test a deadline later this year."""
        parts = normalize_month_day("December", "1", now=datetime(2025, 6, 1))
        assert parts == DeadlineParts("December", 1, "2025-12-01")

    def test_past_date_rolls_to_next_year(self):
        """Test a deadline that already passed this year."""
        parts = normalize_month_day("March", "15", now=datetime(2025, 6, 1))
        assert parts == DeadlineParts("March", 15, "2026-03-15")

    def test_deadline_today_rolls_over(self):
        """Test that midnight today is before the current moment."""
        parts = normalize_month_day("June", "1", now=datetime(2025, 6, 1, 9, 30))
        assert parts.iso_date == "2026-06-01"

    def test_unknown_month_is_january(self):
        """Test the explicit January default end to end."""
        parts = normalize_month_day("Smarch", "10", now=datetime(2025, 1, 1))
        assert parts.month_name == "January"
        assert parts.iso_date == "2025-01-10"

    def test_impossible_date(self):
        """Test a day that does not exist in the month."""
        with pytest.raises(InvalidDateFormat):
            normalize_month_day("February", "30", now=datetime(2025, 1, 1))

    def test_iso_date_always_matches_month_and_day(self):
        """Test that the ISO date agrees with the month name and day."""
        parts = normalize_month_day("Oct", "5", now=datetime(2025, 6, 1))
        assert parts.month_name == "October"
        assert parts.day == 5
        assert parts.iso_date.endswith("-10-05")


class TestParseFullDate:
    """Tests for M/D/YYYY strings."""

    def test_valid(self):
        assert parse_full_date("3/15/2026") == DeadlineParts("March", 15, "2026-03-15")

    def test_year_taken_literally(self):
        """Test that no rollover is applied to full dates."""
        assert parse_full_date("1/2/2020").iso_date == "2020-01-02"

    def test_wrong_shape(self):
        with pytest.raises(InvalidDateFormat):
            parse_full_date("March 15")
        with pytest.raises(InvalidDateFormat):
            parse_full_date("3/15")

    def test_non_numeric_part(self):
        with pytest.raises(InvalidDateFormat):
            parse_full_date("3/xx/2026")

    def test_not_a_calendar_date(self):
        with pytest.raises(InvalidDateFormat):
            parse_full_date("2/30/2026")


class TestExcelSerial:
    """Tests for Excel serial date conversion."""

    def test_unix_epoch(self):
        assert excel_serial_to_date(25569) == date(1970, 1, 1)

    def test_known_serial(self):
        assert excel_serial_to_date(45000) == date(2023, 3, 15)

    def test_time_fraction_dropped(self):
        assert excel_serial_to_date(45000.75) == date(2023, 3, 15)

    def test_rejects_non_numbers(self):
        with pytest.raises(InvalidDateFormat):
            excel_serial_to_date("45000")
        with pytest.raises(InvalidDateFormat):
            excel_serial_to_date(float("nan"))


class TestNormalizeDateValue:
    """Tests for full-date cells of any supported shape."""

    def test_datetime_cell(self):
        assert normalize_date_value(datetime(2026, 4, 1, 8, 0)).iso_date == "2026-04-01"

    def test_date_cell(self):
        assert normalize_date_value(date(2026, 4, 1)).month_name == "April"

    def test_serial_number_and_string(self):
        assert normalize_date_value(45000).iso_date == "2023-03-15"
        assert normalize_date_value("45000").iso_date == "2023-03-15"

    def test_iso_string(self):
        assert normalize_date_value("2026-11-30") == DeadlineParts("November", 30, "2026-11-30")

    def test_slash_string(self):
        assert normalize_date_value("11/30/2026").iso_date == "2026-11-30"

    def test_empty(self):
        with pytest.raises(InvalidDateFormat):
            normalize_date_value("  ")
        with pytest.raises(InvalidDateFormat):
            normalize_date_value(None)

    def test_invalid_iso(self):
        with pytest.raises(InvalidDateFormat):
            normalize_date_value("2026-02-30")


class TestParseIsoDate:
    """Tests for stored date parsing."""

    def test_valid(self):
        assert parse_iso_date("2025-03-15") == date(2025, 3, 15)

    def test_invalid(self):
        assert parse_iso_date("2025-13-01") is None
        assert parse_iso_date("3/15/2025") is None
        assert parse_iso_date("") is None
        assert parse_iso_date(None) is None
