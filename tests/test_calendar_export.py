"""
Tests for the calendar_export module.

Tests cover:
- Event construction and the day-after end date
- Description composition
- iCalendar rendering and escaping
- Download file names
"""

from datetime import date, datetime, timezone

import pytest

from awards.calendar_export import (
    build_calendar_event,
    build_description,
    calendar_filename,
    escape_text,
    fold_line,
    to_ics,
)
from awards.dates import InvalidDateFormat


class TestBuildCalendarEvent:
    """Tests for event construction."""

    def test_all_day_event_ends_next_day(self, make_award):
        event = build_calendar_event(make_award(title="Goldwater", deadline_date="2025-03-15"))

        assert event.title == "Award Deadline: Goldwater"
        assert event.start == date(2025, 3, 15)
        assert event.end == date(2025, 3, 16)

    def test_end_crosses_year(self, make_award):
        event = build_calendar_event(make_award(deadline_date="2025-12-31"))
        assert event.end == date(2026, 1, 1)

    def test_uid_from_award_id(self, make_award):
        award = make_award()
        assert build_calendar_event(award).uid == f"{award.id}@awards"

    def test_invalid_date(self, make_award):
        with pytest.raises(InvalidDateFormat):
            build_calendar_event(make_award(deadline_date="someday"))


class TestBuildDescription:
    """Tests for event descriptions."""

    def test_all_parts(self, make_award):
        award = make_award(
            requirements="GPA 3.5+",
            level="National",
            award_for="Undergrad",
            link="https://goldwater.gov",
        )

        assert build_description(award) == (
            "Requirements: GPA 3.5+\n\n"
            "Level: National\n"
            "For: Undergrad\n"
            "\nApply here: https://goldwater.gov"
        )

    def test_link_only(self, make_award):
        award = make_award(level="", award_for="", requirements="", link="https://x.org")
        assert build_description(award) == "\nApply here: https://x.org"


class TestToIcs:
    """Tests for iCalendar rendering."""

    def test_document_structure(self, make_award):
        event = build_calendar_event(make_award(title="Goldwater", deadline_date="2025-03-15"))
        stamp = datetime(2025, 1, 5, 14, 3, 22, tzinfo=timezone.utc)

        ics = to_ics(event, stamp=stamp)
        lines = ics.split("\r\n")

        assert lines[0] == "BEGIN:VCALENDAR"
        assert "DTSTAMP:20250105T140322Z" in lines
        assert "DTSTART;VALUE=DATE:20250315" in lines
        assert "DTEND;VALUE=DATE:20250316" in lines
        assert "SUMMARY:Award Deadline: Goldwater" in lines
        assert ics.endswith("END:VCALENDAR\r\n")

    def test_escaping(self):
        assert escape_text("a,b;c\\d\ne") == "a\\,b\\;c\\\\d\\ne"

    def test_long_lines_are_folded(self):
        folded = fold_line("X" * 160)

        assert len(folded) == 3
        assert all(len(line) <= 75 for line in folded)
        assert all(line.startswith(" ") for line in folded[1:])
        assert "".join(line.lstrip(" ") for line in folded) == "X" * 160

    def test_folding_counts_utf8_octets(self):
        line = "SUMMARY:" + "é" * 100

        folded = fold_line(line)

        assert all(len(part.encode("utf-8")) <= 75 for part in folded)
        assert folded[0] == "SUMMARY:" + "é" * 33
        assert "".join(part[1:] if i else part for i, part in enumerate(folded)) == line

    def test_short_line_unchanged(self):
        assert fold_line("BEGIN:VEVENT") == ["BEGIN:VEVENT"]


class TestCalendarFilename:
    """Tests for download names."""

    def test_slug(self, make_award):
        award = make_award(title="Goldwater Scholarship 2025!")
        assert calendar_filename(award) == "award-goldwater-scholarship-2025-.ics"
