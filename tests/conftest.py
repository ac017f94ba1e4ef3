"""Shared fixtures for the award pipeline tests."""

from datetime import date, datetime

import pytest

from awards.models import AwardCollection, AwardRecord


@pytest.fixture
def make_award():
    """Factory for AwardRecord instances with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "id": f"00000000-0000-4000-8000-{counter['n']:012d}",
            "title": f"Award {counter['n']}",
            "deadline_month": "March",
            "deadline_day": 15,
            "deadline_date": "2025-03-15",
            "link": f"https://example.org/award-{counter['n']}",
            "level": "National",
            "application_mode": "Online",
            "award_for": "Undergrad",
            "type": "Scholarship",
            "date_added": "2025-01-05T14:03:22.120Z",
        }
        values.update(overrides)
        return AwardRecord(**values)

    return _make


@pytest.fixture
def today():
    """Fixed reference date for deadline arithmetic."""
    return date(2025, 1, 1)


@pytest.fixture
def now():
    """Fixed reference moment for year rollover."""
    return datetime(2025, 6, 1, 12, 0, 0)


@pytest.fixture
def goldwater_row():
    """A Google Form response row in positional order."""
    return [
        "", "Goldwater Scholarship", "3", "15", "National", "Online",
        "Undergrad", "Scholarship", "", "GPA 3.5+", "", "https://goldwater.gov",
    ]


@pytest.fixture
def sample_collection(make_award):
    return AwardCollection(
        awards=[
            make_award(title="Fulbright", link="https://x.org", deadline_date="2025-01-20"),
            make_award(title="Goldwater", deadline_date="2025-03-15"),
        ],
        last_updated="2025-01-05T14:03:22.120Z",
    )
