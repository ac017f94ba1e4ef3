"""
Filter module for the Award Deadlines Board.

This module produces the listing view over the award collection:
- Free-text search across the descriptive fields
- Level, award-for and type facets
- Deadline horizon in days
- Ascending deadline ordering and urgency classification
"""

import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from awards.dates import LEADING_INT_PATTERN, parse_iso_date
from awards.fields import sort_facet, sort_levels, split_values
from awards.models import AwardRecord
from awards.utils import get_logger


# Module logger
logger = get_logger("filter")

URGENT_DAYS = 30
UPCOMING_DAYS = 60


class Urgency(str, Enum):
    """How close a deadline is, derived fresh on every render."""
    PASSED = "passed"
    URGENT = "urgent"
    UPCOMING = "upcoming"
    PLENTY_OF_TIME = "plenty of time"


@dataclass(frozen=True)
class FilterSpec:
    """
    Immutable filter selection for one listing render.

    Empty values impose no constraint.

    Attributes:
        search: Case-insensitive substring searched in descriptive fields.
        level: Exact level value the award must carry.
        award_for: Selected award-for values, any of which may match.
        type: Selected type values, any of which may match.
        deadline: Horizon in days; only deadlines 0..deadline days away match.
    """
    search: str = ""
    level: str = ""
    award_for: Tuple[str, ...] = ()
    type: Tuple[str, ...] = ()
    deadline: Optional[int] = None

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> "FilterSpec":
        """
        Build a spec from the UI filter configuration object.

        Recognized keys are search, level, awardFor, type and deadline.
        A deadline string is read up to its first non-digit, so "30.5" means
        30 days. A deadline with no leading integer sets no horizon.
        """
        options = options or {}

        horizon = _parse_horizon(options.get("deadline"))

        return cls(
            search=str(options.get("search") or ""),
            level=str(options.get("level") or ""),
            award_for=_as_selection(options.get("awardFor")),
            type=_as_selection(options.get("type")),
            deadline=horizon,
        )

    @property
    def is_empty(self) -> bool:
        return not (self.search or self.level or self.award_for or self.type) and self.deadline is None


@dataclass(frozen=True)
class Facets:
    """Distinct filter values present in a collection, in display order."""
    levels: List[str]
    award_for: List[str]
    types: List[str]


def _as_selection(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value if item)


def _parse_horizon(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return math.floor(value)

    text = str(value).strip()
    if not text:
        return None

    match = LEADING_INT_PATTERN.match(text)
    if not match:
        logger.warning(f"Ignoring unparseable deadline horizon: {value!r}")
        return None
    return int(match.group(1))


def normalize_text_for_matching(text: Optional[str]) -> str:
    """
    Normalize text for case-insensitive matching.

    Args:
        text: Text to normalize. Can be None or empty string.

    Returns:
        Lowercase text, or empty string if input is None/empty.
    """
    if not text:
        return ""
    return text.lower()


def searchable_text(award: AwardRecord) -> str:
    """Concatenate the fields covered by free-text search."""
    return " ".join([
        award.title,
        award.requirements,
        award.previous_awardees,
        award.award_for,
        award.level,
    ])


def days_until(deadline_date: str, today: Optional[date] = None) -> Optional[int]:
    """
    Count whole days from today (at midnight) to a stored deadline.

    Args:
        deadline_date: Deadline in YYYY-MM-DD form.
        today: Reference date, defaults to the current local date.

    Returns:
        Days until the deadline (negative once passed), or None when the
        stored date is not a valid ISO date.
    """
    deadline = parse_iso_date(deadline_date)
    if deadline is None:
        return None
    return (deadline - (today or date.today())).days


def classify_urgency(days: int) -> Urgency:
    """
    Classify days-until-deadline into an urgency bucket.

    Args:
        days: Result of days_until.

    Returns:
        PASSED below zero, URGENT up to 30, UPCOMING up to 60,
        otherwise PLENTY_OF_TIME.
    """
    if days < 0:
        return Urgency.PASSED
    if days <= URGENT_DAYS:
        return Urgency.URGENT
    if days <= UPCOMING_DAYS:
        return Urgency.UPCOMING
    return Urgency.PLENTY_OF_TIME


def urgency_label(days: int) -> str:
    """Badge text shown next to a deadline."""
    if days < 0:
        return "Passed"
    return f"{days}d left"


def matches_search(award: AwardRecord, query: str) -> bool:
    if not query:
        return True
    return normalize_text_for_matching(query) in normalize_text_for_matching(searchable_text(award))


def matches_level(award: AwardRecord, level: str) -> bool:
    if not level:
        return True
    return level in split_values(award.level)


def matches_any(values: str, selected: Iterable[str]) -> bool:
    """
    Check whether a comma-joined field shares any value with a selection.

    An empty selection always matches.
    """
    selected = set(selected)
    if not selected:
        return True
    return bool(selected.intersection(split_values(values)))


def matches_deadline(award: AwardRecord, horizon: Optional[int], today: date) -> bool:
    if horizon is None:
        return True
    days = days_until(award.deadline_date, today)
    return days is not None and 0 <= days <= horizon


def sort_by_deadline(awards: Iterable[AwardRecord]) -> List[AwardRecord]:
    """
    Sort awards by ascending deadline date.

    The sort is stable, so equal deadlines keep collection order.
    Records with an unparseable deadline sort last.
    """
    def sort_key(award: AwardRecord):
        deadline = parse_iso_date(award.deadline_date)
        return (deadline is None, deadline or date.max)

    return sorted(awards, key=sort_key)


def filter_awards(
    awards: List[AwardRecord],
    spec: Optional[FilterSpec] = None,
    today: Optional[date] = None
) -> List[AwardRecord]:
    """
    Apply a filter spec to the collection and sort the result.

    All active constraints must hold (AND); within the award-for and type
    facets any selected value may match (OR).

    Args:
        awards: Records in collection order.
        spec: Filter selection. None means no constraints.
        today: Reference date for the deadline horizon.

    Returns:
        Matching records, ascending by deadline date.
    """
    spec = spec or FilterSpec()
    today = today or date.today()

    if not awards:
        logger.debug("No awards to filter")
        return []

    stats: Dict[str, int] = {
        "total": len(awards),
        "search": 0,
        "level": 0,
        "award_for": 0,
        "type": 0,
        "deadline": 0,
        "passed": 0,
    }
    filtered = []

    for award in awards:
        if not matches_search(award, spec.search):
            stats["search"] += 1
            continue

        if not matches_level(award, spec.level):
            stats["level"] += 1
            continue

        if not matches_any(award.award_for, spec.award_for):
            stats["award_for"] += 1
            continue

        if not matches_any(award.type, spec.type):
            stats["type"] += 1
            continue

        if not matches_deadline(award, spec.deadline, today):
            stats["deadline"] += 1
            continue

        stats["passed"] += 1
        filtered.append(award)

    logger.debug(
        f"Filter results: {stats['passed']}/{stats['total']} passed "
        f"(search={stats['search']}, level={stats['level']}, "
        f"award_for={stats['award_for']}, type={stats['type']}, "
        f"deadline={stats['deadline']})"
    )

    return sort_by_deadline(filtered)


def collect_facets(awards: Iterable[AwardRecord]) -> Facets:
    """
    Collect the distinct level, award-for and type values.

    Args:
        awards: Records to scan.

    Returns:
        Facets with levels in priority order and the rest alphabetical.
    """
    levels: List[str] = []
    award_for: List[str] = []
    types: List[str] = []

    for award in awards:
        levels.extend(split_values(award.level))
        award_for.extend(split_values(award.award_for))
        types.extend(split_values(award.type))

    return Facets(
        levels=sort_levels(levels),
        award_for=sort_facet(award_for),
        types=sort_facet(types),
    )
