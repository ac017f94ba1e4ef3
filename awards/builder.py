"""
Award record builder.

Assembles a normalized AwardRecord from a single source row, using a
ColumnMapping to locate the cells. The builder is pure: it never touches
the record store, and appending the result is the caller's job.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple, Union

from awards.dates import (
    DeadlineParts,
    InvalidDateFormat,
    normalize_date_value,
    normalize_month_day,
)
from awards.fields import normalize_list
from awards.mapping import ColumnMapping
from awards.models import STATUS_ACTIVE, AwardRecord
from awards.utils import cell_text, get_logger, utc_timestamp


logger = get_logger("builder")

Row = Union[Sequence[Any], Mapping[str, Any]]


class MissingRequiredField(ValueError):
    """Raised when a row lacks a field every award must have."""

    def __init__(self, field_name: str):
        super().__init__(f"Missing required field: {field_name}")
        self.field_name = field_name


@dataclass(frozen=True)
class DuplicateSkip:
    """
    Outcome for a row that re-submits an award already in the collection.

    Not an error: the caller should skip the append and treat the row
    as handled.
    """
    title: str
    link: str
    existing_id: str


def duplicate_key(title: str, link: str) -> Tuple[str, str]:
    """Key used to detect re-submissions: lowercased title and exact link."""
    return title.lower(), link


def find_duplicate(
    title: str,
    link: str,
    existing: Iterable[AwardRecord]
) -> Optional[AwardRecord]:
    """
    Find an existing record with the same duplicate key.

    Args:
        title: Candidate title (already trimmed).
        link: Candidate link (already trimmed).
        existing: Records already in the collection.

    Returns:
        The first matching record, or None.
    """
    key = duplicate_key(title, link)
    for award in existing:
        if duplicate_key(award.title, award.link) == key:
            return award
    return None


def _resolve_deadline(row: Row, mapping: ColumnMapping, now: datetime) -> DeadlineParts:
    if mapping.uses_full_date:
        raw = mapping.get(row, "deadline_date")
        if isinstance(raw, str):
            raw = raw.strip()
        if raw is None or raw == "":
            raise MissingRequiredField("deadlineDate")
        return normalize_date_value(raw)

    return normalize_month_day(
        mapping.get(row, "deadline_month"),
        mapping.get(row, "deadline_day"),
        now=now
    )


def _resolve_internal_deadline(row: Row, mapping: ColumnMapping, title: str) -> str:
    raw = mapping.get(row, "internal_deadline")
    if raw is None or cell_text(raw) == "":
        return ""

    try:
        return normalize_date_value(raw).iso_date
    except InvalidDateFormat as e:
        logger.warning(f"Ignoring unparseable internal deadline for '{title}': {e}")
        return ""


def build_award(
    row: Row,
    mapping: ColumnMapping,
    existing: Iterable[AwardRecord] = (),
    now: Optional[datetime] = None
) -> Union[AwardRecord, DuplicateSkip]:
    """
    Build a normalized award record from one source row.

    Args:
        row: Positional or keyed source row.
        mapping: Column mapping describing the row shape.
        existing: Records already stored, for duplicate detection.
        now: Reference moment for year rollover, defaults to now.

    Returns:
        A new AwardRecord, or DuplicateSkip when the (title, link) pair
        is already present.

    Raises:
        MissingRequiredField: If title, link or a full-date deadline is blank.
        InvalidDateFormat: If the deadline cannot be parsed.
    """
    title = cell_text(mapping.get(row, "title"))
    link = cell_text(mapping.get(row, "link"))

    if not title:
        raise MissingRequiredField("title")
    if not link:
        raise MissingRequiredField("link")

    duplicate = find_duplicate(title, link, existing)
    if duplicate is not None:
        logger.debug(f"Duplicate of award {duplicate.id}: {title}")
        return DuplicateSkip(title=title, link=link, existing_id=duplicate.id)

    deadline = _resolve_deadline(row, mapping, now or datetime.now())
    delimiter = mapping.list_delimiter

    return AwardRecord(
        id=str(uuid.uuid4()),
        title=title,
        deadline_month=deadline.month_name,
        deadline_day=deadline.day,
        deadline_date=deadline.iso_date,
        level=normalize_list(cell_text(mapping.get(row, "level")), delimiter),
        application_mode=cell_text(mapping.get(row, "application_mode")),
        award_for=normalize_list(cell_text(mapping.get(row, "award_for")), delimiter),
        type=normalize_list(cell_text(mapping.get(row, "type")), delimiter),
        internal_deadline=_resolve_internal_deadline(row, mapping, title),
        requirements=cell_text(mapping.get(row, "requirements")),
        previous_awardees=cell_text(mapping.get(row, "previous_awardees")),
        link=link,
        date_added=utc_timestamp(),
        status=STATUS_ACTIVE,
        is_recurring=True,
    )
