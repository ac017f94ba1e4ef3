"""
Calendar export for award deadlines.

Builds an all-day calendar event for a record and renders it as a
minimal iCalendar document. The event spans the deadline day only:
DTSTART is the deadline and DTEND the following day, as iCalendar
all-day events use an exclusive end date.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from awards.dates import InvalidDateFormat, parse_iso_date
from awards.models import AwardRecord


PRODUCT_ID = "-//Award Deadlines Board//EN"

EVENT_TITLE_PREFIX = "Award Deadline: "


@dataclass(frozen=True)
class CalendarEvent:
    """All-day event for one award deadline."""
    uid: str
    title: str
    description: str
    start: date
    end: date


def build_description(award: AwardRecord) -> str:
    """
    Compose the event description from the award details.

    Requirements, level and award-for lines are included only when set;
    the apply link always closes the description.
    """
    description = ""
    if award.requirements:
        description += f"Requirements: {award.requirements}\n\n"
    if award.level:
        description += f"Level: {award.level}\n"
    if award.award_for:
        description += f"For: {award.award_for}\n"
    description += f"\nApply here: {award.link}"
    return description


def build_calendar_event(award: AwardRecord) -> CalendarEvent:
    """
    Build the all-day deadline event for an award.

    Args:
        award: Record with a valid deadline date.

    Returns:
        CalendarEvent ending the day after the deadline.

    Raises:
        InvalidDateFormat: If the stored deadline date is not valid.
    """
    start = parse_iso_date(award.deadline_date)
    if start is None:
        raise InvalidDateFormat(f"Invalid deadline date for '{award.title}': {award.deadline_date!r}")

    return CalendarEvent(
        uid=f"{award.id}@awards",
        title=f"{EVENT_TITLE_PREFIX}{award.title}",
        description=build_description(award),
        start=start,
        end=start + timedelta(days=1),
    )


def escape_text(text: str) -> str:
    """Escape a value for an iCalendar TEXT property."""
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def fold_line(line: str, limit: int = 75) -> List[str]:
    """
    Split a content line into folded physical lines of at most limit octets.

    Lengths are measured in UTF-8 and multi-byte characters are never split.
    Continuation lines start with a single space, which counts toward the limit.
    """
    folded: List[str] = []
    current = ""
    size = 0
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > limit:
            folded.append(current)
            current = " "
            size = 1
        current += char
        size += width
    folded.append(current)
    return folded


def to_ics(event: CalendarEvent, stamp: Optional[datetime] = None) -> str:
    """
    Render an event as an iCalendar document.

    Args:
        event: The event to render.
        stamp: DTSTAMP value, defaults to the current UTC time.

    Returns:
        iCalendar text with CRLF line endings.
    """
    stamp = (stamp or datetime.now(timezone.utc)).astimezone(timezone.utc)

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODUCT_ID}",
        "CALSCALE:GREGORIAN",
        "BEGIN:VEVENT",
        f"UID:{event.uid}",
        f"DTSTAMP:{stamp.strftime('%Y%m%dT%H%M%SZ')}",
        f"DTSTART;VALUE=DATE:{event.start.strftime('%Y%m%d')}",
        f"DTEND;VALUE=DATE:{event.end.strftime('%Y%m%d')}",
        f"SUMMARY:{escape_text(event.title)}",
        f"DESCRIPTION:{escape_text(event.description)}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]

    physical: List[str] = []
    for line in lines:
        physical.extend(fold_line(line))
    return "\r\n".join(physical) + "\r\n"


def calendar_filename(award: AwardRecord) -> str:
    """File name offered for download, e.g. "award-goldwater-scholarship.ics"."""
    slug = re.sub(r"[^a-z0-9]", "-", award.title.lower())
    return f"award-{slug}.ics"
