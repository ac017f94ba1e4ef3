"""
Date and month normalization for award deadlines.

Spreadsheet submissions describe deadlines in several shapes:
- a month (full or abbreviated English name, or a 1-12 index) plus a day
- a full M/D/YYYY date string
- an Excel serial date number
- an already parsed date cell (datetime or pandas Timestamp)

Every shape resolves to a DeadlineParts triple holding the canonical
month name, the day of month and a sortable ISO date.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from awards.utils import get_logger


logger = get_logger("dates")

# Unix epoch expressed as an Excel serial day. Excel counts 1900 as a leap
# year, and the offset keeps that bug so serials match the spreadsheet.
EXCEL_EPOCH_OFFSET = 25569

UNIX_EPOCH = date(1970, 1, 1)

MONTH_NAMES = [
    "", "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

# Case-sensitive lookup table of full and abbreviated month names.
MONTH_MAP: Dict[str, int] = {
    "January": 1, "February": 2, "March": 3, "April": 4,
    "May": 5, "June": 6, "July": 7, "August": 8,
    "September": 9, "October": 10, "November": 11, "December": 12,
    "Jan": 1, "Feb": 2, "Mar": 3, "Apr": 4,
    "Jun": 6, "Jul": 7, "Aug": 8, "Sep": 9, "Sept": 9,
    "Oct": 10, "Nov": 11, "Dec": 12,
}

# Unrecognized month input resolves here rather than failing.
DEFAULT_MONTH = 1

# Day used when the day cell is empty or holds no leading integer.
DEFAULT_DAY = 1

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
NUMERIC_PATTERN = re.compile(r"^\d+(\.\d+)?$")
LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")


class InvalidDateFormat(ValueError):
    """Raised when a deadline cannot be turned into a real calendar date."""


@dataclass(frozen=True)
class DeadlineParts:
    """
    Canonical deadline components.

    Attributes:
        month_name: Full English month name, e.g. "March".
        day: Day of month (1-31).
        iso_date: Sortable date string in YYYY-MM-DD form.
    """
    month_name: str
    day: int
    iso_date: str

    @classmethod
    def from_date(cls, value: date) -> "DeadlineParts":
        return cls(
            month_name=MONTH_NAMES[value.month],
            day=value.day,
            iso_date=value.isoformat()
        )


def resolve_month(value: Any) -> Tuple[int, str]:
    """
    Resolve a month cell to its index and full name.

    Strings are looked up case-sensitively in MONTH_MAP; purely numeric
    strings and numbers are treated as a 1-12 index. Anything else,
    including out-of-range indices, resolves to January.

    Args:
        value: Month name, abbreviation, index or None.

    Returns:
        Tuple of (month_index, month_name).
    """
    index: Optional[int] = None

    if isinstance(value, bool):
        index = None
    elif isinstance(value, (int, float)):
        if not (isinstance(value, float) and math.isnan(value)):
            index = math.floor(value)
    elif isinstance(value, str):
        text = value.strip()
        if NUMERIC_PATTERN.match(text):
            index = math.floor(float(text))
        else:
            index = MONTH_MAP.get(text)

    if index is None or not 1 <= index <= 12:
        if value is not None and value != "":
            logger.warning(f"Unrecognized month {value!r}, defaulting to {MONTH_NAMES[DEFAULT_MONTH]}")
        index = DEFAULT_MONTH

    return index, MONTH_NAMES[index]


def parse_day(value: Any) -> int:
    """
    Parse a day-of-month cell.

    Mirrors spreadsheet leniency: a leading integer is enough ("15th" is 15)
    and an empty or non-numeric cell falls back to DEFAULT_DAY.

    Args:
        value: Day cell as int, float or string.

    Returns:
        Day of month.

    Raises:
        InvalidDateFormat: If the parsed day is outside 1-31.
    """
    day: Optional[int] = None

    if isinstance(value, bool):
        day = None
    elif isinstance(value, (int, float)):
        if not (isinstance(value, float) and math.isnan(value)):
            day = math.floor(value)
    elif value is not None:
        match = LEADING_INT_PATTERN.match(str(value))
        if match:
            day = int(match.group(1))

    if not day:
        return DEFAULT_DAY

    if not 1 <= day <= 31:
        raise InvalidDateFormat(f"Day out of range: {value!r}")

    return day


def _build_date(year: int, month: int, day: int, source: Any) -> date:
    try:
        return date(year, month, day)
    except ValueError as e:
        raise InvalidDateFormat(f"Not a calendar date: {source!r} ({e})") from e


def normalize_month_day(
    month: Any,
    day: Any,
    now: Optional[datetime] = None
) -> DeadlineParts:
    """
    Normalize a month/day pair for a recurring annual deadline.

    The date is anchored to the current year. When it falls strictly
    before "now" the next occurrence is assumed and the year advances.

    Args:
        month: Month cell (name, abbreviation or index).
        day: Day cell.
        now: Reference moment, defaults to the current local time.

    Returns:
        DeadlineParts for the next occurrence.

    Raises:
        InvalidDateFormat: If the day does not exist in that month.
    """
    now = now or datetime.now()
    month_index, month_name = resolve_month(month)
    day_number = parse_day(day)

    deadline = _build_date(now.year, month_index, day_number, (month, day))
    if datetime(deadline.year, deadline.month, deadline.day) < now:
        deadline = _build_date(now.year + 1, month_index, day_number, (month, day))

    return DeadlineParts(
        month_name=month_name,
        day=day_number,
        iso_date=deadline.isoformat()
    )


def parse_full_date(text: str) -> DeadlineParts:
    """
    Parse an M/D/YYYY date string. The year is taken literally.

    Args:
        text: Date string such as "3/15/2026".

    Returns:
        DeadlineParts for that exact date.

    Raises:
        InvalidDateFormat: If the string is not three numeric parts or is
            not a real calendar date.
    """
    parts = str(text).strip().split("/")
    if len(parts) != 3:
        raise InvalidDateFormat(f"Expected M/D/YYYY, got {text!r}")

    numbers = []
    for part in parts:
        part = part.strip()
        if not (part.isascii() and part.isdigit()):
            raise InvalidDateFormat(f"Non-numeric date part in {text!r}")
        numbers.append(int(part))

    month, day, year = numbers
    return DeadlineParts.from_date(_build_date(year, month, day, text))


def excel_serial_to_date(serial: float) -> date:
    """
    Convert an Excel serial date number to a calendar date.

    Args:
        serial: Days since the Excel epoch, possibly with a time fraction.

    Returns:
        The calendar date; the time fraction is dropped.

    Raises:
        InvalidDateFormat: If the serial is not a finite number.
    """
    if isinstance(serial, bool) or not isinstance(serial, (int, float)) or not math.isfinite(serial):
        raise InvalidDateFormat(f"Not an Excel serial date: {serial!r}")
    try:
        return UNIX_EPOCH + timedelta(days=math.floor(serial - EXCEL_EPOCH_OFFSET))
    except OverflowError as e:
        raise InvalidDateFormat(f"Excel serial out of range: {serial!r}") from e


def normalize_date_value(value: Any) -> DeadlineParts:
    """
    Normalize a single full-date cell of any supported shape.

    Accepts date/datetime objects (pandas Timestamp included), Excel serial
    numbers (also as numeric strings), M/D/YYYY strings and ISO YYYY-MM-DD
    strings. No year rollover is applied.

    Args:
        value: The cell value.

    Returns:
        DeadlineParts for the date.

    Raises:
        InvalidDateFormat: If the value is empty or cannot be parsed.
    """
    if isinstance(value, datetime):
        return DeadlineParts.from_date(value.date())
    if isinstance(value, date):
        return DeadlineParts.from_date(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return DeadlineParts.from_date(excel_serial_to_date(value))

    text = "" if value is None else str(value).strip()
    if not text:
        raise InvalidDateFormat("Empty date value")

    if NUMERIC_PATTERN.match(text):
        return DeadlineParts.from_date(excel_serial_to_date(float(text)))

    if ISO_DATE_PATTERN.match(text):
        try:
            return DeadlineParts.from_date(date.fromisoformat(text))
        except ValueError as e:
            raise InvalidDateFormat(f"Not a calendar date: {text!r}") from e

    return parse_full_date(text)


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse a stored YYYY-MM-DD string, returning None when it is not one."""
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None
