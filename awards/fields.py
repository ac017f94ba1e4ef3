"""
Categorical field normalization.

Level, award-for and type fields are multi-valued. Spreadsheets separate
values with semicolons, Google Form checkboxes with commas, and entries
often carry explanatory parentheticals such as "National (US only)".
Stored records always hold the canonical comma-joined form.
"""

import re
from typing import Iterable, List


CANONICAL_SEPARATOR = ", "

PARENTHETICAL_PATTERN = re.compile(r"\s*\(.*?\)\s*")

# Display priority for award levels; unlisted levels follow alphabetically.
LEVEL_ORDER = [
    "International",
    "National",
    "Local",
    "University",
    "College",
    "Department",
]


def normalize_list(raw: str, split_on: str = ";") -> str:
    """
    Normalize a delimiter-separated multi-value field to canonical form.

    Each piece is trimmed and stripped of parenthetical annotations; empty
    pieces are dropped and repeated values keep their first position.

    Args:
        raw: Raw field text.
        split_on: Delimiter used by the source.

    Returns:
        Comma-joined canonical string, e.g. "Research, Teaching".
    """
    if not raw:
        return ""

    values: List[str] = []
    for piece in str(raw).split(split_on):
        cleaned = PARENTHETICAL_PATTERN.sub("", piece.strip()).strip()
        if cleaned and cleaned not in values:
            values.append(cleaned)

    return CANONICAL_SEPARATOR.join(values)


def split_values(canonical: str) -> List[str]:
    """Split a stored comma-joined field into its trimmed values."""
    if not canonical:
        return []
    return [value.strip() for value in canonical.split(",") if value.strip()]


def sort_levels(levels: Iterable[str]) -> List[str]:
    """
    Order level values for display.

    Known levels follow LEVEL_ORDER, unknown ones come after them
    in alphabetical order.
    """
    def sort_key(level: str):
        if level in LEVEL_ORDER:
            return (0, LEVEL_ORDER.index(level), "")
        return (1, 0, level)

    return sorted(set(levels), key=sort_key)


def sort_facet(values: Iterable[str]) -> List[str]:
    return sorted(set(values))
