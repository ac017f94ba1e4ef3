"""
Award record data model.

AwardRecord is the only persisted entity. It is stored in awards.json
with camelCase keys, inside an AwardCollection that also carries the
last-updated timestamp and a schema version tag.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from awards.utils import utc_timestamp


COLLECTION_VERSION = "2.0"

STATUS_ACTIVE = "active"

# Attribute name -> persisted JSON key
FIELD_KEYS: List[Tuple[str, str]] = [
    ("id", "id"),
    ("title", "title"),
    ("deadline_month", "deadlineMonth"),
    ("deadline_day", "deadlineDay"),
    ("deadline_date", "deadlineDate"),
    ("level", "level"),
    ("application_mode", "applicationMode"),
    ("award_for", "awardFor"),
    ("type", "type"),
    ("internal_deadline", "internalDeadline"),
    ("requirements", "requirements"),
    ("previous_awardees", "previousAwardees"),
    ("link", "link"),
    ("date_added", "dateAdded"),
    ("status", "status"),
    ("is_recurring", "isRecurring"),
]


@dataclass(frozen=True)
class AwardRecord:
    """
    One normalized award or opportunity with a deadline.

    Multi-valued fields (level, award_for, type) hold the canonical
    comma-joined form. Records are immutable once built.
    """
    id: str
    title: str
    deadline_month: str
    deadline_day: int
    deadline_date: str
    link: str
    level: str = ""
    application_mode: str = ""
    award_for: str = ""
    type: str = ""
    internal_deadline: str = ""
    requirements: str = ""
    previous_awardees: str = ""
    date_added: str = ""
    status: str = STATUS_ACTIVE
    is_recurring: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON representation."""
        return {key: getattr(self, attr) for attr, key in FIELD_KEYS}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AwardRecord":
        """
        Build a record from its persisted JSON representation.

        Missing optional fields take their defaults. Null text fields become
        empty strings and other non-string values are converted to text.

        Raises:
            ValueError: If deadlineDay is not an integer.
        """
        values: Dict[str, Any] = {}
        for attr, key in FIELD_KEYS:
            if key not in data:
                continue
            value = data[key]
            if attr == "deadline_day":
                if isinstance(value, bool) or value is None:
                    raise ValueError(f"Invalid deadlineDay: {value!r}")
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    raise ValueError(f"Invalid deadlineDay: {value!r}") from None
            elif attr == "is_recurring":
                value = bool(value)
            elif value is None:
                value = ""
            elif not isinstance(value, str):
                value = str(value)
            values[attr] = value

        for attr in ("id", "title", "deadline_month", "deadline_date", "link"):
            values.setdefault(attr, "")
        values.setdefault("deadline_day", 0)

        return cls(**values)


@dataclass
class AwardCollection:
    """
    Ordered award records plus collection metadata.

    Record order is append order, not display order.
    """
    awards: List[AwardRecord] = field(default_factory=list)
    last_updated: str = ""
    version: str = COLLECTION_VERSION

    def __len__(self) -> int:
        return len(self.awards)

    def append(self, award: AwardRecord) -> None:
        """Append a record and refresh the last-updated timestamp."""
        self.awards.append(award)
        self.touch()

    def touch(self) -> None:
        self.last_updated = utc_timestamp()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted awards.json object."""
        return {
            "awards": [award.to_dict() for award in self.awards],
            "lastUpdated": self.last_updated,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AwardCollection":
        """
        Build a collection from the persisted awards.json object.

        Raises:
            ValueError: If "awards" is missing, not a list, or holds a
                non-object entry.
        """
        awards = data.get("awards")
        if not isinstance(awards, list):
            raise ValueError('Missing or invalid "awards" array')

        records = []
        for index, entry in enumerate(awards, 1):
            if not isinstance(entry, dict):
                raise ValueError(f"Award #{index} is not an object")
            records.append(AwardRecord.from_dict(entry))

        return cls(
            awards=records,
            last_updated=str(data.get("lastUpdated") or ""),
            version=str(data.get("version") or COLLECTION_VERSION),
        )
