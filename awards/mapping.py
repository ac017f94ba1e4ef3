"""
Column mappings for award ingestion sources.

A ColumnMapping names which positional index or column header feeds each
award field. Three historical source shapes are built in:
- form: Google Form responses read positionally
- catalog: the departmental CSV export with descriptive headers
- workbook: the legacy Excel workbook with month and day columns
"""

import json
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from awards.utils import get_logger, safe_read_json


logger = get_logger("mapping")

# Positional index (sheet rows) or column header (CSV/Excel rows)
ColumnKey = Union[int, str]

DEFAULT_MAPPING_NAME = "form"


@dataclass(frozen=True)
class ColumnMapping:
    """
    Source column for each award field.

    Either deadline_date (a full date column) or deadline_month plus
    deadline_day must be set.

    Attributes:
        name: Mapping identifier used in logs and configuration.
        title: Column holding the award title.
        link: Column holding the award URL.
        list_delimiter: Separator used by multi-valued cells.
    """
    name: str
    title: ColumnKey
    link: ColumnKey
    deadline_month: Optional[ColumnKey] = None
    deadline_day: Optional[ColumnKey] = None
    deadline_date: Optional[ColumnKey] = None
    level: Optional[ColumnKey] = None
    application_mode: Optional[ColumnKey] = None
    award_for: Optional[ColumnKey] = None
    type: Optional[ColumnKey] = None
    internal_deadline: Optional[ColumnKey] = None
    requirements: Optional[ColumnKey] = None
    previous_awardees: Optional[ColumnKey] = None
    list_delimiter: str = ";"

    def __post_init__(self):
        if self.deadline_date is None and (
            self.deadline_month is None or self.deadline_day is None
        ):
            raise ValueError(
                f"Mapping '{self.name}' needs deadline_date or both "
                f"deadline_month and deadline_day"
            )
        if not self.list_delimiter:
            raise ValueError(f"Mapping '{self.name}' has an empty list_delimiter")

    @property
    def uses_full_date(self) -> bool:
        return self.deadline_date is not None

    def get(self, row: Union[Sequence[Any], Mapping[str, Any]], field_name: str) -> Any:
        """
        Read the cell feeding a field from a row.

        Args:
            row: Positional row (list) or keyed row (dict).
            field_name: ColumnMapping attribute name, e.g. "title".

        Returns:
            The raw cell value, or None if unmapped or absent.
        """
        key = getattr(self, field_name)
        if key is None:
            return None

        if isinstance(row, Mapping):
            return row.get(key)

        if isinstance(key, int):
            return row[key] if 0 <= key < len(row) else None

        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


FORM_RESPONSES = ColumnMapping(
    name="form",
    title=1,
    deadline_month=2,
    deadline_day=3,
    level=4,
    application_mode=5,
    award_for=6,
    type=7,
    internal_deadline=8,
    requirements=9,
    previous_awardees=10,
    link=11,
    list_delimiter=",",
)

CATALOG_CSV = ColumnMapping(
    name="catalog",
    title="Official Title of the Award",
    level="Award Level",
    award_for="Eligible Applicant Group(s)",
    application_mode="Application Mode",
    type="Type of Award",
    requirements="Key Requirements and Eligibility Criteria",
    link="Link to the Official Award Application/Information Page",
    deadline_date="Final Submission Due Date",
    internal_deadline="Internal Due Date for Review/Approval (If applicable)",
    previous_awardees="List of Previous Awardees from the Department (If known)",
    list_delimiter=";",
)

EXCEL_WORKBOOK = ColumnMapping(
    name="workbook",
    title="Title of Award",
    deadline_month="Final Due Date - Month",
    deadline_day="Final Due Date - Day",
    level="Level",
    application_mode="Mode of Application",
    award_for="Award for",
    type="Type of Award",
    internal_deadline="Internal Due Date",
    requirements="Requirements",
    previous_awardees="Previous Awardees",
    link="Link to Award",
    list_delimiter=";",
)

BUILTIN_MAPPINGS: Dict[str, ColumnMapping] = {
    mapping.name: mapping
    for mapping in (FORM_RESPONSES, CATALOG_CSV, EXCEL_WORKBOOK)
}


def get_column_mapping(name: str) -> ColumnMapping:
    """
    Look up a built-in mapping by name.

    Raises:
        ValueError: If no mapping has that name.
    """
    try:
        return BUILTIN_MAPPINGS[name.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown column mapping '{name}'. "
            f"Expected one of: {', '.join(sorted(BUILTIN_MAPPINGS))}"
        ) from None


def parse_mapping_entry(entry: Dict[str, Any]) -> ColumnMapping:
    """
    Build a ColumnMapping from a JSON configuration object.

    Args:
        entry: Dictionary keyed by ColumnMapping attribute names.

    Returns:
        ColumnMapping instance.

    Raises:
        ValueError: If the entry is not an object, has unknown keys or
            lacks the required columns.
    """
    if not isinstance(entry, dict):
        raise ValueError("Column mapping configuration must be a JSON object")

    known = {f.name for f in fields(ColumnMapping)}
    unknown = set(entry) - known
    if unknown:
        raise ValueError(f"Unknown column mapping keys: {', '.join(sorted(unknown))}")

    for required in ("title", "link"):
        if entry.get(required) is None:
            raise ValueError(f"Column mapping is missing '{required}'")

    data = dict(entry)
    data.setdefault("name", "custom")
    return ColumnMapping(**data)


def load_column_mapping(
    config_path: Optional[str] = None,
    default_name: str = DEFAULT_MAPPING_NAME
) -> ColumnMapping:
    """
    Load the column mapping for an ingestion run.

    Priority:
    1. COLUMN_MAPPING_CONFIG environment variable (JSON string)
    2. COLUMN_MAPPING_PATH environment variable (file path)
    3. Provided config_path parameter
    4. COLUMN_MAPPING environment variable (built-in name)
    5. default_name

    Args:
        config_path: Optional path to a JSON mapping file.
        default_name: Built-in mapping used when nothing is configured.

    Returns:
        ColumnMapping instance.

    Raises:
        ValueError: If a configured mapping is invalid or unknown.
    """
    env_config = os.environ.get("COLUMN_MAPPING_CONFIG", "").strip()
    if env_config:
        try:
            data = json.loads(env_config)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in COLUMN_MAPPING_CONFIG: {e}") from e
        mapping = parse_mapping_entry(data)
        logger.info(f"Loaded column mapping '{mapping.name}' from COLUMN_MAPPING_CONFIG")
        return mapping

    file_path = os.environ.get("COLUMN_MAPPING_PATH", "").strip() or config_path
    if file_path:
        data = safe_read_json(file_path, default=None)
        if data is None:
            raise ValueError(f"Could not load column mapping from {file_path}")
        mapping = parse_mapping_entry(data)
        logger.info(f"Loaded column mapping '{mapping.name}' from {file_path}")
        return mapping

    name = os.environ.get("COLUMN_MAPPING", "").strip() or default_name
    mapping = get_column_mapping(name)
    logger.debug(f"Using built-in column mapping '{mapping.name}'")
    return mapping
