#!/usr/bin/env python3
"""
Validation of the persisted award collection.

Checks awards.json against the record invariants and reports structured
errors (fatal to the CI gate) and warnings (advisory). Validation is a
pure inspection: the collection is never modified.

Run as a script to validate AWARDS_PATH and write the report file to
VALIDATION_RESULTS_PATH; the exit code is non-zero on any error.
"""

import os
import sys
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List
from urllib.parse import urlparse

from awards.dates import ISO_DATE_PATTERN, parse_iso_date
from awards.store import DEFAULT_AWARDS_PATH, MalformedCollectionFile, read_collection_data
from awards.utils import get_logger, safe_write_json, setup_logging


logger = get_logger("validate")

DEFAULT_RESULTS_PATH = "scripts/validation-results.json"

REQUIRED_FIELDS = ["id", "title", "deadlineMonth", "deadlineDay", "deadlineDate", "link"]

MIN_TITLE_LENGTH = 3

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


@dataclass
class ValidationReport:
    """Outcome of validating a collection."""
    total_awards: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the validation report file format."""
        return {
            "valid": self.valid,
            "totalAwards": self.total_awards,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


def is_valid_url(value: Any) -> bool:
    """
    Check that a link parses as an absolute URL.

    Args:
        value: Candidate link.

    Returns:
        True if the value has both a scheme and a network location.
    """
    if not isinstance(value, str) or not value.strip() or any(c.isspace() for c in value.strip()):
        return False
    try:
        parsed = urlparse(value.strip())
        return bool(parsed.scheme) and bool(parsed.netloc)
    except ValueError:
        return False


def _is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, int):
        return value == 0
    return False


def _describe(index: int, award: Dict[str, Any]) -> str:
    title = award.get("title") if isinstance(award.get("title"), str) else ""
    return f"Award #{index} ({title or 'Unknown'})"


def validate_award(index: int, award: Dict[str, Any], report: ValidationReport) -> None:
    """
    Check one record and add its problems to the report.

    Args:
        index: 1-based position in the collection, used in messages.
        award: Persisted record object.
        report: Report receiving errors and warnings.
    """
    label = _describe(index, award)

    for field_name in REQUIRED_FIELDS:
        if _is_blank(award.get(field_name)):
            report.errors.append(f'{label}: Missing required field "{field_name}"')

    title = award.get("title")
    if isinstance(title, str) and title.strip() and len(title.strip()) < MIN_TITLE_LENGTH:
        report.warnings.append(f"Award #{index}: Title is too short ({title})")

    link = award.get("link")
    if not _is_blank(link) and not is_valid_url(link):
        report.errors.append(f"{label}: Invalid URL format for link")

    deadline_date = award.get("deadlineDate")
    if not _is_blank(deadline_date):
        if not isinstance(deadline_date, str) or not ISO_DATE_PATTERN.match(deadline_date):
            report.errors.append(
                f"{label}: Invalid date format for deadlineDate (expected YYYY-MM-DD)"
            )
        elif parse_iso_date(deadline_date) is None:
            report.errors.append(f"{label}: Invalid deadline date")

    deadline_day = award.get("deadlineDay")
    if not _is_blank(deadline_day):
        if isinstance(deadline_day, bool) or not isinstance(deadline_day, int) or not 1 <= deadline_day <= 31:
            report.errors.append(f"{label}: Invalid deadline day (must be 1-31)")


def validate_awards(awards: List[Any]) -> ValidationReport:
    """
    Validate a list of persisted award objects.

    Args:
        awards: The "awards" array of awards.json.

    Returns:
        ValidationReport with per-record errors and collection warnings.
    """
    report = ValidationReport(total_awards=len(awards))
    seen_ids: Counter = Counter()
    seen_titles: Counter = Counter()

    for index, award in enumerate(awards, 1):
        if not isinstance(award, dict):
            report.errors.append(f"Award #{index}: Not an object")
            continue

        validate_award(index, award, report)

        award_id = award.get("id")
        if isinstance(award_id, str) and award_id.strip():
            if seen_ids[award_id]:
                report.errors.append(f"{_describe(index, award)}: Duplicate ID found")
            seen_ids[award_id] += 1

        title = award.get("title")
        if isinstance(title, str) and title.strip():
            key = title.lower()
            if seen_titles[key]:
                report.warnings.append(f'Potential duplicate title: "{key}"')
            seen_titles[key] += 1

    return report


def validate_collection(data: Any) -> ValidationReport:
    """
    Validate a parsed awards.json object.

    Raises:
        MalformedCollectionFile: If the object has no "awards" array.
    """
    if not isinstance(data, dict) or not isinstance(data.get("awards"), list):
        raise MalformedCollectionFile('Missing or invalid "awards" array')
    return validate_awards(data["awards"])


def log_report(report: ValidationReport) -> None:
    logger.info("Validation Results:")
    logger.info(f"Total Awards: {report.total_awards}")
    logger.info(f"Errors: {len(report.errors)}")
    logger.info(f"Warnings: {len(report.warnings)}")

    for error in report.errors:
        logger.error(f"  - {error}")
    for warning in report.warnings:
        logger.warning(f"  - {warning}")


def run_validation(awards_path: str, results_path: str) -> int:
    """
    Validate a collection file and write the report.

    Args:
        awards_path: Path to awards.json.
        results_path: Path of the validation report file.

    Returns:
        Exit code (0 when valid, 1 otherwise).
    """
    logger.info(f"Validating {awards_path}...")

    try:
        report = validate_collection(read_collection_data(awards_path))
    except MalformedCollectionFile as e:
        logger.error(f"Cannot validate {awards_path}: {e}")
        safe_write_json(results_path, ValidationReport(errors=[str(e)]).to_dict())
        return EXIT_FAILURE

    log_report(report)
    safe_write_json(results_path, report.to_dict())

    if report.errors:
        logger.error("Validation FAILED")
        return EXIT_FAILURE

    logger.info("Validation PASSED")
    return EXIT_SUCCESS


def main() -> int:
    """
    Entry point for the validation CI gate.

    Returns:
        Exit code for the process.
    """
    setup_logging(os.environ.get("LOG_LEVEL", "INFO"))

    awards_path = os.environ.get("AWARDS_PATH", "").strip() or DEFAULT_AWARDS_PATH
    results_path = os.environ.get("VALIDATION_RESULTS_PATH", "").strip() or DEFAULT_RESULTS_PATH

    try:
        return run_validation(awards_path, results_path)
    except Exception as e:
        logger.exception(f"Unexpected error during validation: {e}")
        safe_write_json(results_path, ValidationReport(errors=[f"Unexpected error: {e}"]).to_dict())
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
