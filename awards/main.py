#!/usr/bin/env python3
"""
Main orchestration module for the award ingestion bot.

This module coordinates the submission pipeline:
sheet rows → build → duplicate check → publish → cursor

Each new sheet row becomes one review pull request (or, in local mode, one
append to awards.json). The cursor in the state file records the last sheet
row that was durably handled so the next run starts after it.

It handles environment validation, logging setup, and error handling
for the entire workflow.
"""

import os
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from awards.builder import DuplicateSkip, MissingRequiredField, build_award
from awards.dates import InvalidDateFormat
from awards.fetch import SheetFetchError, load_sheet_rows
from awards.github import GitHubAPIError, GitHubPublisher, check_github_connection
from awards.mapping import ColumnMapping, load_column_mapping
from awards.models import AwardCollection, AwardRecord
from awards.store import (
    DEFAULT_AWARDS_PATH,
    MalformedCollectionFile,
    append_award,
    load_collection,
    serialize_collection,
)
from awards.utils import get_logger, is_truthy, safe_read_json, safe_write_json, setup_logging


# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_ENV_ERROR = 2

DEFAULT_STATE_PATH = ".github/state.json"
DEFAULT_BASE_BRANCH = "main"
HEADER_ROW = 1

PUBLISH_GITHUB = "github"
PUBLISH_LOCAL = "local"

# Row outcomes
APPENDED = "appended"
DUPLICATE = "duplicate"
INVALID = "invalid"
BLANK = "blank"
FAILED = "failed"


logger = get_logger("main")


@dataclass
class BotConfig:
    """Settings for one bot run, read from the environment."""
    sheet_url: str = ""
    sheet_path: str = ""
    awards_path: str = DEFAULT_AWARDS_PATH
    state_path: str = DEFAULT_STATE_PATH
    base_branch: str = DEFAULT_BASE_BRANCH
    publish_mode: str = PUBLISH_GITHUB

    @classmethod
    def from_environment(cls) -> "BotConfig":
        def env(name: str, default: str = "") -> str:
            return os.environ.get(name, "").strip() or default

        return cls(
            sheet_url=env("SHEET_CSV_URL"),
            sheet_path=env("SHEET_CSV_PATH"),
            awards_path=env("AWARDS_PATH", DEFAULT_AWARDS_PATH),
            state_path=env("STATE_PATH", DEFAULT_STATE_PATH),
            base_branch=env("BASE_BRANCH", DEFAULT_BASE_BRANCH),
            publish_mode=env("PUBLISH_MODE", PUBLISH_GITHUB).lower(),
        )


@dataclass(frozen=True)
class RowOutcome:
    """What happened to one sheet row."""
    row_number: int
    status: str
    title: str = ""
    detail: str = ""


@dataclass
class BatchResult:
    """
    Outcome of processing the new sheet rows.

    Attributes:
        outcomes: One entry per row looked at, in sheet order.
        last_processed_row: Sheet row the cursor should be saved at.
        failed: True if a publish failure stopped the batch.
    """
    outcomes: List[RowOutcome] = field(default_factory=list)
    last_processed_row: int = HEADER_ROW
    failed: bool = False

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)


class LocalPublisher:
    """Appends each award straight to the local awards.json."""

    def __init__(self, awards_path: str):
        self.awards_path = awards_path

    def publish(self, award: AwardRecord, collection_json: str) -> Dict[str, Any]:
        append_award(award, self.awards_path)
        logger.info(f"Appended '{award.title}' to {self.awards_path}")
        return {"html_url": self.awards_path}

    def close(self) -> None:
        pass


class DryRunPublisher:
    """Logs what would be published without side effects."""

    def publish(self, award: AwardRecord, collection_json: str) -> Dict[str, Any]:
        logger.info(f"[DRY RUN] Would open pull request: New Award: {award.title}")
        logger.debug(f"[DRY RUN] awards.json would be {len(collection_json)} bytes")
        return {}

    def close(self) -> None:
        pass


def validate_environment(config: BotConfig, dry_run: bool = False) -> bool:
    """
    Validate that required environment variables are set.

    A sheet source is always required. GitHub credentials are required
    only when pull requests will actually be opened.

    Returns:
        True if all required variables are set, False otherwise.
    """
    missing_vars = []

    if not config.sheet_url and not config.sheet_path:
        missing_vars.append("SHEET_CSV_URL or SHEET_CSV_PATH")

    if config.publish_mode not in (PUBLISH_GITHUB, PUBLISH_LOCAL):
        logger.error(f"Invalid PUBLISH_MODE '{config.publish_mode}'. Expected 'github' or 'local'")
        return False

    if config.publish_mode == PUBLISH_GITHUB and not dry_run:
        for var in ("GITHUB_TOKEN", "GITHUB_REPOSITORY"):
            value = os.environ.get(var)
            if not value or value.strip() == "":
                missing_vars.append(var)

    if missing_vars:
        logger.error(f"Missing required environment variables: {', '.join(missing_vars)}")
        return False

    logger.debug("Environment validation passed")
    return True


def load_last_processed_row(state_path: str = DEFAULT_STATE_PATH) -> int:
    """
    Read the cursor from the state file.

    Args:
        state_path: Path of the state file.

    Returns:
        Last processed sheet row, or 1 (the header row) when no usable
        state exists.
    """
    state = safe_read_json(state_path, default={})
    if not isinstance(state, dict):
        logger.warning(f"Ignoring unexpected state in {state_path}")
        return HEADER_ROW

    value = state.get("lastProcessedRow")
    if isinstance(value, bool) or not isinstance(value, int) or value < HEADER_ROW:
        return HEADER_ROW
    return value


def save_last_processed_row(row: int, state_path: str = DEFAULT_STATE_PATH) -> bool:
    """Persist the cursor. Returns True on success."""
    saved = safe_write_json(state_path, {"lastProcessedRow": row})
    if saved:
        logger.info(f"Saved cursor at row {row}")
    return saved


def is_blank_row(row: Sequence[Any]) -> bool:
    return not any(str(cell).strip() for cell in row if cell is not None)


def snapshot_with(collection: AwardCollection, award: AwardRecord) -> str:
    """Render awards.json as it will look with one more award appended."""
    snapshot = AwardCollection(awards=list(collection.awards), version=collection.version)
    snapshot.append(award)
    return serialize_collection(snapshot)


def process_rows(
    rows: List[Sequence[Any]],
    start_row: int,
    mapping: ColumnMapping,
    collection: AwardCollection,
    publisher: Any,
    now: Optional[datetime] = None
) -> BatchResult:
    """
    Build and publish every sheet row after the cursor.

    Invalid and duplicate rows are logged and counted as handled. Awards
    published earlier in the batch take part in duplicate detection for
    later rows. A publish failure (a GitHub error, or a local store that
    cannot be read or written) stops the batch so the failing row is
    retried on the next run.

    Args:
        rows: All sheet rows including the header.
        start_row: Last processed sheet row.
        mapping: Column mapping for the sheet.
        collection: Collection already on the base branch.
        publisher: Object with publish(award, collection_json).
        now: Reference moment for deadline year rollover.

    Returns:
        BatchResult with per-row outcomes and the new cursor.
    """
    result = BatchResult(last_processed_row=start_row)
    published: List[AwardRecord] = []

    for row_number in range(start_row + 1, len(rows) + 1):
        row = rows[row_number - 1]

        if is_blank_row(row):
            result.outcomes.append(RowOutcome(row_number, BLANK))
            result.last_processed_row = row_number
            continue

        logger.info(f"Processing row {row_number}")

        try:
            built = build_award(row, mapping, existing=collection.awards + published, now=now)
        except (MissingRequiredField, InvalidDateFormat) as e:
            logger.warning(f"Skipping row {row_number}: {e}")
            result.outcomes.append(RowOutcome(row_number, INVALID, detail=str(e)))
            result.last_processed_row = row_number
            continue

        if isinstance(built, DuplicateSkip):
            logger.warning(f"Duplicate award detected, skipping row {row_number}: {built.title}")
            result.outcomes.append(
                RowOutcome(row_number, DUPLICATE, title=built.title, detail=built.existing_id)
            )
            result.last_processed_row = row_number
            continue

        try:
            response = publisher.publish(built, snapshot_with(collection, built))
        except (GitHubAPIError, MalformedCollectionFile, OSError) as e:
            logger.error(f"Failed to publish row {row_number} ({built.title}): {e}")
            result.outcomes.append(RowOutcome(row_number, FAILED, title=built.title, detail=str(e)))
            result.failed = True
            break

        published.append(built)
        result.outcomes.append(
            RowOutcome(row_number, APPENDED, title=built.title, detail=response.get("html_url", ""))
        )
        result.last_processed_row = row_number

    return result


def create_publisher(config: BotConfig, dry_run: bool) -> Any:
    if dry_run:
        return DryRunPublisher()
    if config.publish_mode == PUBLISH_LOCAL:
        return LocalPublisher(config.awards_path)
    return GitHubPublisher.from_environment(config.base_branch, config.awards_path)


def run_bot(dry_run: bool = False) -> int:
    """
    Execute the complete ingestion run.

    Pipeline stages:
    1. Validate environment
    2. Load column mapping, collection and cursor
    3. Fetch sheet rows
    4. Build and publish new rows
    5. Save cursor

    Args:
        dry_run: If True, log instead of publishing and keep the cursor.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    logger.info("=" * 60)
    logger.info("Award Submission Bot - Starting")
    logger.info("=" * 60)

    config = BotConfig.from_environment()

    # Stage 1: Validate environment
    logger.info("[Stage 1/5] Validating environment...")
    if not validate_environment(config, dry_run=dry_run):
        logger.error("Environment validation failed")
        return EXIT_ENV_ERROR

    if not dry_run and config.publish_mode == PUBLISH_GITHUB:
        logger.info("Verifying GitHub connection...")
        if not check_github_connection():
            logger.warning("GitHub connection check failed, pull requests may fail")

    # Stage 2: Load configuration and current state
    logger.info("[Stage 2/5] Loading mapping, collection and cursor...")
    try:
        mapping = load_column_mapping()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_ENV_ERROR

    try:
        collection = load_collection(config.awards_path)
    except MalformedCollectionFile as e:
        logger.error(f"Cannot load award collection: {e}")
        return EXIT_FAILURE

    last_row = load_last_processed_row(config.state_path)
    logger.info(f"Last processed row: {last_row}")

    # Stage 3: Fetch sheet rows
    logger.info("[Stage 3/5] Fetching submission sheet...")
    try:
        rows = load_sheet_rows(url=config.sheet_url or None, path=config.sheet_path or None)
    except SheetFetchError as e:
        logger.error(f"Failed to fetch sheet: {e}")
        return EXIT_FAILURE

    if len(rows) <= last_row:
        logger.info("No new submissions to process")
        logger.info("=" * 60)
        return EXIT_SUCCESS

    logger.info(f"Found {len(rows) - last_row} new submission(s)")

    # Stage 4: Build and publish
    logger.info("[Stage 4/5] Processing submissions...")
    try:
        publisher = create_publisher(config, dry_run)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_ENV_ERROR

    try:
        result = process_rows(rows, last_row, mapping, collection, publisher)
    finally:
        publisher.close()

    # Stage 5: Save cursor
    logger.info("[Stage 5/5] Saving cursor...")
    if dry_run:
        logger.info(f"[DRY RUN] Would save cursor at row {result.last_processed_row}")
    elif not save_last_processed_row(result.last_processed_row, config.state_path):
        logger.error(f"Failed to save cursor to {config.state_path}")
        return EXIT_FAILURE

    logger.info("=" * 60)
    logger.info("Award Submission Bot - Complete")
    logger.info(
        f"Summary: {result.count(APPENDED)} published, {result.count(DUPLICATE)} duplicate, "
        f"{result.count(INVALID)} invalid, {result.count(FAILED)} failed"
    )
    logger.info("=" * 60)

    return EXIT_FAILURE if result.failed else EXIT_SUCCESS


def main() -> int:
    """
    Main entry point for the award ingestion bot.

    Sets up logging and runs the bot with proper error handling.

    Returns:
        Exit code for the process.
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    setup_logging(log_level)

    dry_run = is_truthy(os.environ.get("DRY_RUN"))
    if dry_run:
        logger.info("Running in DRY RUN mode - pull requests will be skipped")

    try:
        return run_bot(dry_run=dry_run)

    except KeyboardInterrupt:
        logger.warning("Bot interrupted by user")
        return EXIT_FAILURE

    except Exception as e:
        logger.exception(f"Unexpected error in bot run: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
