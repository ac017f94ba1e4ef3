#!/usr/bin/env python3
"""
Convert award spreadsheets into the awards.json collection.

Supports the two bulk sources used to seed the listing:
- CSV exports of the departmental catalog (catalog mapping)
- Excel workbooks with month/day deadline columns (workbook mapping)

Rows that fail to normalize are logged and skipped so one bad row
cannot block the rest of the file.
"""

import argparse
import csv
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from awards.builder import DuplicateSkip, MissingRequiredField, build_award
from awards.dates import InvalidDateFormat
from awards.mapping import CATALOG_CSV, EXCEL_WORKBOOK, ColumnMapping, get_column_mapping
from awards.models import AwardCollection
from awards.store import DEFAULT_AWARDS_PATH, MalformedCollectionFile, load_collection, save_collection
from awards.utils import get_logger, setup_logging


logger = get_logger("convert")

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


@dataclass
class ConversionStats:
    """Per-row outcome counts for one conversion run."""
    total: int = 0
    converted: int = 0
    duplicates: int = 0
    failed: int = 0


def read_csv_rows(path: str) -> List[Dict[str, str]]:
    """
    Read a CSV export into keyed rows.

    Header names and cells are trimmed and blank lines are skipped.

    Args:
        path: Path to the CSV file.

    Returns:
        List of dictionaries keyed by column header.
    """
    rows: List[Dict[str, str]] = []
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        for record in reader:
            row = {
                (key or "").strip(): (value or "").strip() if isinstance(value, str) else ""
                for key, value in record.items()
            }
            if any(row.values()):
                rows.append(row)

    logger.info(f"Read {len(rows)} row(s) from {path}")
    return rows


def read_excel_rows(path: str) -> List[Dict[str, Any]]:
    """
    Read the first sheet of an Excel workbook into keyed rows.

    Cells keep their native types (numbers stay numbers, date cells become
    timestamps) and empty cells become None.

    Args:
        path: Path to the workbook.

    Returns:
        List of dictionaries keyed by column header.
    """
    df = pd.read_excel(path, sheet_name=0, dtype=object)
    df.columns = [str(column).strip() for column in df.columns]
    df = df.dropna(how="all")
    df = df.astype(object).where(pd.notna(df), None)

    rows = df.to_dict(orient="records")
    logger.info(f"Read {len(rows)} row(s) from {path}")
    return rows


def convert_rows(
    rows: Iterable[Any],
    mapping: ColumnMapping,
    existing: Optional[AwardCollection] = None
) -> Tuple[AwardCollection, ConversionStats]:
    """
    Build award records for every row and append them to a collection.

    Duplicates of records already in the collection, or of earlier rows
    in the same file, are skipped.

    Args:
        rows: Source rows matching the mapping.
        mapping: Column mapping for the source.
        existing: Collection to append to. A new one is created if None.

    Returns:
        Tuple of (collection, stats).
    """
    collection = existing if existing is not None else AwardCollection()
    stats = ConversionStats()

    for index, row in enumerate(rows, 1):
        stats.total += 1
        try:
            result = build_award(row, mapping, existing=collection.awards)
        except (MissingRequiredField, InvalidDateFormat) as e:
            stats.failed += 1
            logger.warning(f"Skipping row {index}: {e}")
            continue

        if isinstance(result, DuplicateSkip):
            stats.duplicates += 1
            logger.info(f"Skipping row {index}: duplicate of {result.existing_id} ({result.title})")
            continue

        collection.awards.append(result)
        stats.converted += 1
        logger.debug(f"Processed: {result.title}")

    collection.touch()

    logger.info(
        f"Conversion results: {stats.converted}/{stats.total} converted "
        f"(duplicates={stats.duplicates}, failed={stats.failed})"
    )
    return collection, stats


def detect_mapping(source: str) -> ColumnMapping:
    """Pick the default mapping from the source file extension."""
    if Path(source).suffix.lower() in EXCEL_SUFFIXES:
        return EXCEL_WORKBOOK
    return CATALOG_CSV


def read_rows(source: str) -> List[Any]:
    if Path(source).suffix.lower() in EXCEL_SUFFIXES:
        return read_excel_rows(source)
    return read_csv_rows(source)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert an award spreadsheet into awards.json.")
    parser.add_argument("source", help="CSV export or Excel workbook to convert.")
    parser.add_argument(
        "--output",
        default=os.environ.get("AWARDS_PATH", "").strip() or DEFAULT_AWARDS_PATH,
        help="Collection file to write. Defaults to AWARDS_PATH or docs/data/awards.json.",
    )
    parser.add_argument(
        "--mapping",
        default=None,
        help="Column mapping name (form, catalog, workbook). Defaults by file type.",
    )
    parser.add_argument(
        "--merge",
        action="store_true",
        help="Append to the existing collection instead of replacing it.",
    )
    return parser.parse_args(argv)


def run_conversion(args: argparse.Namespace) -> int:
    """
    Convert the source file and write the collection.

    Returns:
        Exit code for the process.
    """
    if not Path(args.source).exists():
        logger.error(f"Source file not found: {args.source}")
        return EXIT_FAILURE

    try:
        mapping = get_column_mapping(args.mapping) if args.mapping else detect_mapping(args.source)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    existing = None
    if args.merge and Path(args.output).exists():
        try:
            existing = load_collection(args.output)
        except MalformedCollectionFile as e:
            logger.error(f"Cannot merge into {args.output}: {e}")
            return EXIT_FAILURE

    logger.info(f"Converting {args.source} with the '{mapping.name}' mapping")
    collection, stats = convert_rows(read_rows(args.source), mapping, existing=existing)

    save_collection(collection, args.output)
    logger.info(f"Successfully converted {stats.converted} award(s) to {args.output}")
    return EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging(os.environ.get("LOG_LEVEL", "INFO"))
    args = parse_args(argv)

    try:
        return run_conversion(args)
    except Exception as e:
        logger.exception(f"Unexpected error during conversion: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
