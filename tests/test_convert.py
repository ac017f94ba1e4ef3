"""
Tests for the convert module.

Tests cover:
- Reading CSV exports
- Reading Excel workbooks (pandas mocked)
- Converting rows with skips for bad and duplicate rows
- The command line entry point
"""

import csv
import json
import os
import tempfile
from unittest.mock import patch

import pandas as pd

from awards.convert import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    convert_rows,
    detect_mapping,
    main,
    read_csv_rows,
    read_excel_rows,
)
from awards.mapping import CATALOG_CSV, EXCEL_WORKBOOK
from awards.models import AwardCollection
from awards.store import load_collection, save_collection


CATALOG_HEADERS = [
    "Official Title of the Award",
    "Award Level",
    "Eligible Applicant Group(s)",
    "Application Mode",
    "Type of Award",
    "Key Requirements and Eligibility Criteria",
    "Link to the Official Award Application/Information Page",
    "Final Submission Due Date",
    "Internal Due Date for Review/Approval (If applicable)",
    "List of Previous Awardees from the Department (If known)",
]


def _catalog_row(title, link, due="10/8/2025"):
    return [title, "National", "Faculty; Staff", "Online", "Award", "", link, due, "", ""]


def _write_catalog(path, rows):
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CATALOG_HEADERS)
        writer.writerows(rows)


class TestReadCsvRows:
    """Tests for CSV reading."""

    def test_reads_keyed_rows(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "catalog.csv")
            _write_catalog(path, [_catalog_row(" Fulbright ", "https://x.org")])

            rows = read_csv_rows(path)

        assert len(rows) == 1
        assert rows[0]["Official Title of the Award"] == "Fulbright"
        assert rows[0]["Eligible Applicant Group(s)"] == "Faculty; Staff"

    def test_skips_blank_lines(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "catalog.csv")
            _write_catalog(path, [
                _catalog_row("A", "https://a.org"),
                [""] * len(CATALOG_HEADERS),
                _catalog_row("B", "https://b.org"),
            ])

            rows = read_csv_rows(path)

        assert [row["Official Title of the Award"] for row in rows] == ["A", "B"]


class TestReadExcelRows:
    """Tests for Excel reading."""

    def test_nan_cells_become_none(self):
        frame = pd.DataFrame({
            "Title of Award ": ["Sloan Fellowship"],
            "Final Due Date - Month": ["Sep"],
            "Final Due Date - Day": [15],
            "Requirements": [float("nan")],
        })

        with patch("awards.convert.pd.read_excel", return_value=frame) as mock_read:
            rows = read_excel_rows("awards.xlsx")

        mock_read.assert_called_once()
        assert rows[0]["Title of Award"] == "Sloan Fellowship"
        assert rows[0]["Requirements"] is None

    def test_drops_empty_rows(self):
        frame = pd.DataFrame({
            "Title of Award": ["A", None],
            "Link to Award": ["https://a.org", None],
        })

        with patch("awards.convert.pd.read_excel", return_value=frame):
            rows = read_excel_rows("awards.xlsx")

        assert len(rows) == 1


class TestConvertRows:
    """Tests for row conversion."""

    def test_converts_and_counts(self):
        rows = [
            dict(zip(CATALOG_HEADERS, _catalog_row("Fulbright", "https://x.org"))),
            dict(zip(CATALOG_HEADERS, _catalog_row("", "https://y.org"))),
            dict(zip(CATALOG_HEADERS, _catalog_row("Bad Date", "https://z.org", due="2/30/2025"))),
            dict(zip(CATALOG_HEADERS, _catalog_row("FULBRIGHT", "https://x.org"))),
        ]

        collection, stats = convert_rows(rows, CATALOG_CSV)

        assert stats.total == 4
        assert stats.converted == 1
        assert stats.failed == 2
        assert stats.duplicates == 1
        assert len(collection) == 1
        assert collection.awards[0].award_for == "Faculty, Staff"
        assert collection.last_updated != ""

    def test_merges_into_existing(self, sample_collection):
        rows = [
            dict(zip(CATALOG_HEADERS, _catalog_row("Fulbright", "https://x.org"))),
            dict(zip(CATALOG_HEADERS, _catalog_row("Truman", "https://truman.gov"))),
        ]

        collection, stats = convert_rows(rows, CATALOG_CSV, existing=sample_collection)

        assert collection is sample_collection
        assert stats.duplicates == 1
        assert len(collection) == 3


class TestDetectMapping:
    """Tests for default mapping selection."""

    def test_by_extension(self):
        assert detect_mapping("awards.csv") is CATALOG_CSV
        assert detect_mapping("Awards.XLSX") is EXCEL_WORKBOOK


class TestMain:
    """Tests for the command line entry point."""

    def test_csv_to_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = os.path.join(tmpdir, "catalog.csv")
            output = os.path.join(tmpdir, "out", "awards.json")
            _write_catalog(source, [_catalog_row("Fulbright", "https://x.org")])

            with patch.dict(os.environ, {}, clear=True):
                assert main([source, "--output", output]) == EXIT_SUCCESS

            with open(output, encoding="utf-8") as f:
                data = json.load(f)

        assert data["version"] == "2.0"
        assert data["awards"][0]["title"] == "Fulbright"
        assert data["awards"][0]["deadlineDate"] == "2025-10-08"

    def test_merge_keeps_existing(self, sample_collection):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = os.path.join(tmpdir, "catalog.csv")
            output = os.path.join(tmpdir, "awards.json")
            save_collection(sample_collection, output)
            _write_catalog(source, [_catalog_row("Truman", "https://truman.gov")])

            with patch.dict(os.environ, {}, clear=True):
                assert main([source, "--output", output, "--merge"]) == EXIT_SUCCESS

            assert len(load_collection(output)) == 3

    def test_missing_source(self):
        with patch.dict(os.environ, {}, clear=True):
            assert main(["/nonexistent/catalog.csv"]) == EXIT_FAILURE

    def test_unknown_mapping(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = os.path.join(tmpdir, "catalog.csv")
            _write_catalog(source, [])

            with patch.dict(os.environ, {}, clear=True):
                assert main([source, "--mapping", "nope"]) == EXIT_FAILURE

    def test_merge_into_malformed_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = os.path.join(tmpdir, "catalog.csv")
            output = os.path.join(tmpdir, "awards.json")
            _write_catalog(source, [_catalog_row("Truman", "https://truman.gov")])
            with open(output, "w") as f:
                f.write("[]")

            with patch.dict(os.environ, {}, clear=True):
                assert main([source, "--output", output, "--merge"]) == EXIT_FAILURE
