"""
Tests for the models and store modules.

Tests cover:
- Persisted JSON shape of records and collections
- Round-trip through awards.json
- Loading errors for missing or malformed files
- Appending records
"""

import json
import os
import tempfile

import pytest

from awards.models import COLLECTION_VERSION, AwardCollection, AwardRecord
from awards.store import (
    MalformedCollectionFile,
    append_award,
    load_collection,
    read_collection_data,
    save_collection,
    serialize_collection,
)


class TestAwardRecord:
    """Tests for record serialization."""

    def test_to_dict_uses_camel_case_keys(self, make_award):
        data = make_award(title="Goldwater").to_dict()

        assert data["title"] == "Goldwater"
        assert data["deadlineMonth"] == "March"
        assert data["deadlineDay"] == 15
        assert data["isRecurring"] is True
        assert data["status"] == "active"
        assert "deadline_month" not in data

    def test_from_dict_defaults_optional_fields(self):
        record = AwardRecord.from_dict({
            "id": "a",
            "title": "Minimal",
            "deadlineMonth": "May",
            "deadlineDay": "4",
            "deadlineDate": "2025-05-04",
            "link": "https://example.org",
            "level": None,
        })

        assert record.deadline_day == 4
        assert record.level == ""
        assert record.status == "active"
        assert record.is_recurring is True

    def test_from_dict_coerces_non_string_text(self):
        record = AwardRecord.from_dict({
            "id": "a",
            "title": 2024,
            "deadlineMonth": "May",
            "deadlineDay": 4,
            "deadlineDate": "2025-05-04",
            "link": "https://example.org",
            "requirements": 5,
        })

        assert record.title == "2024"
        assert record.requirements == "5"

    def test_from_dict_rejects_bad_day(self):
        with pytest.raises(ValueError, match="deadlineDay"):
            AwardRecord.from_dict({"deadlineDay": "soon"})
        with pytest.raises(ValueError, match="deadlineDay"):
            AwardRecord.from_dict({"deadlineDay": None})


class TestAwardCollection:
    """Tests for the collection container."""

    def test_append_touches_timestamp(self, make_award):
        collection = AwardCollection()
        collection.append(make_award())

        assert len(collection) == 1
        assert collection.last_updated.endswith("Z")

    def test_to_dict_shape(self, sample_collection):
        data = sample_collection.to_dict()

        assert set(data) == {"awards", "lastUpdated", "version"}
        assert data["version"] == COLLECTION_VERSION
        assert len(data["awards"]) == 2

    def test_from_dict_rejects_non_list(self):
        with pytest.raises(ValueError):
            AwardCollection.from_dict({"awards": {}})

    def test_from_dict_rejects_non_object_entry(self):
        with pytest.raises(ValueError, match="Award #1"):
            AwardCollection.from_dict({"awards": ["nope"]})


class TestStoreRoundTrip:
    """Tests for saving and loading awards.json."""

    def test_round_trip_preserves_records(self, sample_collection):
        """Test that save then load yields identical records."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "data", "awards.json")

            save_collection(sample_collection, path)
            loaded = load_collection(path)

            assert loaded.awards == sample_collection.awards
            assert loaded.last_updated == sample_collection.last_updated
            assert loaded.version == sample_collection.version

    def test_saved_file_matches_serializer(self, sample_collection):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "awards.json")
            save_collection(sample_collection, path)

            with open(path, encoding="utf-8") as f:
                assert f.read() == serialize_collection(sample_collection)

    def test_non_ascii_written_verbatim(self, make_award):
        collection = AwardCollection(awards=[make_award(title="Prix Émile Zola")])
        assert "Émile" in serialize_collection(collection)

    def test_save_sets_missing_timestamp(self, make_award):
        collection = AwardCollection(awards=[make_award()])
        with tempfile.TemporaryDirectory() as tmpdir:
            save_collection(collection, os.path.join(tmpdir, "awards.json"))
        assert collection.last_updated != ""


class TestLoadErrors:
    """Tests for malformed collection files."""

    def test_missing_file(self):
        with pytest.raises(MalformedCollectionFile, match="not found"):
            load_collection("/nonexistent/awards.json")

    def test_invalid_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "awards.json")
            with open(path, "w") as f:
                f.write("{not json")

            with pytest.raises(MalformedCollectionFile, match="Invalid JSON"):
                read_collection_data(path)

    def test_missing_awards_array(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "awards.json")
            with open(path, "w") as f:
                json.dump({"version": "2.0"}, f)

            with pytest.raises(MalformedCollectionFile, match="awards"):
                load_collection(path)

    def test_error_carries_path(self):
        with pytest.raises(MalformedCollectionFile) as exc_info:
            load_collection("/nonexistent/awards.json")
        assert exc_info.value.path == "/nonexistent/awards.json"


class TestAppendAward:
    """Tests for appending to the stored collection."""

    def test_append_persists(self, sample_collection, make_award):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "awards.json")
            save_collection(sample_collection, path)

            new_award = make_award(title="Truman Scholarship")
            updated = append_award(new_award, path)

            assert len(updated) == 3
            assert load_collection(path).awards[-1] == new_award

    def test_append_to_missing_file_fails(self, make_award):
        with pytest.raises(MalformedCollectionFile):
            append_award(make_award(), "/nonexistent/awards.json")
