"""
Record store for the Award Deadlines Board.

This module handles loading the canonical awards.json collection,
appending newly built records, and safely persisting the result.

Unlike the state and report helpers in utils, a store read never falls
back to a default: a missing or malformed collection is fatal to any
operation that needs it.
"""

import json
from pathlib import Path
from typing import Any, Dict

from awards.models import AwardCollection, AwardRecord
from awards.utils import get_logger, write_json_atomic


# Module logger
logger = get_logger("store")

# Default path of the published collection
DEFAULT_AWARDS_PATH = "docs/data/awards.json"


class MalformedCollectionFile(Exception):
    """Raised when awards.json is missing, unparseable or lacks the awards array."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


def read_collection_data(filepath: str = DEFAULT_AWARDS_PATH) -> Dict[str, Any]:
    """
    Read the raw awards.json object without interpreting the records.

    Args:
        filepath: Path to the collection file.

    Returns:
        Parsed JSON object.

    Raises:
        MalformedCollectionFile: If the file is missing, unreadable, not
            valid JSON, or not an object with an "awards" array.
    """
    path = Path(filepath)
    if not path.exists():
        raise MalformedCollectionFile(f"awards.json not found at {filepath}", path=filepath)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedCollectionFile(f"Invalid JSON format: {e}", path=filepath) from e
    except OSError as e:
        raise MalformedCollectionFile(f"Could not read {filepath}: {e}", path=filepath) from e

    if not isinstance(data, dict) or not isinstance(data.get("awards"), list):
        raise MalformedCollectionFile('Missing or invalid "awards" array', path=filepath)

    return data


def load_collection(filepath: str = DEFAULT_AWARDS_PATH) -> AwardCollection:
    """
    Load the award collection from storage.

    Args:
        filepath: Path to the collection file.

    Returns:
        AwardCollection in stored (append) order.

    Raises:
        MalformedCollectionFile: If the file cannot be read or parsed.
    """
    logger.debug(f"Loading award collection from {filepath}")

    data = read_collection_data(filepath)
    try:
        collection = AwardCollection.from_dict(data)
    except ValueError as e:
        raise MalformedCollectionFile(str(e), path=filepath) from e

    logger.info(f"Loaded {len(collection)} award(s) from {filepath}")
    return collection


def save_collection(collection: AwardCollection, filepath: str = DEFAULT_AWARDS_PATH) -> None:
    """
    Save the award collection using an atomic write.

    Args:
        collection: Collection to persist.
        filepath: Path to the collection file.

    Raises:
        OSError: If the file cannot be written.
    """
    if not collection.last_updated:
        collection.touch()

    write_json_atomic(filepath, collection.to_dict())
    logger.info(f"Successfully saved {len(collection)} award(s) to {filepath}")


def append_award(
    award: AwardRecord,
    filepath: str = DEFAULT_AWARDS_PATH
) -> AwardCollection:
    """
    Append one record to the stored collection and persist it.

    Args:
        award: Newly built record.
        filepath: Path to the collection file.

    Returns:
        The updated collection.

    Raises:
        MalformedCollectionFile: If the existing file cannot be loaded.
        OSError: If the file cannot be written.
    """
    collection = load_collection(filepath)
    collection.append(award)
    save_collection(collection, filepath)
    return collection


def serialize_collection(collection: AwardCollection) -> str:
    """Render the collection exactly as it is written to awards.json."""
    return json.dumps(collection.to_dict(), indent=2, ensure_ascii=False) + "\n"
