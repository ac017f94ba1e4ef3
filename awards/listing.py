"""
Listing view for the awards page.

Combines the filter engine, urgency classification and facet collection
into the view model the render layer draws. Loading never raises: a
collection that cannot be read becomes a view carrying an error message
in place of the listing.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from awards.filter import (
    Facets,
    FilterSpec,
    Urgency,
    classify_urgency,
    collect_facets,
    days_until,
    filter_awards,
    urgency_label,
)
from awards.models import AwardCollection, AwardRecord
from awards.store import DEFAULT_AWARDS_PATH, MalformedCollectionFile, load_collection
from awards.utils import get_logger


logger = get_logger("listing")

LOAD_ERROR_MESSAGE = "Failed to load awards. Please refresh the page or check your connection."


@dataclass(frozen=True)
class AwardCard:
    """One rendered award with its derived deadline display values."""
    award: AwardRecord
    deadline_label: str
    days_left: Optional[int]
    urgency: Optional[Urgency]
    urgency_label: str


@dataclass
class ListingView:
    """Everything the page needs for one render."""
    cards: List[AwardCard] = field(default_factory=list)
    total: int = 0
    facets: Facets = field(default_factory=lambda: Facets([], [], []))
    last_updated: str = ""
    error: Optional[str] = None

    @property
    def shown(self) -> int:
        return len(self.cards)

    @property
    def summary(self) -> str:
        return f"Showing {self.shown} of {self.total} awards"

    @property
    def has_results(self) -> bool:
        return bool(self.cards)


def format_last_updated(timestamp: str) -> str:
    """
    Format the collection timestamp for display, e.g. "January 5, 2025".

    Unparseable timestamps are shown as stored.
    """
    if not timestamp:
        return ""
    try:
        moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    return f"{moment.strftime('%B')} {moment.day}, {moment.year}"


def build_card(award: AwardRecord, today: date) -> AwardCard:
    days = days_until(award.deadline_date, today)
    return AwardCard(
        award=award,
        deadline_label=f"{award.deadline_month} {award.deadline_day}",
        days_left=days,
        urgency=classify_urgency(days) if days is not None else None,
        urgency_label=urgency_label(days) if days is not None else "",
    )


def build_listing(
    collection: AwardCollection,
    spec: Optional[FilterSpec] = None,
    today: Optional[date] = None
) -> ListingView:
    """
    Build the listing view for a collection and filter selection.

    Urgency is derived here on every call and never stored.

    Args:
        collection: Loaded award collection.
        spec: Current filter selection.
        today: Reference date, defaults to the current local date.

    Returns:
        ListingView with cards in ascending deadline order.
    """
    today = today or date.today()
    spec = spec or FilterSpec()

    matches = filter_awards(collection.awards, spec, today=today)
    if not spec.is_empty:
        logger.debug(f"Filter {spec} matched {len(matches)}/{len(collection)} award(s)")

    return ListingView(
        cards=[build_card(award, today) for award in matches],
        total=len(collection),
        facets=collect_facets(collection.awards),
        last_updated=format_last_updated(collection.last_updated),
    )


def load_listing(
    filepath: str = DEFAULT_AWARDS_PATH,
    spec: Optional[FilterSpec] = None,
    today: Optional[date] = None
) -> ListingView:
    """
    Load the collection and build its listing view.

    Args:
        filepath: Path to awards.json.
        spec: Current filter selection.
        today: Reference date.

    Returns:
        The listing view, or an empty view with error set when the
        collection cannot be loaded.
    """
    try:
        collection = load_collection(filepath)
    except MalformedCollectionFile as e:
        logger.error(f"Failed to load awards: {e}")
        return ListingView(error=LOAD_ERROR_MESSAGE)

    return build_listing(collection, spec, today)
