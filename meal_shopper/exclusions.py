"""Session exclusions: items that must never reach the shopping list."""

from collections.abc import Iterable, Mapping

from .aggregator import AggregatedItem
from .models import ItemExclusion, ItemId


def excluded_ids(exclusions: Iterable[ItemExclusion], session_id: str) -> set[ItemId]:
    """Collect the excluded item ids belonging to one session."""
    return {e.item_id for e in exclusions if e.session_id == session_id}


def filter_excluded(
    aggregate: Mapping[ItemId, AggregatedItem],
    exclusions: Iterable[ItemId],
) -> dict[ItemId, AggregatedItem]:
    """
    Remove excluded items from an aggregate.

    The input mapping is left untouched and iteration order is preserved.

    Args:
        aggregate: Aggregated items keyed by item id
        exclusions: Item ids excluded for the session

    Returns:
        New dict without the excluded keys
    """
    excluded = set(exclusions)
    if not excluded:
        return dict(aggregate)

    return {item_id: entry for item_id, entry in aggregate.items() if item_id not in excluded}
