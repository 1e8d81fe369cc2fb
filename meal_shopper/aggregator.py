"""Merge demand records into one aggregated entry per item."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .demand import DemandRecord, DemandSource
from .models import Item, ItemId, StapleStatus


@dataclass
class AggregatedItem:
    """An item merged from every source that asked for it."""

    item_id: ItemId
    name: str
    amounts: list[str] = field(default_factory=list)
    recipe_count: int = 0
    is_staple: bool = False
    is_side: bool = False
    is_adhoc: bool = False
    order_index: int | None = None

    @property
    def provenance(self) -> list[str]:
        """Names of the non-recipe sources that contributed."""
        flags = []
        if self.is_staple:
            flags.append("staple")
        if self.is_side:
            flags.append("side")
        if self.is_adhoc:
            flags.append("adhoc")
        return flags


def _new_entry(item: Item, amount: str | None, recipe_count: int) -> AggregatedItem:
    return AggregatedItem(
        item_id=item.id,
        name=item.name,
        amounts=[amount] if amount else [],
        recipe_count=recipe_count,
    )


def aggregate(
    demand: Iterable[DemandRecord],
    catalog: Mapping[ItemId, Item],
) -> dict[ItemId, AggregatedItem]:
    """
    Merge demand into a mapping keyed by item id.

    Sources are processed in a fixed order whatever the input order: recipe
    ingredients, included staples, direct meal items, ad-hoc additions.
    Only recipe demand contributes to ``recipe_count`` and only recipe
    demand appends amounts to an existing entry; later sources merely set
    their flag so a recipe-driven amount is never overwritten.

    Args:
        demand: Demand records from the collector
        catalog: Item lookup by id, used for names and store positions

    Returns:
        Ordered dict of item id -> AggregatedItem
    """
    by_source: dict[DemandSource, list[DemandRecord]] = {source: [] for source in DemandSource}
    for record in demand:
        if record.item_id in catalog:
            by_source[record.source].append(record)

    result: dict[ItemId, AggregatedItem] = {}

    for record in by_source[DemandSource.RECIPE]:
        existing = result.get(record.item_id)
        if existing is None:
            result[record.item_id] = _new_entry(catalog[record.item_id], record.amount, 1)
        else:
            existing.recipe_count += 1
            if record.amount:
                existing.amounts.append(record.amount)

    for record in by_source[DemandSource.STAPLE]:
        if record.staple_status != StapleStatus.INCLUDED:
            continue
        entry = result.get(record.item_id)
        if entry is None:
            entry = _new_entry(catalog[record.item_id], record.amount, 0)
            result[record.item_id] = entry
        entry.is_staple = True

    for record in by_source[DemandSource.MEAL_ITEM]:
        entry = result.get(record.item_id)
        if entry is None:
            entry = _new_entry(catalog[record.item_id], record.amount, 0)
            result[record.item_id] = entry
        entry.is_side = True

    for record in by_source[DemandSource.ADHOC]:
        entry = result.get(record.item_id)
        if entry is None:
            entry = _new_entry(catalog[record.item_id], record.amount, 0)
            result[record.item_id] = entry
        entry.is_adhoc = True

    for item_id, entry in result.items():
        entry.order_index = catalog[item_id].store_order_index

    return result
