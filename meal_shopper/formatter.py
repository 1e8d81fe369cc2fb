"""Render shopping list lines for display."""

from collections.abc import Iterable
from dataclasses import dataclass

from .aggregator import AggregatedItem
from .checklist import DisplayEntry
from .models import ItemId


def _recipes(count: int) -> str:
    return "recipe" if count <= 1 else "recipes"


def format_item(item: AggregatedItem) -> str:
    """
    Format an aggregated item as one line.

    Examples:
        flour: 2 cups, 2 cups (2 recipes, staple)
        eggs: 2 (+1 other recipe)
        salt (3 recipes)
        milk: 1 l
    """
    if item.recipe_count == 0:
        if item.amounts:
            return f"{item.name}: {', '.join(item.amounts)}"
        return item.name

    amount_text = ", ".join(item.amounts)
    other_recipes = item.recipe_count - len(item.amounts)
    flags = [flag for flag in item.provenance if flag != "adhoc"]
    suffix = "".join(f", {flag}" for flag in flags)

    if amount_text and other_recipes > 0:
        return f"{item.name}: {amount_text} (+{other_recipes} other {_recipes(other_recipes)}{suffix})"
    if amount_text:
        return f"{item.name}: {amount_text} ({item.recipe_count} {_recipes(item.recipe_count)}{suffix})"
    return f"{item.name} ({item.recipe_count} {_recipes(item.recipe_count)}{suffix})"


@dataclass
class DisplayRow:
    """A display-ready checklist row."""

    item_id: ItemId
    display_name: str
    display_text: str
    checked: bool
    is_adhoc: bool
    order_index: int | None = None

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "display_name": self.display_name,
            "display_text": self.display_text,
            "checked": self.checked,
            "is_adhoc": self.is_adhoc,
            "order_index": self.order_index,
        }


def format_entry(entry: DisplayEntry) -> str:
    """Format a checklist entry; bare entries show just the item name."""
    if entry.aggregated is None:
        return entry.name
    return format_item(entry.aggregated)


def build_rows(entries: Iterable[DisplayEntry]) -> list[DisplayRow]:
    """Turn resolved checklist entries into display rows, keeping their order."""
    return [
        DisplayRow(
            item_id=entry.item_id,
            display_name=entry.name,
            display_text=format_entry(entry),
            checked=entry.checked,
            is_adhoc=entry.is_adhoc,
            order_index=entry.order_index,
        )
        for entry in entries
    ]
