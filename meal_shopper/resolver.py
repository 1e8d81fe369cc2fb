"""Display ordering of the reconciled checklist."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from .checklist import DisplayEntry


class SortMode(str, Enum):
    STORE_ORDER = "store-order"
    ALPHABETICAL = "alphabetical"


@dataclass
class ResolvedList:
    """Sorted entries plus the number that have no store position."""

    entries: list[DisplayEntry] = field(default_factory=list)
    unpositioned_count: int = 0

    @property
    def needs_positioning(self) -> bool:
        return self.unpositioned_count > 0


def _name_key(entry: DisplayEntry) -> str:
    return entry.name.casefold()


def resolve(entries: Iterable[DisplayEntry], mode: SortMode | str) -> ResolvedList:
    """
    Sort checklist entries for display.

    Alphabetical mode is a stable case-insensitive sort by name. Store-order
    mode puts positioned entries first, ascending by position, followed by
    the unpositioned ones alphabetically.

    Args:
        entries: Reconciled checklist entries
        mode: SortMode or its string value

    Returns:
        ResolvedList with sorted entries and the unpositioned count
    """
    mode = SortMode(mode)
    entries = list(entries)
    unpositioned = [e for e in entries if e.order_index is None]

    if mode == SortMode.ALPHABETICAL:
        return ResolvedList(sorted(entries, key=_name_key), len(unpositioned))

    positioned = sorted(
        (e for e in entries if e.order_index is not None),
        key=lambda e: e.order_index,
    )
    return ResolvedList(positioned + sorted(unpositioned, key=_name_key), len(unpositioned))
