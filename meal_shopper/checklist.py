"""Reconcile freshly computed demand against persisted check-off state."""

import logging
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field, replace

from .aggregator import AggregatedItem
from .models import ChecklistEntry, Item, ItemId

logger = logging.getLogger(__name__)


@dataclass
class DisplayEntry:
    """One line of the reconciled checklist.

    ``aggregated`` is None for bare entries: items that only exist on the
    persisted checklist (added by hand, or no longer demanded).
    """

    item: Item
    aggregated: AggregatedItem | None
    checked: bool = False

    @property
    def item_id(self) -> ItemId:
        return self.item.id

    @property
    def name(self) -> str:
        return self.aggregated.name if self.aggregated else self.item.name

    @property
    def order_index(self) -> int | None:
        if self.aggregated is not None:
            return self.aggregated.order_index
        return self.item.store_order_index

    @property
    def is_bare(self) -> bool:
        return self.aggregated is None

    @property
    def is_adhoc(self) -> bool:
        return bool(self.aggregated and self.aggregated.is_adhoc)


def reconcile(
    needed: Mapping[ItemId, AggregatedItem],
    persisted: Iterable[ChecklistEntry],
    catalog: Mapping[ItemId, Item],
    session_id: str,
    excluded: Collection[ItemId] = frozenset(),
) -> list[DisplayEntry]:
    """
    Merge needed items with the session's persisted checklist.

    Every needed item is emitted with its persisted ``checked`` value (False
    when never toggled). Persisted entries whose item is not needed are
    still emitted as bare entries so nothing the shopper ticked or added by
    hand disappears. Excluded items are never emitted,
    whatever their persisted state.

    Args:
        needed: Aggregated items after exclusions
        persisted: Checklist entries from the store
        catalog: Item lookup by id
        session_id: Session the checklist belongs to
        excluded: Item ids excluded from this session

    Returns:
        Needed entries in aggregate order, followed by bare entries in
        persisted order
    """
    state: dict[ItemId, ChecklistEntry] = {}
    for entry in persisted:
        if entry.session_id == session_id:
            state[entry.item_id] = entry

    entries: list[DisplayEntry] = []
    for item_id, aggregated in needed.items():
        if item_id in excluded:
            continue
        item = catalog.get(item_id)
        if item is None:
            logger.warning("Aggregated item %s is missing from the catalog, skipping", item_id)
            continue
        saved = state.get(item_id)
        entries.append(DisplayEntry(item, aggregated, saved.checked if saved else False))

    for item_id, saved in state.items():
        if item_id in needed or item_id in excluded:
            continue
        item = catalog.get(item_id)
        if item is None:
            logger.warning("Checklist entry for unknown item %s, skipping", item_id)
            continue
        entries.append(DisplayEntry(item, None, saved.checked))

    return entries


@dataclass
class ChecklistToggle:
    """A checklist toggle that can be applied optimistically and undone.

    The inverse is captured when the command is built, so a failed write
    can be rolled back without re-reading the store.
    """

    session_id: str
    item: Item
    checked: bool
    previous: bool | None = None
    _was_listed: bool = field(default=False, repr=False)

    @classmethod
    def build(
        cls,
        session_id: str,
        entries: Iterable[DisplayEntry],
        item: Item,
        checked: bool,
    ) -> "ChecklistToggle":
        for entry in entries:
            if entry.item_id == item.id:
                return cls(session_id, item, checked, previous=entry.checked, _was_listed=True)
        return cls(session_id, item, checked)

    def apply(self, entries: list[DisplayEntry]) -> list[DisplayEntry]:
        """Return a new list with the toggle applied."""
        if not self._was_listed:
            return [*entries, DisplayEntry(self.item, None, self.checked)]
        return [
            replace(entry, checked=self.checked) if entry.item_id == self.item.id else entry
            for entry in entries
        ]

    def revert(self, entries: list[DisplayEntry]) -> list[DisplayEntry]:
        """Return a new list with the toggle undone."""
        if not self._was_listed:
            return [entry for entry in entries if entry.item_id != self.item.id]
        return [
            replace(entry, checked=bool(self.previous)) if entry.item_id == self.item.id else entry
            for entry in entries
        ]
