"""Store route ordering: position catalog items along a shopping route."""

import logging
from collections.abc import Iterable
from dataclasses import replace

from .models import ActionResult, Item, ItemId, OrderUpdate
from .storage import ShoppingStore, StorageError

logger = logging.getLogger(__name__)


def _name_key(item: Item) -> str:
    return item.name.casefold()


class StoreOrderManager:
    """Working copy of the catalog split into ordered and unordered items.

    ``ordered`` holds the route (ascending by position), ``unordered`` the
    items without a position, alphabetically. Edits only touch the working
    copy until :meth:`commit` persists the whole route as one batch.
    """

    def __init__(self, items: Iterable[Item]) -> None:
        self.ordered: list[Item] = []
        self.unordered: list[Item] = []
        self._baseline: list[ItemId] = []
        self.reload(items)

    def reload(self, items: Iterable[Item]) -> None:
        """Reset both partitions and the saved baseline from catalog records."""
        items = list(items)
        self.ordered = sorted(
            (i for i in items if i.store_order_index is not None),
            key=lambda i: (i.store_order_index, _name_key(i)),
        )
        self.unordered = sorted((i for i in items if i.store_order_index is None), key=_name_key)
        self._baseline = [i.id for i in self.ordered]

    @property
    def baseline(self) -> list[ItemId]:
        return list(self._baseline)

    def _index_of(self, items: list[Item], item_id: ItemId) -> int:
        for index, item in enumerate(items):
            if item.id == item_id:
                return index
        return -1

    def move_within_ordered(self, from_index: int, to_index: int) -> bool:
        """
        Move one routed item to a new position.

        Returns:
            True if the route changed; equal or out-of-range indices are a no-op
        """
        size = len(self.ordered)
        if from_index == to_index:
            return False
        if not (0 <= from_index < size and 0 <= to_index < size):
            return False

        item = self.ordered.pop(from_index)
        self.ordered.insert(to_index, item)
        return True

    def move_item(self, item_id: ItemId, to_index: int) -> bool:
        """Move a routed item, looked up by id, to ``to_index``."""
        return self.move_within_ordered(self._index_of(self.ordered, item_id), to_index)

    def promote(self, item_id: ItemId, at_index: int | None = None) -> bool:
        """
        Add an unordered item to the route.

        Args:
            item_id: Item to add
            at_index: Route position to insert at; appended when omitted

        Returns:
            True if the item was moved, False if it is not in ``unordered``
        """
        index = self._index_of(self.unordered, item_id)
        if index == -1:
            return False

        item = self.unordered.pop(index)
        if at_index is None:
            self.ordered.append(item)
        else:
            self.ordered.insert(max(0, min(at_index, len(self.ordered))), item)
        return True

    def demote(self, item_id: ItemId) -> bool:
        """Take an item off the route and put it back among the unordered items."""
        index = self._index_of(self.ordered, item_id)
        if index == -1:
            return False

        item = self.ordered.pop(index)
        self.unordered.append(item)
        self.unordered.sort(key=_name_key)
        return True

    def has_pending_changes(self) -> bool:
        """Whether the route differs from the last saved one."""
        if len(self._baseline) != len(self.ordered):
            return True
        return any(saved != item.id for saved, item in zip(self._baseline, self.ordered))

    def pending_updates(self) -> list[OrderUpdate]:
        """Build the batch a commit would write: dense 1..N, then None for the rest."""
        updates = [OrderUpdate(item.id, position) for position, item in enumerate(self.ordered, 1)]
        updates.extend(OrderUpdate(item.id, None) for item in self.unordered)
        return updates

    def commit(self, store: ShoppingStore) -> ActionResult:
        """
        Persist the current route.

        The baseline only moves forward after the store accepted the whole
        batch; on failure the manager stays dirty.

        Args:
            store: Persistence collaborator with a ``commit_store_order`` batch write

        Returns:
            ActionResult whose value is the list of written updates
        """
        updates = self.pending_updates()
        try:
            store.commit_store_order(updates)
        except StorageError as e:
            logger.warning("Store order commit failed: %s", e)
            return ActionResult.fail(f"Failed to save store order: {e}")

        self.ordered = [
            replace(item, store_order_index=position)
            for position, item in enumerate(self.ordered, 1)
        ]
        self.unordered = [replace(item, store_order_index=None) for item in self.unordered]
        self._baseline = [item.id for item in self.ordered]
        logger.info("Saved store order for %d routed items", len(self.ordered))
        return ActionResult.ok(updates)
