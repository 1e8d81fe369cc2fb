"""Shopping list service: runs the pipeline and wraps store writes in results."""

import logging
from dataclasses import dataclass, field
from datetime import date

from .aggregator import aggregate
from .checklist import ChecklistToggle, DisplayEntry, reconcile
from .config import get_sort_mode
from .demand import collect_demand
from .exclusions import excluded_ids, filter_excluded
from .formatter import DisplayRow, build_rows
from .models import ActionResult, ItemId, StapleStatus
from .resolver import SortMode, resolve
from .storage import ShoppingStore, StorageError
from .store_order import StoreOrderManager

logger = logging.getLogger(__name__)


@dataclass
class ShoppingListView:
    """A fully resolved shopping list ready for display or export."""

    session_id: str
    mode: SortMode
    entries: list[DisplayEntry] = field(default_factory=list)
    rows: list[DisplayRow] = field(default_factory=list)
    unpositioned_count: int = 0
    checked_count: int = 0
    total_count: int = 0

    @property
    def needs_positioning(self) -> bool:
        return self.unpositioned_count > 0

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "mode": self.mode.value,
            "rows": [row.to_dict() for row in self.rows],
            "unpositioned_count": self.unpositioned_count,
            "checked_count": self.checked_count,
            "total_count": self.total_count,
        }


@dataclass
class ToggleOutcome:
    """Entries after a toggle plus the persistence result.

    On failure ``entries`` is the list with the optimistic change reverted.
    """

    entries: list[DisplayEntry]
    result: ActionResult

    @property
    def success(self) -> bool:
        return self.result.success


class ShoppingListService:
    """Façade over the store and the pure list-building steps."""

    def __init__(self, store: ShoppingStore) -> None:
        self.store = store

    def build(
        self,
        session_id: str,
        mode: SortMode | str | None = None,
        *,
        include_checked: bool = True,
        since: date | None = None,
    ) -> ShoppingListView:
        """
        Build the shopping list for a session.

        Collects demand, aggregates it, drops exclusions, reconciles with the
        persisted checklist and sorts for display. Counts are taken before
        checked rows are hidden.

        Args:
            session_id: Planning session
            mode: Sort mode; defaults to the configured one
            include_checked: Keep rows that are already checked off
            since: Ignore scheduled meals dated before this day

        Raises:
            StorageError: If the store cannot be read
        """
        sort_mode = SortMode(mode or get_sort_mode())
        catalog = self.store.get_catalog()

        demand = collect_demand(
            session_id,
            self.store.list_meals(session_id),
            self.store.get_recipes(),
            self.store.list_staple_selections(session_id),
            self.store.list_adhoc_items(session_id),
            catalog,
            since=since,
        )
        excluded = excluded_ids(self.store.list_exclusions(session_id), session_id)
        needed = filter_excluded(aggregate(demand, catalog), excluded)
        entries = reconcile(
            needed, self.store.list_checklist_entries(session_id), catalog, session_id, excluded
        )
        resolved = resolve(entries, sort_mode)

        checked_count = sum(1 for entry in resolved.entries if entry.checked)
        visible = resolved.entries
        if not include_checked:
            visible = [entry for entry in visible if not entry.checked]

        logger.debug(
            "Built list for session %s: %d demand records, %d entries",
            session_id,
            len(demand),
            len(resolved.entries),
        )
        return ShoppingListView(
            session_id=session_id,
            mode=sort_mode,
            entries=visible,
            rows=build_rows(visible),
            unpositioned_count=resolved.unpositioned_count,
            checked_count=checked_count,
            total_count=len(resolved.entries),
        )

    # ------------------------------------------------------------------
    # Checklist
    # ------------------------------------------------------------------

    def toggle(
        self,
        session_id: str,
        entries: list[DisplayEntry],
        item_id: ItemId,
        checked: bool,
    ) -> ToggleOutcome:
        """
        Check or uncheck an item, updating the entries optimistically.

        The change is applied to ``entries`` first, then persisted. If the
        write fails the change is reverted and a failed result returned.
        """
        item = next((e.item for e in entries if e.item_id == item_id), None)
        if item is None:
            try:
                item = self.store.get_item(item_id)
            except StorageError as e:
                return ToggleOutcome(entries, ActionResult.fail(str(e)))
        if item is None:
            return ToggleOutcome(entries, ActionResult.fail(f"Unknown item: {item_id}"))

        command = ChecklistToggle.build(session_id, entries, item, checked)
        optimistic = command.apply(entries)
        try:
            saved = self.store.upsert_checklist_entry(session_id, item.id, checked)
        except StorageError as e:
            logger.warning("Failed to save checklist state for %s: %s", item.name, e)
            return ToggleOutcome(
                command.revert(optimistic),
                ActionResult.fail(f"Failed to update '{item.name}': {e}"),
            )
        return ToggleOutcome(optimistic, ActionResult.ok(saved))

    def add_checklist_item(self, session_id: str, name: str) -> ActionResult:
        """Put an item on the checklist by name, unchecked."""
        try:
            item = self.store.get_or_create_item(name)
            self.store.upsert_checklist_entry(session_id, item.id, False)
        except StorageError as e:
            return ActionResult.fail(str(e))
        return ActionResult.ok(item)

    # ------------------------------------------------------------------
    # Session inputs
    # ------------------------------------------------------------------

    def add_adhoc_item(self, session_id: str, name: str, amount: str | None = None) -> ActionResult:
        """Add a one-off item by name to a session."""
        try:
            self.store.get_session(session_id)
            item = self.store.get_or_create_item(name)
            self.store.add_adhoc_item(session_id, item.id, amount)
        except StorageError as e:
            return ActionResult.fail(str(e))
        return ActionResult.ok(item)

    def remove_adhoc_item(self, session_id: str, name: str) -> ActionResult:
        try:
            item = self.store.find_item_by_name(name)
            if item is None or not self.store.remove_adhoc_item(session_id, item.id):
                return ActionResult.fail(f"'{name}' is not an ad-hoc item in this session")
        except StorageError as e:
            return ActionResult.fail(str(e))
        return ActionResult.ok(item)

    def exclude_item(self, session_id: str, name: str) -> ActionResult:
        """Keep an item off this session's list whatever asks for it."""
        try:
            self.store.get_session(session_id)
            item = self.store.find_item_by_name(name)
            if item is None:
                return ActionResult.fail(f"Unknown item: {name}")
            self.store.add_exclusion(session_id, item.id)
        except StorageError as e:
            return ActionResult.fail(str(e))
        return ActionResult.ok(item)

    def include_item(self, session_id: str, name: str) -> ActionResult:
        """Lift an exclusion."""
        try:
            item = self.store.find_item_by_name(name)
            if item is None or not self.store.remove_exclusion(session_id, item.id):
                return ActionResult.fail(f"'{name}' is not excluded in this session")
        except StorageError as e:
            return ActionResult.fail(str(e))
        return ActionResult.ok(item)

    def set_staple_status(
        self, session_id: str, name: str, status: StapleStatus | str
    ) -> ActionResult:
        try:
            status = StapleStatus(status)
        except ValueError:
            return ActionResult.fail(f"Invalid staple status: {status}")
        try:
            self.store.get_session(session_id)
            item = self.store.find_item_by_name(name)
            if item is None or not item.is_staple:
                return ActionResult.fail(f"'{name}' is not a staple")
            selection = self.store.set_staple_selection(session_id, item.id, status)
        except StorageError as e:
            return ActionResult.fail(str(e))
        return ActionResult.ok(selection)

    # ------------------------------------------------------------------
    # Store order
    # ------------------------------------------------------------------

    def store_order_manager(self) -> StoreOrderManager:
        """Get a store-order manager primed with the current catalog."""
        return StoreOrderManager(self.store.list_items())
