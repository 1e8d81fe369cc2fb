"""Tests for checklist reconciliation and the toggle command."""

from conftest import make_catalog, make_item

from meal_shopper.aggregator import AggregatedItem
from meal_shopper.checklist import ChecklistToggle, DisplayEntry, reconcile
from meal_shopper.models import ChecklistEntry

EGGS = make_item("eggs", order=2)
MILK = make_item("milk", order=1)
TAPE = make_item("tape")
CATALOG = make_catalog(EGGS, MILK, TAPE)


def needed(*items) -> dict:
    return {
        item.id: AggregatedItem(
            item_id=item.id, name=item.name, recipe_count=1, order_index=item.store_order_index
        )
        for item in items
    }


def saved(item, checked: bool, session_id: str = "s1") -> ChecklistEntry:
    return ChecklistEntry(session_id=session_id, item_id=item.id, checked=checked)


class TestDisplayEntry:
    """Tests for DisplayEntry properties."""

    def test_aggregated_entry(self):
        entry = DisplayEntry(EGGS, needed(EGGS)[EGGS.id])

        assert entry.name == "eggs"
        assert entry.order_index == 2
        assert entry.is_bare is False

    def test_bare_entry_uses_catalog(self):
        entry = DisplayEntry(TAPE, None, checked=True)

        assert entry.name == "tape"
        assert entry.order_index is None
        assert entry.is_bare is True
        assert entry.is_adhoc is False


class TestReconcile:
    """Tests for reconcile."""

    def test_unchecked_by_default(self):
        entries = reconcile(needed(EGGS, MILK), [], CATALOG, "s1")

        assert [(e.name, e.checked) for e in entries] == [("eggs", False), ("milk", False)]

    def test_persisted_state_applied(self):
        entries = reconcile(needed(EGGS, MILK), [saved(MILK, True)], CATALOG, "s1")

        assert {e.name: e.checked for e in entries} == {"eggs": False, "milk": True}

    def test_persisted_only_items_kept_as_bare(self):
        entries = reconcile(needed(EGGS), [saved(TAPE, False), saved(MILK, True)], CATALOG, "s1")

        assert [e.name for e in entries] == ["eggs", "tape", "milk"]
        assert entries[1].is_bare and entries[2].is_bare
        assert entries[2].checked is True

    def test_other_session_entries_ignored(self):
        entries = reconcile(needed(EGGS), [saved(EGGS, True, "s2"), saved(TAPE, True, "s2")], CATALOG, "s1")

        assert [(e.name, e.checked) for e in entries] == [("eggs", False)]

    def test_unknown_items_skipped(self):
        ghost = ChecklistEntry(session_id="s1", item_id="ghost", checked=True)

        entries = reconcile(needed(EGGS), [ghost], CATALOG, "s1")

        assert [e.name for e in entries] == ["eggs"]

    def test_checked_survives_demand_round_trip(self):
        """An item checked, dropped from demand and re-added keeps its state."""
        persisted = [saved(EGGS, True)]

        first = reconcile(needed(EGGS), persisted, CATALOG, "s1")
        gone = reconcile({}, persisted, CATALOG, "s1")
        back = reconcile(needed(EGGS), persisted, CATALOG, "s1")

        assert first[0].checked is True
        assert gone[0].is_bare and gone[0].checked is True
        assert back[0].checked is True and not back[0].is_bare

    def test_excluded_persisted_entries_dropped(self):
        persisted = [saved(EGGS, True), saved(TAPE, False)]

        entries = reconcile(needed(MILK), persisted, CATALOG, "s1", excluded={EGGS.id, TAPE.id})

        assert [e.name for e in entries] == ["milk"]


class TestChecklistToggle:
    """Tests for the optimistic toggle command."""

    def test_apply_and_revert_listed_item(self):
        entries = reconcile(needed(EGGS, MILK), [saved(MILK, True)], CATALOG, "s1")
        command = ChecklistToggle.build("s1", entries, MILK, False)

        applied = command.apply(entries)
        reverted = command.revert(applied)

        assert command.previous is True
        assert [e.checked for e in applied] == [False, False]
        assert [e.checked for e in reverted] == [False, True]

    def test_apply_does_not_mutate_input(self):
        entries = reconcile(needed(EGGS), [], CATALOG, "s1")

        ChecklistToggle.build("s1", entries, EGGS, True).apply(entries)

        assert entries[0].checked is False

    def test_unlisted_item_appended_then_removed(self):
        entries = reconcile(needed(EGGS), [], CATALOG, "s1")
        command = ChecklistToggle.build("s1", entries, TAPE, True)

        applied = command.apply(entries)
        reverted = command.revert(applied)

        assert [e.name for e in applied] == ["eggs", "tape"]
        assert applied[1].checked is True and applied[1].is_bare
        assert [e.name for e in reverted] == ["eggs"]
