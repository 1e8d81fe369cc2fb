"""Tests for the shopping list service, end to end against a real store."""

from datetime import date
from unittest.mock import patch

import pytest

from meal_shopper.models import MealItem, OrderUpdate, StapleStatus
from meal_shopper.resolver import SortMode
from meal_shopper.service import ShoppingListService
from meal_shopper.storage import ShoppingStore, StorageError


@pytest.fixture
def service(store):
    return ShoppingListService(store)


def texts(view) -> list[str]:
    return [row.display_text for row in view.rows]


class TestBuild:
    """Tests for building the list."""

    def test_merge_scenario(self, store, service, planning_session):
        """Two recipes needing flour plus an included flour staple."""
        pancakes = store.create_recipe("Pancakes", [("flour", "2 cups"), ("eggs", "2")])
        bread = store.create_recipe("Bread", [("flour", "2 cups")])
        flour = store.find_item_by_name("flour")
        store.set_staple(flour.id, True, "1 kg")
        store.add_meal(planning_session.id, meal_date=date(2026, 3, 2), recipe_ids=[pancakes.id])
        store.add_meal(planning_session.id, meal_date=date(2026, 3, 3), recipe_ids=[bread.id])
        store.set_staple_selection(planning_session.id, flour.id, StapleStatus.INCLUDED)

        view = service.build(planning_session.id, SortMode.ALPHABETICAL)

        assert texts(view) == ["eggs: 2 (1 recipe)", "flour: 2 cups, 2 cups (2 recipes, staple)"]

    def test_one_row_per_item(self, store, service, planning_session):
        recipe = store.create_recipe("Omelette", [("eggs", "3")])
        eggs = store.find_item_by_name("eggs")
        store.add_meal(
            planning_session.id, recipe_ids=[recipe.id, recipe.id], items=[MealItem(eggs.id, "6")]
        )
        store.add_adhoc_item(planning_session.id, eggs.id, "12")

        view = service.build(planning_session.id)

        assert [r.display_name for r in view.rows] == ["eggs"]
        assert view.rows[0].is_adhoc is True
        assert view.rows[0].display_text == "eggs: 3, 3 (2 recipes, side)"

    def test_exclusion_overrides_everything(self, store, service, planning_session):
        recipe = store.create_recipe("Soup", [("salt", None), ("leeks", "2")])
        salt = store.find_item_by_name("salt")
        store.set_staple(salt.id, True)
        store.add_meal(planning_session.id, recipe_ids=[recipe.id], items=[MealItem(salt.id)])
        store.set_staple_selection(planning_session.id, salt.id, StapleStatus.INCLUDED)
        store.add_adhoc_item(planning_session.id, salt.id)

        result = service.exclude_item(planning_session.id, "salt")
        view = service.build(planning_session.id)

        assert result.success is True
        assert [r.display_name for r in view.rows] == ["leeks"]

    def test_exclusion_overrides_checked_row(self, store, service, planning_session):
        """A checked item that is then excluded leaves the list."""
        recipe = store.create_recipe("Bread", [("flour", "2 cups")])
        store.add_meal(planning_session.id, recipe_ids=[recipe.id])
        view = service.build(planning_session.id)
        service.toggle(planning_session.id, view.entries, view.rows[0].item_id, True)

        result = service.exclude_item(planning_session.id, "flour")
        after = service.build(planning_session.id)

        assert result.success is True
        assert after.rows == []
        assert after.total_count == 0

    def test_unpositioned_warning(self, store, service, planning_session):
        names = ["apples", "bananas", "carrots", "dill", "eggs", "figs", "garlic", "honey", "ice", "jam"]
        for name in names:
            store.add_adhoc_item(planning_session.id, store.get_or_create_item(name).id)
        positioned = ["jam", "ice", "honey", "garlic", "figs", "eggs", "dill"]
        store.commit_store_order(
            [OrderUpdate(store.find_item_by_name(n).id, i) for i, n in enumerate(positioned, 1)]
        )

        view = service.build(planning_session.id, SortMode.STORE_ORDER)

        assert view.unpositioned_count == 3
        assert view.needs_positioning is True
        assert [r.display_name for r in view.rows] == positioned + ["apples", "bananas", "carrots"]

    def test_deleted_recipe_skipped(self, store, service, planning_session):
        recipe = store.create_recipe("Pancakes", [("flour", "2 cups")])
        jam = store.get_or_create_item("jam")
        store.add_meal(planning_session.id, recipe_ids=[recipe.id], items=[MealItem(jam.id)])
        store.delete_recipe(recipe.id)

        view = service.build(planning_session.id)

        assert [r.display_name for r in view.rows] == ["jam"]

    def test_hide_checked_keeps_counts(self, store, service, planning_session):
        for name in ("eggs", "milk", "tea"):
            service.add_adhoc_item(planning_session.id, name)
        milk = store.find_item_by_name("milk")
        store.upsert_checklist_entry(planning_session.id, milk.id, True)

        view = service.build(planning_session.id, SortMode.ALPHABETICAL, include_checked=False)

        assert [r.display_name for r in view.rows] == ["eggs", "tea"]
        assert view.checked_count == 1
        assert view.total_count == 3

    def test_since_skips_past_meals(self, store, service, planning_session):
        store.add_meal(
            planning_session.id,
            meal_date=date(2026, 3, 2),
            items=[MealItem(store.get_or_create_item("bread").id)],
        )
        store.add_meal(
            planning_session.id,
            meal_date=date(2026, 3, 6),
            items=[MealItem(store.get_or_create_item("fish").id)],
        )

        view = service.build(planning_session.id, since=date(2026, 3, 4))

        assert [r.display_name for r in view.rows] == ["fish"]

    def test_default_mode_from_config(self, service, planning_session, monkeypatch):
        monkeypatch.setenv("MEAL_SHOPPER_SORT", "alphabetical")

        assert service.build(planning_session.id).mode == SortMode.ALPHABETICAL


class TestToggle:
    """Tests for checking items off."""

    def test_check_survives_demand_round_trip(self, store, service, planning_session):
        """Checked, removed from demand, re-added: still checked."""
        service.add_adhoc_item(planning_session.id, "eggs")
        view = service.build(planning_session.id)
        eggs_id = view.rows[0].item_id

        outcome = service.toggle(planning_session.id, view.entries, eggs_id, True)
        service.remove_adhoc_item(planning_session.id, "eggs")
        gone = service.build(planning_session.id)
        service.add_adhoc_item(planning_session.id, "eggs")
        back = service.build(planning_session.id)

        assert outcome.success is True
        assert gone.rows[0].checked is True
        assert back.rows[0].checked is True
        assert back.rows[0].is_adhoc is True

    def test_toggle_persists(self, store, service, planning_session):
        service.add_adhoc_item(planning_session.id, "tea")
        view = service.build(planning_session.id)

        service.toggle(planning_session.id, view.entries, view.rows[0].item_id, True)

        assert store.list_checklist_entries(planning_session.id)[0].checked is True

    def test_failed_write_reverts(self, store, service, planning_session):
        service.add_adhoc_item(planning_session.id, "tea")
        view = service.build(planning_session.id)

        with patch.object(store, "upsert_checklist_entry", side_effect=StorageError("locked")):
            outcome = service.toggle(planning_session.id, view.entries, view.rows[0].item_id, True)

        assert outcome.success is False
        assert "locked" in outcome.result.error
        assert outcome.entries[0].checked is False

    def test_toggle_unknown_item(self, service, planning_session):
        outcome = service.toggle(planning_session.id, [], "ghost", True)

        assert outcome.success is False
        assert outcome.entries == []

    def test_toggle_unlisted_item_appends(self, store, service, planning_session):
        tape = store.get_or_create_item("tape")

        outcome = service.toggle(planning_session.id, [], tape.id, True)

        assert [e.name for e in outcome.entries] == ["tape"]
        assert outcome.entries[0].checked is True


class TestActions:
    """Tests for actions that report failure as results."""

    def test_add_adhoc_blank_name(self, store, service, planning_session):
        result = service.add_adhoc_item(planning_session.id, "   ")

        assert result.success is False
        assert store.list_items() == []

    def test_add_adhoc_unknown_session(self, store, service):
        result = service.add_adhoc_item("missing", "eggs")

        assert result.success is False
        assert store.list_items() == []

    def test_add_checklist_item(self, store, service, planning_session):
        result = service.add_checklist_item(planning_session.id, "Birthday Candles")
        view = service.build(planning_session.id)

        assert result.success is True
        assert result.value.name == "birthday candles"
        assert [(r.display_text, r.checked) for r in view.rows] == [("birthday candles", False)]

    def test_add_checklist_item_blank(self, service, planning_session):
        assert service.add_checklist_item(planning_session.id, "").success is False

    def test_remove_adhoc_not_present(self, service, planning_session):
        assert service.remove_adhoc_item(planning_session.id, "eggs").success is False

    def test_exclude_unknown_item(self, service, planning_session):
        assert service.exclude_item(planning_session.id, "ghost").success is False

    def test_include_restores(self, store, service, planning_session):
        service.add_adhoc_item(planning_session.id, "salt")
        service.exclude_item(planning_session.id, "salt")

        result = service.include_item(planning_session.id, "salt")

        assert result.success is True
        assert [r.display_name for r in service.build(planning_session.id).rows] == ["salt"]

    def test_set_staple_status(self, store, service, planning_session):
        milk = store.get_or_create_item("milk")
        store.set_staple(milk.id, True, "1 l")

        result = service.set_staple_status(planning_session.id, "milk", "INCLUDED")
        view = service.build(planning_session.id)

        assert result.success is True
        assert view.rows[0].display_text == "milk: 1 l"

    def test_set_staple_status_not_a_staple(self, store, service, planning_session):
        store.get_or_create_item("milk")

        assert service.set_staple_status(planning_session.id, "milk", "INCLUDED").success is False

    def test_set_staple_status_invalid(self, service, planning_session):
        assert service.set_staple_status(planning_session.id, "milk", "MAYBE").success is False

    def test_unreadable_database_reports_failure(self, tmp_path):
        db_path = tmp_path / "broken.db"
        db_path.write_bytes(b"this is not a database" * 100)
        broken = ShoppingListService(ShoppingStore(db_path, group_id="test"))

        assert broken.add_adhoc_item("s1", "eggs").success is False
        assert broken.exclude_item("s1", "eggs").success is False
        assert broken.toggle("s1", [], "eggs", True).success is False


class TestStoreOrder:
    """Tests for the store order round trip through the service."""

    def test_commit_then_reload(self, store, service):
        for name in ("milk", "bread", "apples"):
            store.get_or_create_item(name)

        manager = service.store_order_manager()
        for item in list(manager.unordered):
            manager.promote(item.id)
        result = manager.commit(store)
        reloaded = service.store_order_manager()

        assert result.success is True
        assert [i.name for i in reloaded.ordered] == ["apples", "bread", "milk"]
        assert [i.store_order_index for i in reloaded.ordered] == [1, 2, 3]
        assert reloaded.has_pending_changes() is False

    def test_commit_twice_same_state(self, store, service):
        for name in ("milk", "bread"):
            store.get_or_create_item(name)
        manager = service.store_order_manager()
        manager.promote(store.find_item_by_name("milk").id)

        manager.commit(store)
        manager.commit(store)

        assert {i.name: i.store_order_index for i in store.list_items()} == {"bread": None, "milk": 1}
