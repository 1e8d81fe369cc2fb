"""Tests for demand collection."""

from datetime import date

from conftest import make_catalog, make_item

from meal_shopper.demand import DemandRecord, DemandSource, collect_demand
from meal_shopper.models import (
    AdhocItem,
    Meal,
    MealItem,
    Recipe,
    RecipeIngredient,
    StapleSelection,
    StapleStatus,
)

FLOUR = make_item("flour")
EGGS = make_item("eggs")
MILK = make_item("milk", is_staple=True, staple_amount="1 l")
BREAD = make_item("bread")
CATALOG = make_catalog(FLOUR, EGGS, MILK, BREAD)

PANCAKES = Recipe(
    id="r-pancakes",
    name="Pancakes",
    ingredients=[RecipeIngredient(FLOUR.id, "2 cups"), RecipeIngredient(EGGS.id, "2")],
)
RECIPES = {PANCAKES.id: PANCAKES}


class TestCollectDemand:
    """Tests for collect_demand."""

    def test_recipe_ingredients_become_recipe_demand(self):
        meals = [Meal(id="m1", session_id="s1", recipe_ids=[PANCAKES.id])]

        demand = collect_demand("s1", meals, RECIPES, [], [], CATALOG)

        assert demand == [
            DemandRecord(FLOUR.id, "2 cups", DemandSource.RECIPE),
            DemandRecord(EGGS.id, "2", DemandSource.RECIPE),
        ]

    def test_no_deduplication(self):
        """The same recipe twice yields every ingredient twice."""
        meals = [
            Meal(id="m1", session_id="s1", recipe_ids=[PANCAKES.id]),
            Meal(id="m2", session_id="s1", recipe_ids=[PANCAKES.id]),
        ]

        demand = collect_demand("s1", meals, RECIPES, [], [], CATALOG)

        assert len(demand) == 4
        assert sum(1 for d in demand if d.item_id == FLOUR.id) == 2

    def test_meal_items_are_sides(self):
        meals = [Meal(id="m1", session_id="s1", items=[MealItem(BREAD.id, "1 loaf")])]

        demand = collect_demand("s1", meals, RECIPES, [], [], CATALOG)

        assert demand == [DemandRecord(BREAD.id, "1 loaf", DemandSource.MEAL_ITEM)]

    def test_staple_uses_item_default_amount(self):
        staples = [StapleSelection("s1", MILK.id, StapleStatus.INCLUDED)]

        demand = collect_demand("s1", [], RECIPES, staples, [], CATALOG)

        assert demand == [
            DemandRecord(MILK.id, "1 l", DemandSource.STAPLE, staple_status=StapleStatus.INCLUDED)
        ]

    def test_staples_keep_every_status(self):
        """Filtering by status is left to the aggregator."""
        staples = [
            StapleSelection("s1", MILK.id, StapleStatus.EXCLUDED),
            StapleSelection("s1", FLOUR.id, StapleStatus.PENDING),
        ]

        demand = collect_demand("s1", [], RECIPES, staples, [], CATALOG)

        assert [d.staple_status for d in demand] == [StapleStatus.EXCLUDED, StapleStatus.PENDING]

    def test_adhoc_items(self):
        adhoc = [AdhocItem("s1", BREAD.id, "2")]

        demand = collect_demand("s1", [], RECIPES, [], adhoc, CATALOG)

        assert demand == [DemandRecord(BREAD.id, "2", DemandSource.ADHOC)]

    def test_enumeration_order(self):
        meals = [
            Meal(
                id="m1",
                session_id="s1",
                recipe_ids=[PANCAKES.id],
                items=[MealItem(BREAD.id)],
            )
        ]
        staples = [StapleSelection("s1", MILK.id, StapleStatus.INCLUDED)]
        adhoc = [AdhocItem("s1", EGGS.id)]

        demand = collect_demand("s1", meals, RECIPES, staples, adhoc, CATALOG)

        assert [d.source for d in demand] == [
            DemandSource.RECIPE,
            DemandSource.RECIPE,
            DemandSource.MEAL_ITEM,
            DemandSource.STAPLE,
            DemandSource.ADHOC,
        ]

    def test_other_sessions_ignored(self):
        meals = [Meal(id="m1", session_id="other", recipe_ids=[PANCAKES.id])]
        staples = [StapleSelection("other", MILK.id, StapleStatus.INCLUDED)]
        adhoc = [AdhocItem("other", BREAD.id)]

        assert collect_demand("s1", meals, RECIPES, staples, adhoc, CATALOG) == []


class TestBrokenReferences:
    """Tests that malformed input is skipped rather than failing."""

    def test_missing_recipe_skipped(self):
        meals = [Meal(id="m1", session_id="s1", recipe_ids=["deleted", PANCAKES.id])]

        demand = collect_demand("s1", meals, RECIPES, [], [], CATALOG)

        assert len(demand) == 2

    def test_missing_ingredient_item_skipped(self):
        recipe = Recipe(
            id="r2",
            name="Odd",
            ingredients=[RecipeIngredient("ghost", "1"), RecipeIngredient(EGGS.id, "3")],
        )
        meals = [Meal(id="m1", session_id="s1", recipe_ids=["r2"])]

        demand = collect_demand("s1", meals, {"r2": recipe}, [], [], CATALOG)

        assert demand == [DemandRecord(EGGS.id, "3", DemandSource.RECIPE)]

    def test_missing_meal_item_staple_and_adhoc_skipped(self):
        meals = [Meal(id="m1", session_id="s1", items=[MealItem("ghost")])]
        staples = [StapleSelection("s1", "ghost", StapleStatus.INCLUDED)]
        adhoc = [AdhocItem("s1", "ghost")]

        assert collect_demand("s1", meals, RECIPES, staples, adhoc, CATALOG) == []


class TestSinceFilter:
    """Tests for skipping meals dated before a given day."""

    def test_past_meals_skipped(self):
        meals = [
            Meal(id="old", session_id="s1", meal_date=date(2026, 3, 1), items=[MealItem(BREAD.id)]),
            Meal(id="new", session_id="s1", meal_date=date(2026, 3, 5), items=[MealItem(EGGS.id)]),
        ]

        demand = collect_demand("s1", meals, RECIPES, [], [], CATALOG, since=date(2026, 3, 3))

        assert [d.item_id for d in demand] == [EGGS.id]

    def test_unscheduled_meals_always_count(self):
        meals = [Meal(id="m1", session_id="s1", meal_date=None, items=[MealItem(BREAD.id)])]

        demand = collect_demand("s1", meals, RECIPES, [], [], CATALOG, since=date(2030, 1, 1))

        assert len(demand) == 1

    def test_meal_on_since_day_counts(self):
        meals = [Meal(id="m1", session_id="s1", meal_date=date(2026, 3, 3), items=[MealItem(BREAD.id)])]

        demand = collect_demand("s1", meals, RECIPES, [], [], CATALOG, since=date(2026, 3, 3))

        assert len(demand) == 1
