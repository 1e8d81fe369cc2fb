"""Demand collection: enumerate every item request in a planning session."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum

from .models import AdhocItem, Item, ItemId, Meal, Recipe, StapleSelection, StapleStatus

logger = logging.getLogger(__name__)


class DemandSource(str, Enum):
    """Where a demand record came from."""

    RECIPE = "recipe"
    MEAL_ITEM = "meal_item"
    STAPLE = "staple"
    ADHOC = "adhoc"


@dataclass(frozen=True)
class DemandRecord:
    """A single request for an item, before any merging."""

    item_id: ItemId
    amount: str | None
    source: DemandSource
    staple_status: StapleStatus | None = None


def _meal_in_range(meal: Meal, since: date | None) -> bool:
    if since is None or meal.meal_date is None:
        return True
    return meal.meal_date >= since


def collect_demand(
    session_id: str,
    meals: Iterable[Meal],
    recipes: Mapping[str, Recipe],
    staples: Iterable[StapleSelection],
    adhoc_items: Iterable[AdhocItem],
    catalog: Mapping[ItemId, Item],
    *,
    since: date | None = None,
) -> list[DemandRecord]:
    """
    Flatten a session's planning inputs into demand records.

    Nothing is deduplicated here; every contribution is kept so the
    aggregator can count recipe occurrences. Broken references (a meal
    pointing at a deleted recipe, an item missing from the catalog) are
    skipped instead of failing the whole list.

    Args:
        session_id: Session whose inputs should be collected
        meals: Meals to collect from; meals of other sessions are ignored
        recipes: Recipe lookup by recipe id
        staples: Staple selections, all statuses (the aggregator filters)
        adhoc_items: One-off additions
        catalog: Item lookup by item id
        since: Skip scheduled meals dated before this day

    Returns:
        Demand records in enumeration order
    """
    demand: list[DemandRecord] = []

    for meal in meals:
        if meal.session_id != session_id or not _meal_in_range(meal, since):
            continue

        for recipe_id in meal.recipe_ids:
            recipe = recipes.get(recipe_id)
            if recipe is None:
                logger.debug("Meal %s references missing recipe %s, skipping", meal.id, recipe_id)
                continue
            for ingredient in recipe.ingredients:
                if ingredient.item_id not in catalog:
                    logger.debug(
                        "Recipe %s references missing item %s, skipping",
                        recipe.id,
                        ingredient.item_id,
                    )
                    continue
                demand.append(
                    DemandRecord(ingredient.item_id, ingredient.amount, DemandSource.RECIPE)
                )

        for meal_item in meal.items:
            if meal_item.item_id not in catalog:
                logger.debug("Meal %s references missing item %s, skipping", meal.id, meal_item.item_id)
                continue
            demand.append(DemandRecord(meal_item.item_id, meal_item.amount, DemandSource.MEAL_ITEM))

    for selection in staples:
        if selection.session_id != session_id:
            continue
        item = catalog.get(selection.item_id)
        if item is None:
            logger.debug("Staple selection references missing item %s, skipping", selection.item_id)
            continue
        demand.append(
            DemandRecord(
                item.id,
                item.staple_amount,
                DemandSource.STAPLE,
                staple_status=selection.status,
            )
        )

    for adhoc in adhoc_items:
        if adhoc.session_id != session_id:
            continue
        if adhoc.item_id not in catalog:
            logger.debug("Ad-hoc entry references missing item %s, skipping", adhoc.item_id)
            continue
        demand.append(DemandRecord(adhoc.item_id, adhoc.amount, DemandSource.ADHOC))

    return demand
