"""Shared fixtures for meal-shopper tests."""

from datetime import date

import pytest

from meal_shopper.models import Item, ItemId
from meal_shopper.storage import ShoppingStore


def make_item(
    name: str,
    *,
    is_staple: bool = False,
    staple_amount: str | None = None,
    order: int | None = None,
) -> Item:
    """Create a catalog Item whose id is derived from its name."""
    return Item(
        id=ItemId(f"id-{name}"),
        name=name,
        is_staple=is_staple,
        staple_amount=staple_amount,
        store_order_index=order,
    )


def make_catalog(*items: Item) -> dict[ItemId, Item]:
    return {item.id: item for item in items}


@pytest.fixture
def store(tmp_path):
    """A fresh store backed by a temporary database."""
    shopping_store = ShoppingStore(tmp_path / "test.db", group_id="test")
    yield shopping_store
    shopping_store.close()


@pytest.fixture
def planning_session(store):
    """A one-week planning session."""
    return store.create_session(date(2026, 3, 2), date(2026, 3, 8))
