"""Plain records exchanged between the store and the shopping list engine."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, NewType

ItemId = NewType("ItemId", str)
SessionId = NewType("SessionId", str)


class StapleStatus(str, Enum):
    """Per-session decision for a staple item."""

    PENDING = "PENDING"
    INCLUDED = "INCLUDED"
    EXCLUDED = "EXCLUDED"


@dataclass
class Item:
    """A catalog item, unique by name within a group."""

    id: ItemId
    name: str
    is_staple: bool = False
    staple_amount: str | None = None
    store_order_index: int | None = None

    @property
    def is_positioned(self) -> bool:
        return self.store_order_index is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "is_staple": self.is_staple,
            "staple_amount": self.staple_amount,
            "store_order_index": self.store_order_index,
        }

    @classmethod
    def from_row(cls, row: Any) -> "Item":
        """Create from a sqlite3.Row or dict-like object."""
        return cls(
            id=ItemId(row["id"]),
            name=row["name"],
            is_staple=bool(row["is_staple"]),
            staple_amount=row["staple_amount"],
            store_order_index=row["store_order_index"],
        )


@dataclass
class RecipeIngredient:
    """One (item, amount) line of a recipe."""

    item_id: ItemId
    amount: str | None = None


@dataclass
class Recipe:
    """A named recipe with its ordered ingredient lines."""

    id: str
    name: str
    ingredients: list[RecipeIngredient] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "ingredients": [
                {"item_id": ing.item_id, "amount": ing.amount} for ing in self.ingredients
            ],
        }


@dataclass
class MealItem:
    """An item attached directly to a meal (a side), outside any recipe."""

    item_id: ItemId
    amount: str | None = None


@dataclass
class Meal:
    """A meal in a planning session.

    A meal without a date belongs to the session's unscheduled bucket.
    """

    id: str
    session_id: SessionId
    meal_date: date | None = None
    name: str | None = None
    recipe_ids: list[str] = field(default_factory=list)
    items: list[MealItem] = field(default_factory=list)

    @property
    def is_scheduled(self) -> bool:
        return self.meal_date is not None


@dataclass
class PlanningSession:
    """A planning period that owns meals, selections and a checklist."""

    id: SessionId
    start_date: date
    end_date: date
    created_at: datetime | None = None

    @property
    def label(self) -> str:
        return f"{self.start_date.isoformat()} → {self.end_date.isoformat()}"


@dataclass
class StapleSelection:
    session_id: SessionId
    item_id: ItemId
    status: StapleStatus = StapleStatus.PENDING


@dataclass
class AdhocItem:
    session_id: SessionId
    item_id: ItemId
    amount: str | None = None


@dataclass
class ItemExclusion:
    session_id: SessionId
    item_id: ItemId


@dataclass
class ChecklistEntry:
    """Persisted check-off state for one item in one session."""

    session_id: SessionId
    item_id: ItemId
    checked: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "ChecklistEntry":
        """Create from a sqlite3.Row or dict-like object."""
        return cls(
            session_id=SessionId(row["session_id"]),
            item_id=ItemId(row["item_id"]),
            checked=bool(row["checked"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


@dataclass
class OrderUpdate:
    """One element of a batch store-order commit."""

    item_id: ItemId
    order_index: int | None


@dataclass
class ActionResult:
    """Outcome of an operation that must not raise across the service boundary."""

    success: bool
    error: str | None = None
    value: Any = None

    @classmethod
    def ok(cls, value: Any = None) -> "ActionResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "ActionResult":
        return cls(success=False, error=error)
