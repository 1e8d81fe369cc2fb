"""Meal Shopper - shopping lists built from meal plans, staples and one-off items."""

__version__ = "1.0.0"

from .aggregator import AggregatedItem, aggregate
from .checklist import ChecklistToggle, DisplayEntry, reconcile
from .demand import DemandRecord, DemandSource, collect_demand
from .exclusions import filter_excluded
from .formatter import DisplayRow, format_item
from .models import ActionResult, Item, StapleStatus
from .resolver import ResolvedList, SortMode, resolve
from .service import ShoppingListService, ShoppingListView
from .storage import ShoppingStore, StorageError
from .store_order import StoreOrderManager

__all__ = [
    "ActionResult",
    "AggregatedItem",
    "aggregate",
    "ChecklistToggle",
    "collect_demand",
    "DemandRecord",
    "DemandSource",
    "DisplayEntry",
    "DisplayRow",
    "filter_excluded",
    "format_item",
    "Item",
    "reconcile",
    "resolve",
    "ResolvedList",
    "ShoppingListService",
    "ShoppingListView",
    "ShoppingStore",
    "SortMode",
    "StapleStatus",
    "StorageError",
    "StoreOrderManager",
]
