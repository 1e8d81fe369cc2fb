"""Tests for shopping list export functionality."""

import json

import pytest
from conftest import make_item

from meal_shopper.aggregator import AggregatedItem
from meal_shopper.checklist import DisplayEntry
from meal_shopper.export import export_shopping_list, export_to_json, export_to_markdown
from meal_shopper.formatter import build_rows
from meal_shopper.resolver import SortMode
from meal_shopper.service import ShoppingListView


def make_view() -> ShoppingListView:
    """Create a small resolved list for testing."""
    flour = make_item("flour", order=1)
    tape = make_item("tape")
    entries = [
        DisplayEntry(
            flour,
            AggregatedItem(
                item_id=flour.id,
                name="flour",
                amounts=["2 cups", "2 cups"],
                recipe_count=2,
                is_staple=True,
                order_index=1,
            ),
            checked=True,
        ),
        DisplayEntry(tape, None),
    ]
    return ShoppingListView(
        session_id="s1",
        mode=SortMode.STORE_ORDER,
        entries=entries,
        rows=build_rows(entries),
        unpositioned_count=1,
        checked_count=1,
        total_count=2,
    )


class TestExportToJson:
    """Tests for JSON export."""

    def test_basic_export(self, tmp_path):
        filepath = tmp_path / "list.json"

        export_to_json(make_view(), filepath, title="Week 10")

        data = json.loads(filepath.read_text(encoding="utf-8"))
        assert data["title"] == "Week 10"
        assert data["sort_mode"] == "store-order"
        assert data["summary"] == {"total_items": 2, "checked": 1, "unpositioned": 1}
        assert data["items"][0]["display_text"] == "flour: 2 cups, 2 cups (2 recipes, staple)"
        assert data["items"][0]["flags"] == ["staple"]
        assert data["items"][1]["flags"] == []


class TestExportToMarkdown:
    """Tests for Markdown export."""

    def test_checklist_lines(self, tmp_path):
        filepath = tmp_path / "list.md"

        export_to_markdown(make_view(), filepath)

        content = filepath.read_text(encoding="utf-8")
        assert "# Shopping List" in content
        assert "- [x] flour: 2 cups, 2 cups (2 recipes, staple)" in content
        assert "- [ ] tape" in content
        assert "**Checked:** 1 of 2" in content
        assert "**Without store position:** 1" in content


class TestExportShoppingList:
    """Tests for format detection."""

    def test_detects_json(self, tmp_path):
        assert export_shopping_list(make_view(), tmp_path / "out.json") == "json"

    def test_defaults_to_markdown(self, tmp_path):
        filepath = tmp_path / "out.txt"

        assert export_shopping_list(make_view(), filepath) == "md"
        assert filepath.read_text(encoding="utf-8").startswith("# Shopping List")

    def test_explicit_format_wins(self, tmp_path):
        assert export_shopping_list(make_view(), tmp_path / "out.md", format="json") == "json"

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(ValueError):
            export_shopping_list(make_view(), tmp_path / "out.csv", format="csv")
