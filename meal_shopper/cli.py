"""CLI entry point for Meal Shopper."""

from datetime import date
from pathlib import Path

import click

from . import __version__
from .catalog import staple_items, suggest_items
from .checklist_tui import interactive_checklist
from .config import SORT_MODES
from .export import export_shopping_list
from .log import configure_logging
from .models import Item, MealItem, PlanningSession, StapleStatus
from .order_tui import interactive_store_order
from .resolver import SortMode
from .service import ShoppingListService, ShoppingListView
from .storage import SessionNotFoundError, ShoppingStore, StorageError
from .store_order import StoreOrderManager

# Shared store instance
_store: ShoppingStore | None = None
_db_path: Path | None = None


def get_store() -> ShoppingStore:
    """Get or create the store instance."""
    global _store
    if _store is None:
        _store = ShoppingStore(_db_path)
    return _store


def get_service() -> ShoppingListService:
    return ShoppingListService(get_store())


def resolve_session(session_ref: str) -> PlanningSession:
    """Look up a session by id prefix, exiting on failure."""
    try:
        return get_store().find_session(session_ref)
    except SessionNotFoundError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None


def parse_item_spec(spec: str) -> tuple[str, str | None]:
    """Split 'name:amount' into its parts; the amount is optional."""
    name, sep, amount = spec.partition(":")
    return name.strip(), (amount.strip() or None) if sep else None


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        click.echo(f"✗ Invalid date '{value}' (use YYYY-MM-DD)", err=True)
        raise SystemExit(1) from None


def display_list(view: ShoppingListView) -> None:
    """Display a resolved shopping list."""
    click.echo()
    click.echo("=" * 60)
    click.echo("SHOPPING LIST")
    click.echo("=" * 60)

    if not view.rows:
        click.echo("  (nothing to buy)")

    for row in view.rows:
        box = "[x]" if row.checked else "[ ]"
        click.echo(f"  {box} {row.display_text}")

    click.echo()
    click.echo("-" * 60)
    click.echo(f"{view.checked_count} of {view.total_count} checked")
    if view.mode == SortMode.STORE_ORDER and view.needs_positioning:
        click.echo(
            f"⚠️  {view.unpositioned_count} items have no store position "
            "(run 'meal-shopper order edit')"
        )
    click.echo("-" * 60)


# ============================================================================
# Main CLI Group
# ============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="meal-shopper")
@click.option("--db", "db_path", type=click.Path(dir_okay=False), help="Database file")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(db_path: str | None, verbose: bool):
    """Meal planning shopping list tool.

    Plan meals for a period, then build one deduplicated shopping list from
    recipes, sides, staples and one-off items, sorted along your store route.
    """
    global _store, _db_path
    configure_logging(verbose=verbose)
    _db_path = Path(db_path) if db_path else None
    _store = None


# ============================================================================
# Item Commands
# ============================================================================


@cli.group()
def items():
    """Manage the item catalog."""
    pass


@items.command("add")
@click.argument("names", nargs=-1, required=True)
def items_add(names: tuple[str, ...]):
    """Add items to the catalog (existing names are reused)."""
    store = get_store()
    for name in names:
        try:
            item = store.get_or_create_item(name)
        except StorageError as e:
            click.echo(f"✗ {e}", err=True)
            raise SystemExit(1) from None
        click.echo(f"✓ {item.name}")


@items.command("list")
@click.option("--staples", is_flag=True, help="Only show staples")
def items_list(staples: bool):
    """List catalog items."""
    catalog = get_store().list_items(staples_only=staples)

    click.echo()
    click.echo("STAPLES" if staples else "ITEMS")
    click.echo("=" * 50)

    if not catalog:
        click.echo("  (empty)")

    for item in catalog:
        details = []
        if item.store_order_index is not None:
            details.append(f"#{item.store_order_index}")
        if item.is_staple:
            details.append(f"staple: {item.staple_amount}" if item.staple_amount else "staple")
        suffix = f" ({', '.join(details)})" if details else ""
        click.echo(f"  {item.name}{suffix}")

    click.echo()
    click.echo(f"Total: {len(catalog)} items")


@items.command("staple")
@click.argument("name")
@click.option("--amount", "-a", help="Default amount when the staple is included")
@click.option("--off", is_flag=True, help="Stop treating the item as a staple")
def items_staple(name: str, amount: str | None, off: bool):
    """Mark an item as a staple (or unmark it with --off)."""
    store = get_store()
    try:
        item = store.get_or_create_item(name)
        item = store.set_staple(item.id, not off, amount)
    except StorageError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None

    if item.is_staple:
        amount_text = f" ({item.staple_amount})" if item.staple_amount else ""
        click.echo(f"✓ {item.name} is a staple{amount_text}")
    else:
        click.echo(f"✓ {item.name} is no longer a staple")


@items.command("suggest")
@click.argument("query")
@click.option("--limit", "-l", default=5, help="Maximum suggestions")
def items_suggest(query: str, limit: int):
    """Suggest catalog items for a partial name."""
    suggestions = suggest_items(query, get_store().list_items(), limit=limit)
    if not suggestions:
        click.echo("No matching items.")
        return
    for item in suggestions:
        click.echo(f"  {item.name}")


# ============================================================================
# Recipe Commands
# ============================================================================


@cli.group()
def recipes():
    """Manage recipes."""
    pass


@recipes.command("add")
@click.argument("name")
@click.option(
    "--ingredient",
    "-i",
    "ingredients",
    multiple=True,
    required=True,
    help="Ingredient as 'name' or 'name:amount' (repeatable)",
)
def recipes_add(name: str, ingredients: tuple[str, ...]):
    """Create a recipe.

    Examples:

        meal-shopper recipes add Pancakes -i "flour:2 cups" -i "eggs:2" -i milk
    """
    try:
        recipe = get_store().create_recipe(name, [parse_item_spec(spec) for spec in ingredients])
    except StorageError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None
    click.echo(f"✓ Created recipe '{recipe.name}' with {len(recipe.ingredients)} ingredients")


@recipes.command("list")
def recipes_list():
    """List all recipes."""
    all_recipes = get_store().list_recipes()
    if not all_recipes:
        click.echo("No recipes yet.")
        return

    click.echo()
    click.echo("RECIPES")
    click.echo("=" * 50)
    for recipe in all_recipes:
        click.echo(f"  {recipe.name} ({len(recipe.ingredients)} ingredients)")


@recipes.command("show")
@click.argument("name")
def recipes_show(name: str):
    """Show a recipe's ingredients."""
    store = get_store()
    recipe = store.find_recipe_by_name(name)
    if recipe is None:
        click.echo(f"✗ Recipe '{name}' not found", err=True)
        raise SystemExit(1)

    catalog = store.get_catalog()
    click.echo()
    click.echo("=" * 50)
    click.echo(f"RECIPE: {recipe.name}")
    click.echo("=" * 50)
    for i, line in enumerate(recipe.ingredients, 1):
        item = catalog.get(line.item_id)
        item_name = item.name if item else line.item_id
        click.echo(f"  {i}. {item_name}" + (f": {line.amount}" if line.amount else ""))


@recipes.command("delete")
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def recipes_delete(name: str, yes: bool):
    """Delete a recipe. Meals using it simply stop contributing its items."""
    store = get_store()
    recipe = store.find_recipe_by_name(name)
    if recipe is None:
        click.echo(f"✗ Recipe '{name}' not found", err=True)
        raise SystemExit(1)

    if not yes and not click.confirm(f"Delete recipe '{recipe.name}'?"):
        click.echo("Cancelled.")
        return

    store.delete_recipe(recipe.id)
    click.echo(f"✓ Deleted recipe '{recipe.name}'")


# ============================================================================
# Session and Meal Commands
# ============================================================================


@cli.group()
def session():
    """Manage planning sessions."""
    pass


@session.command("create")
@click.argument("start")
@click.argument("end")
def session_create(start: str, end: str):
    """Create a planning session from START to END (YYYY-MM-DD)."""
    try:
        created = get_store().create_session(parse_date(start), parse_date(end))
    except StorageError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None
    click.echo(f"✓ Created session {created.id[:8]} ({created.label})")


@session.command("list")
def session_list():
    """List planning sessions, newest first."""
    sessions = get_store().list_sessions()
    if not sessions:
        click.echo("No sessions yet. Create one with: meal-shopper session create START END")
        return
    for s in sessions:
        click.echo(f"  {s.id[:8]}  {s.label}")


@cli.group()
def meal():
    """Manage the meals of a session."""
    pass


@meal.command("add")
@click.argument("session_ref")
@click.option("--date", "-d", "meal_date", help="Meal date (YYYY-MM-DD); omit for unscheduled")
@click.option("--name", "-n", help="Meal name")
@click.option("--recipe", "-r", "recipe_names", multiple=True, help="Recipe name (repeatable)")
@click.option("--item", "-i", "item_specs", multiple=True, help="Side item as 'name' or 'name:amount'")
def meal_add(
    session_ref: str,
    meal_date: str | None,
    name: str | None,
    recipe_names: tuple[str, ...],
    item_specs: tuple[str, ...],
):
    """Add a meal with recipes and/or side items to a session."""
    store = get_store()
    planning = resolve_session(session_ref)

    recipe_ids = []
    for recipe_name in recipe_names:
        recipe = store.find_recipe_by_name(recipe_name)
        if recipe is None:
            click.echo(f"✗ Recipe '{recipe_name}' not found", err=True)
            raise SystemExit(1)
        recipe_ids.append(recipe.id)

    try:
        meal_items = []
        for spec in item_specs:
            item_name, amount = parse_item_spec(spec)
            meal_items.append(MealItem(store.get_or_create_item(item_name).id, amount))
        added = store.add_meal(
            planning.id,
            meal_date=parse_date(meal_date),
            name=name,
            recipe_ids=recipe_ids,
            items=meal_items,
        )
    except StorageError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None

    when = added.meal_date.isoformat() if added.meal_date else "unscheduled"
    click.echo(f"✓ Added meal {added.id[:8]} ({when})")


@meal.command("list")
@click.argument("session_ref")
def meal_list(session_ref: str):
    """List the meals of a session."""
    store = get_store()
    planning = resolve_session(session_ref)
    meals = store.list_meals(planning.id)
    recipes_by_id = store.get_recipes()

    click.echo()
    click.echo(f"MEALS {planning.label}")
    click.echo("=" * 50)
    if not meals:
        click.echo("  (none)")

    for m in meals:
        when = m.meal_date.isoformat() if m.meal_date else "unscheduled"
        names = [recipes_by_id[r].name if r in recipes_by_id else "(deleted recipe)" for r in m.recipe_ids]
        label = m.name or ", ".join(names) or "(no recipes)"
        extra = f" +{len(m.items)} sides" if m.items else ""
        click.echo(f"  {m.id[:8]}  {when}  {label}{extra}")


@meal.command("delete")
@click.argument("session_ref")
@click.argument("meal_ref")
def meal_delete(session_ref: str, meal_ref: str):
    """Delete a meal by id prefix."""
    store = get_store()
    planning = resolve_session(session_ref)
    matches = [m for m in store.list_meals(planning.id) if m.id.startswith(meal_ref)]
    if len(matches) != 1:
        click.echo(f"✗ No unique meal matches '{meal_ref}'", err=True)
        raise SystemExit(1)
    store.delete_meal(matches[0].id)
    click.echo(f"✓ Deleted meal {matches[0].id[:8]}")


# ============================================================================
# Session Input Commands
# ============================================================================


@cli.group()
def staples():
    """Choose which staples to buy this session."""
    pass


@staples.command("list")
@click.argument("session_ref")
def staples_list(session_ref: str):
    """List staples with their status for a session."""
    store = get_store()
    planning = resolve_session(session_ref)
    statuses = {s.item_id: s.status for s in store.list_staple_selections(planning.id)}

    candidates = staple_items(store.list_items(staples_only=True))
    if not candidates:
        click.echo("No staples defined. Mark one with: meal-shopper items staple NAME")
        return
    for item in candidates:
        status = statuses.get(item.id, StapleStatus.PENDING)
        click.echo(f"  [{status.value.lower():8}] {item.name}")


@staples.command("set")
@click.argument("session_ref")
@click.argument("name")
@click.argument("status", type=click.Choice(["include", "exclude", "pending"], case_sensitive=False))
def staples_set(session_ref: str, name: str, status: str):
    """Include or exclude a staple for a session."""
    planning = resolve_session(session_ref)
    value = {"include": "INCLUDED", "exclude": "EXCLUDED", "pending": "PENDING"}[status.lower()]
    result = get_service().set_staple_status(planning.id, name, value)
    if not result.success:
        click.echo(f"✗ {result.error}", err=True)
        raise SystemExit(1)
    click.echo(f"✓ {name}: {value.lower()}")


@cli.group()
def adhoc():
    """Add or remove one-off items."""
    pass


@adhoc.command("add")
@click.argument("session_ref")
@click.argument("name")
@click.option("--amount", "-a", help="Amount to buy")
def adhoc_add(session_ref: str, name: str, amount: str | None):
    """Add a one-off item to a session."""
    planning = resolve_session(session_ref)
    result = get_service().add_adhoc_item(planning.id, name, amount)
    if not result.success:
        click.echo(f"✗ {result.error}", err=True)
        raise SystemExit(1)
    click.echo(f"✓ Added {result.value.name}")


@adhoc.command("remove")
@click.argument("session_ref")
@click.argument("name")
def adhoc_remove(session_ref: str, name: str):
    """Remove a one-off item from a session."""
    planning = resolve_session(session_ref)
    result = get_service().remove_adhoc_item(planning.id, name)
    if not result.success:
        click.echo(f"✗ {result.error}", err=True)
        raise SystemExit(1)
    click.echo(f"✓ Removed {result.value.name}")


@cli.command("exclude")
@click.argument("session_ref")
@click.argument("name")
def exclude_cmd(session_ref: str, name: str):
    """Keep an item off this session's list (e.g. already at home)."""
    planning = resolve_session(session_ref)
    result = get_service().exclude_item(planning.id, name)
    if not result.success:
        click.echo(f"✗ {result.error}", err=True)
        raise SystemExit(1)
    click.echo(f"✓ Excluded {result.value.name}")


@cli.command("include")
@click.argument("session_ref")
@click.argument("name")
def include_cmd(session_ref: str, name: str):
    """Undo an exclusion."""
    planning = resolve_session(session_ref)
    result = get_service().include_item(planning.id, name)
    if not result.success:
        click.echo(f"✗ {result.error}", err=True)
        raise SystemExit(1)
    click.echo(f"✓ Included {result.value.name}")


# ============================================================================
# Shopping List Commands
# ============================================================================


@cli.command("list")
@click.argument("session_ref")
@click.option("--sort", "sort_mode", type=click.Choice(SORT_MODES), help="Sort order")
@click.option("--hide-checked", is_flag=True, help="Hide items already checked off")
@click.option("--since", help="Ignore meals dated before this day (YYYY-MM-DD)")
def list_cmd(session_ref: str, sort_mode: str | None, hide_checked: bool, since: str | None):
    """Show the shopping list for a session."""
    planning = resolve_session(session_ref)
    try:
        view = get_service().build(
            planning.id, sort_mode, include_checked=not hide_checked, since=parse_date(since)
        )
    except StorageError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None
    display_list(view)


def _set_checked(session_ref: str, name: str, checked: bool) -> None:
    planning = resolve_session(session_ref)
    store = get_store()
    service = get_service()

    item = store.find_item_by_name(name)
    if item is None:
        click.echo(f"✗ Unknown item: {name}", err=True)
        raise SystemExit(1)

    try:
        view = service.build(planning.id)
    except StorageError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None

    outcome = service.toggle(planning.id, view.entries, item.id, checked)
    if not outcome.success:
        click.echo(f"✗ {outcome.result.error}", err=True)
        raise SystemExit(1)
    click.echo(f"✓ {'Checked' if checked else 'Unchecked'} {item.name}")


@cli.command("check")
@click.argument("session_ref")
@click.argument("name")
def check_cmd(session_ref: str, name: str):
    """Check an item off the list."""
    _set_checked(session_ref, name, True)


@cli.command("uncheck")
@click.argument("session_ref")
@click.argument("name")
def uncheck_cmd(session_ref: str, name: str):
    """Put a checked item back on the list."""
    _set_checked(session_ref, name, False)


@cli.command("add-item")
@click.argument("session_ref")
@click.argument("name")
def add_item_cmd(session_ref: str, name: str):
    """Add an item straight to the checklist, outside any meal."""
    planning = resolve_session(session_ref)
    result = get_service().add_checklist_item(planning.id, name)
    if not result.success:
        click.echo(f"✗ {result.error}", err=True)
        raise SystemExit(1)
    click.echo(f"✓ Added {result.value.name} to the checklist")


@cli.command("shop")
@click.argument("session_ref")
@click.option("--sort", "sort_mode", type=click.Choice(SORT_MODES), help="Initial sort order")
def shop_cmd(session_ref: str, sort_mode: str | None):
    """Open the interactive checklist for shopping."""
    planning = resolve_session(session_ref)
    result = interactive_checklist(get_service(), planning.id, sort_mode, title=planning.label)
    click.echo(f"✓ {result.checked_count} of {result.total_count} checked")


@cli.command("export")
@click.argument("session_ref")
@click.argument("output", type=click.Path())
@click.option("--format", "-f", "fmt", type=click.Choice(["json", "md", "pdf"]), help="Output format")
@click.option("--sort", "sort_mode", type=click.Choice(SORT_MODES), help="Sort order")
@click.option("--hide-checked", is_flag=True, help="Leave out items already checked off")
@click.option("--title", help="List title")
def export_cmd(
    session_ref: str,
    output: str,
    fmt: str | None,
    sort_mode: str | None,
    hide_checked: bool,
    title: str | None,
):
    """Export the shopping list to a file (JSON, Markdown, or PDF)."""
    planning = resolve_session(session_ref)
    try:
        view = get_service().build(planning.id, sort_mode, include_checked=not hide_checked)
        used = export_shopping_list(
            view, output, title=title or f"Shopping List {planning.label}", format=fmt
        )
    except StorageError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None
    except ImportError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None
    click.echo(f"✓ Exported {len(view.rows)} items to {output} ({used})")


# ============================================================================
# Store Order Commands
# ============================================================================


@cli.group()
def order():
    """Arrange items along your store route."""
    pass


@order.command("show")
def order_show():
    """Show the store route and the items without a position."""
    manager = get_service().store_order_manager()

    click.echo()
    click.echo("STORE ROUTE")
    click.echo("=" * 50)
    if not manager.ordered:
        click.echo("  (empty)")
    for position, item in enumerate(manager.ordered, 1):
        click.echo(f"  {position:3}. {item.name}")

    if manager.unordered:
        click.echo()
        click.echo(f"Not placed ({len(manager.unordered)}):")
        for item in manager.unordered:
            click.echo(f"       {item.name}")


def _commit(manager: StoreOrderManager) -> None:
    result = manager.commit(get_store())
    if not result.success:
        click.echo(f"✗ {result.error}", err=True)
        raise SystemExit(1)


def _find_item(name: str) -> Item:
    item = get_store().find_item_by_name(name)
    if item is None:
        click.echo(f"✗ Unknown item: {name}", err=True)
        raise SystemExit(1)
    return item


@order.command("add")
@click.argument("name")
@click.option("--at", "position", type=int, help="Route position (1-based); appended if omitted")
def order_add(name: str, position: int | None):
    """Put an item on the store route."""
    item = _find_item(name)
    manager = get_service().store_order_manager()
    if not manager.promote(item.id, None if position is None else position - 1):
        click.echo(f"✗ {item.name} is already on the route", err=True)
        raise SystemExit(1)
    _commit(manager)
    click.echo(f"✓ {item.name} placed at #{manager.baseline.index(item.id) + 1}")


@order.command("remove")
@click.argument("name")
def order_remove(name: str):
    """Take an item off the store route."""
    item = _find_item(name)
    manager = get_service().store_order_manager()
    if not manager.demote(item.id):
        click.echo(f"✗ {item.name} is not on the route", err=True)
        raise SystemExit(1)
    _commit(manager)
    click.echo(f"✓ {item.name} removed from the route")


@order.command("move")
@click.argument("name")
@click.argument("position", type=int)
def order_move(name: str, position: int):
    """Move a routed item to POSITION (1-based)."""
    item = _find_item(name)
    manager = get_service().store_order_manager()
    if item.id in manager.baseline and manager.baseline.index(item.id) == position - 1:
        click.echo(f"{item.name} is already at #{position}")
        return
    if not manager.move_item(item.id, position - 1):
        click.echo(f"✗ Cannot move {item.name} to #{position}", err=True)
        raise SystemExit(1)
    _commit(manager)
    click.echo(f"✓ {item.name} moved to #{position}")


@order.command("edit")
def order_edit():
    """Edit the store route interactively."""
    service = get_service()
    result = interactive_store_order(service.store_order_manager(), get_store())
    if result.saved:
        click.echo(f"✓ Saved store order ({len(result.updates)} items)")
    elif result.error:
        click.echo(f"✗ {result.error}", err=True)
        raise SystemExit(1)
    else:
        click.echo("Cancelled.")


# ============================================================================
# Entry Point
# ============================================================================


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
