"""Interactive TUI for arranging items along the store route."""

from dataclasses import dataclass, field

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Footer, Header, Label, Static

from .models import OrderUpdate
from .storage import ShoppingStore
from .store_order import StoreOrderManager


@dataclass
class StoreOrderResult:
    """Result from the store order editor."""

    saved: bool
    updates: list[OrderUpdate] = field(default_factory=list)
    error: str | None = None


class StoreOrderScreen(App[StoreOrderResult]):
    """Two-table editor: the route on the left, unplaced items on the right."""

    CSS = """
    Screen {
        background: $surface;
    }

    #main-container {
        height: 100%;
        padding: 1;
    }

    #header-info {
        height: auto;
        padding: 1;
        background: $primary-background;
        color: $text;
    }

    #header-title {
        text-style: bold;
        padding-bottom: 1;
    }

    #header-desc {
        color: $text-muted;
    }

    #tables {
        height: 1fr;
        margin: 1 0;
    }

    #ordered-table, #unordered-table {
        width: 1fr;
        height: 100%;
        margin: 0 1;
    }

    #summary {
        height: 3;
        padding: 0 1;
        background: $surface-darken-1;
        content-align: center middle;
    }

    #button-bar {
        height: 3;
        align: center middle;
        padding: 0 1;
    }

    #button-bar Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("a", "promote", "Add to route"),
        Binding("r", "demote", "Remove from route"),
        Binding("u", "move_up", "Move up"),
        Binding("d", "move_down", "Move down"),
        Binding("s", "save", "Save"),
        Binding("q", "quit_cancel", "Close"),
        Binding("escape", "quit_cancel", "Close"),
    ]

    def __init__(
        self,
        manager: StoreOrderManager,
        store: ShoppingStore,
        title: str | None = None,
    ) -> None:
        super().__init__()
        self.manager = manager
        self.store = store
        self.screen_title = title or "Store Order"
        self.last_error: str | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="main-container"):
            with Vertical(id="header-info"):
                yield Label("Arrange items in the order you walk the store.", id="header-title")
                yield Label(
                    "Items without a position are listed last on the shopping list.",
                    id="header-desc",
                )
            with Horizontal(id="tables"):
                ordered = DataTable(id="ordered-table")
                ordered.cursor_type = "row"
                ordered.add_columns("#", "Route")
                yield ordered
                unordered = DataTable(id="unordered-table")
                unordered.cursor_type = "row"
                unordered.add_columns("Not placed")
                yield unordered
            yield Static(self._get_summary(), id="summary")
            with Horizontal(id="button-bar"):
                yield Button("Save (s)", variant="success", id="btn-save")
                yield Button("Close (q)", variant="error", id="btn-close")
        yield Footer()

    def on_mount(self) -> None:
        self.title = self.screen_title
        self._refresh_tables()

    def _get_summary(self) -> str:
        summary = (
            f"On route: {len(self.manager.ordered)} | Not placed: {len(self.manager.unordered)}"
        )
        if self.manager.has_pending_changes():
            summary += " | Unsaved changes"
        if self.last_error:
            summary += f" | ✗ {self.last_error}"
        return summary

    def _refresh_tables(self) -> None:
        ordered = self.query_one("#ordered-table", DataTable)
        ordered.clear()
        for position, item in enumerate(self.manager.ordered, 1):
            ordered.add_row(str(position), item.name)

        unordered = self.query_one("#unordered-table", DataTable)
        unordered.clear()
        for item in self.manager.unordered:
            unordered.add_row(item.name)

        self.query_one("#summary", Static).update(self._get_summary())

    def _cursor(self, table_id: str, size: int) -> int | None:
        table = self.query_one(table_id, DataTable)
        if table.cursor_row is not None and 0 <= table.cursor_row < size:
            return table.cursor_row
        return None

    def _promote_index(self) -> int | None:
        """Insert after the route cursor only while the route table has focus."""
        if not self.query_one("#ordered-table", DataTable).has_focus:
            return None
        row = self._cursor("#ordered-table", len(self.manager.ordered))
        return None if row is None else row + 1

    def action_promote(self) -> None:
        row = self._cursor("#unordered-table", len(self.manager.unordered))
        if row is None:
            return
        if self.manager.promote(self.manager.unordered[row].id, self._promote_index()):
            self._refresh_tables()

    def action_demote(self) -> None:
        row = self._cursor("#ordered-table", len(self.manager.ordered))
        if row is not None and self.manager.demote(self.manager.ordered[row].id):
            self._refresh_tables()

    def _move(self, offset: int) -> None:
        row = self._cursor("#ordered-table", len(self.manager.ordered))
        if row is None:
            return
        if self.manager.move_within_ordered(row, row + offset):
            self._refresh_tables()
            # Keep cursor on the moved item
            self.query_one("#ordered-table", DataTable).move_cursor(row=row + offset)

    def action_move_up(self) -> None:
        self._move(-1)

    def action_move_down(self) -> None:
        self._move(1)

    def action_save(self) -> None:
        result = self.manager.commit(self.store)
        self.last_error = None if result.success else result.error
        self._refresh_tables()
        if result.success:
            self.exit(StoreOrderResult(saved=True, updates=result.value))

    def action_quit_cancel(self) -> None:
        self.exit(StoreOrderResult(saved=False, error=self.last_error))

    @on(Button.Pressed, "#btn-save")
    def on_save_button(self) -> None:
        self.action_save()

    @on(Button.Pressed, "#btn-close")
    def on_close_button(self) -> None:
        self.action_quit_cancel()


def interactive_store_order(
    manager: StoreOrderManager,
    store: ShoppingStore,
    title: str | None = None,
) -> StoreOrderResult:
    """
    Launch interactive TUI for editing the store route.

    Args:
        manager: Manager primed with the catalog
        store: Store the route is committed to
        title: Optional title for the screen

    Returns:
        StoreOrderResult telling whether the route was saved
    """
    app = StoreOrderScreen(manager, store, title)
    result = app.run()

    # Handle case where app exits without explicit result
    if result is None:
        return StoreOrderResult(saved=False)
    return result
