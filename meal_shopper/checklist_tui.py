"""Interactive TUI for ticking off the shopping list in the store."""

from dataclasses import dataclass

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Footer, Header, Static

from .checklist import DisplayEntry
from .formatter import format_entry
from .resolver import SortMode, resolve
from .service import ShoppingListService


@dataclass
class ChecklistResult:
    """Result from a shopping trip."""

    checked_count: int
    total_count: int


class ChecklistScreen(App[ChecklistResult]):
    """Interactive checklist for one planning session."""

    CSS = """
    Screen {
        background: $surface;
    }

    #main-container {
        height: 100%;
        padding: 1;
    }

    #summary {
        height: 3;
        padding: 0 1;
        background: $primary-background;
        color: $text;
        content-align: center middle;
    }

    #checklist-table {
        height: 1fr;
        margin: 1 0;
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
        Binding("space", "toggle_item", "Check"),
        Binding("o", "toggle_sort", "Sort"),
        Binding("h", "toggle_hide", "Hide checked"),
        Binding("q", "quit_done", "Done"),
        Binding("escape", "quit_done", "Done"),
    ]

    def __init__(
        self,
        service: ShoppingListService,
        session_id: str,
        entries: list[DisplayEntry],
        mode: SortMode = SortMode.STORE_ORDER,
        title: str | None = None,
    ) -> None:
        super().__init__()
        self.service = service
        self.session_id = session_id
        self.entries = list(entries)
        self.mode = SortMode(mode)
        self.hide_checked = False
        self.screen_title = title or "Shopping List"
        self.last_error: str | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="main-container"):
            yield Static(self._get_summary(), id="summary")
            table = DataTable(id="checklist-table")
            table.cursor_type = "row"
            table.add_columns("", "Item")
            yield table
            with Horizontal(id="button-bar"):
                yield Button("Sort (o)", variant="default", id="btn-sort")
                yield Button("Hide checked (h)", variant="default", id="btn-hide")
                yield Button("Done (q)", variant="success", id="btn-done")
        yield Footer()

    def on_mount(self) -> None:
        self.title = self.screen_title
        self._refresh_table()

    def _visible_entries(self) -> list[DisplayEntry]:
        entries = resolve(self.entries, self.mode).entries
        if self.hide_checked:
            entries = [e for e in entries if not e.checked]
        return entries

    def _get_summary(self) -> str:
        resolved = resolve(self.entries, self.mode)
        checked = sum(1 for e in self.entries if e.checked)
        sort_label = "store order" if self.mode == SortMode.STORE_ORDER else "A-Z"
        summary = f"{checked} of {len(self.entries)} checked | Sorted: {sort_label}"
        if self.mode == SortMode.STORE_ORDER and resolved.needs_positioning:
            summary += f" | ⚠ {resolved.unpositioned_count} without store position"
        if self.last_error:
            summary += f" | ✗ {self.last_error}"
        return summary

    def _refresh_table(self) -> None:
        table = self.query_one("#checklist-table", DataTable)
        table.clear()

        for entry in self._visible_entries():
            checkbox = "[x]" if entry.checked else "[ ]"
            table.add_row(checkbox, format_entry(entry))

        self.query_one("#summary", Static).update(self._get_summary())

    def toggle_entry(self, entry: DisplayEntry) -> bool:
        """Flip one entry through the service; the list is reverted on failure."""
        outcome = self.service.toggle(self.session_id, self.entries, entry.item_id, not entry.checked)
        self.entries = outcome.entries
        self.last_error = None if outcome.success else outcome.result.error
        return outcome.success

    def action_toggle_item(self) -> None:
        table = self.query_one("#checklist-table", DataTable)
        visible = self._visible_entries()
        if table.cursor_row is not None and 0 <= table.cursor_row < len(visible):
            row_idx = table.cursor_row
            self.toggle_entry(visible[row_idx])
            self._refresh_table()
            table.move_cursor(row=min(row_idx, max(len(self._visible_entries()) - 1, 0)))

    def action_toggle_sort(self) -> None:
        if self.mode == SortMode.STORE_ORDER:
            self.mode = SortMode.ALPHABETICAL
        else:
            self.mode = SortMode.STORE_ORDER
        self._refresh_table()

    def action_toggle_hide(self) -> None:
        self.hide_checked = not self.hide_checked
        self._refresh_table()

    def action_quit_done(self) -> None:
        checked = sum(1 for e in self.entries if e.checked)
        self.exit(ChecklistResult(checked_count=checked, total_count=len(self.entries)))

    @on(DataTable.RowSelected)
    def on_row_selected(self, event: DataTable.RowSelected) -> None:
        """Toggle when Enter is pressed on a row."""
        self.action_toggle_item()

    @on(Button.Pressed, "#btn-sort")
    def on_sort_button(self) -> None:
        self.action_toggle_sort()

    @on(Button.Pressed, "#btn-hide")
    def on_hide_button(self) -> None:
        self.action_toggle_hide()

    @on(Button.Pressed, "#btn-done")
    def on_done_button(self) -> None:
        self.action_quit_done()


def interactive_checklist(
    service: ShoppingListService,
    session_id: str,
    mode: SortMode | str | None = None,
    title: str | None = None,
) -> ChecklistResult:
    """
    Launch the in-store checklist for a session.

    Args:
        service: Shopping list service
        session_id: Planning session
        mode: Initial sort mode
        title: Optional title for the screen

    Returns:
        ChecklistResult with the final checked count
    """
    view = service.build(session_id, mode)
    app = ChecklistScreen(service, session_id, view.entries, view.mode, title)
    result = app.run()

    if result is None:
        checked = sum(1 for e in app.entries if e.checked)
        return ChecklistResult(checked_count=checked, total_count=len(app.entries))
    return result
