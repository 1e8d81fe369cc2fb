"""SQLite-backed record store for items, recipes, sessions and checklists."""

import logging
import sqlite3
import uuid
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .catalog import normalize_item_name
from .config import get_db_path, get_group_id
from .models import (
    AdhocItem,
    ChecklistEntry,
    Item,
    ItemExclusion,
    ItemId,
    Meal,
    MealItem,
    OrderUpdate,
    PlanningSession,
    Recipe,
    RecipeIngredient,
    SessionId,
    StapleSelection,
    StapleStatus,
)

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Exception raised when the store cannot complete a read or write."""

    pass


class ItemResolutionError(StorageError):
    """Raised when a name cannot be resolved to a catalog item."""

    pass


class SessionNotFoundError(StorageError):
    """Raised when a planning session does not exist or is ambiguous."""

    pass


def get_connection(db_path: Path | None = None) -> sqlite3.Connection:
    """Get a database connection."""
    path = db_path or get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize the database schema."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS items (
            id TEXT PRIMARY KEY,
            group_id TEXT NOT NULL,
            name TEXT NOT NULL,
            is_staple INTEGER NOT NULL DEFAULT 0,
            staple_amount TEXT,
            store_order_index INTEGER,
            UNIQUE (group_id, name)
        );

        CREATE TABLE IF NOT EXISTS recipes (
            id TEXT PRIMARY KEY,
            group_id TEXT NOT NULL,
            name TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS recipe_items (
            recipe_id TEXT NOT NULL REFERENCES recipes(id) ON DELETE CASCADE,
            item_id TEXT NOT NULL REFERENCES items(id),
            amount TEXT,
            position INTEGER NOT NULL,
            PRIMARY KEY (recipe_id, item_id)
        );

        CREATE TABLE IF NOT EXISTS planning_sessions (
            id TEXT PRIMARY KEY,
            group_id TEXT NOT NULL,
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            created_at TEXT NOT NULL,
            CHECK (end_date >= start_date)
        );

        CREATE TABLE IF NOT EXISTS meals (
            id TEXT PRIMARY KEY,
            session_id TEXT NOT NULL REFERENCES planning_sessions(id) ON DELETE CASCADE,
            date TEXT,
            name TEXT,
            created_at TEXT NOT NULL
        );

        -- no foreign key on recipe_id: deleted recipes leave dangling references
        CREATE TABLE IF NOT EXISTS meal_recipes (
            meal_id TEXT NOT NULL REFERENCES meals(id) ON DELETE CASCADE,
            recipe_id TEXT NOT NULL,
            position INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS meal_items (
            meal_id TEXT NOT NULL REFERENCES meals(id) ON DELETE CASCADE,
            item_id TEXT NOT NULL REFERENCES items(id),
            amount TEXT,
            position INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS staple_selections (
            session_id TEXT NOT NULL REFERENCES planning_sessions(id) ON DELETE CASCADE,
            item_id TEXT NOT NULL REFERENCES items(id) ON DELETE CASCADE,
            status TEXT NOT NULL DEFAULT 'PENDING',
            PRIMARY KEY (session_id, item_id)
        );

        CREATE TABLE IF NOT EXISTS adhoc_items (
            session_id TEXT NOT NULL REFERENCES planning_sessions(id) ON DELETE CASCADE,
            item_id TEXT NOT NULL REFERENCES items(id) ON DELETE CASCADE,
            amount TEXT,
            PRIMARY KEY (session_id, item_id)
        );

        CREATE TABLE IF NOT EXISTS item_exclusions (
            session_id TEXT NOT NULL REFERENCES planning_sessions(id) ON DELETE CASCADE,
            item_id TEXT NOT NULL REFERENCES items(id) ON DELETE CASCADE,
            PRIMARY KEY (session_id, item_id)
        );

        CREATE TABLE IF NOT EXISTS checklist_entries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            session_id TEXT NOT NULL REFERENCES planning_sessions(id) ON DELETE CASCADE,
            item_id TEXT NOT NULL REFERENCES items(id) ON DELETE CASCADE,
            checked INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (session_id, item_id)
        );

        CREATE INDEX IF NOT EXISTS idx_items_group ON items(group_id);
        CREATE INDEX IF NOT EXISTS idx_meals_session ON meals(session_id);
        CREATE INDEX IF NOT EXISTS idx_meal_recipes_meal ON meal_recipes(meal_id);
        CREATE INDEX IF NOT EXISTS idx_meal_items_meal ON meal_items(meal_id);
        CREATE INDEX IF NOT EXISTS idx_checklist_session ON checklist_entries(session_id);
    """)
    conn.commit()


def _new_id() -> str:
    return str(uuid.uuid4())


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


class ShoppingStore:
    """Key-indexed read/write access to the planning records of one group."""

    def __init__(self, db_path: Path | None = None, group_id: str | None = None) -> None:
        self.db_path = Path(db_path) if db_path else get_db_path()
        self.group_id = group_id or get_group_id()
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                conn = get_connection(self.db_path)
                init_db(conn)
            except sqlite3.Error as e:
                raise StorageError(f"Cannot open database {self.db_path}: {e}") from e
            self._conn = conn
        return self._conn

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run writes in one transaction, rolled back on any error."""
        try:
            with self.conn:
                yield self.conn
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    def _query_one(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        rows = self._query(sql, params)
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def get_or_create_item(self, name: str) -> Item:
        """
        Resolve a name to a catalog item, creating it on first reference.

        Calling this repeatedly (or concurrently) with the same name yields
        the same item; the (group, name) uniqueness constraint arbitrates.

        Raises:
            ItemResolutionError: If the name is blank
        """
        normalized = normalize_item_name(name)
        if not normalized:
            raise ItemResolutionError(f"Invalid item name: {name!r}")

        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO items (id, group_id, name)
                VALUES (?, ?, ?)
                ON CONFLICT(group_id, name) DO NOTHING
                """,
                (_new_id(), self.group_id, normalized),
            )

        item = self.find_item_by_name(normalized)
        if item is None:
            raise ItemResolutionError(f"Could not resolve item '{normalized}'")
        return item

    def find_item_by_name(self, name: str) -> Item | None:
        row = self._query_one(
            "SELECT * FROM items WHERE group_id = ? AND name = ?",
            (self.group_id, normalize_item_name(name)),
        )
        return Item.from_row(row) if row else None

    def get_item(self, item_id: str) -> Item | None:
        row = self._query_one(
            "SELECT * FROM items WHERE id = ? AND group_id = ?", (item_id, self.group_id)
        )
        return Item.from_row(row) if row else None

    def list_items(self, staples_only: bool = False) -> list[Item]:
        """List the group's items alphabetically."""
        query = "SELECT * FROM items WHERE group_id = ?"
        if staples_only:
            query += " AND is_staple = 1"
        rows = self._query(query + " ORDER BY name", (self.group_id,))
        return [Item.from_row(row) for row in rows]

    def get_catalog(self) -> dict[ItemId, Item]:
        """Get all items keyed by id."""
        return {item.id: item for item in self.list_items()}

    def set_staple(self, item_id: str, is_staple: bool, staple_amount: str | None = None) -> Item:
        """
        Flag or unflag an item as a staple.

        The default amount is only kept while the item is a staple.

        Raises:
            StorageError: If the item does not exist
        """
        amount = (staple_amount or None) if is_staple else None
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE items SET is_staple = ?, staple_amount = ? WHERE id = ? AND group_id = ?",
                (int(is_staple), amount, item_id, self.group_id),
            )
        if cursor.rowcount == 0:
            raise StorageError(f"Item {item_id} not found")
        item = self.get_item(item_id)
        if item is None:
            raise StorageError(f"Item {item_id} not found")
        return item

    def commit_store_order(self, updates: Iterable[OrderUpdate]) -> int:
        """
        Write a batch of store positions in a single transaction.

        Either every update is applied or none is.

        Returns:
            Number of items updated

        Raises:
            StorageError: If any item is unknown or the write fails
        """
        count = 0
        with self._transaction() as conn:
            for update in updates:
                cursor = conn.execute(
                    "UPDATE items SET store_order_index = ? WHERE id = ? AND group_id = ?",
                    (update.order_index, update.item_id, self.group_id),
                )
                if cursor.rowcount == 0:
                    raise StorageError(f"Item {update.item_id} not found")
                count += 1
        logger.info("Committed %d store order updates", count)
        return count

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    def create_recipe(self, name: str, ingredients: Iterable[tuple[str, str | None]]) -> Recipe:
        """
        Create a recipe, resolving ingredient names to items.

        Args:
            name: Recipe name
            ingredients: (item name, amount) pairs in display order

        Raises:
            StorageError: If the name is blank or an item is listed twice
        """
        name = (name or "").strip()
        if not name:
            raise StorageError("Recipe name is required")

        lines: list[RecipeIngredient] = []
        seen: set[str] = set()
        for item_name, amount in ingredients:
            item = self.get_or_create_item(item_name)
            if item.id in seen:
                raise StorageError(f"Recipe lists '{item.name}' more than once")
            seen.add(item.id)
            lines.append(RecipeIngredient(item.id, amount or None))

        recipe = Recipe(id=_new_id(), name=name, ingredients=lines)
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO recipes (id, group_id, name) VALUES (?, ?, ?)",
                (recipe.id, self.group_id, recipe.name),
            )
            conn.executemany(
                "INSERT INTO recipe_items (recipe_id, item_id, amount, position) VALUES (?, ?, ?, ?)",
                [
                    (recipe.id, line.item_id, line.amount, position)
                    for position, line in enumerate(lines)
                ],
            )
        return recipe

    def _load_recipes(self, rows: list[Any]) -> list[Recipe]:
        recipes = []
        for row in rows:
            lines = self._query(
                "SELECT item_id, amount FROM recipe_items WHERE recipe_id = ? ORDER BY position",
                (row["id"],),
            )
            recipes.append(
                Recipe(
                    id=row["id"],
                    name=row["name"],
                    ingredients=[RecipeIngredient(ItemId(r["item_id"]), r["amount"]) for r in lines],
                )
            )
        return recipes

    def list_recipes(self) -> list[Recipe]:
        rows = self._query(
            "SELECT * FROM recipes WHERE group_id = ? ORDER BY name", (self.group_id,)
        )
        return self._load_recipes(rows)

    def get_recipe(self, recipe_id: str) -> Recipe | None:
        row = self._query_one(
            "SELECT * FROM recipes WHERE id = ? AND group_id = ?", (recipe_id, self.group_id)
        )
        if not row:
            return None
        return self._load_recipes([row])[0]

    def find_recipe_by_name(self, name: str) -> Recipe | None:
        row = self._query_one(
            "SELECT * FROM recipes WHERE group_id = ? AND lower(name) = ? ORDER BY name LIMIT 1",
            (self.group_id, (name or "").strip().lower()),
        )
        if not row:
            return None
        return self._load_recipes([row])[0]

    def get_recipes(self) -> dict[str, Recipe]:
        """Get all recipes keyed by id."""
        return {recipe.id: recipe for recipe in self.list_recipes()}

    def delete_recipe(self, recipe_id: str) -> bool:
        """Delete a recipe. Meals that used it keep a dangling reference."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM recipes WHERE id = ? AND group_id = ?", (recipe_id, self.group_id)
            )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Planning sessions and meals
    # ------------------------------------------------------------------

    def create_session(self, start_date: date, end_date: date) -> PlanningSession:
        """
        Create a planning session.

        Raises:
            StorageError: If end_date is before start_date
        """
        if end_date < start_date:
            raise StorageError("Session end date must not be before its start date")

        session = PlanningSession(
            id=SessionId(_new_id()),
            start_date=start_date,
            end_date=end_date,
            created_at=datetime.now(),
        )
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO planning_sessions (id, group_id, start_date, end_date, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    self.group_id,
                    start_date.isoformat(),
                    end_date.isoformat(),
                    session.created_at.isoformat(),
                ),
            )
        return session

    @staticmethod
    def _session_from_row(row: Any) -> PlanningSession:
        return PlanningSession(
            id=SessionId(row["id"]),
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(row["end_date"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def list_sessions(self) -> list[PlanningSession]:
        """List sessions, most recent start date first."""
        rows = self._query(
            """
            SELECT * FROM planning_sessions
            WHERE group_id = ?
            ORDER BY start_date DESC, created_at DESC
            """,
            (self.group_id,),
        )
        return [self._session_from_row(row) for row in rows]

    def get_session(self, session_id: str) -> PlanningSession:
        """
        Raises:
            SessionNotFoundError: If no such session exists in this group
        """
        row = self._query_one(
            "SELECT * FROM planning_sessions WHERE id = ? AND group_id = ?",
            (session_id, self.group_id),
        )
        if not row:
            raise SessionNotFoundError(f"Session '{session_id}' not found")
        return self._session_from_row(row)

    def find_session(self, id_prefix: str) -> PlanningSession:
        """
        Find a session by id or unique id prefix.

        Raises:
            SessionNotFoundError: If nothing or more than one session matches
        """
        prefix = (id_prefix or "").strip()
        if not prefix:
            raise SessionNotFoundError("Session id is required")

        rows = self._query(
            "SELECT * FROM planning_sessions WHERE group_id = ? AND id LIKE ?",
            (self.group_id, f"{prefix}%"),
        )
        if not rows:
            raise SessionNotFoundError(f"Session '{prefix}' not found")
        if len(rows) > 1:
            raise SessionNotFoundError(f"Session id '{prefix}' is ambiguous ({len(rows)} matches)")
        return self._session_from_row(rows[0])

    def add_meal(
        self,
        session_id: str,
        *,
        meal_date: date | None = None,
        name: str | None = None,
        recipe_ids: Iterable[str] = (),
        items: Iterable[MealItem] = (),
    ) -> Meal:
        """Add a meal to a session; without a date it is unscheduled."""
        self.get_session(session_id)
        meal = Meal(
            id=_new_id(),
            session_id=SessionId(session_id),
            meal_date=meal_date,
            name=(name or "").strip() or None,
            recipe_ids=list(recipe_ids),
            items=list(items),
        )
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO meals (id, session_id, date, name, created_at) VALUES (?, ?, ?, ?, ?)",
                (
                    meal.id,
                    meal.session_id,
                    meal_date.isoformat() if meal_date else None,
                    meal.name,
                    datetime.now().isoformat(),
                ),
            )
            conn.executemany(
                "INSERT INTO meal_recipes (meal_id, recipe_id, position) VALUES (?, ?, ?)",
                [(meal.id, recipe_id, position) for position, recipe_id in enumerate(meal.recipe_ids)],
            )
            conn.executemany(
                "INSERT INTO meal_items (meal_id, item_id, amount, position) VALUES (?, ?, ?, ?)",
                [
                    (meal.id, meal_item.item_id, meal_item.amount, position)
                    for position, meal_item in enumerate(meal.items)
                ],
            )
        return meal

    def list_meals(self, session_id: str) -> list[Meal]:
        """List a session's meals: scheduled ones by date, then unscheduled."""
        rows = self._query(
            """
            SELECT * FROM meals
            WHERE session_id = ?
            ORDER BY date IS NULL, date, created_at
            """,
            (session_id,),
        )

        meals = []
        for row in rows:
            recipe_rows = self._query(
                "SELECT recipe_id FROM meal_recipes WHERE meal_id = ? ORDER BY position",
                (row["id"],),
            )
            item_rows = self._query(
                "SELECT item_id, amount FROM meal_items WHERE meal_id = ? ORDER BY position",
                (row["id"],),
            )
            meals.append(
                Meal(
                    id=row["id"],
                    session_id=SessionId(row["session_id"]),
                    meal_date=_parse_date(row["date"]),
                    name=row["name"],
                    recipe_ids=[r["recipe_id"] for r in recipe_rows],
                    items=[MealItem(ItemId(r["item_id"]), r["amount"]) for r in item_rows],
                )
            )
        return meals

    def delete_meal(self, meal_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM meals WHERE id = ?", (meal_id,))
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Per-session selections
    # ------------------------------------------------------------------

    def set_staple_selection(
        self, session_id: str, item_id: str, status: StapleStatus
    ) -> StapleSelection:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO staple_selections (session_id, item_id, status)
                VALUES (?, ?, ?)
                ON CONFLICT(session_id, item_id) DO UPDATE SET status = excluded.status
                """,
                (session_id, item_id, StapleStatus(status).value),
            )
        return StapleSelection(SessionId(session_id), ItemId(item_id), StapleStatus(status))

    def list_staple_selections(self, session_id: str) -> list[StapleSelection]:
        rows = self._query(
            "SELECT * FROM staple_selections WHERE session_id = ?", (session_id,)
        )
        return [
            StapleSelection(SessionId(r["session_id"]), ItemId(r["item_id"]), StapleStatus(r["status"]))
            for r in rows
        ]

    def add_adhoc_item(self, session_id: str, item_id: str, amount: str | None = None) -> AdhocItem:
        """Add a one-off item; adding it again replaces the amount."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO adhoc_items (session_id, item_id, amount)
                VALUES (?, ?, ?)
                ON CONFLICT(session_id, item_id) DO UPDATE SET amount = excluded.amount
                """,
                (session_id, item_id, amount or None),
            )
        return AdhocItem(SessionId(session_id), ItemId(item_id), amount or None)

    def remove_adhoc_item(self, session_id: str, item_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM adhoc_items WHERE session_id = ? AND item_id = ?",
                (session_id, item_id),
            )
        return cursor.rowcount > 0

    def list_adhoc_items(self, session_id: str) -> list[AdhocItem]:
        rows = self._query(
            "SELECT * FROM adhoc_items WHERE session_id = ? ORDER BY rowid", (session_id,)
        )
        return [AdhocItem(SessionId(r["session_id"]), ItemId(r["item_id"]), r["amount"]) for r in rows]

    def add_exclusion(self, session_id: str, item_id: str) -> ItemExclusion:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO item_exclusions (session_id, item_id) VALUES (?, ?)
                ON CONFLICT(session_id, item_id) DO NOTHING
                """,
                (session_id, item_id),
            )
        return ItemExclusion(SessionId(session_id), ItemId(item_id))

    def remove_exclusion(self, session_id: str, item_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM item_exclusions WHERE session_id = ? AND item_id = ?",
                (session_id, item_id),
            )
        return cursor.rowcount > 0

    def list_exclusions(self, session_id: str) -> list[ItemExclusion]:
        rows = self._query(
            "SELECT * FROM item_exclusions WHERE session_id = ?", (session_id,)
        )
        return [ItemExclusion(SessionId(r["session_id"]), ItemId(r["item_id"])) for r in rows]

    # ------------------------------------------------------------------
    # Checklist
    # ------------------------------------------------------------------

    def upsert_checklist_entry(self, session_id: str, item_id: str, checked: bool) -> ChecklistEntry:
        """
        Create or update the checklist row for (session, item).

        A single statement keyed on the unique (session, item) pair, so
        repeated or concurrent calls never produce duplicate rows.

        Raises:
            StorageError: If the session or item does not exist
        """
        now = datetime.now().isoformat()
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO checklist_entries (session_id, item_id, checked, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(session_id, item_id) DO UPDATE SET
                    checked = excluded.checked,
                    updated_at = excluded.updated_at
                """,
                (session_id, item_id, int(checked), now, now),
            )
        row = self._query_one(
            "SELECT * FROM checklist_entries WHERE session_id = ? AND item_id = ?",
            (session_id, item_id),
        )
        return ChecklistEntry.from_row(row)

    def list_checklist_entries(self, session_id: str) -> list[ChecklistEntry]:
        rows = self._query(
            "SELECT * FROM checklist_entries WHERE session_id = ? ORDER BY id", (session_id,)
        )
        return [ChecklistEntry.from_row(row) for row in rows]

    def remove_checklist_entry(self, session_id: str, item_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM checklist_entries WHERE session_id = ? AND item_id = ?",
                (session_id, item_id),
            )
        return cursor.rowcount > 0

    def clear_checklist(self, session_id: str) -> int:
        """Remove all check-off state for a session."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM checklist_entries WHERE session_id = ?", (session_id,)
            )
        return cursor.rowcount
