"""Configuration for Meal Shopper."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# App directories
APP_NAME = "meal-shopper"
CONFIG_DIR = Path.home() / f".{APP_NAME}"
DB_FILE = CONFIG_DIR / "shopping.db"

# Ensure config directory exists
CONFIG_DIR.mkdir(parents=True, exist_ok=True)

# Tenant scope for items, recipes and sessions
DEFAULT_GROUP = "default"

DEFAULT_SORT_MODE = "store-order"
SORT_MODES = ("store-order", "alphabetical")

DEFAULT_LOG_LEVEL = "WARNING"


def get_db_path() -> Path:
    """Get the database path, honouring MEAL_SHOPPER_DB."""
    override = os.getenv("MEAL_SHOPPER_DB")
    if override:
        return Path(override).expanduser()
    return DB_FILE


def get_group_id() -> str:
    """Get the item/recipe scope, honouring MEAL_SHOPPER_GROUP."""
    return os.getenv("MEAL_SHOPPER_GROUP") or DEFAULT_GROUP


def get_sort_mode() -> str:
    """Get the default checklist sort mode.

    Unknown values in MEAL_SHOPPER_SORT fall back to store order.
    """
    mode = (os.getenv("MEAL_SHOPPER_SORT") or DEFAULT_SORT_MODE).strip().lower()
    if mode not in SORT_MODES:
        return DEFAULT_SORT_MODE
    return mode


def get_log_level() -> str:
    """Get the log level name from MEAL_SHOPPER_LOG_LEVEL."""
    return (os.getenv("MEAL_SHOPPER_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
