"""Item catalog helpers: name normalisation, autocomplete and staples."""

from collections.abc import Iterable

from rapidfuzz import fuzz

from .models import Item


def normalize_item_name(name: str | None) -> str:
    """
    Normalize an item name to its catalog form.

    Lower-cases, trims and collapses inner whitespace so that "  Olive  Oil"
    and "olive oil" resolve to the same item.
    """
    if not name:
        return ""
    return " ".join(name.lower().split())


def fuzzy_score(query: str, name: str) -> float:
    """Calculate fuzzy similarity (0-100) between a typed query and an item name.

    Combines token-set matching (word order, extra words) with partial
    matching (substrings and prefixes), weighted towards tokens.
    """
    token_score = fuzz.token_set_ratio(query, name)
    partial_score = fuzz.partial_ratio(query, name)
    return token_score * 0.6 + partial_score * 0.4


def suggest_items(
    query: str,
    items: Iterable[Item],
    limit: int = 5,
    min_score: float = 60.0,
) -> list[Item]:
    """
    Suggest catalog items for a partially typed name.

    Exact matches come first, then prefix matches, then the remaining items
    by fuzzy score. Ties are broken alphabetically.

    Args:
        query: Text typed so far
        items: Catalog items to search
        limit: Maximum suggestions
        min_score: Minimum fuzzy score for non-prefix matches

    Returns:
        Up to ``limit`` matching items
    """
    normalized = normalize_item_name(query)
    if not normalized or limit <= 0:
        return []

    ranked: list[tuple[int, float, str, Item]] = []
    for item in items:
        if item.name == normalized:
            ranked.append((0, 0.0, item.name, item))
        elif item.name.startswith(normalized):
            ranked.append((1, 0.0, item.name, item))
        else:
            score = fuzzy_score(normalized, item.name)
            if score >= min_score:
                ranked.append((2, -score, item.name, item))

    ranked.sort(key=lambda r: (r[0], r[1], r[2]))
    return [r[3] for r in ranked[:limit]]


def staple_items(items: Iterable[Item]) -> list[Item]:
    """Get the catalog's staple items sorted by name."""
    return sorted((item for item in items if item.is_staple), key=lambda i: i.name)
