"""Entity categories and the roster slots they can fill."""

from __future__ import annotations

from typing import Optional

CATEGORIES: dict[str, str] = {
    "QB": "Quarterbacks",
    "RB": "Running Backs",
    "WR": "Wide Receivers",
    "TE": "Tight Ends",
    "K": "Kickers",
    "DST": "Defense/Special Teams",
}

# Alternate spellings seen in rankings exports
CATEGORY_ALIASES: dict[str, str] = {
    "D": "DST",
    "DEF": "DST",
    "D/ST": "DST",
    "DST": "DST",
    "PK": "K",
}


def normalize_category(raw: str) -> Optional[str]:
    """Normalize a category string. Returns None if it is not a draftable category."""
    if not raw:
        return None
    value = str(raw).strip().upper()
    value = CATEGORY_ALIASES.get(value, value)
    return value if value in CATEGORIES else None


def is_valid_category(category: str) -> bool:
    return category in CATEGORIES
