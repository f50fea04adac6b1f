"""Entity catalog: CSV import, column normalization and the in-memory pool."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from ..config import room_config
from ..models.entity import Entity
from ..utils.categories import normalize_category
from ..utils.nfl_teams import is_nfl_team, normalize_affiliation

logger = logging.getLogger(__name__)

# Header variants from common rankings exports (matched case-insensitively)
CATALOG_COLUMN_MAP = {
    "rank": "rank",
    "rk": "rank",
    "position": "category",
    "pos": "category",
    "player": "name",
    "player name": "name",
    "name": "name",
    "team": "affiliation",
    "bye": "bye",
    "bye week": "bye",
    "auc $": "baseline_value",
    "auction value": "baseline_value",
    "auction $": "baseline_value",
    "proj. pts": "baseline_points",
    "proj pts": "baseline_points",
    "projected points": "baseline_points",
}

# In-memory entity store
_entities: dict[int, Entity] = {}


def get_entities() -> dict[int, Entity]:
    return _entities


def get_entity(entity_id: int) -> Optional[Entity]:
    return _entities.get(entity_id)


def clear_catalog() -> None:
    _entities.clear()


def replace_catalog(entities: list[Entity]) -> dict[int, Entity]:
    """Swap the whole catalog. Partial edits are not supported."""
    ids = [e.id for e in entities]
    if len(ids) != len(set(ids)):
        raise ValueError("Entity ids must be unique")
    _entities.clear()
    _entities.update({e.id: e for e in entities})
    logger.info(f"Catalog replaced with {len(_entities)} entities")
    return _entities


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename known headers to field names, ignoring case and padding."""
    rename = {}
    for col in df.columns:
        key = str(col).replace("\ufeff", "").strip().lower()
        if key in CATALOG_COLUMN_MAP:
            rename[col] = CATALOG_COLUMN_MAP[key]
    return df.rename(columns=rename)


def _as_int(value, default: int = 0) -> int:
    try:
        if pd.isna(value):
            return default
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _as_float(value, default: float = 0.0) -> float:
    try:
        if pd.isna(value):
            return default
        return float(str(value).replace("$", "").strip())
    except (TypeError, ValueError):
        return default


def parse_catalog_csv(csv_content: bytes) -> list[Entity]:
    """Parse a rankings CSV into entities.

    Ids follow row order (1-based). Rows whose category is not draftable are
    dropped, but still consume an id so ids stay stable across re-imports.
    """
    df = pd.read_csv(io.BytesIO(csv_content), dtype=str, skipinitialspace=True)
    df = normalize_columns(df)

    if "name" not in df.columns or "category" not in df.columns:
        raise ValueError("CSV must contain 'Player' and 'Position' columns")

    entities: list[Entity] = []
    skipped = 0
    unknown_teams: set[str] = set()
    for i, (_, row) in enumerate(df.iterrows(), start=1):
        category = normalize_category(row.get("category", ""))
        if category is None:
            skipped += 1
            continue

        name = row.get("name")
        team = row.get("affiliation")
        if pd.notna(team) and not is_nfl_team(team):
            unknown_teams.add(str(team).strip())
        entities.append(Entity(
            id=i,
            category=category,
            name=str(name).strip() if pd.notna(name) else "",
            affiliation=normalize_affiliation(team) if pd.notna(team) else "",
            rank=_as_int(row.get("rank"), default=i),
            bye=_as_int(row.get("bye")),
            baseline_value=_as_float(row.get("baseline_value")),
            baseline_points=_as_float(row.get("baseline_points")),
        ))

    if skipped:
        logger.info(f"Skipped {skipped} rows with unrecognized positions")
    if unknown_teams:
        # kept as-is; free agents and typos both land here
        logger.info(f"Unrecognized team codes: {', '.join(sorted(unknown_teams))}")
    return entities


def load_catalog_csv(csv_content: bytes) -> list[Entity]:
    """Parse *csv_content* and make it the active catalog."""
    entities = parse_catalog_csv(csv_content)
    if not entities:
        raise ValueError("CSV contained no draftable players")
    replace_catalog(entities)
    return entities


def load_sample_catalog(path: Optional[Path] = None) -> int:
    """Load the bundled sample rankings. Called on startup."""
    path = path or room_config.sample_catalog_path
    if not path.exists():
        logger.warning(f"Sample catalog not found at {path}")
        return 0
    entities = load_catalog_csv(path.read_bytes())
    logger.info(f"Loaded {len(entities)} entities from {path.name}")
    return len(entities)


def available_entities(
    drafted: set[int],
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "rank",
) -> list[Entity]:
    """Undrafted entities, optionally filtered by category and a search string."""
    entities = [e for e in _entities.values() if e.id not in drafted]

    if category and category.upper() != "ALL":
        wanted = normalize_category(category)
        entities = [e for e in entities if e.category == wanted]

    if search:
        needle = search.lower()
        entities = [
            e for e in entities
            if needle in e.name.lower() or needle in e.affiliation.lower() or needle in e.category.lower()
        ]

    if sort_by in ("baseline_value", "baseline_points"):
        entities.sort(key=lambda e: getattr(e, sort_by), reverse=True)
    elif sort_by in ("name", "category", "affiliation"):
        entities.sort(key=lambda e: getattr(e, sort_by))
    else:
        entities.sort(key=lambda e: e.rank)

    return entities
