"""Personal value overlays matched onto the shared catalog.

An observer can upload their own rankings CSV. Rows are matched to catalog
entities and returned as ``EntityOverride`` records; nothing here writes to
the catalog or the draft state.
"""

from __future__ import annotations

import io
import logging
from typing import Optional

import pandas as pd
from thefuzz import fuzz, process

from ..models.entity import Entity, EntityOverride
from ..utils.categories import normalize_category
from ..utils.nfl_teams import normalize_affiliation
from .catalog import normalize_columns

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["rank", "category", "name", "affiliation", "bye", "baseline_value", "baseline_points"]


def _suggest(label: str, choices: dict[int, str], threshold: int = 80) -> Optional[int]:
    """Return the closest entity id for *label*, or None.

    ``choices`` maps entity_id -> "name affiliation category".
    """
    if not choices:
        return None
    result = process.extractOne(label, choices, scorer=fuzz.token_sort_ratio, score_cutoff=threshold)
    if result is None:
        return None
    _matched, _score, entity_id = result
    return entity_id


def _find_exact(entities: list[Entity], name: str, affiliation: str, category: str) -> Optional[Entity]:
    if category == "DST":
        # Defenses go by team, names vary between sources
        return next(
            (e for e in entities if e.category == "DST" and e.affiliation.lower() == affiliation.lower()),
            None,
        )
    return next(
        (
            e for e in entities
            if e.name.lower() == name.lower()
            and e.affiliation.lower() == affiliation.lower()
            and e.category == category
        ),
        None,
    )


def _cell(row: pd.Series, key: str) -> str:
    value = row.get(key)
    return str(value).strip() if pd.notna(value) else ""


def match_overrides(csv_content: bytes, entities: list[Entity]) -> dict:
    """Match a personal rankings CSV to *entities*.

    Returns ``{"overrides": [EntityOverride], "matched": int, "errors": [str]}``.
    Unmatched rows are reported (with a suggestion when one is close) and
    skipped. Raises ValueError when required columns are missing.
    """
    df = pd.read_csv(io.BytesIO(csv_content), dtype=str, skipinitialspace=True)
    df = normalize_columns(df)

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(
            f"Missing required columns: {', '.join(missing)}. "
            "Expected: RANK, POSITION, PLAYER, TEAM, BYE, AUC $, and PROJ. PTS"
        )

    choices = {e.id: f"{e.name} {e.affiliation} {e.category}" for e in entities}
    by_id = {e.id: e for e in entities}

    overrides: list[EntityOverride] = []
    errors: list[str] = []

    for i, (_, row) in enumerate(df.iterrows(), start=2):  # row 1 is the header
        name = _cell(row, "name")
        affiliation = normalize_affiliation(_cell(row, "affiliation"))
        category = normalize_category(_cell(row, "category")) or _cell(row, "category").upper()

        entity = _find_exact(entities, name, affiliation, category)
        if entity is None:
            label = f'Row {i}: "{name}" ({affiliation}, {category}) not found'
            if category == "DST":
                errors.append(f"{label}. No {affiliation} defense in the catalog.")
                continue
            suggestion = _suggest(f"{name} {affiliation} {category}", choices)
            if suggestion is not None:
                hint = by_id[suggestion]
                errors.append(f'{label}. Did you mean "{hint.name}" ({hint.affiliation}, {hint.category})?')
            else:
                errors.append(f"{label} in the catalog.")
            continue

        try:
            overrides.append(EntityOverride(
                entity_id=entity.id,
                local_rank=int(float(_cell(row, "rank"))) if _cell(row, "rank") else None,
                local_value=float(_cell(row, "baseline_value").replace("$", "")) if _cell(row, "baseline_value") else None,
                local_points=float(_cell(row, "baseline_points")) if _cell(row, "baseline_points") else None,
            ))
        except ValueError:
            errors.append(f'Row {i}: invalid numbers for "{name}"')

    logger.info(f"Matched {len(overrides)} override rows, {len(errors)} skipped")
    return {"overrides": overrides, "matched": len(overrides), "errors": errors}
