"""Player catalog endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, File, Header, HTTPException, Query, UploadFile

from ..models.draft import FailureReason
from ..services.catalog import available_entities, get_entities, get_entity, parse_catalog_csv
from ..services.draft_session import get_session
from ..services.local_overrides import match_overrides
from ..utils.categories import CATEGORIES

router = APIRouter()


@router.get("/categories")
async def list_categories():
    return CATEGORIES


@router.get("/entities")
async def list_entities(
    category: Optional[str] = Query(None, description="QB, RB, WR, TE, K, DST or ALL"),
    search: Optional[str] = None,
    sort_by: str = Query("rank", description="rank, name, category, affiliation, baseline_value, baseline_points"),
    include_drafted: bool = False,
):
    """List players, by default only those still available."""
    drafted = set() if include_drafted else get_session().state.drafted
    entities = available_entities(drafted, category=category, search=search, sort_by=sort_by)
    return {
        "entities": [e.model_dump() for e in entities],
        "count": len(entities),
    }


@router.get("/entities/{entity_id}")
async def get_entity_detail(entity_id: int):
    entity = get_entity(entity_id)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"Entity '{entity_id}' not found")
    return {**entity.model_dump(), "drafted": entity_id in get_session().state.drafted}


@router.post("/upload")
async def upload_catalog(file: UploadFile = File(...), x_host_token: Optional[str] = Header(None)):
    """Replace the player catalog with a rankings CSV (host only)."""
    content = await file.read()
    try:
        entities = parse_catalog_csv(content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not entities:
        raise HTTPException(status_code=400, detail="CSV contained no draftable players")

    result = get_session().replace_catalog(entities, token=x_host_token)
    if not result.ok:
        status = 403 if result.reason == FailureReason.NOT_AUTHORIZED else 400
        raise HTTPException(status_code=status, detail=result.model_dump(mode="json"))
    return {
        "message": f"Loaded {len(entities)} players from {file.filename}",
        "entity_count": len(entities),
    }


@router.post("/overrides")
async def upload_overrides(file: UploadFile = File(...)):
    """Match a personal rankings CSV to the catalog.

    The overlay is returned to the caller only; the shared catalog and draft
    are left untouched.
    """
    content = await file.read()
    try:
        result = match_overrides(content, list(get_entities().values()))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if result["matched"] == 0:
        raise HTTPException(status_code=400, detail={"message": "No players matched", "errors": result["errors"][:5]})
    return {
        "overrides": [o.model_dump() for o in result["overrides"]],
        "matched": result["matched"],
        "errors": result["errors"],
    }
