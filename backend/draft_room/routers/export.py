"""Export endpoints for the draft board and team rosters."""

from __future__ import annotations

import io

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

import pandas as pd

from ..services.catalog import get_entity
from ..services.draft_session import get_session

router = APIRouter()

BOARD_COLUMNS = ["Round", "Pick", "Player", "Position", "NFL Team", "Team", "Owner", "Price"]
ROSTER_COLUMNS = ["Team", "Owner", "Slot", "Player", "Position", "NFL Team", "Price"]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _download(df: pd.DataFrame, fmt: str, name: str, sheet_name: str) -> StreamingResponse:
    fmt = fmt.lower()
    if fmt not in ("csv", "xlsx"):
        raise HTTPException(status_code=400, detail=f"Unsupported format '{fmt}'. Use 'csv' or 'xlsx'")

    if fmt == "xlsx":
        buf = io.BytesIO()
        with pd.ExcelWriter(buf, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name=sheet_name)
        media_type = XLSX_MEDIA_TYPE
    else:
        buf = io.StringIO()
        df.to_csv(buf, index=False)
        media_type = "text/csv"

    buf.seek(0)
    return StreamingResponse(
        buf,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={name}.{fmt}"},
    )


@router.get("/draft-board")
async def export_draft_board(
    format: str = Query("csv", description="Export format: 'csv' or 'xlsx'"),
):
    """Export every pick in draft order.

    Columns: Round, Pick, Player, Position, NFL Team, Team, Owner, Price
    """
    df = pd.DataFrame(get_session().draft_board(), columns=BOARD_COLUMNS)
    return _download(df, format, "draft_board", "Draft Board")


@router.get("/rosters")
async def export_rosters(
    format: str = Query("csv", description="Export format: 'csv' or 'xlsx'"),
):
    """Export every team's filled roster slots, one row per player."""
    session = get_session()
    prices = {pick.entity_id: pick.amount for pick in session.state.history}

    rows = []
    for participant in session.state.participants:
        for slot in session.roster(participant.id):
            entity = get_entity(slot.entity_id) if slot.entity_id is not None else None
            if entity is None:
                continue
            rows.append({
                "Team": participant.name,
                "Owner": participant.owner,
                "Slot": slot.label,
                "Player": entity.name,
                "Position": entity.category,
                "NFL Team": entity.affiliation,
                "Price": prices.get(entity.id, 0),
            })

    df = pd.DataFrame(rows, columns=ROSTER_COLUMNS)
    return _download(df, format, "rosters", "Rosters")
