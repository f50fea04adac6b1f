"""Draft endpoints with WebSocket broadcast."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query, WebSocket
from pydantic import BaseModel, Field

from ..config import DraftSettings
from ..models.draft import CommandResult, FailureReason
from ..services.draft_session import get_session

router = APIRouter()

# WebSocket connections list for broadcasting
_ws_connections: list = []


class PickRequest(BaseModel):
    entity_id: int
    participant_id: int
    amount: int = 0


class SelectRequest(BaseModel):
    entity_id: int


class BidRequest(BaseModel):
    participant_id: int
    amount: int


class ParticipantUpdate(BaseModel):
    name: Optional[str] = None
    owner: Optional[str] = None


class TickRequest(BaseModel):
    seconds: int = Field(1, ge=0)


async def _broadcast(message: dict) -> None:
    """Broadcast a message to all connected WebSocket clients."""
    for ws in _ws_connections.copy():
        try:
            await ws.send_json(message)
        except Exception:
            if ws in _ws_connections:
                _ws_connections.remove(ws)


async def _respond(action: str, result: CommandResult) -> dict:
    """Turn a command result into a response, broadcasting accepted changes."""
    if not result.ok:
        status = 403 if result.reason == FailureReason.NOT_AUTHORIZED else 400
        raise HTTPException(status_code=status, detail=result.model_dump(mode="json"))

    session = get_session()
    state = session.snapshot()
    if result.changed:
        await _broadcast({"type": action, "data": state})
    return {"result": result.model_dump(mode="json"), "state": state}


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

@router.get("/state")
async def get_draft_state():
    """Get full draft snapshot."""
    session = get_session()
    return {**session.snapshot(), "persistence_pending": session.persistence_pending}


@router.get("/participants/{participant_id}/roster")
async def get_participant_roster(participant_id: int):
    """Get a participant's roster slots, derived from their picks."""
    session = get_session()
    try:
        slots = session.roster(participant_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    participant = session.state.get_participant(participant_id)
    return {
        "participant_id": participant_id,
        "name": participant.name,
        "remaining_budget": participant.remaining_budget,
        "slots": [s.model_dump() for s in slots],
    }


@router.get("/participants/{participant_id}/eligibility")
async def get_participant_eligibility(participant_id: int):
    try:
        elig = get_session().eligibility(participant_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return elig.model_dump()


@router.get("/eligibility")
async def get_all_eligibility():
    """Per-participant eligibility plus the overall bid ceiling."""
    session = get_session()
    return {
        "participants": [e.model_dump() for e in session.all_eligibility()],
        "bid_ceiling": session.bid_ceiling(),
    }


@router.get("/audit")
async def get_audit_entries(n: int = Query(10, ge=1, le=500)):
    """Most recent audit entries, newest first."""
    return get_session().audit.recent(n)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@router.post("/select")
async def select_entity(req: SelectRequest, x_host_token: Optional[str] = Header(None)):
    """Put a player up for bidding."""
    return await _respond("select_entity", get_session().select_entity(req.entity_id, token=x_host_token))


@router.post("/bid")
async def place_bid(req: BidRequest, x_host_token: Optional[str] = Header(None)):
    return await _respond("place_bid", get_session().place_bid(req.participant_id, req.amount, token=x_host_token))


@router.post("/bid/complete")
async def complete_bid(x_host_token: Optional[str] = Header(None)):
    """Award the selected player to the leading bidder (or the team on the clock)."""
    return await _respond("draft_pick", get_session().complete_bid(token=x_host_token))


@router.post("/bid/cancel")
async def cancel_selection(x_host_token: Optional[str] = Header(None)):
    return await _respond("cancel_selection", get_session().cancel_selection(token=x_host_token))


@router.post("/pick")
async def commit_pick(req: PickRequest, x_host_token: Optional[str] = Header(None)):
    """Record a pick and broadcast via WebSocket."""
    result = get_session().commit_pick(req.entity_id, req.participant_id, req.amount, token=x_host_token)
    return await _respond("draft_pick", result)


@router.post("/undo")
async def undo_last_pick(x_host_token: Optional[str] = Header(None)):
    """Undo the most recent pick."""
    return await _respond("undo_pick", get_session().undo_last_pick(token=x_host_token))


@router.post("/reset")
async def reset_draft(x_host_token: Optional[str] = Header(None)):
    return await _respond("reset_draft", get_session().reset_draft(token=x_host_token))


@router.put("/settings")
async def update_settings(settings: DraftSettings, x_host_token: Optional[str] = Header(None)):
    """Replace draft settings. Only allowed before the first pick."""
    return await _respond("settings_update", get_session().update_settings(settings, token=x_host_token))


@router.put("/participants/{participant_id}")
async def update_participant(participant_id: int, body: ParticipantUpdate, x_host_token: Optional[str] = Header(None)):
    result = get_session().update_participant(participant_id, name=body.name, owner=body.owner, token=x_host_token)
    return await _respond("update_participant", result)


@router.post("/clock/start")
async def start_clock(x_host_token: Optional[str] = Header(None)):
    return await _respond("start_timer", get_session().start_clock(token=x_host_token))


@router.post("/clock/pause")
async def pause_clock(x_host_token: Optional[str] = Header(None)):
    return await _respond("pause_timer", get_session().pause_clock(token=x_host_token))


@router.post("/clock/tick")
async def tick_clock(req: TickRequest, x_host_token: Optional[str] = Header(None)):
    """Advance the pick clock; driven by an external tick source."""
    return await _respond("timer_tick", get_session().tick(req.seconds, token=x_host_token))


@router.post("/flush")
async def flush_state(x_host_token: Optional[str] = Header(None)):
    """Retry writing the full snapshot to the state store."""
    session = get_session()
    if not session.is_host(x_host_token):
        raise HTTPException(status_code=403, detail="Only the host can do that")
    return {"persisted": session.flush()}


@router.post("/load")
async def load_state(x_host_token: Optional[str] = Header(None)):
    """Restore the draft from the state store."""
    session = get_session()
    if not session.is_host(x_host_token):
        raise HTTPException(status_code=403, detail="Only the host can do that")
    try:
        session.load_from_store()
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))
    state = session.snapshot()
    await _broadcast({"type": "load", "data": state})
    return state


async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time draft updates."""
    await websocket.accept()
    _ws_connections.append(websocket)
    try:
        await websocket.send_json({"type": "snapshot", "data": get_session().snapshot()})
        while True:
            await websocket.receive_text()  # Keep alive
    except Exception:
        if websocket in _ws_connections:
            _ws_connections.remove(websocket)
