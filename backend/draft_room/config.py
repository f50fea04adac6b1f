"""Draft room configuration: settings, roster template and room options."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class RosterTemplate(BaseModel):
    """Starting lineup slot counts. Bench slots fill the rest of the roster."""
    QB: int = 1
    WR: int = 3
    RB: int = 2
    TE: int = 1
    FLEX: int = 1  # WR/RB/TE
    K: int = 1
    DST: int = 1

    flex_eligible: list[str] = ["WR", "RB", "TE"]


class DraftSettings(BaseModel):
    total_budget: int = Field(200, ge=0)
    roster_size: int = Field(16, ge=1)
    bidding_rounds: int = Field(5, ge=0)
    pick_timer: int = Field(90, ge=1)  # seconds
    participant_count: int = Field(10, ge=1)


class RoomConfig(BaseModel):
    room_id: str = "demo-room"
    league_name: str = "Draft Room"

    # None leaves every command open (local single-user mode)
    host_token: Optional[str] = None

    roster: RosterTemplate = RosterTemplate()
    settings: DraftSettings = DraftSettings()

    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    audit_buffer_size: int = 500
    snapshot_path: Path = Path(__file__).resolve().parent.parent / "data" / "draft_state" / "current.json"
    sample_catalog_path: Path = Path(__file__).resolve().parent / "data" / "sample_catalog.csv"


# Default room config singleton
room_config = RoomConfig()
