"""Entity (player) and observer overlay models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class Entity(BaseModel):
    id: int
    category: str  # QB / RB / WR / TE / K / DST
    name: str
    affiliation: str = ""
    rank: int = 0
    bye: int = 0

    baseline_value: float = 0.0  # auction dollars
    baseline_points: float = 0.0


class EntityOverride(BaseModel):
    """Personal values an observer keeps for an entity. Never read by the draft engine."""
    entity_id: int
    local_rank: Optional[int] = None
    local_value: Optional[float] = None
    local_points: Optional[float] = None
