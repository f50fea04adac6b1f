"""Participant (team) model."""

from __future__ import annotations

from pydantic import BaseModel


class Participant(BaseModel):
    id: int
    name: str
    owner: str
    remaining_budget: int
    acquired: list[int] = []  # entity ids in acquisition order
    draft_position: int = 0


def default_participant(index: int, budget: int) -> Participant:
    """Build the placeholder participant for 1-based *index*."""
    return Participant(
        id=index,
        name=f"Team {index}",
        owner=f"Owner {index}",
        remaining_budget=budget,
        draft_position=index,
    )
