"""Turn order for the turn-taking (snake) phase."""

from __future__ import annotations

from typing import Optional

from ..models.participant import Participant


def tiebreak_key(participant: Participant) -> int:
    """Deterministic stand-in for a coin flip between equal budgets.

    Depends only on id and the lengths of name and owner so every observer
    derives the same order from the same snapshot.
    """
    return (participant.id * 31 + len(participant.name) * 17 + len(participant.owner) * 13) % 1000


def compute_order(participants: list[Participant]) -> list[int]:
    """Return participant ids sorted by remaining budget, highest first."""
    ranked = sorted(
        participants,
        key=lambda p: (-p.remaining_budget, tiebreak_key(p), p.id),
    )
    return [p.id for p in ranked]


def active_participant(
    order: list[int],
    current_round: int,
    current_pick: int,
    bidding_rounds: int,
    participant_count: int,
) -> Optional[int]:
    """Return the participant on the clock, or None when there is no order.

    Odd turn-taking rounds run the order forwards, even rounds backwards.
    """
    if not order or participant_count <= 0:
        return None

    turn_round = current_round - bidding_rounds  # 1-based
    index_in_round = (current_pick - 1) % participant_count

    if turn_round % 2 == 0:
        index = len(order) - 1 - index_in_round
    else:
        index = index_in_round

    index = ((index % len(order)) + len(order)) % len(order)
    return order[index]
