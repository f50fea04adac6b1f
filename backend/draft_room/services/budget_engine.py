"""Bid eligibility and maximum legal bid during the bidding phase."""

from __future__ import annotations

from ..models.draft import BidEligibility, PickRecord
from ..models.participant import Participant


def bidding_picks_made(participant_id: int, history: list[PickRecord], bidding_rounds: int) -> int:
    """Count picks this participant won during bidding rounds."""
    return sum(
        1 for pick in history
        if pick.participant_id == participant_id and pick.round <= bidding_rounds
    )


def eligibility(
    participant: Participant,
    history: list[PickRecord],
    bidding_rounds: int,
    current_round: int,
) -> BidEligibility:
    """Compute whether *participant* may bid and how much.

    $1 is held back for every still-required bidding pick except the one
    being bid on, so a participant can always finish its bidding quota:

        picks_still_needed = bidding_rounds - bidding_picks_made
        max_bid = max(1, remaining_budget - max(0, picks_still_needed - 1))
    """
    made = bidding_picks_made(participant.id, history, bidding_rounds)
    still_needed = bidding_rounds - made

    if current_round > bidding_rounds or still_needed <= 0:
        return BidEligibility(
            participant_id=participant.id,
            can_bid=False,
            max_bid=0,
            picks_still_needed=max(0, still_needed),
        )

    dollars_to_reserve = max(0, still_needed - 1)
    max_bid = max(1, participant.remaining_budget - dollars_to_reserve)

    return BidEligibility(
        participant_id=participant.id,
        can_bid=made < bidding_rounds,
        max_bid=max_bid,
        picks_still_needed=still_needed,
    )


def all_eligibility(
    participants: list[Participant],
    history: list[PickRecord],
    bidding_rounds: int,
    current_round: int,
) -> list[BidEligibility]:
    return [eligibility(p, history, bidding_rounds, current_round) for p in participants]


def bid_ceiling(
    participants: list[Participant],
    history: list[PickRecord],
    bidding_rounds: int,
    current_round: int,
) -> int:
    """Highest bid any currently eligible participant could legally make (0 if none)."""
    eligible = [
        e.max_bid
        for e in all_eligibility(participants, history, bidding_rounds, current_round)
        if e.can_bid
    ]
    return max(eligible, default=0)
