"""Draft progression: pick commit, undo, reset and the bidding controls.

Every function takes the current ``DraftState`` and returns
``(new_state, CommandResult)``. The input state is never mutated and nothing
here raises; a rejected command returns the input state unchanged together
with a failure reason.
"""

from __future__ import annotations

from typing import Optional

from ..config import DraftSettings
from ..models.draft import (
    CommandResult,
    DraftState,
    FailureReason,
    PickClock,
    PickRecord,
    Phase,
    Selection,
)
from ..models.participant import Participant, default_participant
from .budget_engine import eligibility
from .turn_order import active_participant, compute_order

Transition = tuple[DraftState, CommandResult]


def new_draft(settings: DraftSettings, participants: Optional[list[Participant]] = None) -> DraftState:
    """Create the initial state: round 1, pick 1, full budgets, empty history."""
    if participants is None:
        participants = [
            default_participant(i + 1, settings.total_budget)
            for i in range(settings.participant_count)
        ]
    state = DraftState(
        settings=settings.model_copy(update={"participant_count": len(participants)}),
        participants=[p.model_copy(deep=True) for p in participants],
        clock=PickClock(time_remaining=settings.pick_timer, running=False),
    )
    _refresh_phase(state, recompute_order=True)
    return state


# ---------------------------------------------------------------------------
# Derived state
# ---------------------------------------------------------------------------

def _refresh_phase(state: DraftState, recompute_order: bool) -> None:
    """Re-derive phase, turn order and the active participant in place.

    The order is computed when turn-taking is first entered, and again
    whenever *recompute_order* is set (after undo, budgets may differ).
    """
    bidding_rounds = state.settings.bidding_rounds

    if state.current_round > bidding_rounds:
        if state.phase != Phase.TURN_TAKING or recompute_order or not state.turn_order:
            state.turn_order = compute_order(state.participants)
        state.phase = Phase.TURN_TAKING
        state.active_participant = active_participant(
            state.turn_order,
            state.current_round,
            state.current_pick,
            bidding_rounds,
            state.participant_count,
        )
    else:
        state.phase = Phase.BIDDING
        state.turn_order = []
        state.active_participant = None


def _reset_clock(state: DraftState, running: bool) -> None:
    state.clock = PickClock(time_remaining=state.settings.pick_timer, running=running)


# ---------------------------------------------------------------------------
# Commit / undo / reset
# ---------------------------------------------------------------------------

def validate_pick(state: DraftState, entity_id: int, participant_id: int, amount: int) -> Optional[CommandResult]:
    """Return a failure result if the pick is illegal, else None."""
    if entity_id in state.drafted:
        return CommandResult.failure(FailureReason.ALREADY_DRAFTED, f"Entity {entity_id} is already drafted")

    participant = state.get_participant(participant_id)
    if participant is None:
        return CommandResult.failure(FailureReason.NOT_ELIGIBLE, f"Participant {participant_id} not found")

    if state.phase == Phase.BIDDING:
        elig = eligibility(participant, state.history, state.settings.bidding_rounds, state.current_round)
        if not elig.can_bid:
            return CommandResult.failure(
                FailureReason.NOT_ELIGIBLE,
                f"{participant.name} has no bidding picks left",
            )
        if amount < 1:
            return CommandResult.failure(FailureReason.INVALID_AMOUNT, "Bids start at $1")
        if amount > min(elig.max_bid, participant.remaining_budget):
            return CommandResult.failure(
                FailureReason.EXCEEDS_BUDGET,
                f"${amount} exceeds {participant.name}'s max bid of ${elig.max_bid}",
            )
    elif participant_id != state.active_participant:
        return CommandResult.failure(
            FailureReason.NOT_ON_THE_CLOCK,
            f"{participant.name} is not on the clock",
        )

    return None


def commit_pick(state: DraftState, entity_id: int, participant_id: int, amount: int = 0) -> Transition:
    """Award *entity_id* to *participant_id* and advance to the next pick."""
    rejection = validate_pick(state, entity_id, participant_id, amount)
    if rejection is not None:
        return state, rejection

    new = state.model_copy(deep=True)
    bidding = new.phase == Phase.BIDDING
    spent = amount if bidding else 0

    new.history.append(PickRecord(
        round=new.current_round,
        pick=new.current_pick,
        entity_id=entity_id,
        participant_id=participant_id,
        amount=spent,
    ))

    participant = new.get_participant(participant_id)
    participant.acquired.append(entity_id)
    participant.remaining_budget -= spent

    new.drafted.add(entity_id)
    new.current_pick += 1
    if (new.current_pick - 1) % new.participant_count == 0:
        new.current_round += 1

    _refresh_phase(new, recompute_order=False)

    new.selection = Selection()
    _reset_clock(new, running=new.phase == Phase.TURN_TAKING)

    return new, CommandResult.success(
        f"Pick {state.current_pick}: entity {entity_id} to {participant.name}"
        + (f" for ${spent}" if bidding else "")
    )


def undo_last_pick(state: DraftState) -> Transition:
    """Reverse the most recent pick. A no-op on an empty history."""
    if not state.history:
        return state, CommandResult.success("Nothing to undo", changed=False)

    new = state.model_copy(deep=True)
    last = new.history.pop()

    participant = new.get_participant(last.participant_id)
    if participant is not None:
        if last.entity_id in participant.acquired:
            # remove the most recent occurrence
            idx = len(participant.acquired) - 1 - participant.acquired[::-1].index(last.entity_id)
            participant.acquired.pop(idx)
        if last.amount > 0:
            participant.remaining_budget += last.amount

    new.drafted.discard(last.entity_id)
    new.current_round = last.round
    new.current_pick = last.pick

    _refresh_phase(new, recompute_order=True)

    new.selection = Selection()
    _reset_clock(new, running=False)

    return new, CommandResult.success(f"Undid pick {last.pick}: entity {last.entity_id}")


def reset_draft(state: DraftState) -> Transition:
    """Clear every pick, keeping settings and participant identities."""
    participants = [
        p.model_copy(update={"remaining_budget": state.settings.total_budget, "acquired": []}, deep=True)
        for p in state.participants
    ]
    new = new_draft(state.settings, participants)
    return new, CommandResult.success(f"Draft reset ({state.pick_count} picks cleared)", changed=True)


def update_settings(state: DraftState, settings: DraftSettings) -> Transition:
    """Apply new settings: reset budgets and grow or shrink the participant list.

    Callers must not do this once picks exist.
    """
    participants = [
        p.model_copy(update={"remaining_budget": settings.total_budget}, deep=True)
        for p in state.participants[:settings.participant_count]
    ]
    for i in range(len(participants), settings.participant_count):
        participants.append(default_participant(i + 1, settings.total_budget))

    new = state.model_copy(deep=True)
    new.settings = settings.model_copy()
    new.participants = participants
    _refresh_phase(new, recompute_order=True)
    if not new.clock.running:
        new.clock.time_remaining = settings.pick_timer

    return new, CommandResult.success("Settings updated")


def update_participant(
    state: DraftState,
    participant_id: int,
    name: Optional[str] = None,
    owner: Optional[str] = None,
) -> Transition:
    """Rename a participant. Only allowed before the first pick.

    Names and owners feed the turn-order tiebreak; changing them mid-draft
    would let an undo recompute a different order.
    """
    if state.get_participant(participant_id) is None:
        return state, CommandResult.failure(FailureReason.NOT_ELIGIBLE, f"Participant {participant_id} not found")
    if state.history:
        return state, CommandResult.failure(FailureReason.SETTINGS_LOCKED, "Participants are locked once picks exist")

    new = state.model_copy(deep=True)
    participant = new.get_participant(participant_id)
    if name is not None:
        participant.name = name
    if owner is not None:
        participant.owner = owner
    return new, CommandResult.success(f"Updated participant {participant_id}")


# ---------------------------------------------------------------------------
# Selection and bidding
# ---------------------------------------------------------------------------

def select_entity(state: DraftState, entity_id: int) -> Transition:
    """Put an entity up for bidding (or consideration in turn-taking)."""
    if entity_id in state.drafted:
        return state, CommandResult.failure(FailureReason.ALREADY_DRAFTED, f"Entity {entity_id} is already drafted")

    new = state.model_copy(deep=True)
    new.selection = Selection(entity_id=entity_id)
    _reset_clock(new, running=True)
    return new, CommandResult.success(f"Selected entity {entity_id}")


def place_bid(state: DraftState, participant_id: int, amount: int) -> Transition:
    """Record *participant_id* as the leading bidder at *amount*."""
    if state.selection.entity_id is None:
        return state, CommandResult.failure(FailureReason.NO_SELECTION, "No entity is up for bidding")
    if state.phase != Phase.BIDDING:
        return state, CommandResult.failure(FailureReason.WRONG_PHASE, "Bidding is closed")

    participant = state.get_participant(participant_id)
    if participant is None:
        return state, CommandResult.failure(FailureReason.NOT_ELIGIBLE, f"Participant {participant_id} not found")

    elig = eligibility(participant, state.history, state.settings.bidding_rounds, state.current_round)
    if not elig.can_bid:
        return state, CommandResult.failure(FailureReason.NOT_ELIGIBLE, f"{participant.name} cannot bid")
    if amount < 1:
        return state, CommandResult.failure(FailureReason.INVALID_AMOUNT, "Bids start at $1")
    if amount > min(elig.max_bid, participant.remaining_budget):
        return state, CommandResult.failure(
            FailureReason.EXCEEDS_BUDGET,
            f"${amount} exceeds {participant.name}'s max bid of ${elig.max_bid}",
        )

    new = state.model_copy(deep=True)
    new.selection.current_bid = amount
    new.selection.leader_id = participant_id
    new.clock.time_remaining = new.settings.pick_timer
    return new, CommandResult.success(f"{participant.name} bids ${amount}")


def complete_bid(state: DraftState) -> Transition:
    """Commit the current selection through the ordinary commit path.

    In bidding the leader wins at the current bid; in turn-taking the
    selection goes to the participant on the clock.
    """
    selection = state.selection
    if selection.entity_id is None:
        return state, CommandResult.failure(FailureReason.NO_SELECTION, "No entity selected")

    if state.phase == Phase.BIDDING:
        if selection.leader_id is None:
            return state, CommandResult.failure(FailureReason.NO_SELECTION, "No bids placed")
        return commit_pick(state, selection.entity_id, selection.leader_id, selection.current_bid)

    if state.active_participant is None:
        return state, CommandResult.failure(FailureReason.NOT_ON_THE_CLOCK, "Nobody is on the clock")
    return commit_pick(state, selection.entity_id, state.active_participant)


def cancel_selection(state: DraftState) -> Transition:
    if state.selection.entity_id is None:
        return state, CommandResult.success("Nothing selected", changed=False)
    new = state.model_copy(deep=True)
    new.selection = Selection()
    return new, CommandResult.success("Selection cancelled")


# ---------------------------------------------------------------------------
# Pick clock
# ---------------------------------------------------------------------------

def start_clock(state: DraftState) -> Transition:
    if state.clock.running:
        return state, CommandResult.success("Clock already running", changed=False)
    new = state.model_copy(deep=True)
    if new.clock.time_remaining <= 0:
        new.clock.time_remaining = new.settings.pick_timer
    new.clock.running = True
    return new, CommandResult.success("Clock started")


def pause_clock(state: DraftState) -> Transition:
    if not state.clock.running:
        return state, CommandResult.success("Clock already paused", changed=False)
    new = state.model_copy(deep=True)
    new.clock.running = False
    return new, CommandResult.success("Clock paused")


def tick(state: DraftState, seconds: int = 1) -> Transition:
    """Advance the clock. Expiry pauses it exactly like ``pause_clock``."""
    if not state.clock.running:
        return state, CommandResult.success("Clock not running", changed=False)

    new = state.model_copy(deep=True)
    new.clock.time_remaining = max(0, new.clock.time_remaining - max(0, seconds))
    if new.clock.time_remaining > 0:
        return new, CommandResult.success(f"{new.clock.time_remaining}s remaining")

    paused, _ = pause_clock(new)
    return paused, CommandResult.success("Time expired")
