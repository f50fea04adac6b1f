"""Draft state models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..config import DraftSettings
from .participant import Participant


class Phase(str, Enum):
    BIDDING = "bidding"
    TURN_TAKING = "turn_taking"


class FailureReason(str, Enum):
    ALREADY_DRAFTED = "already_drafted"
    NOT_ELIGIBLE = "not_eligible"
    NOT_ON_THE_CLOCK = "not_on_the_clock"
    EXCEEDS_BUDGET = "exceeds_budget"
    INVALID_AMOUNT = "invalid_amount"
    UNKNOWN_ENTITY = "unknown_entity"
    NO_SELECTION = "no_selection"
    WRONG_PHASE = "wrong_phase"
    SETTINGS_LOCKED = "settings_locked"
    NOT_AUTHORIZED = "not_authorized"
    CATALOG_LOCKED = "catalog_locked"


class PickRecord(BaseModel):
    round: int
    pick: int
    entity_id: int
    participant_id: int
    amount: int = 0  # 0 outside the bidding phase
    timestamp: datetime = Field(default_factory=datetime.now)


class Selection(BaseModel):
    """Entity currently up for bidding. Transient, never part of history."""
    entity_id: Optional[int] = None
    current_bid: int = 1
    leader_id: Optional[int] = None


class PickClock(BaseModel):
    time_remaining: int = 0
    running: bool = False


class DraftState(BaseModel):
    settings: DraftSettings = DraftSettings()
    participants: list[Participant] = []

    current_round: int = 1
    current_pick: int = 1
    phase: Phase = Phase.BIDDING
    turn_order: list[int] = []
    active_participant: Optional[int] = None

    history: list[PickRecord] = []
    drafted: set[int] = set()

    selection: Selection = Selection()
    clock: PickClock = PickClock()

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def pick_count(self) -> int:
        return len(self.history)

    def get_participant(self, participant_id: int) -> Optional[Participant]:
        return next((p for p in self.participants if p.id == participant_id), None)


class BidEligibility(BaseModel):
    participant_id: int
    can_bid: bool
    max_bid: int
    picks_still_needed: int = 0


class RosterSlot(BaseModel):
    id: str
    label: str
    kind: str  # starter / flex / bench
    eligible: list[str] = []
    entity_id: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.entity_id is None


class CommandResult(BaseModel):
    ok: bool = True
    reason: Optional[FailureReason] = None
    message: str = ""
    changed: bool = True
    persisted: bool = True

    @classmethod
    def success(cls, message: str = "", changed: bool = True) -> "CommandResult":
        return cls(ok=True, message=message, changed=changed)

    @classmethod
    def failure(cls, reason: FailureReason, message: str = "") -> "CommandResult":
        return cls(ok=False, reason=reason, message=message, changed=False)
