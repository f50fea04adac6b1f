"""The draft session: single writer around the draft engine.

Holds the current snapshot, checks that commands come from the host,
resolves entity ids against the catalog, and after each accepted transition
writes the changed fields to the state store and an entry to the audit log.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError

from ..config import DraftSettings, RoomConfig, room_config
from ..models.draft import (
    BidEligibility,
    CommandResult,
    DraftState,
    FailureReason,
    RosterSlot,
)
from ..models.entity import Entity
from . import draft_tracker
from .audit_log import AuditLog
from .budget_engine import all_eligibility, bid_ceiling, eligibility
from .catalog import get_entities, get_entity, replace_catalog
from .roster_slots import assign
from .state_store import InMemoryStateStore, StateStore, SyncError

logger = logging.getLogger(__name__)

# Written to the store but kept out of the audit buffer
UNAUDITED_ACTIONS = frozenset({"timer_tick"})


def _update_unlocked_settings(state: DraftState, settings: DraftSettings) -> draft_tracker.Transition:
    if state.history:
        return state, CommandResult.failure(FailureReason.SETTINGS_LOCKED, "Settings are locked once picks exist")
    return draft_tracker.update_settings(state, settings)


def _with_known_entity(transition: Callable[..., draft_tracker.Transition]) -> Callable[..., draft_tracker.Transition]:
    """Reject entity ids the catalog does not know before running *transition*."""
    def checked(state: DraftState, entity_id: int, *args: Any) -> draft_tracker.Transition:
        if get_entity(entity_id) is None:
            return state, CommandResult.failure(FailureReason.UNKNOWN_ENTITY, f"Entity {entity_id} not found")
        return transition(state, entity_id, *args)
    return checked


def _complete_known_selection(state: DraftState) -> draft_tracker.Transition:
    entity_id = state.selection.entity_id
    if entity_id is not None and get_entity(entity_id) is None:
        return state, CommandResult.failure(FailureReason.UNKNOWN_ENTITY, f"Entity {entity_id} is no longer in the catalog")
    return draft_tracker.complete_bid(state)


class DraftSession:
    def __init__(
        self,
        config: RoomConfig = room_config,
        store: Optional[StateStore] = None,
        audit: Optional[AuditLog] = None,
    ) -> None:
        self.config = config
        self.store = store if store is not None else InMemoryStateStore()
        self.audit = audit if audit is not None else AuditLog(config.room_id, config.audit_buffer_size)
        self.state: DraftState = draft_tracker.new_draft(config.settings)
        self.persistence_pending = False
        if self.store.get_snapshot():
            # a saved draft is waiting; load_from_store adopts it, the next command overwrites it
            self.persistence_pending = True
        else:
            self.flush()

    # -----------------------------------------------------------------------
    # Plumbing
    # -----------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        return self.state.model_dump(mode="json")

    def is_host(self, token: Optional[str]) -> bool:
        return self.config.host_token is None or token == self.config.host_token

    def flush(self) -> bool:
        """Write the full snapshot to the store. Returns False if it is still pending."""
        try:
            self.store.commit(self.snapshot())
        except SyncError as e:
            logger.warning(f"Snapshot write failed, will retry: {e}")
            self.persistence_pending = True
            return False
        self.persistence_pending = False
        return True

    def _persist(self, before: dict[str, Any], after: dict[str, Any]) -> bool:
        if self.persistence_pending:
            # an earlier write was lost; partial fields would leave the store inconsistent
            return self.flush()
        changed = {k: v for k, v in after.items() if before.get(k) != v}
        try:
            self.store.commit(changed)
        except SyncError as e:
            logger.warning(f"Snapshot write failed, will retry: {e}")
            self.persistence_pending = True
            return False
        return True

    def _apply(
        self,
        action: str,
        transition: Callable[..., draft_tracker.Transition],
        *args: Any,
        token: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> CommandResult:
        if not self.is_host(token):
            logger.info(f"Rejected {action}: caller is not the host")
            return CommandResult.failure(FailureReason.NOT_AUTHORIZED, "Only the host can do that")

        new_state, result = transition(self.state, *args)
        if not result.ok:
            logger.info(f"Rejected {action}: {result.reason.value} ({result.message})")
            return result
        if not result.changed:
            return result

        before = self.snapshot()
        self.state = new_state
        after = self.snapshot()

        if action not in UNAUDITED_ACTIONS:
            self.audit.record(action, before, after, metadata)
        result.persisted = self._persist(before, after)
        logger.info(f"{action}: {result.message}")
        return result

    # -----------------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------------

    def commit_pick(self, entity_id: int, participant_id: int, amount: int = 0, token: Optional[str] = None) -> CommandResult:
        return self._apply(
            "draft_pick", _with_known_entity(draft_tracker.commit_pick), entity_id, participant_id, amount,
            token=token,
            metadata={
                "entity_id": entity_id,
                "participant_id": participant_id,
                "amount": amount,
                "round": self.state.current_round,
                "pick": self.state.current_pick,
                "phase": self.state.phase.value,
            },
        )

    def undo_last_pick(self, token: Optional[str] = None) -> CommandResult:
        last = self.state.history[-1] if self.state.history else None
        metadata = last.model_dump(mode="json") if last else {}
        return self._apply("undo_pick", draft_tracker.undo_last_pick, token=token, metadata=metadata)

    def reset_draft(self, token: Optional[str] = None) -> CommandResult:
        return self._apply(
            "reset_draft", draft_tracker.reset_draft,
            token=token,
            metadata={"previous_pick_count": self.state.pick_count},
        )

    def update_settings(self, settings: DraftSettings, token: Optional[str] = None) -> CommandResult:
        changed = [
            k for k, v in settings.model_dump().items()
            if getattr(self.state.settings, k) != v
        ]
        return self._apply(
            "settings_update", _update_unlocked_settings, settings,
            token=token,
            metadata={"changed_settings": changed},
        )

    def update_participant(
        self,
        participant_id: int,
        name: Optional[str] = None,
        owner: Optional[str] = None,
        token: Optional[str] = None,
    ) -> CommandResult:
        return self._apply(
            "update_participant", draft_tracker.update_participant, participant_id, name, owner,
            token=token,
            metadata={"participant_id": participant_id},
        )

    def select_entity(self, entity_id: int, token: Optional[str] = None) -> CommandResult:
        return self._apply(
            "select_entity", _with_known_entity(draft_tracker.select_entity), entity_id,
            token=token,
            metadata={"entity_id": entity_id, "previous_entity_id": self.state.selection.entity_id},
        )

    def place_bid(self, participant_id: int, amount: int, token: Optional[str] = None) -> CommandResult:
        return self._apply(
            "place_bid", draft_tracker.place_bid, participant_id, amount,
            token=token,
            metadata={
                "participant_id": participant_id,
                "amount": amount,
                "previous_bid": self.state.selection.current_bid,
                "previous_leader": self.state.selection.leader_id,
            },
        )

    def complete_bid(self, token: Optional[str] = None) -> CommandResult:
        return self._apply(
            "draft_pick", _complete_known_selection,
            token=token,
            metadata=self.state.selection.model_dump(mode="json"),
        )

    def cancel_selection(self, token: Optional[str] = None) -> CommandResult:
        return self._apply("cancel_selection", draft_tracker.cancel_selection, token=token)

    def start_clock(self, token: Optional[str] = None) -> CommandResult:
        return self._apply("start_timer", draft_tracker.start_clock, token=token)

    def pause_clock(self, token: Optional[str] = None) -> CommandResult:
        return self._apply("pause_timer", draft_tracker.pause_clock, token=token)

    def tick(self, seconds: int = 1, token: Optional[str] = None) -> CommandResult:
        return self._apply("timer_tick", draft_tracker.tick, seconds, token=token)

    def replace_catalog(self, entities: list[Entity], token: Optional[str] = None) -> CommandResult:
        """Swap the catalog, refusing if a drafted entity would disappear."""
        if not self.is_host(token):
            return CommandResult.failure(FailureReason.NOT_AUTHORIZED, "Only the host can do that")
        new_ids = {e.id for e in entities}
        lost = sorted(self.state.drafted - new_ids)
        if lost:
            return CommandResult.failure(
                FailureReason.CATALOG_LOCKED,
                f"{len(lost)} drafted entities are missing from the new catalog",
            )
        try:
            replace_catalog(entities)
        except ValueError as e:
            return CommandResult.failure(FailureReason.UNKNOWN_ENTITY, str(e))
        return CommandResult.success(f"Catalog replaced with {len(entities)} entities")

    def load_from_store(self) -> DraftState:
        """Adopt the snapshot held by the store (e.g. after a restart)."""
        data = self.store.get_snapshot()
        if not data:
            raise FileNotFoundError("No saved draft state found")
        try:
            self.state = DraftState.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Saved draft state is invalid: {e}") from e
        self.persistence_pending = False
        logger.info(f"Restored draft at round {self.state.current_round}, pick {self.state.current_pick}")
        return self.state

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def _require_participant(self, participant_id: int):
        participant = self.state.get_participant(participant_id)
        if participant is None:
            raise ValueError(f"Participant '{participant_id}' not found")
        return participant

    def roster(self, participant_id: int) -> list[RosterSlot]:
        participant = self._require_participant(participant_id)
        entities = [e for e in (get_entity(i) for i in participant.acquired) if e is not None]
        return assign(entities, self.state.settings.roster_size, self.config.roster)

    def eligibility(self, participant_id: int) -> BidEligibility:
        participant = self._require_participant(participant_id)
        return eligibility(participant, self.state.history, self.state.settings.bidding_rounds, self.state.current_round)

    def all_eligibility(self) -> list[BidEligibility]:
        return all_eligibility(
            self.state.participants, self.state.history,
            self.state.settings.bidding_rounds, self.state.current_round,
        )

    def bid_ceiling(self) -> int:
        return bid_ceiling(
            self.state.participants, self.state.history,
            self.state.settings.bidding_rounds, self.state.current_round,
        )

    def draft_board(self) -> list[dict]:
        """History rows joined with entity and participant names."""
        entities = get_entities()
        rows = []
        for pick in self.state.history:
            entity = entities.get(pick.entity_id)
            participant = self.state.get_participant(pick.participant_id)
            rows.append({
                "Round": pick.round,
                "Pick": pick.pick,
                "Player": entity.name if entity else str(pick.entity_id),
                "Position": entity.category if entity else "",
                "NFL Team": entity.affiliation if entity else "",
                "Team": participant.name if participant else str(pick.participant_id),
                "Owner": participant.owner if participant else "",
                "Price": pick.amount,
            })
        return rows


# ---------------------------------------------------------------------------
# Singleton session
# ---------------------------------------------------------------------------
_session: Optional[DraftSession] = None


def get_session() -> DraftSession:
    """Return the current session, initializing if necessary."""
    global _session
    if _session is None:
        initialize_session()
    return _session


def initialize_session(
    config: RoomConfig = room_config,
    store: Optional[StateStore] = None,
) -> DraftSession:
    global _session
    _session = DraftSession(config=config, store=store)
    return _session


def restore_session(store: StateStore, config: RoomConfig = room_config) -> DraftSession:
    """Initialize the session over *store*, adopting the saved draft if it is valid.

    An unreadable snapshot is discarded and replaced by a fresh draft in the
    same store.
    """
    try:
        session = initialize_session(config, store)
        if session.persistence_pending:
            session.load_from_store()
    except ValueError as e:
        logger.warning(f"Saved draft could not be restored, starting fresh: {e}")
        store.clear()
        session = initialize_session(config, store)
    return session


def reset_session() -> None:
    """Tear down the singleton (useful in tests)."""
    global _session
    _session = None
