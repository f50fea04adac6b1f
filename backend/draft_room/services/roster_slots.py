"""Projection of a participant's acquired entities onto roster slots."""

from __future__ import annotations

from typing import Optional

from ..config import RosterTemplate, room_config
from ..models.draft import RosterSlot
from ..models.entity import Entity
from ..utils.categories import CATEGORIES, is_valid_category

STARTER = "starter"
FLEX = "flex"
BENCH = "bench"

_TEMPLATE_ORDER = ["QB", "WR", "RB", "TE", "FLEX", "K", "DST"]


def _bench_slot(number: int) -> RosterSlot:
    return RosterSlot(
        id=f"bench{number}",
        label="BEN",
        kind=BENCH,
        eligible=list(CATEGORIES),
    )


def build_template(roster_size: int, template: Optional[RosterTemplate] = None) -> list[RosterSlot]:
    """Build the empty slot list: starters, FLEX, then bench up to *roster_size*."""
    template = template or room_config.roster
    slots: list[RosterSlot] = []

    for label in _TEMPLATE_ORDER:
        count = getattr(template, label)
        for i in range(count):
            slot_id = label.lower() if count == 1 else f"{label.lower()}{i + 1}"
            if label == "FLEX":
                slots.append(RosterSlot(id=slot_id, label=label, kind=FLEX, eligible=list(template.flex_eligible)))
            else:
                slots.append(RosterSlot(id=slot_id, label=label, kind=STARTER, eligible=[label]))

    bench_needed = max(0, roster_size - len(slots))
    for i in range(bench_needed):
        slots.append(_bench_slot(i + 1))

    return slots


def _first_open(slots: list[RosterSlot], kind: str, category: str) -> Optional[RosterSlot]:
    return next(
        (s for s in slots if s.is_empty and s.kind == kind and category in s.eligible),
        None,
    )


def assign(
    entities: list[Entity],
    roster_size: int,
    template: Optional[RosterTemplate] = None,
) -> list[RosterSlot]:
    """Place *entities* (in acquisition order) into roster slots.

    Each entity takes the first open dedicated slot for its category, then
    FLEX, then bench. When nothing is open a new bench slot is appended, so
    roster size is a floor and never a ceiling. Entities of unknown category
    are skipped.
    """
    slots = build_template(roster_size, template)
    next_bench = sum(1 for s in slots if s.kind == BENCH) + 1

    for entity in entities:
        if not is_valid_category(entity.category):
            continue

        slot = (
            _first_open(slots, STARTER, entity.category)
            or _first_open(slots, FLEX, entity.category)
            or _first_open(slots, BENCH, entity.category)
        )
        if slot is None:
            slot = _bench_slot(next_bench)
            slots.append(slot)
            next_bench += 1

        slot.entity_id = entity.id

    return slots
