from __future__ import annotations

import logging
import uuid
from typing import Iterable

from allocation.errors import InvalidRequest
from allocation.plan import AllocationPlan, PlanState
from allocation.rules import RULES, compatible, first_violation
from allocation.types import AvailableRoom, EligibleClass, RuleConfig, UnallocatedClass


logger = logging.getLogger(__name__)


NO_ROOMS_AVAILABLE = "NO_ROOMS_AVAILABLE"
INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"


def sort_classes(classes: Iterable[EligibleClass]) -> list[EligibleClass]:
    return sorted(classes, key=lambda c: (-c.student_count, c.id))


def sort_rooms(rooms: Iterable[AvailableRoom]) -> list[AvailableRoom]:
    return sorted(rooms, key=lambda r: (-r.capacity, r.id))


def _ensure_unique_ids(items, kind: str) -> None:
    seen: set[uuid.UUID] = set()
    for item in items:
        if item.id in seen:
            raise InvalidRequest(f"duplicate {kind} id {item.id}", details={f"{kind}_id": str(item.id)})
        seen.add(item.id)


def _unallocated_reason(cls: EligibleClass, rooms: list[AvailableRoom], state: PlanState, config: RuleConfig) -> str:
    if not rooms:
        return NO_ROOMS_AVAILABLE
    codes = {first_violation(cls, room, state, config) for room in rooms}
    # Report the separation rule that blocked seats, if any; otherwise it was plain capacity.
    for rule in RULES[1:]:
        if rule.code in codes:
            return rule.code
    return INSUFFICIENT_CAPACITY


def pack(
    classes: Iterable[EligibleClass],
    rooms: Iterable[AvailableRoom],
    config: RuleConfig,
    *,
    held_room_ids: Iterable[uuid.UUID] = (),
) -> AllocationPlan:
    """First-fit-decreasing packing of classes into rooms.

    Classes go largest first; each is kept whole in the first compatible room with enough
    remaining seats. When no such room exists the class is split, filling the compatible
    room with the most remaining seats first, until it is placed or nothing compatible is
    left, in which case the residual is reported as unallocated.
    """

    ordered_classes = sort_classes(classes)
    ordered_rooms = sort_rooms(rooms)
    _ensure_unique_ids(ordered_classes, "class")
    _ensure_unique_ids(ordered_rooms, "room")

    state = PlanState(ordered_rooms, held_room_ids=held_room_ids)
    unallocated: list[UnallocatedClass] = []

    for cls in ordered_classes:
        needed = cls.student_count
        while needed > 0:
            whole = next((r for r in ordered_rooms if compatible(cls, r, state, config, seats=needed)), None)
            if whole is not None:
                state.place(cls, whole, needed)
                needed = 0
                break

            candidates = [r for r in ordered_rooms if compatible(cls, r, state, config)]
            if not candidates:
                break
            # max() keeps the first of equal candidates, i.e. sorted room order.
            largest = max(candidates, key=lambda r: state.remaining(r.id))
            seats = min(needed, state.remaining(largest.id))
            state.place(cls, largest, seats)
            needed -= seats
            logger.debug("Split class %s: %d seat(s) in room %s, %d left", cls.name, seats, largest.code, needed)

        if needed > 0:
            reason = _unallocated_reason(cls, ordered_rooms, state, config)
            unallocated.append(UnallocatedClass(class_id=cls.id, residual_seats=needed, reason=reason))
            logger.warning("Class %s left with %d unallocated seat(s) (%s)", cls.name, needed, reason)

    return state.to_plan(ordered_rooms, unallocated)
