from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable

from allocation.errors import ConstraintViolation
from allocation.types import (
    AllocationStatistics,
    Assignment,
    AvailableRoom,
    EligibleClass,
    UnallocatedClass,
)


class PlanState:
    """Partial plan built up during one packing run.

    Rules only read it; the packing strategy is the only writer (via `place`).
    """

    def __init__(self, rooms: Iterable[AvailableRoom], *, held_room_ids: Iterable[uuid.UUID] = ()):
        self._rooms: dict[uuid.UUID, AvailableRoom] = {r.id: r for r in rooms}
        self._remaining: dict[uuid.UUID, int] = {rid: r.capacity for rid, r in self._rooms.items()}
        self._placements: dict[uuid.UUID, list[tuple[EligibleClass, int]]] = defaultdict(list)
        self.held_room_ids: frozenset[uuid.UUID] = frozenset(held_room_ids)

    def remaining(self, room_id: uuid.UUID) -> int:
        return self._remaining.get(room_id, 0)

    def levels_in(self, room_id: uuid.UUID) -> set[str]:
        return {c.academic_level for c, _ in self._placements.get(room_id, ())}

    def departments_in(self, room_id: uuid.UUID) -> set[Any]:
        return {c.department_id for c, _ in self._placements.get(room_id, ())}

    def is_held(self, room_id: uuid.UUID) -> bool:
        return room_id in self.held_room_ids

    def place(self, cls: EligibleClass, room: AvailableRoom, seats: int) -> None:
        if room.id not in self._rooms:
            raise ConstraintViolation("room is not part of this run", details={"room_id": str(room.id)})
        if seats <= 0 or seats > self._remaining[room.id]:
            raise ConstraintViolation(
                f"cannot place {seats} seat(s) in room {room.code} with {self._remaining[room.id]} remaining",
                details={"room_id": str(room.id), "class_id": str(cls.id), "seats": seats},
            )
        self._remaining[room.id] -= seats
        self._placements[room.id].append((cls, seats))

    def to_plan(self, ordered_rooms: list[AvailableRoom], unallocated: list[UnallocatedClass]) -> AllocationPlan:
        room_plans = [
            RoomPlan(room=room, placements=list(self._placements[room.id]))
            for room in ordered_rooms
            if self._placements.get(room.id)
        ]
        return AllocationPlan(rooms=room_plans, unallocated=list(unallocated))


@dataclass(frozen=True)
class RoomPlan:
    room: AvailableRoom
    placements: list[tuple[EligibleClass, int]] = field(default_factory=list)

    @property
    def seats_used(self) -> int:
        return sum(seats for _, seats in self.placements)


@dataclass(frozen=True)
class AllocationPlan:
    rooms: list[RoomPlan] = field(default_factory=list)
    unallocated: list[UnallocatedClass] = field(default_factory=list)

    def assignments(self) -> list[Assignment]:
        return [
            Assignment(room_id=rp.room.id, class_id=cls.id, seats=seats)
            for rp in self.rooms
            for cls, seats in rp.placements
        ]

    def seats_by_class(self) -> dict[uuid.UUID, int]:
        totals: dict[uuid.UUID, int] = defaultdict(int)
        for rp in self.rooms:
            for cls, seats in rp.placements:
                totals[cls.id] += seats
        return dict(totals)

    def statistics(self, classes: list[EligibleClass]) -> AllocationStatistics:
        placed = self.seats_by_class()
        fully = sum(1 for c in classes if placed.get(c.id, 0) == c.student_count)
        return AllocationStatistics(
            classes_allocated=fully,
            students_allocated=sum(placed.values()),
            rooms_used=len(self.rooms),
            total_classes=len(classes),
            unallocated_classes=len(self.unallocated),
        )
