from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from allocation import providers
from allocation.transaction import AllocationTransactionManager, parse_exam_date, parse_shift
from allocation.types import AllocationResult, RuleConfig, SessionKey, SnapshotLimits
from core.config import settings
from models.allocation import Allocation, AllocationClass
from models.allocation_run import AllocationRun
from models.class_group import ClassGroup
from models.room import Room


def allocate(
    db: Session,
    exam_date,
    shift,
    *,
    config: RuleConfig | None = None,
    created_by: str | None = None,
    exam_type: str = "REGULAR",
) -> AllocationResult:
    """Allocate every eligible class for (exam_date, shift), replacing any previous allocation."""

    manager = AllocationTransactionManager(
        db,
        config=config or settings.rule_config(),
        valid_shifts=settings.shift_choices,
        limits=SnapshotLimits(
            min_class_strength=settings.min_class_strength,
            max_class_strength=settings.max_class_strength,
            min_room_capacity=settings.min_room_capacity,
            max_room_capacity=settings.max_room_capacity,
        ),
        created_by=created_by,
        exam_type=exam_type,
    )
    return manager.run(exam_date, shift)


@dataclass(frozen=True)
class RoomAllocationRow:
    allocation_id: uuid.UUID
    room_id: uuid.UUID
    room_code: str
    room_name: str
    capacity: int
    total_allocated_seats: int
    is_confirmed: bool
    classes: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class AllocationSummary:
    exam_date: date
    shift: str
    exam_session_id: uuid.UUID | None
    total_allocations: int = 0
    total_seats_allocated: int = 0
    unique_rooms_used: int = 0
    avg_seats_per_room: float = 0.0
    rooms: list[RoomAllocationRow] = field(default_factory=list)


def allocation_summary(db: Session, exam_date, shift) -> AllocationSummary:
    """Statistics and per-room rows for the current generation of a session's allocation."""

    key = SessionKey(exam_date=parse_exam_date(exam_date), shift=parse_shift(shift, settings.shift_choices))
    exam_session = providers.find_exam_session(db, key)
    if exam_session is None:
        return AllocationSummary(exam_date=key.exam_date, shift=key.shift, exam_session_id=None)

    allocations = db.execute(
        select(Allocation, Room)
        .join(Room, Room.id == Allocation.room_id)
        .where(Allocation.exam_session_id == exam_session.id)
        .order_by(Room.capacity.desc(), Room.id)
    ).all()

    class_rows = db.execute(
        select(AllocationClass.allocation_id, AllocationClass.seats, ClassGroup.id, ClassGroup.name)
        .join(ClassGroup, ClassGroup.id == AllocationClass.class_group_id)
        .join(Allocation, Allocation.id == AllocationClass.allocation_id)
        .where(Allocation.exam_session_id == exam_session.id)
        .order_by(AllocationClass.seats.desc(), ClassGroup.id)
    ).all()
    classes_by_allocation: dict[uuid.UUID, list[dict[str, Any]]] = defaultdict(list)
    for allocation_id, seats, class_id, class_name in class_rows:
        classes_by_allocation[allocation_id].append({"class_id": class_id, "class_name": class_name, "seats": int(seats)})

    rooms = [
        RoomAllocationRow(
            allocation_id=a.id,
            room_id=r.id,
            room_code=r.code,
            room_name=r.name,
            capacity=int(r.capacity),
            total_allocated_seats=int(a.total_allocated_seats),
            is_confirmed=bool(a.is_confirmed),
            classes=classes_by_allocation.get(a.id, []),
        )
        for a, r in allocations
    ]
    total_seats = sum(row.total_allocated_seats for row in rooms)
    unique_rooms = len({row.room_id for row in rooms})
    return AllocationSummary(
        exam_date=key.exam_date,
        shift=key.shift,
        exam_session_id=exam_session.id,
        total_allocations=len(rooms),
        total_seats_allocated=total_seats,
        unique_rooms_used=unique_rooms,
        avg_seats_per_room=(round(total_seats / len(rooms), 2) if rooms else 0.0),
        rooms=rooms,
    )


def list_runs(db: Session, *, limit: int = 50) -> list[AllocationRun]:
    q = select(AllocationRun).order_by(AllocationRun.created_at.desc(), AllocationRun.id).limit(limit)
    return list(db.execute(q).scalars().all())
