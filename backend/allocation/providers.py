from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from allocation.errors import DataAccessError
from allocation.types import AvailableRoom, EligibleClass, SessionKey, SnapshotLimits
from models.allocation import Allocation
from models.class_group import ClassGroup
from models.exam_session import ExamSession
from models.room import Room


logger = logging.getLogger(__name__)


@contextmanager
def _reading(what: str):
    try:
        yield
    except SQLAlchemyError as exc:
        raise DataAccessError(f"Failed to load {what}", details={"source": what}) from exc


def eligible_classes(db: Session, key: SessionKey, *, limits: SnapshotLimits | None = None) -> list[EligibleClass]:
    """Active classes with at least one student, snapshotted for one run."""

    limits = limits or SnapshotLimits()
    q = (
        select(ClassGroup)
        .where(ClassGroup.is_active.is_(True))
        .where(ClassGroup.student_count > 0)
        .order_by(ClassGroup.id)
    )
    with _reading("classes"):
        rows = db.execute(q).scalars().all()

    out: list[EligibleClass] = []
    for row in rows:
        count = int(row.student_count)
        if not (limits.min_class_strength <= count <= limits.max_class_strength):
            # Informational only: the class is still allocated (split if needed).
            logger.warning(
                "Class %s has %d students, outside the configured [%d, %d]",
                row.name,
                count,
                limits.min_class_strength,
                limits.max_class_strength,
            )
        out.append(
            EligibleClass(
                id=row.id,
                name=row.name,
                academic_level=str(row.academic_level),
                department_id=row.department_id,
                student_count=count,
                academic_year=row.academic_year,
                is_active=bool(row.is_active),
            )
        )
    return out


def available_rooms(db: Session, key: SessionKey, *, limits: SnapshotLimits | None = None) -> list[AvailableRoom]:
    """Active rooms with a positive capacity, snapshotted for one run."""

    limits = limits or SnapshotLimits()
    q = select(Room).where(Room.is_active.is_(True)).where(Room.capacity > 0).order_by(Room.id)
    with _reading("rooms"):
        rows = db.execute(q).scalars().all()

    out: list[AvailableRoom] = []
    for row in rows:
        capacity = int(row.capacity)
        if not (limits.min_room_capacity <= capacity <= limits.max_room_capacity):
            logger.warning(
                "Room %s capacity %d is outside the configured [%d, %d]",
                row.code,
                capacity,
                limits.min_room_capacity,
                limits.max_room_capacity,
            )
        out.append(
            AvailableRoom(
                id=row.id,
                code=row.code,
                name=row.name,
                capacity=capacity,
                room_type=str(row.room_type),
                floor=row.floor,
                building=row.building,
                has_projector=bool(row.has_projector),
                has_whiteboard=bool(row.has_whiteboard),
                has_computers=bool(row.has_computers),
                is_active=bool(row.is_active),
            )
        )
    return out


def rooms_held_by_other_shifts(db: Session, key: SessionKey) -> frozenset[uuid.UUID]:
    """Rooms already allocated on the same date in a different shift."""

    q = (
        select(Allocation.room_id)
        .join(ExamSession, ExamSession.id == Allocation.exam_session_id)
        .where(ExamSession.exam_date == key.exam_date)
        .where(ExamSession.shift != key.shift)
        .distinct()
    )
    with _reading("allocations"):
        return frozenset(db.execute(q).scalars().all())


def find_exam_session(db: Session, key: SessionKey) -> ExamSession | None:
    q = select(ExamSession).where(ExamSession.exam_date == key.exam_date).where(ExamSession.shift == key.shift)
    with _reading("exam session"):
        return db.execute(q).scalar_one_or_none()
