from __future__ import annotations

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from models.base import Base


class Allocation(Base):
    """Seats occupied in one room for one exam session (one row per room used)."""

    __tablename__ = "allocations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_session_id = Column(
        Uuid,
        ForeignKey("exam_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    room_id = Column(Uuid, ForeignKey("rooms.id"), nullable=False)
    total_allocated_seats = Column(Integer, nullable=False)
    is_confirmed = Column(Boolean, nullable=False, default=True)
    created_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("total_allocated_seats > 0", name="ck_allocations_total_allocated_seats"),
        UniqueConstraint("exam_session_id", "room_id", name="uq_allocations_session_room"),
    )


class AllocationClass(Base):
    """One class's share of an Allocation row."""

    __tablename__ = "allocation_classes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    allocation_id = Column(
        Uuid,
        ForeignKey("allocations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    class_group_id = Column(Uuid, ForeignKey("class_groups.id"), nullable=False)
    seats = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("seats > 0", name="ck_allocation_classes_seats"),
        UniqueConstraint("allocation_id", "class_group_id", name="uq_allocation_classes_allocation_class"),
    )
