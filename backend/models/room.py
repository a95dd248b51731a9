from __future__ import annotations

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Enum, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from allocation.types import ROOM_TYPES
from models.base import Base


ROOM_TYPE = Enum(*ROOM_TYPES, name="room_type")


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    room_type = Column(ROOM_TYPE, nullable=False, default="LECTURE")
    capacity = Column(Integer, nullable=False, default=0)
    floor = Column(Integer, nullable=True)
    building = Column(Text, nullable=True)
    has_projector = Column(Boolean, nullable=False, default=False)
    has_whiteboard = Column(Boolean, nullable=False, default=False)
    has_computers = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("capacity >= 0", name="ck_rooms_capacity"),
        UniqueConstraint("code", name="uq_rooms_code"),
    )
