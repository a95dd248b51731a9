from __future__ import annotations

import uuid

from sqlalchemy import Column, Date, DateTime, Enum, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from allocation.types import SHIFTS
from models.base import Base


SHIFT = Enum(*SHIFTS, name="exam_shift")


class ExamSession(Base):
    __tablename__ = "exam_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_date = Column(Date, nullable=False)
    shift = Column(SHIFT, nullable=False)
    exam_type = Column(Text, nullable=False, default="REGULAR")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("exam_date", "shift", name="uq_exam_sessions_date_shift"),
    )
