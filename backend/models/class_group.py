from __future__ import annotations

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Enum, Integer, Text, Uuid
from sqlalchemy.sql import func

from allocation.types import ACADEMIC_LEVELS
from models.base import Base


ACADEMIC_LEVEL = Enum(*ACADEMIC_LEVELS, name="academic_level")


class ClassGroup(Base):
    __tablename__ = "class_groups"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    academic_year = Column(Integer, nullable=True)
    academic_level = Column(ACADEMIC_LEVEL, nullable=False, default="UG")
    department_id = Column(Uuid, nullable=False, index=True)
    student_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("student_count >= 0", name="ck_class_groups_student_count"),
    )
