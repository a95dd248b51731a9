from __future__ import annotations

import uuid

from sqlalchemy import JSON, Column, Date, DateTime, Enum, Integer, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base


RUN_STATUS = Enum(
    "CREATED",
    "COMMITTED",
    "FAILED",
    "ROLLED_BACK",
    "ERROR",
    name="allocation_run_status",
)


class AllocationRun(Base):
    """Audit row for one allocate() invocation; committed separately from the allocation rows."""

    __tablename__ = "allocation_runs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_date = Column(Date, nullable=False)
    shift = Column(Text, nullable=False)
    exam_session_id = Column(Uuid, nullable=True)
    status = Column(RUN_STATUS, nullable=False, default="CREATED")
    parameters = Column(JSON, nullable=False, default=dict)
    classes_allocated = Column(Integer, nullable=False, default=0)
    students_allocated = Column(Integer, nullable=False, default=0)
    rooms_used = Column(Integer, nullable=False, default=0)
    unallocated_classes = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
