from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class RuleOverrides(BaseModel):
    """Per-run overrides of the configured allocation rules."""

    allow_department_mixing: bool | None = None
    strict_ug_pg_separation: bool | None = None
    strict_shift_separation: bool | None = None


class RunAllocationRequest(BaseModel):
    exam_date: date
    shift: str = Field(min_length=1)
    exam_type: str = Field(default="REGULAR", min_length=1)
    created_by: str | None = None
    rules: RuleOverrides | None = None


class AssignmentOut(BaseModel):
    room_id: uuid.UUID
    class_id: uuid.UUID
    seats: int


class UnallocatedOut(BaseModel):
    class_id: uuid.UUID
    residual_seats: int
    reason: str


class AllocationStatisticsOut(BaseModel):
    classes_allocated: int = 0
    students_allocated: int = 0
    rooms_used: int = 0
    total_classes: int = 0
    unallocated_classes: int = 0


class AllocationResultOut(BaseModel):
    success: bool
    message: str
    assignments: list[AssignmentOut] = Field(default_factory=list)
    unallocated: list[UnallocatedOut] = Field(default_factory=list)
    statistics: AllocationStatisticsOut = Field(default_factory=AllocationStatisticsOut)
    exam_session_id: uuid.UUID | None = None
    run_id: uuid.UUID | None = None


class AllocatedClassOut(BaseModel):
    class_id: uuid.UUID
    class_name: str
    seats: int


class RoomAllocationOut(BaseModel):
    allocation_id: uuid.UUID
    room_id: uuid.UUID
    room_code: str
    room_name: str
    capacity: int
    total_allocated_seats: int
    is_confirmed: bool
    classes: list[AllocatedClassOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class AllocationSummaryOut(BaseModel):
    exam_date: date
    shift: str
    exam_session_id: uuid.UUID | None = None
    total_allocations: int = 0
    total_seats_allocated: int = 0
    unique_rooms_used: int = 0
    avg_seats_per_room: float = 0.0
    rooms: list[RoomAllocationOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class AllocationRunOut(BaseModel):
    id: uuid.UUID
    exam_date: date
    shift: str
    exam_session_id: uuid.UUID | None = None
    status: Literal["CREATED", "COMMITTED", "FAILED", "ROLLED_BACK", "ERROR"]
    parameters: dict[str, Any] = Field(default_factory=dict)
    classes_allocated: int = 0
    students_allocated: int = 0
    rooms_used: int = 0
    unallocated_classes: int = 0
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True
