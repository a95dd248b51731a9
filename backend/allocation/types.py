from __future__ import annotations

import uuid
import zlib
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from allocation.errors import InvalidRequest


ACADEMIC_LEVELS = ("UG", "PG")
ROOM_TYPES = ("LECTURE", "TUTORIAL", "LAB", "AUDITORIUM", "SEMINAR")
SHIFTS = ("MORNING", "AFTERNOON", "EVENING")


def _require_bool(name: str, value: Any) -> None:
    if not isinstance(value, bool):
        raise InvalidRequest(f"{name} must be a boolean", code="INVALID_CONFIG", details={"field": name})


def _require_positive_int(owner: str, name: str, value: Any, *, details: dict[str, Any]) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidRequest(f"{owner} {name} must be a positive integer (got {value!r})", details=details)


@dataclass(frozen=True)
class RuleConfig:
    allow_department_mixing: bool = True
    strict_ug_pg_separation: bool = True
    strict_shift_separation: bool = True

    def __post_init__(self) -> None:
        _require_bool("allow_department_mixing", self.allow_department_mixing)
        _require_bool("strict_ug_pg_separation", self.strict_ug_pg_separation)
        _require_bool("strict_shift_separation", self.strict_shift_separation)

    def as_dict(self) -> dict[str, bool]:
        return {
            "allow_department_mixing": self.allow_department_mixing,
            "strict_ug_pg_separation": self.strict_ug_pg_separation,
            "strict_shift_separation": self.strict_shift_separation,
        }


@dataclass(frozen=True)
class SnapshotLimits:
    """Expected class strength and room capacity ranges.

    Records outside these ranges are logged when a run reads its inputs but are still allocated.
    """

    min_class_strength: int = 1
    max_class_strength: int = 500
    min_room_capacity: int = 1
    max_room_capacity: int = 1000


@dataclass(frozen=True)
class SessionKey:
    exam_date: date
    shift: str

    @property
    def lock_key(self) -> int:
        # Stable across processes (unlike hash()); fits a signed bigint.
        return zlib.crc32(f"{self.exam_date.isoformat()}:{self.shift}".encode("utf-8"))

    @property
    def date_lock_key(self) -> int:
        return zlib.crc32(f"{self.exam_date.isoformat()}:*".encode("utf-8"))

    def __str__(self) -> str:
        return f"{self.exam_date.isoformat()}/{self.shift}"


@dataclass(frozen=True)
class EligibleClass:
    id: uuid.UUID
    name: str
    academic_level: str
    department_id: Any
    student_count: int
    academic_year: int | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        details = {"class_id": str(self.id)}
        _require_positive_int("class", "student_count", self.student_count, details=details)
        if self.academic_level not in ACADEMIC_LEVELS:
            raise InvalidRequest(f"class academic_level must be one of {ACADEMIC_LEVELS}", details=details)
        if not self.is_active:
            raise InvalidRequest("inactive class cannot be allocated", details=details)


@dataclass(frozen=True)
class AvailableRoom:
    id: uuid.UUID
    code: str
    name: str
    capacity: int
    room_type: str = "LECTURE"
    floor: int | None = None
    building: str | None = None
    has_projector: bool = False
    has_whiteboard: bool = False
    has_computers: bool = False
    is_active: bool = True

    def __post_init__(self) -> None:
        details = {"room_id": str(self.id)}
        _require_positive_int("room", "capacity", self.capacity, details=details)
        if self.room_type not in ROOM_TYPES:
            raise InvalidRequest(f"room_type must be one of {ROOM_TYPES}", details=details)
        if not self.is_active:
            raise InvalidRequest("inactive room cannot be allocated", details=details)


@dataclass(frozen=True)
class Assignment:
    room_id: uuid.UUID
    class_id: uuid.UUID
    seats: int

    def as_dict(self) -> dict[str, Any]:
        return {"room_id": self.room_id, "class_id": self.class_id, "seats": self.seats}


@dataclass(frozen=True)
class UnallocatedClass:
    class_id: uuid.UUID
    residual_seats: int
    reason: str

    def as_dict(self) -> dict[str, Any]:
        return {"class_id": self.class_id, "residual_seats": self.residual_seats, "reason": self.reason}


@dataclass(frozen=True)
class AllocationStatistics:
    classes_allocated: int = 0
    students_allocated: int = 0
    rooms_used: int = 0
    total_classes: int = 0
    unallocated_classes: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "classes_allocated": self.classes_allocated,
            "students_allocated": self.students_allocated,
            "rooms_used": self.rooms_used,
            "total_classes": self.total_classes,
            "unallocated_classes": self.unallocated_classes,
        }


@dataclass(frozen=True)
class AllocationResult:
    success: bool
    message: str
    assignments: list[Assignment] = field(default_factory=list)
    unallocated: list[UnallocatedClass] = field(default_factory=list)
    statistics: AllocationStatistics = field(default_factory=AllocationStatistics)
    exam_session_id: uuid.UUID | None = None
    run_id: uuid.UUID | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "assignments": [a.as_dict() for a in self.assignments],
            "unallocated": [u.as_dict() for u in self.unallocated],
            "statistics": self.statistics.as_dict(),
            "exam_session_id": self.exam_session_id,
            "run_id": self.run_id,
        }
