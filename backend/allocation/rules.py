"""Placement rules deciding whether a class may take seats in a room.

The rule set is closed: capacity first, then the three configurable separation
rules. Every rule is a pure function of (class, room, partial plan, config).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from allocation.errors import ConstraintViolation
from allocation.plan import AllocationPlan, PlanState
from allocation.types import AvailableRoom, EligibleClass, RuleConfig


class PlacementRule(ABC):
    code: str = ""

    @abstractmethod
    def allows(
        self,
        cls: EligibleClass,
        room: AvailableRoom,
        state: PlanState,
        config: RuleConfig,
        seats: int,
    ) -> bool:
        raise NotImplementedError


class CapacityRule(PlacementRule):
    code = "CAPACITY"

    def allows(self, cls: EligibleClass, room: AvailableRoom, state: PlanState, config: RuleConfig, seats: int) -> bool:
        return state.remaining(room.id) - seats >= 0


class UGPGRule(PlacementRule):
    code = "UG_PG_SEPARATION"

    def allows(self, cls: EligibleClass, room: AvailableRoom, state: PlanState, config: RuleConfig, seats: int) -> bool:
        if not config.strict_ug_pg_separation:
            return True
        return state.levels_in(room.id) <= {cls.academic_level}


class DepartmentRule(PlacementRule):
    code = "DEPARTMENT_MIXING"

    def allows(self, cls: EligibleClass, room: AvailableRoom, state: PlanState, config: RuleConfig, seats: int) -> bool:
        if config.allow_department_mixing:
            return True
        return state.departments_in(room.id) <= {cls.department_id}


class ShiftRule(PlacementRule):
    code = "SHIFT_SEPARATION"

    def allows(self, cls: EligibleClass, room: AvailableRoom, state: PlanState, config: RuleConfig, seats: int) -> bool:
        if not config.strict_shift_separation:
            return True
        return not state.is_held(room.id)


RULES: tuple[PlacementRule, ...] = (CapacityRule(), UGPGRule(), DepartmentRule(), ShiftRule())


def first_violation(
    cls: EligibleClass,
    room: AvailableRoom,
    state: PlanState,
    config: RuleConfig,
    seats: int = 1,
) -> str | None:
    for rule in RULES:
        if not rule.allows(cls, room, state, config, seats):
            return rule.code
    return None


def compatible(
    cls: EligibleClass,
    room: AvailableRoom,
    state: PlanState,
    config: RuleConfig,
    seats: int = 1,
) -> bool:
    return first_violation(cls, room, state, config, seats) is None


def check_plan(plan: AllocationPlan, classes: list[EligibleClass], config: RuleConfig, *, held_room_ids=frozenset()) -> None:
    """Re-verify a finished plan against capacity, conservation and separation invariants."""

    for rp in plan.rooms:
        if rp.seats_used > rp.room.capacity:
            raise ConstraintViolation(
                f"room {rp.room.code} over capacity ({rp.seats_used} > {rp.room.capacity})",
                details={"room_id": str(rp.room.id)},
            )
        levels = {c.academic_level for c, _ in rp.placements}
        if config.strict_ug_pg_separation and len(levels) > 1:
            raise ConstraintViolation(f"room {rp.room.code} mixes UG and PG", details={"room_id": str(rp.room.id)})
        departments = {c.department_id for c, _ in rp.placements}
        if not config.allow_department_mixing and len(departments) > 1:
            raise ConstraintViolation(
                f"room {rp.room.code} mixes departments", details={"room_id": str(rp.room.id)}
            )
        if config.strict_shift_separation and rp.room.id in held_room_ids:
            raise ConstraintViolation(
                f"room {rp.room.code} is already allocated to another shift on this date",
                details={"room_id": str(rp.room.id)},
            )

    placed = plan.seats_by_class()
    residual = {u.class_id: u.residual_seats for u in plan.unallocated}
    for cls in classes:
        if placed.get(cls.id, 0) + residual.get(cls.id, 0) != cls.student_count:
            raise ConstraintViolation(
                f"class {cls.name} seats do not add up to its student count",
                details={
                    "class_id": str(cls.id),
                    "placed": placed.get(cls.id, 0),
                    "residual": residual.get(cls.id, 0),
                    "student_count": cls.student_count,
                },
            )
