# backend/tests/test_rules.py

"""
Tests for the placement rules and post-pack plan verification.

Tests cover:
- Capacity rule against the remaining seats of a room
- UG/PG, department and shift separation flags
- Rule precedence in first_violation
- check_plan rejecting plans that break an invariant
"""

import uuid

import pytest

from allocation.errors import ConstraintViolation, InvalidRequest
from allocation.plan import AllocationPlan, PlanState, RoomPlan
from allocation.rules import check_plan, compatible, first_violation
from allocation.types import AvailableRoom, EligibleClass, RuleConfig, UnallocatedClass


CS = uuid.UUID(int=9001)
EE = uuid.UUID(int=9002)


def _cls(n, students, level="UG", department=CS):
    return EligibleClass(
        id=uuid.UUID(int=n),
        name=f"CLS-{n}",
        academic_level=level,
        department_id=department,
        student_count=students,
    )


def _room(n, capacity):
    return AvailableRoom(id=uuid.UUID(int=1000 + n), code=f"R-{n}", name=f"Room {n}", capacity=capacity)


class TestCapacityRule:
    def test_fits_exactly(self):
        room = _room(1, 50)
        state = PlanState([room])
        assert compatible(_cls(1, 50), room, state, RuleConfig(), seats=50)

    def test_over_capacity_is_rejected(self):
        room = _room(1, 50)
        state = PlanState([room])
        assert first_violation(_cls(1, 51), room, state, RuleConfig(), seats=51) == "CAPACITY"

    def test_uses_remaining_not_total_capacity(self):
        room = _room(1, 50)
        state = PlanState([room])
        state.place(_cls(1, 30), room, 30)
        assert compatible(_cls(2, 20), room, state, RuleConfig(), seats=20)
        assert not compatible(_cls(2, 21), room, state, RuleConfig(), seats=21)

    def test_full_room_rejects_single_seat(self):
        room = _room(1, 10)
        state = PlanState([room])
        state.place(_cls(1, 10), room, 10)
        assert first_violation(_cls(2, 5), room, state, RuleConfig()) == "CAPACITY"


class TestSeparationRules:
    def test_ug_pg_mix_blocked_when_strict(self):
        room = _room(1, 100)
        state = PlanState([room])
        state.place(_cls(1, 40, level="PG"), room, 40)
        config = RuleConfig(strict_ug_pg_separation=True)
        assert first_violation(_cls(2, 30, level="UG"), room, state, config) == "UG_PG_SEPARATION"

    def test_ug_pg_mix_allowed_when_relaxed(self):
        room = _room(1, 100)
        state = PlanState([room])
        state.place(_cls(1, 40, level="PG"), room, 40)
        config = RuleConfig(strict_ug_pg_separation=False)
        assert compatible(_cls(2, 30, level="UG"), room, state, config, seats=30)

    def test_same_level_shares_room_when_strict(self):
        room = _room(1, 100)
        state = PlanState([room])
        state.place(_cls(1, 40, level="PG"), room, 40)
        assert compatible(_cls(2, 30, level="PG"), room, state, RuleConfig(), seats=30)

    def test_department_mixing_blocked(self):
        room = _room(1, 100)
        state = PlanState([room])
        state.place(_cls(1, 40, department=CS), room, 40)
        config = RuleConfig(allow_department_mixing=False)
        assert first_violation(_cls(2, 30, department=EE), room, state, config) == "DEPARTMENT_MIXING"
        assert compatible(_cls(3, 30, department=CS), room, state, config, seats=30)

    def test_department_mixing_allowed_by_default(self):
        room = _room(1, 100)
        state = PlanState([room])
        state.place(_cls(1, 40, department=CS), room, 40)
        assert compatible(_cls(2, 30, department=EE), room, state, RuleConfig(), seats=30)

    def test_room_held_by_other_shift(self):
        room = _room(1, 100)
        state = PlanState([room], held_room_ids=[room.id])
        assert first_violation(_cls(1, 10), room, state, RuleConfig(strict_shift_separation=True)) == "SHIFT_SEPARATION"
        assert compatible(_cls(1, 10), room, state, RuleConfig(strict_shift_separation=False), seats=10)

    def test_capacity_is_reported_before_separation(self):
        room = _room(1, 50)
        state = PlanState([room], held_room_ids=[room.id])
        state.place(_cls(1, 50, level="PG"), room, 50)
        assert first_violation(_cls(2, 10, level="UG"), room, state, RuleConfig()) == "CAPACITY"


class TestRuleConfig:
    def test_defaults(self):
        config = RuleConfig()
        assert config.as_dict() == {
            "allow_department_mixing": True,
            "strict_ug_pg_separation": True,
            "strict_shift_separation": True,
        }

    def test_is_immutable(self):
        config = RuleConfig()
        with pytest.raises(AttributeError):
            config.strict_shift_separation = False

    def test_non_boolean_flag_rejected(self):
        with pytest.raises(InvalidRequest) as exc_info:
            RuleConfig(strict_ug_pg_separation="yes")
        assert exc_info.value.code == "INVALID_CONFIG"


class TestCheckPlan:
    def test_accepts_valid_plan(self):
        room = _room(1, 100)
        a, b = _cls(1, 60), _cls(2, 40)
        plan = AllocationPlan(rooms=[RoomPlan(room=room, placements=[(a, 60), (b, 40)])])
        check_plan(plan, [a, b], RuleConfig())

    def test_rejects_over_capacity(self):
        room = _room(1, 50)
        a = _cls(1, 60)
        plan = AllocationPlan(rooms=[RoomPlan(room=room, placements=[(a, 60)])])
        with pytest.raises(ConstraintViolation):
            check_plan(plan, [a], RuleConfig())

    def test_rejects_mixed_levels_when_strict(self):
        room = _room(1, 100)
        a, b = _cls(1, 30, level="UG"), _cls(2, 30, level="PG")
        plan = AllocationPlan(rooms=[RoomPlan(room=room, placements=[(a, 30), (b, 30)])])
        with pytest.raises(ConstraintViolation):
            check_plan(plan, [a, b], RuleConfig())
        check_plan(plan, [a, b], RuleConfig(strict_ug_pg_separation=False))

    def test_rejects_held_room(self):
        room = _room(1, 100)
        a = _cls(1, 30)
        plan = AllocationPlan(rooms=[RoomPlan(room=room, placements=[(a, 30)])])
        with pytest.raises(ConstraintViolation):
            check_plan(plan, [a], RuleConfig(), held_room_ids=frozenset({room.id}))

    def test_rejects_lost_seats(self):
        room = _room(1, 100)
        a = _cls(1, 60)
        plan = AllocationPlan(
            rooms=[RoomPlan(room=room, placements=[(a, 40)])],
            unallocated=[UnallocatedClass(class_id=a.id, residual_seats=10, reason="INSUFFICIENT_CAPACITY")],
        )
        with pytest.raises(ConstraintViolation) as exc_info:
            check_plan(plan, [a], RuleConfig())
        assert exc_info.value.details["placed"] == 40
