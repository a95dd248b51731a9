from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable

from sqlalchemy import delete, select, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from allocation import providers
from allocation.errors import AllocationError, DataAccessError, InvalidRequest
from allocation.packing import pack
from allocation.plan import AllocationPlan, RoomPlan
from allocation.rules import check_plan
from allocation.types import (
    SHIFTS,
    AllocationResult,
    AllocationStatistics,
    EligibleClass,
    RuleConfig,
    SessionKey,
    SnapshotLimits,
    UnallocatedClass,
)
from models.allocation import Allocation, AllocationClass
from models.allocation_run import AllocationRun
from models.exam_session import ExamSession


logger = logging.getLogger(__name__)


IDLE = "IDLE"
VALIDATING = "VALIDATING"
CLEARING = "CLEARING"
WRITING = "WRITING"
COMMITTED = "COMMITTED"
FAILED = "FAILED"
ROLLED_BACK = "ROLLED_BACK"

_TRANSITIONS: dict[str, set[str]] = {
    IDLE: {VALIDATING},
    VALIDATING: {CLEARING, FAILED},
    CLEARING: {WRITING, ROLLED_BACK},
    WRITING: {COMMITTED, ROLLED_BACK},
}

ROLLED_BACK_REASON = "ROLLED_BACK"


def parse_exam_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidRequest(f"Invalid exam date {value!r}; expected YYYY-MM-DD", code="INVALID_DATE")


def parse_shift(value, valid_shifts: Iterable[str]) -> str:
    shift = str(value or "").strip().upper()
    allowed = tuple(valid_shifts)
    if shift not in allowed:
        raise InvalidRequest(
            f"Invalid shift {value!r}; expected one of {', '.join(allowed)}",
            code="INVALID_SHIFT",
            details={"valid_shifts": list(allowed)},
        )
    return shift


class AllocationTransactionManager:
    """Runs one allocation for a (date, shift) as a single storage transaction.

    IDLE -> VALIDATING -> CLEARING -> WRITING -> COMMITTED, or VALIDATING -> FAILED,
    or CLEARING/WRITING -> ROLLED_BACK. A manager instance handles exactly one run and
    owns the session's transaction while it does.
    """

    def __init__(
        self,
        db: Session,
        *,
        config: RuleConfig,
        valid_shifts: Iterable[str] = SHIFTS,
        limits: SnapshotLimits | None = None,
        created_by: str | None = None,
        exam_type: str = "REGULAR",
    ):
        if not isinstance(config, RuleConfig):
            raise InvalidRequest("config must be a RuleConfig", code="INVALID_CONFIG")
        valid_shifts = tuple(valid_shifts)
        unknown = [s for s in valid_shifts if s not in SHIFTS]
        if unknown or not valid_shifts:
            raise InvalidRequest(
                f"Configured shifts {unknown or valid_shifts} are not supported",
                code="INVALID_CONFIG",
                details={"supported_shifts": list(SHIFTS)},
            )

        self.db = db
        self.config = config
        self.valid_shifts = valid_shifts
        self.limits = limits or SnapshotLimits()
        self.created_by = created_by
        self.exam_type = exam_type
        self.state = IDLE

    def _transition(self, new_state: str) -> None:
        if new_state not in _TRANSITIONS.get(self.state, set()):
            raise RuntimeError(f"Illegal allocation state transition {self.state} -> {new_state}")
        logger.debug("Allocation state %s -> %s", self.state, new_state)
        self.state = new_state

    def run(self, exam_date, shift) -> AllocationResult:
        self._transition(VALIDATING)
        try:
            key = SessionKey(exam_date=parse_exam_date(exam_date), shift=parse_shift(shift, self.valid_shifts))
        except InvalidRequest as exc:
            logger.warning("Allocation request rejected: %s", exc)
            self._transition(FAILED)
            raise

        logger.info("Allocation started for %s (%s)", key, self.config.as_dict())
        run = self._open_run(key)

        try:
            self._lock(key)
            classes = providers.eligible_classes(self.db, key, limits=self.limits)
            rooms = providers.available_rooms(self.db, key, limits=self.limits)
            held_room_ids = providers.rooms_held_by_other_shifts(self.db, key)
            existing = providers.find_exam_session(self.db, key)

            if not classes and not rooms:
                raise InvalidRequest(
                    "No eligible classes or available rooms found for allocation",
                    code="NOTHING_TO_ALLOCATE",
                )

            plan = pack(classes, rooms, self.config, held_room_ids=held_room_ids)
            check_plan(plan, classes, self.config, held_room_ids=held_room_ids)
        except AllocationError as exc:
            self._rollback()
            self._transition(FAILED)
            logger.warning("Allocation for %s failed validation: %s", key, exc)
            self._close_run(run, "FAILED" if isinstance(exc, InvalidRequest) else "ERROR", notes=f"{exc.code}: {exc}")
            raise

        if not rooms:
            # Total failure: leave any previous generation untouched.
            existing_id = existing.id if existing is not None else None
            self._rollback()
            self._transition(FAILED)
            message = "No available rooms found for allocation"
            logger.error("%s: %s", message, key)
            result = AllocationResult(
                success=False,
                message=message,
                unallocated=plan.unallocated,
                statistics=plan.statistics(classes),
                exam_session_id=existing_id,
                run_id=run.id,
            )
            self._close_run(run, "FAILED", result=result, notes=message)
            return result

        self._transition(CLEARING)
        try:
            exam_session = existing if existing is not None else self._create_session(key)
            self._clear(exam_session)
            self._transition(WRITING)
            for room_plan in plan.rooms:
                self._write_room(exam_session, room_plan)
            self.db.commit()
        except Exception as exc:
            self._rollback()
            self._transition(ROLLED_BACK)
            logger.exception("Allocation for %s rolled back", key)
            if isinstance(exc, (DataAccessError, OperationalError)):
                self._close_run(run, "ERROR", notes=f"{type(exc).__name__}: {exc}")
                if isinstance(exc, DataAccessError):
                    raise
                raise DataAccessError("Allocation store unavailable", details={"session": str(key)}) from exc
            result = self._rolled_back_result(classes, run, exc)
            self._close_run(run, "ROLLED_BACK", result=result, notes=result.message)
            return result

        self._transition(COMMITTED)
        result = self._committed_result(plan, classes, exam_session, run)
        logger.info(
            "Allocation committed for %s: %d class(es) in %d room(s), %d unallocated",
            key,
            result.statistics.classes_allocated,
            result.statistics.rooms_used,
            result.statistics.unallocated_classes,
        )
        self._close_run(run, "COMMITTED", result=result)
        return result

    def _open_run(self, key: SessionKey) -> AllocationRun:
        run = AllocationRun(
            exam_date=key.exam_date,
            shift=key.shift,
            status="CREATED",
            parameters={**self.config.as_dict(), "exam_type": self.exam_type},
            created_by=self.created_by,
        )
        try:
            self.db.add(run)
            self.db.commit()
        except SQLAlchemyError as exc:
            self._rollback()
            self._transition(FAILED)
            raise DataAccessError("Failed to record allocation run") from exc
        return run

    def _close_run(self, run: AllocationRun, status: str, *, result: AllocationResult | None = None, notes: str | None = None) -> None:
        try:
            run.status = status
            run.notes = (notes or "")[:500] or None
            if result is not None:
                run.exam_session_id = result.exam_session_id
                run.classes_allocated = result.statistics.classes_allocated
                run.students_allocated = result.statistics.students_allocated
                run.rooms_used = result.statistics.rooms_used
                run.unallocated_classes = result.statistics.unallocated_classes
            self.db.add(run)
            self.db.commit()
        except SQLAlchemyError:
            self._rollback()
            logger.warning("Could not record allocation run status %s", status, exc_info=True)

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback failed", exc_info=True)

    def _lock(self, key: SessionKey) -> None:
        """Serialize runs for the same session (for the whole date under strict shift separation)."""

        bind = self.db.get_bind()
        if bind.dialect.name != "postgresql":
            return
        lock_key = key.date_lock_key if self.config.strict_shift_separation else key.lock_key
        try:
            self.db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": lock_key})
        except SQLAlchemyError as exc:
            raise DataAccessError("Failed to acquire allocation lock", details={"session": str(key)}) from exc

    def _create_session(self, key: SessionKey) -> ExamSession:
        exam_session = ExamSession(exam_date=key.exam_date, shift=key.shift, exam_type=self.exam_type)
        self.db.add(exam_session)
        self.db.flush()
        return exam_session

    def _clear(self, exam_session: ExamSession) -> None:
        allocation_ids = select(Allocation.id).where(Allocation.exam_session_id == exam_session.id)
        self.db.execute(
            delete(AllocationClass)
            .where(AllocationClass.allocation_id.in_(allocation_ids))
            .execution_options(synchronize_session=False)
        )
        self.db.execute(
            delete(Allocation)
            .where(Allocation.exam_session_id == exam_session.id)
            .execution_options(synchronize_session=False)
        )

    def _write_room(self, exam_session: ExamSession, room_plan: RoomPlan) -> None:
        allocation = Allocation(
            exam_session_id=exam_session.id,
            room_id=room_plan.room.id,
            total_allocated_seats=room_plan.seats_used,
            is_confirmed=True,
            created_by=self.created_by,
        )
        self.db.add(allocation)
        self.db.flush()
        for cls, seats in room_plan.placements:
            self.db.add(AllocationClass(allocation_id=allocation.id, class_group_id=cls.id, seats=seats))
        self.db.flush()

    def _committed_result(
        self,
        plan: AllocationPlan,
        classes: list[EligibleClass],
        exam_session: ExamSession,
        run: AllocationRun,
    ) -> AllocationResult:
        if not classes:
            message = "No eligible classes found for allocation"
        elif plan.unallocated:
            message = f"Allocation completed with {len(plan.unallocated)} unallocated class(es)"
        else:
            message = "Allocation completed successfully"
        return AllocationResult(
            success=True,
            message=message,
            assignments=plan.assignments(),
            unallocated=plan.unallocated,
            statistics=plan.statistics(classes),
            exam_session_id=exam_session.id,
            run_id=run.id,
        )

    def _rolled_back_result(self, classes: list[EligibleClass], run: AllocationRun, exc: Exception) -> AllocationResult:
        # Nothing was persisted, so every class keeps its full residual.
        return AllocationResult(
            success=False,
            message=f"Allocation rolled back: {type(exc).__name__}: {exc}",
            unallocated=[
                UnallocatedClass(class_id=c.id, residual_seats=c.student_count, reason=ROLLED_BACK_REASON)
                for c in classes
            ],
            statistics=AllocationStatistics(total_classes=len(classes), unallocated_classes=len(classes)),
            run_id=run.id,
        )
