from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import OperationalError as SAOperationalError
from sqlalchemy.orm import Session

from allocation import service
from allocation.types import RuleConfig
from core.config import settings
from core.database import DatabaseUnavailableError, get_db, is_transient_db_connectivity_error, validate_db_connection
from schemas.allocation import (
    AllocationResultOut,
    AllocationRunOut,
    AllocationSummaryOut,
    RunAllocationRequest,
)


logger = logging.getLogger(__name__)


router = APIRouter()


def _rule_config(payload: RunAllocationRequest) -> RuleConfig:
    base = settings.rule_config()
    if payload.rules is None:
        return base
    overrides = payload.rules.model_dump(exclude_none=True)
    return RuleConfig(**{**base.as_dict(), **overrides})


@router.post("/run", response_model=AllocationResultOut)
def run_allocation(
    payload: RunAllocationRequest,
    db: Session = Depends(get_db),
) -> AllocationResultOut:
    try:
        # Explicit connectivity validation before creating any rows.
        validate_db_connection(db)
    except SAOperationalError as exc:
        if is_transient_db_connectivity_error(exc):
            raise DatabaseUnavailableError("Database temporarily unavailable") from exc
        raise

    result = service.allocate(
        db,
        payload.exam_date,
        payload.shift,
        config=_rule_config(payload),
        created_by=payload.created_by,
        exam_type=payload.exam_type,
    )
    if not result.success:
        logger.warning("Allocation for %s/%s unsuccessful: %s", payload.exam_date, payload.shift, result.message)
    return AllocationResultOut.model_validate(result.as_dict())


@router.get("/", response_model=AllocationSummaryOut)
def get_allocation_summary(
    exam_date: date = Query(...),
    shift: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> AllocationSummaryOut:
    return AllocationSummaryOut.model_validate(service.allocation_summary(db, exam_date, shift))


@router.get("/runs", response_model=list[AllocationRunOut])
def list_allocation_runs(
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[AllocationRunOut]:
    return [AllocationRunOut.model_validate(r) for r in service.list_runs(db, limit=limit)]
