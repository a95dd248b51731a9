from __future__ import annotations

from typing import Any


class AllocationError(Exception):
    """Base error for the allocation engine.

    `code` is a stable machine-readable identifier surfaced by the API/CLI wrappers.
    """

    code = "ALLOCATION_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.details = details or {}


class InvalidRequest(AllocationError):
    """Bad/missing date or shift, malformed config, or nothing to allocate. Nothing is persisted."""

    code = "INVALID_REQUEST"


class DataAccessError(AllocationError):
    """A provider or the allocation store could not be reached."""

    code = "DATA_ACCESS_ERROR"


class ConstraintViolation(AllocationError):
    """A produced plan breaks a capacity or separation invariant."""

    code = "CONSTRAINT_VIOLATION"
