"""
itinerary_engine/errors.py
--------------------------
Error taxonomy for the engine.

  ValidationError : malformed input, rejected before any computation.
  NotFoundError   : no Day for a requested date; carries the valid dates.
  PersistenceError: a store write failed; carries the computed result so
                    the caller can retry the write without recomputing.

Slot exhaustion (SlotFailure) and day-shrink data loss (DataLossGuard) are
returned values, not exceptions; see the scheduling and planning modules.
"""

from __future__ import annotations
from typing import Any


class EngineError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(EngineError, ValueError):
    """Input rejected before any computation or write took place."""

    def __init__(self, message: str, field: str = "") -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(EngineError, LookupError):
    """A requested entity does not exist."""

    def __init__(self, message: str, valid_dates: list[str] | None = None) -> None:
        super().__init__(message)
        self.valid_dates = list(valid_dates or [])


class PersistenceError(EngineError):
    """A store operation failed after computation succeeded."""

    def __init__(self, message: str, pending: Any = None) -> None:
        super().__init__(message)
        self.pending = pending
