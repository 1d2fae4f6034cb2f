"""modules/planning: trip day sequencing."""

from itinerary_engine.modules.planning.day_sequencer import (
    DaySequencer, DataLossDecision, DataLossGuard, LossAction, ResequenceResult,
    find_day,
)

__all__ = [
    "DaySequencer",
    "DataLossDecision",
    "DataLossGuard",
    "LossAction",
    "ResequenceResult",
    "find_day",
]
