"""modules/scheduling: slot allocation and activity edits."""

from itinerary_engine.modules.scheduling.slot_allocator import (
    DaySchedule, DayWindow, PlacementResult, SchedulingPreferences, SlotAllocator, SlotFailure,
    SlotQuality, TimeOfDay, TimeSlot, TimeSlotSearch, check_conflicts, find_optimal_slot,
    find_time_slots,
)
from itinerary_engine.modules.scheduling.itinerary_editor import EditResult, ItineraryEditor

__all__ = [
    "DaySchedule",
    "DayWindow",
    "PlacementResult",
    "SchedulingPreferences",
    "SlotAllocator",
    "SlotFailure",
    "SlotQuality",
    "TimeOfDay",
    "TimeSlot",
    "TimeSlotSearch",
    "check_conflicts",
    "find_optimal_slot",
    "find_time_slots",
    "EditResult",
    "ItineraryEditor",
]
