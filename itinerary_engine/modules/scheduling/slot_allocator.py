"""
itinerary_engine/modules/scheduling/slot_allocator.py
-----------------------------------------------------
Places a new activity inside one day: conflict detection, first-fit slot
search and travel-time annotation.

Conflict rule
─────────────
[s1, e1) and [s2, e2) conflict iff s1 < e2 and s2 < e1. An activity ending
exactly when the next one starts is not a conflict.

Slot search (only when the requested time conflicts and auto-placement is on)
─────────────────────────────────────────────────────────────────────────────
Existing activities sorted by start time:
  1. before the first activity: day_start, if first_start - day_start ≥ duration
  2. each gap: prev_end + buffer, if next_start - prev_end ≥ duration + buffer
  3. after the last activity:  last_end + buffer, if it ends by day_end
The first candidate in chronological order wins; there is no attempt to
minimise fragmentation or travel. prev_end is the running maximum end so
overlapping existing entries never produce an overlapping placement, and a
candidate never starts before day_start.

Slot listing (find_time_slots)
──────────────────────────────
The same free stretches, walked in SLOT_STEP_MINUTES steps. Every fitting
start is returned with a quality: ideal (no meal clash, in the preferred
time of day), good (no meal clash) or acceptable. Slots are ranked best
first and come with day statistics and schedule warnings.

Travel time is advisory only: > TRAVEL_WARNING_MINUTES adds a warning but
never blocks placement.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from itinerary_engine import config
from itinerary_engine.log import get_logger
from itinerary_engine.modules.tool_usage.distance_tool import DistanceTool
from itinerary_engine.modules.tool_usage.time_tool import TimeTool, format_minutes, parse_hhmm
from itinerary_engine.schemas.itinerary import Activity
from itinerary_engine.schemas.weather import WeatherCondition

logger = get_logger(__name__)

NO_SLOT_MESSAGE: str = "No available time slot found"


# ─────────────────────────────────────────────────────────────────────────────
# Policy
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class DayWindow:
    """Bounds (minutes after midnight) inside which new activities may be placed."""
    start: int = config.DAY_START_MINUTES
    end: int = config.DAY_END_MINUTES

    @classmethod
    def from_preferences(cls, early_bird: bool = False, night_owl: bool = False) -> "DayWindow":
        return cls(
            start=config.EARLY_BIRD_START_MINUTES if early_bird else config.DAY_START_MINUTES,
            end=config.NIGHT_OWL_END_MINUTES if night_owl else config.DAY_END_MINUTES,
        )


class TimeOfDay(str, Enum):
    MORNING   = "morning"     # 06:00-12:00
    AFTERNOON = "afternoon"   # 12:00-17:00
    EVENING   = "evening"     # 17:00-22:00
    ANY       = "any"


TIME_OF_DAY_HOURS: dict[TimeOfDay, range] = {
    TimeOfDay.MORNING:   range(6, 12),
    TimeOfDay.AFTERNOON: range(12, 17),
    TimeOfDay.EVENING:   range(17, 22),
}

# (name, start, end) in minutes after midnight; slots overlapping these lose quality.
MEAL_TIMES: tuple[tuple[str, int, int], ...] = (
    ("breakfast", 7 * 60, 10 * 60),
    ("lunch",     12 * 60, 14 * 60),
    ("dinner",    18 * 60, 21 * 60),
)

SLOT_STEP_MINUTES: int = 15
MEAL_CATEGORIES: tuple[str, ...] = ("restaurant", "food")


@dataclass
class SchedulingPreferences:
    early_bird: bool = False
    night_owl: bool = False
    buffer_minutes: int = config.BUFFER_MINUTES
    preferred_time_of_day: TimeOfDay = TimeOfDay.ANY   # slot ranking only
    avoid_meal_times: bool = True                      # slot ranking only

    @property
    def window(self) -> DayWindow:
        return DayWindow.from_preferences(self.early_bird, self.night_owl)


# ─────────────────────────────────────────────────────────────────────────────
# Result types
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class SlotFailure:
    """Structured, non-fatal failure: the day window has no room."""
    message: str
    duration_minutes: int
    conflicts: list[Activity] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


@dataclass
class PlacementResult:
    """Outcome of SlotAllocator.place(). Exactly one of activity / failure is set."""
    activity: Optional[Activity] = None
    failure: Optional[SlotFailure] = None
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    conflicts: list[Activity] = field(default_factory=list)
    optimized_time: Optional[str] = None   # set only when the engine moved the start

    @property
    def success(self) -> bool:
        return self.activity is not None


class SlotQuality(str, Enum):
    IDEAL      = "ideal"        # no meal clash, in the preferred time of day
    GOOD       = "good"         # no meal clash
    ACCEPTABLE = "acceptable"


_QUALITY_RANK = {SlotQuality.IDEAL: 0, SlotQuality.GOOD: 1, SlotQuality.ACCEPTABLE: 2}


@dataclass
class TimeSlot:
    start_time: str
    end_time: str
    duration_minutes: int
    quality: SlotQuality
    conflicts: list[str] = field(default_factory=list)     # meal clashes
    suggestions: list[str] = field(default_factory=list)

    @property
    def start_minutes(self) -> int:
        return parse_hhmm(self.start_time)


@dataclass
class DaySchedule:
    total_activities: int
    busy_hours: float
    free_hours: float
    meals_covered: bool


@dataclass
class TimeSlotSearch:
    available_slots: list[TimeSlot] = field(default_factory=list)   # best first
    day_schedule: Optional[DaySchedule] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def best_slot(self) -> Optional[TimeSlot]:
        return self.available_slots[0] if self.available_slots else None


# ─────────────────────────────────────────────────────────────────────────────
# Pure helpers
# ─────────────────────────────────────────────────────────────────────────────

def intervals_overlap(s1: int, e1: int, s2: int, e2: int) -> bool:
    return s1 < e2 and s2 < e1


def check_conflicts(existing: list[Activity], start_minutes: int, duration_minutes: int,
                    ignore_id: str | None = None) -> list[Activity]:
    """Activities whose [start, end) overlaps the proposed interval."""
    end = start_minutes + duration_minutes
    return [
        a for a in existing
        if a.id != ignore_id and intervals_overlap(start_minutes, end, a.start_minutes, a.end_minutes)
    ]


def find_optimal_slot(
    existing: list[Activity],
    duration_minutes: int,
    window: DayWindow | None = None,
    buffer_minutes: int = config.BUFFER_MINUTES,
) -> Optional[int]:
    """
    First feasible start (minutes after midnight) in chronological order,
    or None when the window is exhausted. Deterministic for equal inputs.
    """
    window = window or DayWindow()
    ordered = sorted(existing, key=lambda a: (a.start_minutes, a.end_minutes))

    if not ordered:
        return window.start if window.start + duration_minutes <= window.end else None

    if (ordered[0].start_minutes - window.start >= duration_minutes
            and window.start + duration_minutes <= window.end):
        return window.start

    previous_end = ordered[0].end_minutes
    for nxt in ordered[1:]:
        candidate = max(previous_end + buffer_minutes, window.start)
        if (candidate + duration_minutes <= nxt.start_minutes
                and candidate + duration_minutes <= window.end):
            return candidate
        previous_end = max(previous_end, nxt.end_minutes)

    candidate = max(previous_end + buffer_minutes, window.start)
    if candidate + duration_minutes <= window.end:
        return candidate
    return None


def previous_activity(existing: list[Activity], start_minutes: int,
                      ignore_id: str | None = None) -> Optional[Activity]:
    """Latest activity starting strictly before start_minutes."""
    earlier = [a for a in existing if a.start_minutes < start_minutes and a.id != ignore_id]
    if not earlier:
        return None
    return max(earlier, key=lambda a: a.start_minutes)


def free_gaps(existing: list[Activity], window: DayWindow, buffer_minutes: int) -> list[tuple[int, int]]:
    """
    [start, end) stretches of the window a new activity may occupy.
    Same bounds as find_optimal_slot: no buffer before the first activity,
    prev_end + buffer after every other one.
    """
    gaps: list[tuple[int, int]] = []
    cursor = window.start
    for a in sorted(existing, key=lambda a: (a.start_minutes, a.end_minutes)):
        if a.start_minutes > cursor:
            gaps.append((cursor, min(a.start_minutes, window.end)))
        cursor = max(cursor, a.end_minutes + buffer_minutes)
    if cursor < window.end:
        gaps.append((cursor, window.end))
    return gaps


def meal_conflicts(start_minutes: int, end_minutes: int) -> list[str]:
    return [name for name, s, e in MEAL_TIMES if intervals_overlap(start_minutes, end_minutes, s, e)]


def matches_time_of_day(start_minutes: int, preferred: TimeOfDay) -> bool:
    if preferred is TimeOfDay.ANY:
        return True
    return start_minutes // 60 in TIME_OF_DAY_HOURS[preferred]


def day_schedule(existing: list[Activity], window: DayWindow) -> DaySchedule:
    busy = sum(a.duration_minutes for a in existing)
    return DaySchedule(
        total_activities = len(existing),
        busy_hours       = round(busy / 60, 1),
        free_hours       = round(max(0, window.end - window.start - busy) / 60, 1),
        meals_covered    = any(a.category.lower() in MEAL_CATEGORIES for a in existing),
    )


def find_time_slots(
    existing: list[Activity],
    duration_minutes: int,
    preferences: SchedulingPreferences | None = None,
    conditions: WeatherCondition | None = None,
) -> TimeSlotSearch:
    """
    Every start, in SLOT_STEP_MINUTES steps, at which an activity of
    duration_minutes fits without overlapping existing ones, ranked best first.

    Ranking: quality, then fewer meal clashes, then time-of-day match, then
    chronological. Earliest listed start always equals find_optimal_slot().

    Args:
        existing:         Activities already on the day.
        duration_minutes: Length of the activity to fit.
        preferences:      Day window, buffer, preferred time of day, meal avoidance.
        conditions:       The day's weather condition; rain flags afternoon slots.
    """
    preferences = preferences or SchedulingPreferences()
    window = preferences.window
    preferred = preferences.preferred_time_of_day

    slots: list[TimeSlot] = []
    for gap_start, gap_end in free_gaps(existing, window, preferences.buffer_minutes):
        start = gap_start
        while start + duration_minutes <= gap_end:
            end = start + duration_minutes
            clashes = meal_conflicts(start, end) if preferences.avoid_meal_times else []
            in_band = matches_time_of_day(start, preferred)

            if not clashes and in_band:
                quality = SlotQuality.IDEAL
            elif not clashes:
                quality = SlotQuality.GOOD
            else:
                quality = SlotQuality.ACCEPTABLE

            suggestions: list[str] = []
            if not in_band:
                suggestions.append(f"Not in preferred {preferred.value} time")
            if conditions is WeatherCondition.RAIN and 12 <= start // 60 <= 16:
                suggestions.append("Rain expected in afternoon - consider indoor activities")

            slots.append(TimeSlot(
                start_time       = format_minutes(start),
                end_time         = format_minutes(end),
                duration_minutes = duration_minutes,
                quality          = quality,
                conflicts        = [f"Conflicts with {m}" for m in clashes],
                suggestions      = suggestions,
            ))
            start += SLOT_STEP_MINUTES

    slots.sort(key=lambda s: (
        _QUALITY_RANK[s.quality],
        len(s.conflicts),
        not matches_time_of_day(s.start_minutes, preferred),
        s.start_minutes,
    ))

    schedule = day_schedule(existing, window)
    warnings: list[str] = []
    if not slots:
        warnings.append("No available time slots found. Consider removing or shortening existing activities.")
    if schedule.busy_hours > 10:
        warnings.append("Day is quite packed. Consider spreading activities across multiple days.")
    if not schedule.meals_covered:
        warnings.append("No meal times scheduled. Remember to plan for breakfast, lunch, and dinner.")
    if schedule.total_activities > 6:
        warnings.append("Many activities scheduled. This might be tiring.")

    logger.info("Found %d slot(s) of %d min among %d activities",
                len(slots), duration_minutes, len(existing))
    return TimeSlotSearch(available_slots=slots, day_schedule=schedule, warnings=warnings)


# ─────────────────────────────────────────────────────────────────────────────
# SlotAllocator
# ─────────────────────────────────────────────────────────────────────────────

class SlotAllocator:
    """
    Usage:
        allocator = SlotAllocator()
        result    = allocator.place(day.activities, candidate,
                                    requested_time="10:00", auto_optimize=True)
        if not result.success:
            report(result.failure)
    """

    def __init__(
        self,
        distance_tool: DistanceTool | None = None,
        time_tool: TimeTool | None = None,
        travel_warning_minutes: int = config.TRAVEL_WARNING_MINUTES,
    ):
        self.distance_tool = distance_tool or DistanceTool()
        self.time_tool     = time_tool     or TimeTool()
        self.travel_warning_minutes = travel_warning_minutes

    def travel_minutes(self, origin: Activity | None, destination: Activity) -> int:
        """Straight-line travel estimate between two located activities; 0 if unknown."""
        if origin is None or origin.location is None or destination.location is None:
            return 0
        km = self.distance_tool.between(origin.location, destination.location)
        return self.time_tool.estimate_travel_time(km)

    def place(
        self,
        existing: list[Activity],
        candidate: Activity,
        requested_time: str | None = None,
        auto_optimize: bool = True,
        preferences: SchedulingPreferences | None = None,
    ) -> PlacementResult:
        """
        Decide the start time for candidate among existing activities.

        Args:
            existing:       Activities already on the day (candidate excluded).
            candidate:      The activity to place; its duration is authoritative.
            requested_time: "HH:MM"; defaults to config.DEFAULT_START_TIME.
            auto_optimize:  Search for a free slot when the request conflicts.
            preferences:    Day-window flags and buffer.

        Returns:
            PlacementResult with the scheduled copy of candidate, or a
            SlotFailure when auto_optimize found no room.
        """
        preferences = preferences or SchedulingPreferences()
        others = [a for a in existing if a.id != candidate.id]
        requested = requested_time or config.DEFAULT_START_TIME
        start = parse_hhmm(requested)

        warnings: list[str] = []
        conflicts = check_conflicts(others, start, candidate.duration_minutes)
        optimized: Optional[str] = None

        if conflicts and auto_optimize:
            slot = find_optimal_slot(
                others, candidate.duration_minutes, preferences.window, preferences.buffer_minutes,
            )
            if slot is None:
                logger.info("No slot for %s (%d min) among %d activities",
                            candidate.name, candidate.duration_minutes, len(others))
                failure = SlotFailure(
                    message          = NO_SLOT_MESSAGE,
                    duration_minutes = candidate.duration_minutes,
                    conflicts        = conflicts,
                    warnings         = ["No available time slots"],
                    suggestions      = ["Consider removing or shortening other activities"],
                )
                return PlacementResult(failure=failure, conflicts=conflicts,
                                       warnings=list(failure.warnings),
                                       suggestions=list(failure.suggestions))
            start = slot
            optimized = format_minutes(slot)
            warnings.append(f"Time conflict detected. Activity rescheduled to {optimized}")
        elif conflicts:
            warnings.append("Time conflict detected with existing activities")

        placed = replace(candidate, start_time=format_minutes(start), novatrek_enhanced=True)
        if not placed.added_at:
            placed.added_at = datetime.now(timezone.utc).isoformat()

        travel = self.travel_minutes(previous_activity(others, start), placed)
        placed.travel_time_minutes = travel
        if travel > self.travel_warning_minutes:
            warnings.append(f"{travel} minutes travel time from previous activity")

        return PlacementResult(
            activity       = placed,
            warnings       = warnings,
            suggestions    = self._suggestions(placed),
            conflicts      = conflicts,
            optimized_time = optimized if optimized != requested_time else None,
        )

    @staticmethod
    def _suggestions(activity: Activity) -> list[str]:
        suggestions: list[str] = []
        if activity.booking_required and not activity.booking_url:
            suggestions.append("This activity requires booking. Consider making a reservation soon.")
        if activity.expert_recommended:
            suggestions.append("This is an expert-recommended activity - great choice!")
        return suggestions
