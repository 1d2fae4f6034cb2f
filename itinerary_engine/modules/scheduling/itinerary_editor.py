"""
itinerary_engine/modules/scheduling/itinerary_editor.py
-------------------------------------------------------
Activity insertion and edits against the trip store.

Every operation follows the same steps:
  1. resolve the Day by date (NotFoundError lists the valid dates)
  2. read the day's activities together with their version
  3. compute the new list (Slot Allocator for placements)
  4. write the full list back with the version read in step 2

A failed write raises PersistenceError whose `pending` is the computed
EditResult, so the caller can retry the write without recomputing.
Removing an activity never changes the times of its siblings.
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass, field, fields, replace
from typing import Any, Optional

from itinerary_engine.errors import NotFoundError, PersistenceError, ValidationError
from itinerary_engine.log import get_logger
from itinerary_engine.modules.planning.day_sequencer import find_day
from itinerary_engine.modules.scheduling.slot_allocator import (
    PlacementResult,
    SchedulingPreferences,
    SlotAllocator,
    check_conflicts,
)
from itinerary_engine.modules.storage.trip_store import TripStore
from itinerary_engine.schemas.itinerary import Activity, Day

logger = get_logger(__name__)

# Fields an edit may never touch directly.
_READ_ONLY_FIELDS = {"id", "added_at", "novatrek_enhanced"}


@dataclass
class EditResult:
    day: Day
    activities: list[Activity] = field(default_factory=list)
    activity: Optional[Activity] = None
    placement: Optional[PlacementResult] = None
    warnings: list[str] = field(default_factory=list)
    version: int = 0

    @property
    def success(self) -> bool:
        return self.placement is None or self.placement.success


def new_activity_id() -> str:
    return f"activity-{uuid.uuid4().hex[:12]}"


class ItineraryEditor:
    """
    Usage:
        editor = ItineraryEditor(store)
        result = editor.add_activity(trip.id, "2025-06-02", activity, requested_time="14:00")
    """

    def __init__(self, store: TripStore, allocator: SlotAllocator | None = None):
        self.store = store
        self.allocator = allocator or SlotAllocator()

    # ── Insertion ─────────────────────────────────────────────────────────────

    def add_activity(
        self,
        trip_id: str,
        day_date: Any,
        activity: Activity,
        requested_time: str | None = None,
        auto_optimize: bool = True,
        preferences: SchedulingPreferences | None = None,
    ) -> EditResult:
        """
        Place activity on the given day. A SlotFailure is returned on the
        result (success False) and nothing is written.
        """
        day = self._day(trip_id, day_date)
        result = self._place(trip_id, day, activity, requested_time, auto_optimize, preferences)
        if not result.success:
            return result

        result.version = self._write(trip_id, day, result.activities, result.version, result)
        logger.info("Added '%s' to %s at %s", activity.name, day.date_str, result.activity.start_time)
        return result

    # ── Edits ─────────────────────────────────────────────────────────────────

    def update_activity(self, trip_id: str, day_date: Any, activity_id: str, **changes: Any) -> EditResult:
        """
        Apply field changes to one activity. end_time always follows
        start_time + duration_minutes; overlaps are reported as warnings.

        Raises:
            ValidationError: unknown or read-only field, or an invalid new value.
        """
        allowed = {f.name for f in fields(Activity)} - _READ_ONLY_FIELDS
        unknown = sorted(set(changes) - allowed)
        if unknown:
            raise ValidationError(f"cannot update field(s): {', '.join(unknown)}", field=unknown[0])

        day = self._day(trip_id, day_date)
        existing, version = self.store.get_activities(trip_id, day.id)
        current = self._find(existing, activity_id, day)
        edited = replace(current, **changes)

        warnings: list[str] = []
        if check_conflicts(existing, edited.start_minutes, edited.duration_minutes, ignore_id=edited.id):
            warnings.append("Time conflict detected with existing activities")

        updated = sorted(
            [edited if a.id == activity_id else a for a in existing],
            key=lambda a: a.start_minutes,
        )
        result = EditResult(day=day, activities=updated, activity=edited, warnings=warnings)
        result.version = self._write(trip_id, day, updated, version, result)
        return result

    def move_activity(
        self,
        trip_id: str,
        from_date: Any,
        activity_id: str,
        to_date: Any,
        requested_time: str | None = None,
        auto_optimize: bool = True,
        preferences: SchedulingPreferences | None = None,
    ) -> EditResult:
        """
        Move an activity to another day.

        Both day lists are computed before anything is written. The source
        removal is written first, then the target insert; if the target
        write fails the source day is restored, so the activity is never
        stored on both days. The raised PersistenceError carries the
        target's unwritten EditResult.
        """
        source = self._day(trip_id, from_date)
        target = self._day(trip_id, to_date)
        source_items, source_version = self.store.get_activities(trip_id, source.id)
        moving = self._find(source_items, activity_id, source)

        if source.id == target.id:
            time = requested_time or moving.start_time
            return self.update_activity(trip_id, from_date, activity_id, start_time=time)

        result = self._place(
            trip_id, target, moving, requested_time or moving.start_time, auto_optimize, preferences,
        )
        if not result.success:
            return result

        remaining = [a for a in source_items if a.id != activity_id]
        source_written = self._write(trip_id, source, remaining, source_version, result)
        try:
            result.version = self._write(trip_id, target, result.activities, result.version, result)
        except PersistenceError:
            self._restore(trip_id, source, source_items, source_written)
            raise

        logger.info("Moved '%s' from %s to %s", moving.name, source.date_str, target.date_str)
        return result

    def duplicate_activity(
        self,
        trip_id: str,
        day_date: Any,
        activity_id: str,
        target_date: Any = None,
        requested_time: str | None = None,
        auto_optimize: bool = True,
        preferences: SchedulingPreferences | None = None,
    ) -> EditResult:
        """Copy an activity under a new id onto the same or another day."""
        day = self._day(trip_id, day_date)
        existing, _ = self.store.get_activities(trip_id, day.id)
        original = self._find(existing, activity_id, day)
        copy = replace(original, id=new_activity_id(), added_at="")
        return self.add_activity(
            trip_id, target_date if target_date is not None else day_date, copy,
            requested_time=requested_time or original.start_time,
            auto_optimize=auto_optimize, preferences=preferences,
        )

    def remove_activity(self, trip_id: str, day_date: Any, activity_id: str) -> EditResult:
        day = self._day(trip_id, day_date)
        existing, version = self.store.get_activities(trip_id, day.id)
        removed = self._find(existing, activity_id, day)

        remaining = [a for a in existing if a.id != activity_id]
        result = EditResult(day=day, activities=remaining, activity=removed)
        result.version = self._write(trip_id, day, remaining, version, result)
        logger.info("Removed '%s' from %s", removed.name, day.date_str)
        return result

    # ── Internals ─────────────────────────────────────────────────────────────

    def _day(self, trip_id: str, day_date: Any) -> Day:
        return find_day(self.store.get_days(trip_id), day_date)

    def _place(self, trip_id: str, day: Day, activity: Activity, requested_time: str | None,
               auto_optimize: bool, preferences: SchedulingPreferences | None) -> EditResult:
        """Compute the day's list with activity placed; nothing is written. version is the one read."""
        existing, version = self.store.get_activities(trip_id, day.id)
        placement = self.allocator.place(existing, activity, requested_time, auto_optimize, preferences)
        if not placement.success:
            return EditResult(day=day, activities=existing, placement=placement,
                              warnings=list(placement.warnings), version=version)

        return EditResult(
            day        = day,
            activities = sorted(existing + [placement.activity], key=lambda a: a.start_minutes),
            activity   = placement.activity,
            placement  = placement,
            warnings   = list(placement.warnings),
            version    = version,
        )

    def _restore(self, trip_id: str, day: Day, activities: list[Activity], version: int) -> None:
        try:
            self.store.replace_activities(trip_id, day.id, activities, expected_version=version)
            logger.warning("Restored %s after a failed move", day.date_str)
        except PersistenceError as exc:
            logger.error("Could not restore %s after a failed move: %s", day.date_str, exc)

    @staticmethod
    def _find(activities: list[Activity], activity_id: str, day: Day) -> Activity:
        for a in activities:
            if a.id == activity_id:
                return a
        raise NotFoundError(f"activity {activity_id} not found on {day.date_str}")

    def _write(self, trip_id: str, day: Day, activities: list[Activity], version: int,
               pending: EditResult) -> int:
        try:
            return self.store.replace_activities(trip_id, day.id, activities, expected_version=version)
        except PersistenceError as exc:
            logger.error("Write to %s failed: %s", day.date_str, exc)
            raise PersistenceError(f"could not save activities for {day.date_str}: {exc}",
                                   pending=pending) from exc
