"""
itinerary_engine/modules/storage/trip_store.py
----------------------------------------------
Trip / Day / Activity / Reminder store.

Activities are keyed individually under their day, and every day's
activity collection carries a version counter. Writers read the list
together with its version and pass that version back on write; a stale
version raises PersistenceError instead of silently overwriting a
concurrent edit.

Reminder batches are all-or-nothing: every record is validated before the
first one is written. Reminders are never deleted; re-saving an existing
id keeps its current status.
"""

from __future__ import annotations
import copy
import threading
from abc import ABC, abstractmethod
from typing import Protocol

from itinerary_engine.errors import NotFoundError, PersistenceError, ValidationError
from itinerary_engine.log import get_logger
from itinerary_engine.schemas.booking import Reminder, ReminderStatus
from itinerary_engine.schemas.itinerary import Activity, Day, Trip

logger = get_logger(__name__)


class ReminderSink(Protocol):
    def save_reminders(self, trip_id: str, reminders: list[Reminder]) -> None: ...


class TripStore(ABC):
    """Abstract store; InMemoryTripStore is the reference implementation."""

    @abstractmethod
    def save_trip(self, trip: Trip) -> None: ...

    @abstractmethod
    def get_trip(self, trip_id: str) -> Trip: ...

    @abstractmethod
    def save_days(self, trip_id: str, days: list[Day]) -> None: ...

    @abstractmethod
    def get_days(self, trip_id: str) -> list[Day]: ...

    @abstractmethod
    def get_activities(self, trip_id: str, day_id: str) -> tuple[list[Activity], int]: ...

    @abstractmethod
    def replace_activities(self, trip_id: str, day_id: str, activities: list[Activity],
                           expected_version: int) -> int: ...

    @abstractmethod
    def save_reminders(self, trip_id: str, reminders: list[Reminder]) -> None: ...

    @abstractmethod
    def get_reminders(self, trip_id: str) -> list[Reminder]: ...

    @abstractmethod
    def update_reminder_status(self, trip_id: str, reminder_id: str,
                               status: ReminderStatus) -> Reminder: ...


class InMemoryTripStore(TripStore):
    """
    Usage:
        store = InMemoryTripStore()
        store.save_trip(trip)
        store.save_days(trip.id, days)
        activities, version = store.get_activities(trip.id, day.id)
        store.replace_activities(trip.id, day.id, updated, expected_version=version)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._trips: dict[str, Trip] = {}
        self._days: dict[str, dict[str, Day]] = {}                          # trip → day id → Day
        self._activities: dict[tuple[str, str], dict[str, Activity]] = {}  # (trip, day) → id → Activity
        self._versions: dict[tuple[str, str], int] = {}
        self._reminders: dict[str, dict[str, Reminder]] = {}

    # ── Trips ─────────────────────────────────────────────────────────────────

    def save_trip(self, trip: Trip) -> None:
        with self._lock:
            self._trips[trip.id] = copy.deepcopy(trip)

    def get_trip(self, trip_id: str) -> Trip:
        with self._lock:
            if trip_id not in self._trips:
                raise NotFoundError(f"trip {trip_id} not found")
            return copy.deepcopy(self._trips[trip_id])

    # ── Days ──────────────────────────────────────────────────────────────────

    def save_days(self, trip_id: str, days: list[Day]) -> None:
        """Replace the trip's day list; activities are stored per day id."""
        with self._lock:
            self._days[trip_id] = {}
            for day in days:
                key = (trip_id, day.id)
                self._days[trip_id][day.id] = copy.deepcopy(_day_header(day))
                self._activities[key] = {a.id: copy.deepcopy(a) for a in day.activities}
                self._versions[key] = self._versions.get(key, 0) + 1
        logger.info("Stored %d day(s) for trip %s", len(days), trip_id)

    def get_days(self, trip_id: str) -> list[Day]:
        with self._lock:
            days = []
            for day in self._days.get(trip_id, {}).values():
                stored = copy.deepcopy(day)
                stored.activities = self._sorted((trip_id, day.id))
                days.append(stored)
        return sorted(days, key=lambda d: d.day_number)

    # ── Activities ────────────────────────────────────────────────────────────

    def get_activities(self, trip_id: str, day_id: str) -> tuple[list[Activity], int]:
        key = (trip_id, day_id)
        with self._lock:
            if day_id not in self._days.get(trip_id, {}):
                raise NotFoundError(f"day {day_id} not found in trip {trip_id}")
            return self._sorted(key), self._versions.get(key, 0)

    def replace_activities(self, trip_id: str, day_id: str, activities: list[Activity],
                           expected_version: int) -> int:
        key = (trip_id, day_id)
        with self._lock:
            if day_id not in self._days.get(trip_id, {}):
                raise NotFoundError(f"day {day_id} not found in trip {trip_id}")
            current = self._versions.get(key, 0)
            if current != expected_version:
                raise PersistenceError(
                    f"day {day_id}: activities changed concurrently "
                    f"(expected version {expected_version}, found {current})",
                    pending=activities,
                )
            self._activities[key] = {a.id: copy.deepcopy(a) for a in activities}
            self._versions[key] = current + 1
            return current + 1

    def _sorted(self, key: tuple[str, str]) -> list[Activity]:
        stored = self._activities.get(key, {}).values()
        return [copy.deepcopy(a) for a in sorted(stored, key=lambda a: a.start_minutes)]

    # ── Reminders ─────────────────────────────────────────────────────────────

    def save_reminders(self, trip_id: str, reminders: list[Reminder]) -> None:
        seen: set[str] = set()
        for r in reminders:
            if r.id in seen:
                raise ValidationError(f"duplicate reminder id {r.id} in batch", field="id")
            if r.reminder_date >= r.activity_date:
                raise ValidationError(
                    f"reminder {r.id} is not before its activity date", field="reminder_date",
                )
            seen.add(r.id)

        with self._lock:
            bucket = self._reminders.setdefault(trip_id, {})
            for r in reminders:
                stored = copy.deepcopy(r)
                if r.id in bucket:
                    stored.status = bucket[r.id].status
                bucket[r.id] = stored
        logger.info("Persisted %d reminder(s) for trip %s", len(reminders), trip_id)

    def get_reminders(self, trip_id: str) -> list[Reminder]:
        with self._lock:
            stored = list(self._reminders.get(trip_id, {}).values())
        return sorted((copy.deepcopy(r) for r in stored), key=lambda r: (r.reminder_date, r.id))

    def update_reminder_status(self, trip_id: str, reminder_id: str,
                               status: ReminderStatus) -> Reminder:
        with self._lock:
            reminder = self._reminders.get(trip_id, {}).get(reminder_id)
            if reminder is None:
                raise NotFoundError(f"reminder {reminder_id} not found in trip {trip_id}")
            reminder.transition(status)
            return copy.deepcopy(reminder)


def _day_header(day: Day) -> Day:
    """Day header without its activities (those are keyed separately)."""
    header = copy.copy(day)
    header.activities = []
    return header
