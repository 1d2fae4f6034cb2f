"""
itinerary_engine/modules/planning/day_sequencer.py
--------------------------------------------------
Turns a trip's destination stays into the ordered, contiguously numbered
list of calendar Days consumed by every other component.

Algorithm (multi-destination)
─────────────────────────────
For stays in `order`:
  1. first stay   → one DESTINATION day per date in [arrival, departure]
  2. later stays  → one TRAVEL day dated at the stay's arrival, labelled
                    previous → current; then DESTINATION days from
                    arrival + 1 through departure.
A travel day takes over the previous stay's departure date when the two
coincide, so every date appears once. Exactly one travel day is emitted
per hand-over regardless of actual transit duration.

Legacy form: one DESTINATION day per date in [start_date, end_date].

Skips vs. rejections
────────────────────
  - stay without a place, or with an unparsable date → that stay is skipped
  - departure before arrival, overlapping stays     → ValidationError
  - legacy form with bad dates / no dates at all   → ValidationError

Re-sequencing keeps day ids and activities by date. Days that fall outside
the new range and still own activities are never dropped silently: they
are reported in a DataLossGuard the caller must resolve.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import Enum

from itinerary_engine.errors import NotFoundError, ValidationError
from itinerary_engine.log import get_logger
from itinerary_engine.modules.tool_usage.time_tool import date_range, parse_date
from itinerary_engine.schemas.itinerary import Activity, Day, DayType, Trip

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Result types
# ─────────────────────────────────────────────────────────────────────────────

class LossAction(str, Enum):
    KEEP   = "keep"     # retain the day, flagged out_of_range
    MOVE   = "move"     # move its activities onto a day inside the range
    DELETE = "delete"   # discard the day and its activities


@dataclass
class DataLossDecision:
    action: LossAction
    target_date: date | None = None   # required for MOVE


@dataclass
class DataLossGuard:
    """Days outside a shrunk range that still own activities."""
    affected_days: list[Day] = field(default_factory=list)

    @property
    def requires_resolution(self) -> bool:
        return bool(self.affected_days)

    @property
    def activity_count(self) -> int:
        return sum(len(d.activities) for d in self.affected_days)


@dataclass
class ResequenceResult:
    days: list[Day] = field(default_factory=list)
    created: list[Day] = field(default_factory=list)
    discarded: list[Day] = field(default_factory=list)
    guard: DataLossGuard = field(default_factory=DataLossGuard)
    kept: list[Day] = field(default_factory=list)       # numbered after days, N+1 onwards
    warnings: list[str] = field(default_factory=list)


@dataclass
class _DayEntry:
    date: date
    type: DayType
    destination_name: str = ""
    from_destination: str = ""
    to_destination: str = ""


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def generate_day_notes(day_number: int, day_date: date, entry_type: DayType,
                       destination_name: str = "", from_destination: str = "") -> str:
    weekday = day_date.strftime("%A")
    notes = [f"Day {day_number} - {weekday}"]
    if entry_type is DayType.TRAVEL:
        notes.append(f"Travel from {from_destination} to {destination_name}")
    else:
        notes.append(f"Exploring {destination_name}" if destination_name else "Adventure awaits!")

    if day_number == 1:
        notes.append("Arrival day - consider lighter activities")
    elif weekday in ("Saturday", "Sunday"):
        notes.append("Weekend - popular attractions may be busier")
    return "\n".join(notes)


def find_day(days: list[Day], target: object) -> Day:
    """
    Return the day whose date equals target.

    Raises:
        NotFoundError: carrying the list of valid dates as a remediation hint.
    """
    wanted = parse_date(target)
    for day in days:
        if wanted is not None and day.date == wanted:
            return day
    valid = [d.date_str for d in days]
    raise NotFoundError(
        f"No trip day found for date {target}. Available dates: {', '.join(valid)}",
        valid_dates=valid,
    )


def _overlap_warnings(moved: list[Activity], target: Day) -> list[str]:
    """One warning per moved activity whose [start, end) overlaps one already on target."""
    warnings = []
    for activity in moved:
        clashes = [
            a.name for a in target.activities
            if a.start_minutes < activity.end_minutes and activity.start_minutes < a.end_minutes
        ]
        if clashes:
            warnings.append(
                f"'{activity.name}' moved to {target.date_str} overlaps {', '.join(clashes)}"
            )
    if warnings:
        logger.warning("%d moved activit(ies) overlap on %s", len(warnings), target.date_str)
    return warnings


# ─────────────────────────────────────────────────────────────────────────────
# DaySequencer
# ─────────────────────────────────────────────────────────────────────────────

class DaySequencer:
    """
    Usage:
        sequencer = DaySequencer()
        days      = sequencer.sequence(trip)
        result    = sequencer.resequence(trip, existing_days)
        if result.guard.requires_resolution:
            result = sequencer.resolve_data_loss(result, decisions)
    """

    # ── Public API ────────────────────────────────────────────────────────────

    def sequence(self, trip: Trip) -> list[Day]:
        """Produce Days numbered 1..N with unique dates."""
        if trip.is_multi_destination:
            entries = self._multi_destination_entries(trip)
        else:
            entries = self._legacy_entries(trip)

        days: list[Day] = []
        for number, entry in enumerate(entries, start=1):
            days.append(Day(
                day_number       = number,
                date             = entry.date,
                type             = entry.type,
                id               = f"{trip.id}-{entry.date.isoformat()}",
                trip_id          = trip.id,
                destination_name = entry.destination_name,
                from_destination = entry.from_destination,
                to_destination   = entry.to_destination,
                notes            = generate_day_notes(
                    number, entry.date, entry.type,
                    entry.destination_name, entry.from_destination,
                ),
            ))
        logger.info("Sequenced %d day(s) for trip %s", len(days), trip.id)
        return days

    def resequence(self, trip: Trip, existing_days: list[Day]) -> ResequenceResult:
        """
        Recompute the day list after a date change.

        Existing days are matched by date: their id and activities carry over
        onto the new sequence. Existing days outside the new range are either
        discarded (no activities) or guarded (activities present).
        """
        fresh = self.sequence(trip)
        by_date = {d.date: d for d in existing_days}
        new_dates = {d.date for d in fresh}

        result = ResequenceResult()
        for day in fresh:
            old = by_date.get(day.date)
            if old is None:
                result.created.append(day)
            else:
                day.id = old.id or day.id
                day.activities = list(old.activities)
            result.days.append(day)

        for old in sorted(existing_days, key=lambda d: d.date):
            if old.date in new_dates:
                continue
            if old.activities:
                result.guard.affected_days.append(old)
            else:
                result.discarded.append(old)

        if result.guard.requires_resolution:
            logger.warning(
                "Trip %s: %d day(s) outside the new range hold %d activit(ies); resolution required",
                trip.id, len(result.guard.affected_days), result.guard.activity_count,
            )
        return result

    def resolve_data_loss(
        self,
        result: ResequenceResult,
        decisions: dict[str, DataLossDecision],
    ) -> ResequenceResult:
        """
        Apply an explicit keep / move / delete decision to every guarded day.

        Kept days are numbered N+1 onwards after the new sequence. Moved
        activities keep their times; any overlap on the target day is reported
        in warnings rather than rescheduled.

        Raises:
            ValidationError: a guarded day has no decision, or MOVE lacks a target.
            NotFoundError:   a MOVE target date is not in the new sequence.
        """
        undecided = [d.date_str for d in result.guard.affected_days if d.id not in decisions]
        if undecided:
            raise ValidationError(
                f"no keep/move/delete decision for day(s): {', '.join(undecided)}",
                field="decisions",
            )

        days = [replace(d, activities=list(d.activities)) for d in result.days]
        kept = list(result.kept)
        discarded = list(result.discarded)
        warnings = list(result.warnings)

        for guarded in result.guard.affected_days:
            decision = decisions[guarded.id]
            if decision.action is LossAction.KEEP:
                kept.append(replace(guarded, out_of_range=True,
                                    day_number=len(days) + len(kept) + 1))
            elif decision.action is LossAction.DELETE:
                discarded.append(guarded)
            else:
                if decision.target_date is None:
                    raise ValidationError(
                        f"day {guarded.date_str}: move requires a target date",
                        field="target_date",
                    )
                target = find_day(days, decision.target_date)
                warnings.extend(_overlap_warnings(guarded.activities, target))
                target.activities = sorted(
                    target.activities + list(guarded.activities),
                    key=lambda a: a.start_minutes,
                )
                discarded.append(replace(guarded, activities=[]))
                logger.info("Moved %d activit(ies) from %s to %s",
                            len(guarded.activities), guarded.date_str, target.date_str)

        return ResequenceResult(
            days      = days,
            created   = list(result.created),
            discarded = discarded,
            guard     = DataLossGuard(),
            kept      = kept,
            warnings  = warnings,
        )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _multi_destination_entries(self, trip: Trip) -> list[_DayEntry]:
        entries: list[_DayEntry] = []
        previous_name: str | None = None
        previous_departure: date | None = None

        for stay in trip.ordered_stays():
            if stay.place is None:
                logger.warning("Trip %s: stay #%d has no destination; skipped", trip.id, stay.order)
                continue
            arrival = parse_date(stay.arrival_date)
            departure = parse_date(stay.departure_date)
            if arrival is None or departure is None:
                logger.warning("Trip %s: stay '%s' has an invalid date; skipped",
                               trip.id, stay.place.name)
                continue
            if departure < arrival:
                raise ValidationError(
                    f"departure {departure} is before arrival {arrival} for '{stay.place.name}'",
                    field="departure_date",
                )
            if previous_departure is not None and arrival < previous_departure:
                raise ValidationError(
                    f"stay '{stay.place.name}' arrives {arrival} before the previous stay "
                    f"departs {previous_departure}",
                    field="arrival_date",
                )

            name = stay.place.name
            if previous_name is None:
                first = arrival
            else:
                entries = [e for e in entries if e.date != arrival]
                entries.append(_DayEntry(
                    date             = arrival,
                    type             = DayType.TRAVEL,
                    destination_name = name,
                    from_destination = previous_name,
                    to_destination   = name,
                ))
                first = arrival + timedelta(days=1)

            for d in date_range(first, departure):
                entries.append(_DayEntry(date=d, type=DayType.DESTINATION, destination_name=name))

            previous_name, previous_departure = name, departure

        return entries

    def _legacy_entries(self, trip: Trip) -> list[_DayEntry]:
        if trip.start_date is None and trip.end_date is None:
            raise ValidationError(f"trip {trip.id} has neither destinations nor dates", field="start_date")
        start = parse_date(trip.start_date)
        end = parse_date(trip.end_date)
        if start is None:
            raise ValidationError(f"invalid start date {trip.start_date!r}", field="start_date")
        if end is None:
            raise ValidationError(f"invalid end date {trip.end_date!r}", field="end_date")
        if end < start:
            raise ValidationError(f"end date {end} is before start date {start}", field="end_date")

        name = trip.destination.name if trip.destination else ""
        return [_DayEntry(date=d, type=DayType.DESTINATION, destination_name=name)
                for d in date_range(start, end)]
