"""
itinerary_engine/schemas/itinerary.py
-------------------------------------
Dataclass definitions for trips, days and activities.

Time units:
  - clock times : "HH:MM" strings, minute granularity, same-day only
  - durations   : minutes (always > 0)
  - dates       : datetime.date once sequenced; raw values on DestinationStay
                  are normalised by the Day Sequencer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional

from itinerary_engine import config
from itinerary_engine.errors import ValidationError
from itinerary_engine.modules.tool_usage.time_tool import format_minutes, parse_hhmm


class DayType(str, Enum):
    DESTINATION = "destination"
    TRAVEL      = "travel"


class IndoorOutdoor(str, Enum):
    INDOOR  = "indoor"
    OUTDOOR = "outdoor"
    BOTH    = "both"       # mixed venue, partly exposed


# ─────────────────────────────────────────────────────────────────────────────
# Places
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Location:
    """Activity coordinates plus display address."""
    lat: float = 0.0
    lng: float = 0.0
    address: str = ""


@dataclass
class Place:
    """A destination reference as returned by the places provider."""
    id: str = ""
    name: str = ""
    location: Optional[Location] = None


@dataclass
class DestinationStay:
    """
    One leg of a multi-destination trip.

    arrival_date / departure_date are kept as received (date, datetime or
    ISO string); an unparsable value makes the Day Sequencer skip this leg.
    """
    place: Optional[Place] = None
    arrival_date: Any = None
    departure_date: Any = None
    order: int = 0


@dataclass
class Budget:
    total: float = 0.0
    currency: str = "USD"


@dataclass
class Trip:
    """
    A trip is either multi-destination (destinations non-empty) or the legacy
    single-destination form (destination + start_date/end_date).
    """
    id: str = ""
    destinations: list[DestinationStay] = field(default_factory=list)
    destination: Optional[Place] = None      # legacy single destination
    start_date: Any = None                   # legacy form only
    end_date: Any = None
    travelers: int = 1
    budget: Optional[Budget] = None

    @property
    def is_multi_destination(self) -> bool:
        return bool(self.destinations)

    def ordered_stays(self) -> list[DestinationStay]:
        return sorted(self.destinations, key=lambda s: s.order)


# ─────────────────────────────────────────────────────────────────────────────
# Activities
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Cost:
    amount: float = 0.0
    currency: str = "USD"
    per_person: bool = False


@dataclass
class Activity:
    """
    A scheduled activity inside one Day.

    end_time is never stored: it is always start_time + duration_minutes.
    Construction fails with ValidationError when duration <= 0, the start
    time is malformed, or the activity would run past midnight.
    """
    id: str
    name: str
    start_time: str = config.DEFAULT_START_TIME
    duration_minutes: int = config.DEFAULT_DURATION_MINUTES
    location: Optional[Location] = None
    category: str = ""
    type: str = "activity"
    description: str = ""
    cost: Optional[Cost] = None

    # ── Booking ───────────────────────────────────────────────────────────────
    booking_required: Optional[bool] = None   # None → inferred by the analyzer
    booking_url: str = ""

    # ── Ranking / provenance ──────────────────────────────────────────────────
    rating: Optional[float] = None
    rating_count: int = 0
    price_level: Optional[int] = None
    expert_recommended: bool = False
    expert_endorsed: bool = False             # ranking factor from search
    novatrek_enhanced: bool = False           # placed by the engine

    # ── Weather ───────────────────────────────────────────────────────────────
    indoor_outdoor: Optional[IndoorOutdoor] = None  # None → keyword inference

    notes: str = ""
    travel_time_minutes: int = 0
    added_at: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.duration_minutes, int) or self.duration_minutes <= 0:
            raise ValidationError(
                f"activity {self.id!r}: duration must be a positive number of minutes",
                field="duration_minutes",
            )
        try:
            start = parse_hhmm(self.start_time)
        except ValueError as exc:
            raise ValidationError(f"activity {self.id!r}: {exc}", field="start_time") from exc
        if start + self.duration_minutes > config.MINUTES_PER_DAY:
            raise ValidationError(
                f"activity {self.id!r} would end after midnight",
                field="duration_minutes",
            )
        self.start_time = format_minutes(start)

    @property
    def start_minutes(self) -> int:
        return parse_hhmm(self.start_time)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes

    @property
    def end_time(self) -> str:
        return format_minutes(self.end_minutes)


# ─────────────────────────────────────────────────────────────────────────────
# Days
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Day:
    """
    One calendar day of a trip.

    day_number is 1-based and contiguous across the trip; date is unique.
    from_destination / to_destination are only meaningful on travel days.
    """
    day_number: int
    date: date
    type: DayType = DayType.DESTINATION
    id: str = ""
    trip_id: str = ""
    destination_name: str = ""
    from_destination: str = ""
    to_destination: str = ""
    activities: list[Activity] = field(default_factory=list)
    notes: str = ""
    out_of_range: bool = False

    def __post_init__(self) -> None:
        if self.type is DayType.DESTINATION and (self.from_destination or self.to_destination):
            raise ValidationError(
                f"day {self.date}: from/to destination is only valid on travel days",
                field="type",
            )

    @property
    def date_str(self) -> str:
        return self.date.isoformat()

    def sorted_activities(self) -> list[Activity]:
        return sorted(self.activities, key=lambda a: a.start_minutes)
