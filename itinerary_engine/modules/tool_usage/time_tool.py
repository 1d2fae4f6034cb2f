"""
itinerary_engine/modules/tool_usage/time_tool.py
------------------------------------------------
Arithmetic tool: clock and calendar arithmetic used across the engine.
Local computation, no external API.

Clock values are minutes after midnight (int). Day-scoped times never wrap;
24:00 is the latest representable end of an activity.
"""

from __future__ import annotations
from datetime import date, datetime, timedelta
import math
import re

from itinerary_engine import config

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_hhmm(value: str) -> int:
    """
    Convert "HH:MM" to minutes after midnight.

    Raises:
        ValueError: If the string is not a valid 24-hour clock time.
                    "24:00" is accepted as the end-of-day sentinel.
    """
    match = _HHMM_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"invalid clock time {value!r}; expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        raise ValueError(f"invalid clock time {value!r}")
    return hours * 60 + minutes


def format_minutes(total: int) -> str:
    """Inverse of parse_hhmm. Values past midnight are not wrapped."""
    return f"{total // 60:02d}:{total % 60:02d}"


def parse_date(value: object) -> date | None:
    """
    Normalise a calendar date.

    Accepts date, datetime, "YYYY-MM-DD" and ISO-8601 strings with a time
    part. Returns None for anything unparsable; callers decide whether
    that is skippable or a validation failure.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def date_range(start: date, end: date) -> list[date]:
    """Every calendar date in [start, end] inclusive; empty if end < start."""
    span = (end - start).days
    return [start + timedelta(days=i) for i in range(span + 1)] if span >= 0 else []


def days_until(target: date, now: datetime) -> int:
    """Whole days from now until midnight of target (floored, may be negative)."""
    delta = datetime.combine(target, datetime.min.time()) - now
    return math.floor(delta.total_seconds() / 86400)


class TimeTool:
    """
    Wraps travel-time estimation used by the Slot Allocator.
    """

    def __init__(self, speed_kmh: float = config.TRAVEL_SPEED_KMH):
        self.speed_kmh = speed_kmh

    def estimate_travel_time(self, distance_km: float) -> int:
        """
        Estimate travel time from a straight-line distance.

        Returns:
            Whole minutes at self.speed_kmh, rounded up.
        """
        return math.ceil(distance_km / self.speed_kmh * 60)
