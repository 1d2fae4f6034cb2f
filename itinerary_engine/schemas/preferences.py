"""
itinerary_engine/schemas/preferences.py
---------------------------------------
Per-traveler preference sets and the group aggregate derived from them.

Conflicts are derived data: recomputed on every aggregation run and never
stored as the source of truth.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class AggregationMode(str, Enum):
    CONSENSUS  = "consensus"    # intersection
    INCLUSIVE  = "inclusive"    # union
    DEMOCRATIC = "democratic"   # plurality vote


class ResolutionPolicy(str, Enum):
    ACCOMMODATE_ALL    = "accommodate_all"
    MAJORITY_WINS      = "majority_wins"
    FIND_MIDDLE_GROUND = "find_middle_ground"


class ConflictSeverity(str, Enum):
    LOW    = "low"
    MEDIUM = "medium"
    HIGH   = "high"


@dataclass
class PreferenceSet:
    """
    One traveler's preferences.

    budget:          "budget" | "moderate" | "flexible" | "luxury"
    activity_level:  "low" | "moderate" | "high"
    """
    traveler_id: str = ""
    dietary: list[str] = field(default_factory=list)
    accessibility: list[str] = field(default_factory=list)
    interests: list[str] = field(default_factory=list)
    activities: list[str] = field(default_factory=list)
    travel_style: list[str] = field(default_factory=list)
    activity_level: Optional[str] = None
    budget: Optional[str] = None


@dataclass
class TravelerValue:
    traveler_id: str
    value: Any


@dataclass
class Conflict:
    category: str
    field: str
    values: list[TravelerValue]
    severity: ConflictSeverity
    resolution: str = ""


@dataclass
class AggregatedPreferences:
    """Group-level preferences plus the conflicts found while merging them."""
    group_size: int = 0
    dietary: list[str] = field(default_factory=list)
    accessibility: list[str] = field(default_factory=list)
    interests: list[str] = field(default_factory=list)
    activities: list[str] = field(default_factory=list)
    travel_style: list[str] = field(default_factory=list)
    activity_level: Optional[str] = None
    budget: Optional[str] = None
    mixed_activity_levels: bool = False
    conflicts: list[Conflict] = field(default_factory=list)
    compromises: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    confidence: float = 1.0
