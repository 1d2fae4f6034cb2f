"""
itinerary_engine/modules/group/preference_aggregator.py
-------------------------------------------------------
Merges N travelers' PreferenceSets into one AggregatedPreferences.

Aggregation modes
─────────────────
  consensus   every set-valued field is intersected
  inclusive   set-valued fields are unioned; travel_style is intersected
  democratic  scalars by plurality (ties → first encountered), set items
              kept when a strict majority of travelers lists them
Outside democratic mode a scalar is only set when every traveler who
stated one agrees.

Dietary requirements are hard constraints: the aggregate's dietary field is
always the union of every traveler's list, whatever mode or policy.

Conflicts (recomputed every run)
────────────────────────────────
  budget     "budget" and "luxury" both present                  high
  activity   "low" and "high" activity levels both present        medium
  dietary    any vegan / vegetarian / halal / kosher requirement  high
  style      "adventure" and "relaxation" both in pooled styles   low
"""

from __future__ import annotations
from collections import Counter
from dataclasses import replace
from typing import Iterable, Optional

from itinerary_engine import config
from itinerary_engine.errors import ValidationError
from itinerary_engine.log import get_logger
from itinerary_engine.schemas.preferences import (
    AggregatedPreferences,
    AggregationMode,
    Conflict,
    ConflictSeverity,
    PreferenceSet,
    ResolutionPolicy,
    TravelerValue,
)

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

BUDGET_TIERS: tuple[str, ...] = ("budget", "moderate", "flexible", "luxury")   # cheapest first
MIDDLE_GROUND: str = "moderate"
HARD_DIETARY: set[str] = {"vegan", "vegetarian", "halal", "kosher"}

SET_FIELDS: tuple[str, ...] = ("accessibility", "interests", "activities")

GENERAL_COMPROMISES: list[str] = [
    "Build in free time for individual exploration",
    "Choose restaurants with diverse menus to satisfy all preferences",
    "Book accommodations with common areas for group bonding",
]


# ─────────────────────────────────────────────────────────────────────────────
# Helpers (order-preserving)
# ─────────────────────────────────────────────────────────────────────────────

def union(lists: Iterable[list[str]]) -> list[str]:
    out: list[str] = []
    for values in lists:
        for v in values:
            if v not in out:
                out.append(v)
    return out


def intersection(lists: list[list[str]]) -> list[str]:
    if not lists:
        return []
    return [v for v in union([lists[0]]) if all(v in values for values in lists[1:])]


def majority_items(lists: list[list[str]]) -> list[str]:
    """Items listed by more than half of the travelers."""
    counts = Counter(v for values in lists for v in set(values))
    return [v for v in union(lists) if counts[v] * 2 > len(lists)]


def plurality(values: list[str]) -> Optional[str]:
    """Most frequent value; ties go to the value encountered first."""
    if not values:
        return None
    counts = Counter(values)
    best = max(counts.values())
    return next(v for v in values if counts[v] == best)


def unanimous(values: list[str]) -> Optional[str]:
    return values[0] if values and all(v == values[0] for v in values) else None


def cheapest_budget(values: list[str]) -> Optional[str]:
    ranked = [v for v in values if v in BUDGET_TIERS]
    if not ranked:
        return None
    return min(ranked, key=BUDGET_TIERS.index)


# ─────────────────────────────────────────────────────────────────────────────
# PreferenceAggregator
# ─────────────────────────────────────────────────────────────────────────────

class PreferenceAggregator:
    """
    Usage:
        aggregator = PreferenceAggregator()
        group      = aggregator.aggregate(traveler_prefs,
                                          mode=AggregationMode.INCLUSIVE,
                                          policy=ResolutionPolicy.ACCOMMODATE_ALL)
    """

    def __init__(self, group_size_advice_threshold: int = config.GROUP_SIZE_ADVICE_THRESHOLD):
        self.group_size_advice_threshold = group_size_advice_threshold

    def aggregate(
        self,
        travelers: list[PreferenceSet],
        mode: AggregationMode = AggregationMode.INCLUSIVE,
        policy: ResolutionPolicy = ResolutionPolicy.ACCOMMODATE_ALL,
    ) -> AggregatedPreferences:
        if not travelers:
            raise ValidationError("at least one traveler preference set is required", field="travelers")

        travelers = [
            t if t.traveler_id else replace(t, traveler_id=f"member-{i}")
            for i, t in enumerate(travelers)
        ]

        result = self._merge(travelers, mode)
        result.conflicts = self.detect_conflicts(travelers)
        self._resolve(result, travelers, policy)
        result.compromises = self.compromises(result)
        result.recommendations = self.recommendations(result)
        result.confidence = self.confidence(result.conflicts)

        logger.info("Aggregated %d traveler(s) mode=%s policy=%s: %d conflict(s)",
                    len(travelers), mode.value, policy.value, len(result.conflicts))
        return result

    # ── Merge ─────────────────────────────────────────────────────────────────

    def _merge(self, travelers: list[PreferenceSet], mode: AggregationMode) -> AggregatedPreferences:
        result = AggregatedPreferences(group_size=len(travelers))
        result.dietary = union(t.dietary for t in travelers)

        levels = [t.activity_level for t in travelers if t.activity_level]
        budgets = [t.budget for t in travelers if t.budget]
        styles = [t.travel_style for t in travelers]

        for name in SET_FIELDS:
            lists = [getattr(t, name) for t in travelers]
            if mode is AggregationMode.CONSENSUS:
                merged = intersection(lists)
            elif mode is AggregationMode.INCLUSIVE:
                merged = union(lists)
            else:
                merged = majority_items(lists)
            setattr(result, name, merged)

        if mode is AggregationMode.DEMOCRATIC:
            result.travel_style = majority_items(styles)
            result.activity_level = plurality(levels)
            result.budget = plurality(budgets)
        else:
            result.travel_style = intersection(styles)
            result.activity_level = unanimous(levels)
            result.budget = unanimous(budgets)
        return result

    # ── Conflicts ─────────────────────────────────────────────────────────────

    def detect_conflicts(self, travelers: list[PreferenceSet]) -> list[Conflict]:
        conflicts: list[Conflict] = []

        budgets = [TravelerValue(t.traveler_id, t.budget) for t in travelers if t.budget]
        if {"budget", "luxury"} <= {v.value for v in budgets}:
            conflicts.append(Conflict(
                category   = "budget",
                field      = "budget",
                values     = budgets,
                severity   = ConflictSeverity.HIGH,
                resolution = "Find activities within lowest budget range",
            ))

        levels = [TravelerValue(t.traveler_id, t.activity_level) for t in travelers if t.activity_level]
        if {"low", "high"} <= {v.value for v in levels}:
            conflicts.append(Conflict(
                category   = "activity",
                field      = "activity_level",
                values     = levels,
                severity   = ConflictSeverity.MEDIUM,
                resolution = "Mix high and low energy activities throughout the day",
            ))

        pooled_dietary = {d.lower() for t in travelers for d in t.dietary}
        if pooled_dietary & HARD_DIETARY:
            conflicts.append(Conflict(
                category   = "dietary",
                field      = "dietary",
                values     = [TravelerValue(t.traveler_id, list(t.dietary)) for t in travelers],
                severity   = ConflictSeverity.HIGH,
                resolution = "All restaurants must accommodate these dietary requirements",
            ))

        pooled_styles = {s for t in travelers for s in t.travel_style}
        if {"adventure", "relaxation"} <= pooled_styles:
            conflicts.append(Conflict(
                category   = "style",
                field      = "travel_style",
                values     = [TravelerValue(t.traveler_id, list(t.travel_style)) for t in travelers],
                severity   = ConflictSeverity.LOW,
                resolution = "Create a balanced itinerary with different activity types",
            ))
        return conflicts

    def _resolve(self, result: AggregatedPreferences, travelers: list[PreferenceSet],
                 policy: ResolutionPolicy) -> None:
        budgets = [t.budget for t in travelers if t.budget]
        levels = [t.activity_level for t in travelers if t.activity_level]

        if policy is ResolutionPolicy.MAJORITY_WINS:
            result.budget = plurality(budgets)
            result.activity_level = plurality(levels)

        for conflict in result.conflicts:
            if conflict.field == "budget":
                if policy is ResolutionPolicy.ACCOMMODATE_ALL:
                    result.budget = cheapest_budget(budgets)
                elif policy is ResolutionPolicy.FIND_MIDDLE_GROUND:
                    result.budget = MIDDLE_GROUND
            elif conflict.field == "activity_level":
                if policy is ResolutionPolicy.ACCOMMODATE_ALL:
                    result.mixed_activity_levels = True
                elif policy is ResolutionPolicy.FIND_MIDDLE_GROUND:
                    result.activity_level = MIDDLE_GROUND

        # never reduced by mode or policy
        result.dietary = union(t.dietary for t in travelers)

    # ── Advice ────────────────────────────────────────────────────────────────

    @staticmethod
    def compromises(result: AggregatedPreferences) -> list[str]:
        out: list[str] = []
        for conflict in result.conflicts:
            if conflict.field == "budget":
                out.append("Mix budget-friendly and splurge activities. "
                           "Consider group discounts and shared accommodations.")
            elif conflict.field == "activity_level":
                out.append("Schedule high-energy activities in the morning with relaxation time "
                           "in the afternoon. Offer optional activities.")
            elif conflict.field == "dietary":
                out.append(f"Every meal stop must cater to: {', '.join(result.dietary)}")
            elif conflict.field == "travel_style":
                out.append("Alternate between different travel styles each day - "
                           "adventure one day, relaxation the next.")
        return out + GENERAL_COMPROMISES

    def recommendations(self, result: AggregatedPreferences) -> list[str]:
        recs: list[str] = []
        fields = {c.field for c in result.conflicts}

        if result.group_size >= self.group_size_advice_threshold:
            recs += [
                "Consider splitting into smaller groups for some activities",
                "Book restaurants well in advance for large group seating",
                "Look for group tour discounts",
            ]
        if any(c.field == "budget" and c.severity is ConflictSeverity.HIGH for c in result.conflicts):
            recs += [
                "Research free walking tours and public spaces",
                "Plan picnics or market visits for budget-friendly group meals",
                "Use apartment rentals with kitchens to save on dining costs",
            ]
        if "activity_level" in fields:
            recs += [
                "Choose activities with varying participation levels",
                "Book accommodations near public transport for easy solo exploration",
                "Plan rest days between intensive activities",
            ]
        if len(result.dietary) > 2:
            recs += [
                "Focus on restaurants known for accommodating dietary restrictions",
                "Consider food markets where everyone can choose their own meals",
                "Research restaurants in advance and call ahead about dietary needs",
            ]
        return recs

    @staticmethod
    def confidence(conflicts: list[Conflict]) -> float:
        """1.0 without conflicts; lower as high-severity conflicts accumulate."""
        high = sum(1 for c in conflicts if c.severity is ConflictSeverity.HIGH)
        if not conflicts:
            return 1.0
        if high > 2:
            return 0.6
        if high > 0:
            return 0.8
        return 0.9
