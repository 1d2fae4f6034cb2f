"""
itinerary_engine/modules/weather/classification.py
--------------------------------------------------
Indoor / outdoor classification of an activity.

An explicit Activity.indoor_outdoor flag always wins. Otherwise the
activity's name, type, category and description are matched against two
curated keyword lists. This is the only place the keyword heuristic lives;
the scorer only ever sees the IndoorOutdoor value returned here.
"""

from __future__ import annotations
from typing import Optional

from itinerary_engine.schemas.itinerary import Activity, IndoorOutdoor

OUTDOOR_KEYWORDS: tuple[str, ...] = (
    "park", "beach", "hike", "hiking", "trail", "garden", "zoo",
    "outdoor", "walk", "bike", "boat", "ferry",
)

INDOOR_KEYWORDS: tuple[str, ...] = (
    "museum", "gallery", "restaurant", "cafe", "shop", "mall",
    "theater", "cinema", "indoor", "spa", "gym",
)


def _activity_text(activity: Activity) -> str:
    return " ".join(
        part for part in (activity.name, activity.type, activity.category, activity.description) if part
    ).lower()


def classify_environment(activity: Activity) -> Optional[IndoorOutdoor]:
    """
    Returns:
        The explicit flag if set; BOTH when both keyword lists match;
        OUTDOOR / INDOOR for a single match; None when nothing matches
        (treated as not exposed to weather).
    """
    if activity.indoor_outdoor is not None:
        return activity.indoor_outdoor

    text = _activity_text(activity)
    outdoor = any(k in text for k in OUTDOOR_KEYWORDS)
    indoor = any(k in text for k in INDOOR_KEYWORDS)
    if outdoor and indoor:
        return IndoorOutdoor.BOTH
    if outdoor:
        return IndoorOutdoor.OUTDOOR
    if indoor:
        return IndoorOutdoor.INDOOR
    return None


def is_exposed(environment: Optional[IndoorOutdoor]) -> bool:
    """True when some part of the activity happens outside."""
    return environment in (IndoorOutdoor.OUTDOOR, IndoorOutdoor.BOTH)
