"""
itinerary_engine/modules/tool_usage/distance_tool.py
----------------------------------------------------
Arithmetic tool: great-circle distance between two located points.
Local computation, no external API.

Routed road distance belongs to the places provider; the engine only needs
a straight-line figure to flag long hops between consecutive activities.
"""

from __future__ import annotations
import math
from typing import Protocol

EARTH_RADIUS_KM: float = 6371.0


class Coordinates(Protocol):
    lat: float
    lng: float


def great_circle_km(origin: Coordinates, destination: Coordinates) -> float:
    """Haversine distance in kilometres between two lat/lng points."""
    lat1, lat2 = math.radians(origin.lat), math.radians(destination.lat)
    half_dlat = math.radians(destination.lat - origin.lat) / 2
    half_dlng = math.radians(destination.lng - origin.lng) / 2

    h = math.sin(half_dlat) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(half_dlng) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


class DistanceTool:
    """Straight-line distance in kilometres between two located points."""

    def between(self, origin: Coordinates, destination: Coordinates) -> float:
        return great_circle_km(origin, destination)
