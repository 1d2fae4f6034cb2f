"""modules/weather: activity classification and weather suitability."""

from itinerary_engine.modules.weather.classification import classify_environment
from itinerary_engine.modules.weather.suitability_scorer import (
    IndoorAlternativeFinder, ScoringPolicy, SuitabilityResult, SuitabilityScorer,
    SuitabilityTier, WeatherFilterResult,
)

__all__ = [
    "classify_environment",
    "IndoorAlternativeFinder",
    "ScoringPolicy",
    "SuitabilityResult",
    "SuitabilityScorer",
    "SuitabilityTier",
    "WeatherFilterResult",
]
