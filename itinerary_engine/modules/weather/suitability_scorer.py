"""
itinerary_engine/modules/weather/suitability_scorer.py
------------------------------------------------------
Weather-fit scoring of activities for one day.

Deduction table (applied to a start of 100; deductions stack)
─────────────────────────────────────────────────────────────
  rain / precipitation > threshold   outdoor −60, mixed −20
  average temperature outside band   outdoor or mixed −30
  wind speed > threshold             outdoor or mixed −20
  storm                              outdoor or mixed −80, otherwise −20

Tier cutoffs are fixed: ≥80 excellent, ≥60 good, ≥40 fair, else poor.
Purely-outdoor activities in rain, and exposed activities in a storm, are
capped at poor regardless of the remaining score.

Everything except the tier cutoffs is read from ScoringPolicy so tests can
probe boundaries without patching module constants.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol

from itinerary_engine import config
from itinerary_engine.log import get_logger
from itinerary_engine.modules.weather.classification import classify_environment, is_exposed
from itinerary_engine.schemas.itinerary import Activity, IndoorOutdoor
from itinerary_engine.schemas.preferences import AggregatedPreferences
from itinerary_engine.schemas.weather import HourlyForecast, WeatherCondition, WeatherConditions

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Tiers
# ─────────────────────────────────────────────────────────────────────────────

class SuitabilityTier(str, Enum):
    EXCELLENT = "excellent"
    GOOD      = "good"
    FAIR      = "fair"
    POOR      = "poor"


EXCELLENT_MIN_SCORE: int = 80
GOOD_MIN_SCORE:      int = 60
FAIR_MIN_SCORE:      int = 40

# Hour-of-day bands for best_time_of_day, [first, last) in clock hours.
MORNING_HOURS:   range = range(6, 12)
AFTERNOON_HOURS: range = range(12, 17)
EVENING_HOURS:   range = range(17, 23)


def tier_for_score(score: float) -> SuitabilityTier:
    if score >= EXCELLENT_MIN_SCORE:
        return SuitabilityTier.EXCELLENT
    if score >= GOOD_MIN_SCORE:
        return SuitabilityTier.GOOD
    if score >= FAIR_MIN_SCORE:
        return SuitabilityTier.FAIR
    return SuitabilityTier.POOR


# ─────────────────────────────────────────────────────────────────────────────
# Policy / results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ScoringPolicy:
    comfort_min_c: float = config.COMFORT_TEMP_MIN_C
    comfort_max_c: float = config.COMFORT_TEMP_MAX_C
    wind_threshold: float = config.HIGH_WIND_THRESHOLD
    rain_precip_threshold: float = config.RAIN_PRECIP_THRESHOLD

    rain_outdoor_penalty: int = 60
    rain_mixed_penalty: int = 20
    temperature_penalty: int = 30
    wind_penalty: int = 20
    storm_outdoor_penalty: int = 80
    storm_any_penalty: int = 20

    # Best-hour filter
    best_temp_min_c: float = 15.0
    best_temp_max_c: float = 28.0
    best_precip_max: float = 30.0
    preferred_hour_bands: tuple[tuple[int, int], ...] = ((9, 11), (16, 18))


@dataclass
class SuitabilityResult:
    activity: Activity
    score: int
    tier: SuitabilityTier
    environment: Optional[IndoorOutdoor] = None
    warnings: list[str] = field(default_factory=list)
    best_time: Optional[str] = None


@dataclass
class IndoorAlternatives:
    activity_id: str
    activity_name: str
    alternatives: list[Any] = field(default_factory=list)


@dataclass
class WeatherFilterResult:
    weather: WeatherConditions
    results: list[SuitabilityResult] = field(default_factory=list)
    best_time_of_day: str = "morning"
    indoor_alternatives: list[IndoorAlternatives] = field(default_factory=list)
    weather_tips: list[str] = field(default_factory=list)
    summary: str = ""


class IndoorAlternativeFinder(Protocol):
    """Places-search collaborator asked for indoor options near a poor-tier activity."""

    def find(self, activity: Activity, weather: WeatherConditions) -> list[Any]: ...


class NoIndoorAlternatives:
    def find(self, activity: Activity, weather: WeatherConditions) -> list[Any]:
        return []


# ─────────────────────────────────────────────────────────────────────────────
# SuitabilityScorer
# ─────────────────────────────────────────────────────────────────────────────

class SuitabilityScorer:
    """
    Usage:
        scorer = SuitabilityScorer()
        result = scorer.score(activity, weather)          # one activity
        ranked = scorer.rank(day.activities, weather)     # a whole day
    """

    def __init__(
        self,
        policy: ScoringPolicy | None = None,
        alternative_finder: IndoorAlternativeFinder | None = None,
    ):
        self.policy = policy or ScoringPolicy()
        self.alternative_finder = alternative_finder or NoIndoorAlternatives()

    def is_rainy(self, weather: WeatherConditions) -> bool:
        return (weather.conditions is WeatherCondition.RAIN
                or weather.precipitation > self.policy.rain_precip_threshold)

    # ── Single activity ───────────────────────────────────────────────────────

    def score(self, activity: Activity, weather: WeatherConditions) -> SuitabilityResult:
        p = self.policy
        environment = classify_environment(activity)
        exposed = is_exposed(environment)
        score = 100
        warnings: list[str] = []
        capped = False

        if self.is_rainy(weather):
            if environment is IndoorOutdoor.OUTDOOR:
                score -= p.rain_outdoor_penalty
                warnings.append("Activity may be affected by rain")
                capped = True
            elif environment is IndoorOutdoor.BOTH:
                score -= p.rain_mixed_penalty
                warnings.append("Outdoor portions may be affected by rain")

        if exposed:
            average = weather.temperature.average
            if average < p.comfort_min_c:
                score -= p.temperature_penalty
                warnings.append(f"Cold temperature: {average:g}°C")
            elif average > p.comfort_max_c:
                score -= p.temperature_penalty
                warnings.append(f"Hot temperature: {average:g}°C")

            if weather.wind_speed > p.wind_threshold:
                score -= p.wind_penalty
                warnings.append("High winds expected")

        if weather.conditions is WeatherCondition.STORM:
            if exposed:
                score -= p.storm_outdoor_penalty
                warnings.append("Storm warning - avoid outdoor activities")
                capped = True
            else:
                score -= p.storm_any_penalty
                warnings.append("Storm may affect transportation")

        score = max(0, min(100, score))
        tier = SuitabilityTier.POOR if capped else tier_for_score(score)

        best_time = None
        if exposed and weather.hourly_forecast:
            best_time = self.best_time(weather.hourly_forecast)

        return SuitabilityResult(
            activity    = activity,
            score       = score,
            tier        = tier,
            environment = environment,
            warnings    = warnings,
            best_time   = best_time,
        )

    def best_time(self, hourly: list[HourlyForecast]) -> Optional[str]:
        """
        First acceptable hour inside a preferred band, else the first
        acceptable hour, else None.
        """
        p = self.policy
        good = [
            h for h in hourly
            if h.conditions not in (WeatherCondition.RAIN, WeatherCondition.STORM)
            and h.precip_chance < p.best_precip_max
            and p.best_temp_min_c <= h.temp <= p.best_temp_max_c
        ]
        if not good:
            return None
        for h in good:
            if any(lo <= h.hour_of_day <= hi for lo, hi in p.preferred_hour_bands):
                return h.hour
        return good[0].hour

    # ── Whole day ─────────────────────────────────────────────────────────────

    def rank(
        self,
        activities: list[Activity],
        weather: WeatherConditions,
        preferences: AggregatedPreferences | None = None,
    ) -> WeatherFilterResult:
        """
        Score and order a day's activities.

        Poor-tier activities always sort last; otherwise by score descending.
        Aggregated group interests, when given, only break ties between
        equal scores. The sort is stable for everything else.
        """
        results = [self.score(a, weather) for a in activities]
        interests = [i.lower() for i in (preferences.interests if preferences else [])]

        def interest_hits(r: SuitabilityResult) -> int:
            text = f"{r.activity.name} {r.activity.category} {r.activity.description}".lower()
            return sum(1 for i in interests if i and i in text)

        results.sort(key=lambda r: (r.tier is SuitabilityTier.POOR, -r.score, -interest_hits(r)))

        alternatives: list[IndoorAlternatives] = []
        for r in results:
            if r.tier is SuitabilityTier.POOR:
                alternatives.append(IndoorAlternatives(
                    activity_id   = r.activity.id,
                    activity_name = r.activity.name,
                    alternatives  = list(self.alternative_finder.find(r.activity, weather)),
                ))

        poor = len(alternatives)
        if poor:
            logger.info("%d of %d activities rated poor for %s weather",
                        poor, len(results), weather.conditions.value)

        return WeatherFilterResult(
            weather             = weather,
            results             = results,
            best_time_of_day    = self.best_time_of_day(weather),
            indoor_alternatives = alternatives,
            weather_tips        = self.weather_tips(weather),
            summary             = self.summary(weather, results),
        )

    # ── Recommendations ───────────────────────────────────────────────────────

    @staticmethod
    def best_time_of_day(weather: WeatherConditions) -> str:
        """
        Band with the lowest mean precipitation chance; morning wins ties.
        Hours are grouped by their clock hour, so a forecast may cover any
        subset of the day. Bands without hours never win.
        """
        hourly = weather.hourly_forecast
        if not hourly:
            return "morning"

        def mean_precip(band: range) -> float:
            hours = [h.precip_chance for h in hourly if h.hour_of_day in band]
            return sum(hours) / len(hours) if hours else float("inf")

        morning = mean_precip(MORNING_HOURS)
        afternoon = mean_precip(AFTERNOON_HOURS)
        evening = mean_precip(EVENING_HOURS)
        if morning == afternoon == evening == float("inf"):
            return "morning"
        if morning <= afternoon and morning <= evening:
            return "morning (9am-12pm)"
        if afternoon <= evening:
            return "afternoon (12pm-5pm)"
        return "evening (5pm-10pm)"

    def weather_tips(self, weather: WeatherConditions) -> list[str]:
        tips: list[str] = []
        if weather.temperature.high > 28:
            tips.append("Stay hydrated and wear sun protection")
            tips.append("Consider activities during cooler morning or evening hours")
        elif weather.temperature.low < 15:
            tips.append("Dress in layers for changing temperatures")
            tips.append("Bring a warm jacket for evening activities")

        if self.is_rainy(weather):
            tips.append("Bring an umbrella or rain jacket")
            tips.append("Consider rescheduling outdoor activities or choosing indoor alternatives")
            tips.append("Book restaurants in advance as they may be busier")
        return tips

    @staticmethod
    def summary(weather: WeatherConditions, results: list[SuitabilityResult]) -> str:
        excellent = sum(1 for r in results if r.tier is SuitabilityTier.EXCELLENT)
        poor = sum(1 for r in results if r.tier is SuitabilityTier.POOR)
        day = weather.date.isoformat() if weather.date else "the day"
        text = (
            f"Weather forecast for {day}: {weather.conditions.value} with temperatures between "
            f"{weather.temperature.low:g}°C and {weather.temperature.high:g}°C. "
        )
        if weather.conditions is WeatherCondition.CLEAR and excellent == len(results):
            return text + "Perfect weather for all planned activities!"
        if weather.conditions is WeatherCondition.RAIN and poor > 0:
            return text + (f"{poor} outdoor activities may be affected by rain. "
                           "Consider indoor alternatives or rescheduling.")
        return text + f"{excellent} activities have excellent weather conditions, {poor} may need adjustments."
