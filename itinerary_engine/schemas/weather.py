"""
itinerary_engine/schemas/weather.py
-----------------------------------
Forecast structures returned by the weather provider (WeatherTool) and
consumed by the Suitability Scorer.

Units:
  - temperatures : °C
  - precipitation: probability in percent [0, 100]
  - wind speed   : provider unit (km/h for Open-Meteo)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class WeatherCondition(str, Enum):
    CLEAR  = "clear"
    CLOUDY = "cloudy"
    RAIN   = "rain"
    SNOW   = "snow"
    STORM  = "storm"


@dataclass
class Temperature:
    high: float = 20.0
    low: float = 10.0

    @property
    def average(self) -> float:
        return (self.high + self.low) / 2


@dataclass
class HourlyForecast:
    """One hour of the forecast; hour is "HH:00"."""
    hour: str
    temp: float
    conditions: WeatherCondition = WeatherCondition.CLEAR
    precip_chance: float = 0.0

    @property
    def hour_of_day(self) -> int:
        return int(self.hour.split(":")[0])


@dataclass
class WeatherConditions:
    """A day's forecast at one location."""
    date: Optional[date] = None
    temperature: Temperature = field(default_factory=Temperature)
    conditions: WeatherCondition = WeatherCondition.CLEAR
    precipitation: float = 0.0
    wind_speed: float = 0.0
    humidity: float = 0.0
    hourly_forecast: list[HourlyForecast] = field(default_factory=list)
