"""
itinerary_engine/modules/tool_usage/weather_tool.py
---------------------------------------------------
Weather provider: (coordinates, date) → WeatherConditions.

Backed by the keyless Open-Meteo forecast API. With WEATHER_API_URL set to
"UNSPECIFIED" a deterministic stub forecast is returned instead, which is
what tests and offline demos use.

The hourly forecast is trimmed to 06:00–22:00, the span the scorer's
morning, afternoon and evening bands cover.
HTTP failures propagate as requests exceptions.
"""

from __future__ import annotations
import math
from datetime import date
from typing import Any

import requests

from itinerary_engine import config
from itinerary_engine.log import get_logger
from itinerary_engine.schemas.weather import (
    HourlyForecast,
    Temperature,
    WeatherCondition,
    WeatherConditions,
)

logger = get_logger(__name__)

FIRST_HOUR: int = 6
LAST_HOUR: int = 22

_DAILY_FIELDS = (
    "weather_code,temperature_2m_max,temperature_2m_min,"
    "precipitation_probability_max,wind_speed_10m_max"
)
_HOURLY_FIELDS = "weather_code,temperature_2m,precipitation_probability,relative_humidity_2m"


def condition_from_wmo(code: int | None) -> WeatherCondition:
    """Map a WMO weather interpretation code onto the engine's five conditions."""
    if code is None or code in (0, 1):
        return WeatherCondition.CLEAR
    if code in (2, 3, 45, 48):
        return WeatherCondition.CLOUDY
    if 71 <= code <= 77 or code in (85, 86):
        return WeatherCondition.SNOW
    if code >= 95:
        return WeatherCondition.STORM
    return WeatherCondition.RAIN


class WeatherTool:
    """Wraps the external forecast API."""

    def __init__(self, api_url: str = config.WEATHER_API_URL,
                 timeout: float = config.WEATHER_TIMEOUT_SECONDS):
        self.api_url = api_url
        self.timeout = timeout

    def fetch(self, lat: float, lng: float, day: date) -> WeatherConditions:
        """
        Forecast for one calendar day at one location.

        Raises:
            requests.RequestException: provider unreachable or non-2xx response.
        """
        if self.api_url == "UNSPECIFIED":
            logger.info("WeatherTool.fetch(%.4f, %.4f, %s): returning stub forecast", lat, lng, day)
            return self._stub(day)

        params: dict[str, Any] = {
            "latitude":   lat,
            "longitude":  lng,
            "daily":      _DAILY_FIELDS,
            "hourly":     _HOURLY_FIELDS,
            "start_date": day.isoformat(),
            "end_date":   day.isoformat(),
            "timezone":   "auto",
        }
        response = requests.get(self.api_url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return self._parse(day, response.json())

    @staticmethod
    def _parse(day: date, payload: dict) -> WeatherConditions:
        daily = payload.get("daily", {})
        hourly = payload.get("hourly", {})

        def first(key: str, default: float = 0.0) -> float:
            values = daily.get(key) or [default]
            return values[0] if values[0] is not None else default

        forecast: list[HourlyForecast] = []
        humidity: list[float] = []
        times = hourly.get("time", [])
        for i, stamp in enumerate(times):
            hour = int(stamp[11:13])
            if not FIRST_HOUR <= hour <= LAST_HOUR:
                continue
            forecast.append(HourlyForecast(
                hour          = f"{hour:02d}:00",
                temp          = _at(hourly, "temperature_2m", i),
                conditions    = condition_from_wmo(_code_at(hourly, i)),
                precip_chance = _at(hourly, "precipitation_probability", i),
            ))
            humidity.append(_at(hourly, "relative_humidity_2m", i))

        return WeatherConditions(
            date            = day,
            temperature     = Temperature(high=first("temperature_2m_max"), low=first("temperature_2m_min")),
            conditions      = condition_from_wmo(int(first("weather_code"))),
            precipitation   = first("precipitation_probability_max"),
            wind_speed      = first("wind_speed_10m_max"),
            humidity        = sum(humidity) / len(humidity) if humidity else 0.0,
            hourly_forecast = forecast,
        )

    @staticmethod
    def _stub(day: date) -> WeatherConditions:
        base = 20.0
        hourly = [
            HourlyForecast(
                hour=f"{h:02d}:00",
                temp=round(base + math.sin((h - FIRST_HOUR) * math.pi / 16) * 5),
                precip_chance=10.0,
            )
            for h in range(FIRST_HOUR, LAST_HOUR + 1)
        ]
        return WeatherConditions(
            date            = day,
            temperature     = Temperature(high=base + 5, low=base - 5),
            conditions      = WeatherCondition.CLEAR,
            precipitation   = 10.0,
            wind_speed      = 10.0,
            humidity        = 60.0,
            hourly_forecast = hourly,
        )


def _at(series: dict, key: str, index: int) -> float:
    values = series.get(key) or []
    if index < len(values) and values[index] is not None:
        return float(values[index])
    return 0.0


def _code_at(series: dict, index: int) -> int | None:
    values = series.get("weather_code") or []
    if index < len(values) and values[index] is not None:
        return int(values[index])
    return None
