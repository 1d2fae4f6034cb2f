from datetime import date

import pytest
import requests

from itinerary_engine.modules.tool_usage import weather_tool
from itinerary_engine.modules.tool_usage.weather_tool import WeatherTool, condition_from_wmo
from itinerary_engine.schemas.weather import WeatherCondition

DAY = date(2025, 6, 2)


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def _payload():
    hours = list(range(24))
    return {
        "daily": {
            "weather_code": [61],
            "temperature_2m_max": [19.5],
            "temperature_2m_min": [11.0],
            "precipitation_probability_max": [85],
            "wind_speed_10m_max": [22.0],
        },
        "hourly": {
            "time": [f"2025-06-02T{h:02d}:00" for h in hours],
            "weather_code": [61 if h < 12 else 2 for h in hours],
            "temperature_2m": [10.0 + h / 2 for h in hours],
            "precipitation_probability": [80 if h < 12 else 20 for h in hours],
            "relative_humidity_2m": [70 for _ in hours],
        },
    }


@pytest.mark.parametrize("code,expected", [
    (0, WeatherCondition.CLEAR),
    (3, WeatherCondition.CLOUDY),
    (45, WeatherCondition.CLOUDY),
    (63, WeatherCondition.RAIN),
    (81, WeatherCondition.RAIN),
    (75, WeatherCondition.SNOW),
    (95, WeatherCondition.STORM),
    (None, WeatherCondition.CLEAR),
])
def test_wmo_codes(code, expected):
    assert condition_from_wmo(code) is expected


def test_stub_forecast_when_unspecified():
    weather = WeatherTool(api_url="UNSPECIFIED").fetch(48.85, 2.35, DAY)

    assert weather.date == DAY
    assert weather.conditions is WeatherCondition.CLEAR
    assert weather.temperature.high == 25
    assert [h.hour for h in weather.hourly_forecast][0] == "06:00"
    assert len(weather.hourly_forecast) == 17


def test_fetch_parses_provider_payload(monkeypatch):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen.update(url=url, params=params, timeout=timeout)
        return FakeResponse(_payload())

    monkeypatch.setattr(weather_tool.requests, "get", fake_get)
    weather = WeatherTool(api_url="https://forecast.test/v1", timeout=2.0).fetch(48.85, 2.35, DAY)

    assert seen["url"] == "https://forecast.test/v1"
    assert seen["params"]["start_date"] == "2025-06-02"
    assert seen["timeout"] == 2.0

    assert weather.conditions is WeatherCondition.RAIN
    assert weather.temperature.high == 19.5
    assert weather.precipitation == 85
    assert weather.humidity == 70
    assert weather.hourly_forecast[0].hour == "06:00"
    assert weather.hourly_forecast[-1].hour == "22:00"
    assert weather.hourly_forecast[0].conditions is WeatherCondition.RAIN
    assert weather.hourly_forecast[-1].conditions is WeatherCondition.CLOUDY


def test_provider_error_propagates(monkeypatch):
    monkeypatch.setattr(weather_tool.requests, "get",
                        lambda url, params=None, timeout=None: FakeResponse({}, status=503))
    with pytest.raises(requests.HTTPError):
        WeatherTool(api_url="https://forecast.test/v1").fetch(48.85, 2.35, DAY)
