"""modules/tool_usage: distance, time and weather provider tools."""

from itinerary_engine.modules.tool_usage.distance_tool import DistanceTool, great_circle_km
from itinerary_engine.modules.tool_usage.time_tool import TimeTool
from itinerary_engine.modules.tool_usage.weather_tool import WeatherTool

__all__ = [
    "DistanceTool",
    "great_circle_km",
    "TimeTool",
    "WeatherTool",
]
