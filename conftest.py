"""Global pytest configuration."""

import os

# Offline stub forecast and quiet logs for tests, set before any imports
os.environ.setdefault("WEATHER_API_URL", "UNSPECIFIED")
os.environ.setdefault("ITINERARY_LOG_LEVEL", "WARNING")
