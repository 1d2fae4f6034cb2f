"""
itinerary_engine/config.py
--------------------------
Central configuration for the itinerary engine.
Every tunable is read from the environment with a default; components
copy these into their policy dataclasses so tests can inject other values.
"""

import os

# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("ITINERARY_LOG_LEVEL", "INFO").upper()

# ── Day window (minutes after midnight) ──────────────────────────────────────
DAY_START_MINUTES: int       = int(os.getenv("DAY_START_MINUTES", str(9 * 60)))    # 09:00
DAY_END_MINUTES: int         = int(os.getenv("DAY_END_MINUTES", str(20 * 60)))     # 20:00
EARLY_BIRD_START_MINUTES: int = int(os.getenv("EARLY_BIRD_START_MINUTES", str(7 * 60)))   # 07:00
NIGHT_OWL_END_MINUTES: int   = int(os.getenv("NIGHT_OWL_END_MINUTES", str(22 * 60)))       # 22:00
MINUTES_PER_DAY: int         = 24 * 60

# ── Slot allocation ──────────────────────────────────────────────────────────
BUFFER_MINUTES: int          = int(os.getenv("BUFFER_MINUTES", "30"))
DEFAULT_START_TIME: str      = os.getenv("DEFAULT_START_TIME", "10:00")
DEFAULT_DURATION_MINUTES: int = int(os.getenv("DEFAULT_DURATION_MINUTES", "120"))

# ── Travel time ──────────────────────────────────────────────────────────────
# Straight-line distance / assumed urban speed; advisory only.
TRAVEL_SPEED_KMH: float      = float(os.getenv("TRAVEL_SPEED_KMH", "30.0"))
TRAVEL_WARNING_MINUTES: int  = int(os.getenv("TRAVEL_WARNING_MINUTES", "30"))

# ── Weather suitability ──────────────────────────────────────────────────────
COMFORT_TEMP_MIN_C: float    = float(os.getenv("COMFORT_TEMP_MIN_C", "10"))
COMFORT_TEMP_MAX_C: float    = float(os.getenv("COMFORT_TEMP_MAX_C", "30"))
HIGH_WIND_THRESHOLD: float   = float(os.getenv("HIGH_WIND_THRESHOLD", "30"))
RAIN_PRECIP_THRESHOLD: float = float(os.getenv("RAIN_PRECIP_THRESHOLD", "50"))

# ── Weather provider ─────────────────────────────────────────────────────────
# Set WEATHER_API_URL=UNSPECIFIED to use the offline stub forecast.
WEATHER_API_URL: str         = os.getenv("WEATHER_API_URL", "https://api.open-meteo.com/v1/forecast")
WEATHER_TIMEOUT_SECONDS: float = float(os.getenv("WEATHER_TIMEOUT_SECONDS", "4.0"))

# ── Booking reminders ────────────────────────────────────────────────────────
REMINDER_DAYS_BEFORE: list[int] = [
    int(d) for d in os.getenv("REMINDER_DAYS_BEFORE", "7,3,1").split(",") if d.strip()
]
UPCOMING_WINDOW_DAYS: int    = int(os.getenv("UPCOMING_WINDOW_DAYS", "14"))
LARGE_GROUP_TRAVELERS: int   = int(os.getenv("LARGE_GROUP_TRAVELERS", "4"))

# ── Group planning ───────────────────────────────────────────────────────────
GROUP_SIZE_ADVICE_THRESHOLD: int = int(os.getenv("GROUP_SIZE_ADVICE_THRESHOLD", "6"))

# ── HTTP surface ─────────────────────────────────────────────────────────────
API_HOST: str                = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int                = int(os.getenv("API_PORT", "8000"))
