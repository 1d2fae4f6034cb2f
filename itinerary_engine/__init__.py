"""itinerary_engine: itinerary scheduling and optimization engine."""

__version__ = "0.1.0"
