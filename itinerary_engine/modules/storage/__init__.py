"""modules/storage: trip, day, activity and reminder persistence."""

from itinerary_engine.modules.storage.trip_store import InMemoryTripStore, ReminderSink, TripStore

__all__ = ["InMemoryTripStore", "ReminderSink", "TripStore"]
