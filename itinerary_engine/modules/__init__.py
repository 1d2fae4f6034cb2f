"""itinerary_engine/modules: engine components grouped by concern."""
