"""itinerary_engine/schemas: dataclass domain model and pydantic boundary records."""
