"""Shared fixtures for the engine test suite."""

from datetime import date, datetime

import pytest

from itinerary_engine.modules.planning.day_sequencer import DaySequencer
from itinerary_engine.modules.storage.trip_store import InMemoryTripStore
from itinerary_engine.schemas.itinerary import (
    Activity,
    DestinationStay,
    Location,
    Place,
    Trip,
)


def make_activity(id: str, start: str = "10:00", duration: int = 60, **kwargs) -> Activity:
    return Activity(id=id, name=kwargs.pop("name", f"Activity {id}"),
                    start_time=start, duration_minutes=duration, **kwargs)


@pytest.fixture
def now():
    return datetime(2025, 6, 1, 9, 0)   # a Sunday morning


@pytest.fixture
def paris():
    return Place(id="paris", name="Paris", location=Location(48.8566, 2.3522))


@pytest.fixture
def rome():
    return Place(id="rome", name="Rome", location=Location(41.9028, 12.4964))


@pytest.fixture
def paris_rome_trip(paris, rome):
    return Trip(
        id="trip-pr",
        destinations=[
            DestinationStay(place=paris, arrival_date="2025-06-01", departure_date="2025-06-03", order=0),
            DestinationStay(place=rome, arrival_date="2025-06-03", departure_date="2025-06-05", order=1),
        ],
        travelers=2,
    )


@pytest.fixture
def legacy_trip(paris):
    return Trip(id="trip-legacy", destination=paris,
                start_date=date(2025, 6, 1), end_date=date(2025, 6, 3))


@pytest.fixture
def store():
    return InMemoryTripStore()


@pytest.fixture
def stored_trip(store, legacy_trip):
    """legacy_trip sequenced and saved; returns the trip."""
    store.save_trip(legacy_trip)
    store.save_days(legacy_trip.id, DaySequencer().sequence(legacy_trip))
    return legacy_trip
