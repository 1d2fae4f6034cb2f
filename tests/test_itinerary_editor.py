import pytest

from itinerary_engine.errors import NotFoundError, PersistenceError, ValidationError
from itinerary_engine.modules.planning.day_sequencer import DaySequencer
from itinerary_engine.modules.scheduling.itinerary_editor import EditResult, ItineraryEditor
from itinerary_engine.modules.storage.trip_store import InMemoryTripStore
from tests.conftest import make_activity

TRIP = "trip-legacy"


class BrokenStore(InMemoryTripStore):
    """Reads work, activity writes fail."""

    def replace_activities(self, trip_id, day_id, activities, expected_version):
        raise PersistenceError("write timed out")


@pytest.fixture
def editor(store, stored_trip):
    return ItineraryEditor(store)


@pytest.fixture
def with_museum(editor):
    editor.add_activity(TRIP, "2025-06-02", make_activity("museum", duration=60), requested_time="10:00")
    return editor


def _ids(store, day_date):
    day = next(d for d in store.get_days(TRIP) if d.date_str == day_date)
    return [a.id for a in day.activities]


# ── Insertion ────────────────────────────────────────────────────────────────

def test_add_persists_placed_activity(editor, store):
    result = editor.add_activity(TRIP, "2025-06-02", make_activity("museum", duration=90), requested_time="14:00")

    assert result.success
    assert result.activity.start_time == "14:00"
    assert result.activity.added_at
    assert _ids(store, "2025-06-02") == ["museum"]
    assert result.version == store.get_activities(TRIP, result.day.id)[1]


def test_add_conflict_is_rescheduled_without_overlap(with_museum, store):
    result = with_museum.add_activity(TRIP, "2025-06-02", make_activity("walk", duration=60),
                                      requested_time="10:30")

    assert result.success
    assert result.activity.start_time == "09:00"
    ordered = result.activities
    assert all(a.end_minutes <= b.start_minutes for a, b in zip(ordered, ordered[1:]))


def test_failed_placement_writes_nothing(editor, store):
    editor.add_activity(TRIP, "2025-06-02", make_activity("all-day", duration=660), requested_time="09:00")
    _, before = store.get_activities(TRIP, "trip-legacy-2025-06-02")

    result = editor.add_activity(TRIP, "2025-06-02", make_activity("extra", duration=60), requested_time="12:00")

    assert not result.success
    assert result.placement.failure.message == "No available time slot found"
    assert store.get_activities(TRIP, "trip-legacy-2025-06-02")[1] == before
    assert _ids(store, "2025-06-02") == ["all-day"]


def test_unknown_date_lists_valid_dates(editor):
    with pytest.raises(NotFoundError) as exc:
        editor.add_activity(TRIP, "2025-07-01", make_activity("x"))
    assert exc.value.valid_dates == ["2025-06-01", "2025-06-02", "2025-06-03"]


# ── Updates ──────────────────────────────────────────────────────────────────

def test_update_duration_moves_end_time(with_museum):
    result = with_museum.update_activity(TRIP, "2025-06-02", "museum", duration_minutes=150)
    assert result.activity.end_time == "12:30"
    assert result.warnings == []


def test_update_reports_overlap(with_museum):
    with_museum.add_activity(TRIP, "2025-06-02", make_activity("lunch", duration=60), requested_time="12:00")
    result = with_museum.update_activity(TRIP, "2025-06-02", "museum", duration_minutes=180)
    assert "Time conflict detected with existing activities" in result.warnings


@pytest.mark.parametrize("changes", [{"id": "other"}, {"colour": "red"}, {"duration_minutes": 0}])
def test_update_rejects_bad_changes(with_museum, changes):
    with pytest.raises(ValidationError):
        with_museum.update_activity(TRIP, "2025-06-02", "museum", **changes)


def test_update_unknown_activity(with_museum):
    with pytest.raises(NotFoundError):
        with_museum.update_activity(TRIP, "2025-06-02", "ghost", notes="x")


# ── Move / duplicate / remove ────────────────────────────────────────────────

def test_move_to_another_day(with_museum, store):
    result = with_museum.move_activity(TRIP, "2025-06-02", "museum", "2025-06-03")

    assert result.success
    assert result.activity.start_time == "10:00"
    assert _ids(store, "2025-06-02") == []
    assert _ids(store, "2025-06-03") == ["museum"]


def test_move_within_day_changes_time(with_museum, store):
    result = with_museum.move_activity(TRIP, "2025-06-02", "museum", "2025-06-02", requested_time="15:00")
    assert result.activity.start_time == "15:00"
    assert _ids(store, "2025-06-02") == ["museum"]


def test_duplicate_gets_new_id_and_free_slot(with_museum, store):
    result = with_museum.duplicate_activity(TRIP, "2025-06-02", "museum")

    assert result.activity.id != "museum"
    assert result.activity.start_time == "09:00"
    assert len(_ids(store, "2025-06-02")) == 2


def test_duplicate_onto_other_day(with_museum, store):
    result = with_museum.duplicate_activity(TRIP, "2025-06-02", "museum", target_date="2025-06-01")
    assert result.day.date_str == "2025-06-01"
    assert _ids(store, "2025-06-01") == [result.activity.id]


def test_remove_leaves_siblings_untouched(with_museum, store):
    with_museum.add_activity(TRIP, "2025-06-02", make_activity("lunch", duration=60), requested_time="12:00")
    with_museum.remove_activity(TRIP, "2025-06-02", "museum")

    activities, _ = store.get_activities(TRIP, "trip-legacy-2025-06-02")
    assert [(a.id, a.start_time) for a in activities] == [("lunch", "12:00")]


# ── Persistence failures ─────────────────────────────────────────────────────

def test_failed_write_carries_computed_result(legacy_trip):
    store = BrokenStore()
    store.save_trip(legacy_trip)
    store.save_days(legacy_trip.id, DaySequencer().sequence(legacy_trip))

    with pytest.raises(PersistenceError) as exc:
        ItineraryEditor(store).add_activity(TRIP, "2025-06-02", make_activity("museum"), requested_time="11:00")

    pending = exc.value.pending
    assert isinstance(pending, EditResult)
    assert pending.activity.start_time == "11:00"
    assert [a.id for a in pending.activities] == ["museum"]


class FailingDayStore(InMemoryTripStore):
    """Activity writes to one day fail; everything else works."""

    def __init__(self, failing_day_id):
        super().__init__()
        self.failing_day_id = failing_day_id

    def replace_activities(self, trip_id, day_id, activities, expected_version):
        if day_id == self.failing_day_id:
            raise PersistenceError("write timed out")
        return super().replace_activities(trip_id, day_id, activities, expected_version)


def _seeded(legacy_trip, failing_day_id):
    days = DaySequencer().sequence(legacy_trip)
    days[1].activities = [make_activity("museum")]

    store = FailingDayStore(failing_day_id)
    store.save_trip(legacy_trip)
    store.save_days(legacy_trip.id, days)
    return store


@pytest.mark.parametrize("failing_day", ["2025-06-02", "2025-06-03"])
def test_failed_move_leaves_activity_on_source_day_only(legacy_trip, failing_day):
    store = _seeded(legacy_trip, f"{TRIP}-{failing_day}")

    with pytest.raises(PersistenceError) as exc:
        ItineraryEditor(store).move_activity(TRIP, "2025-06-02", "museum", "2025-06-03")

    assert _ids(store, "2025-06-02") == ["museum"]
    assert _ids(store, "2025-06-03") == []
    pending = exc.value.pending
    assert pending.day.date_str == "2025-06-03"
    assert [a.id for a in pending.activities] == ["museum"]


def test_move_writes_each_day_once(with_museum, store):
    before = {d.date_str: store.get_activities(TRIP, d.id)[1] for d in store.get_days(TRIP)}
    result = with_museum.move_activity(TRIP, "2025-06-02", "museum", "2025-06-03")

    after = {d.date_str: store.get_activities(TRIP, d.id)[1] for d in store.get_days(TRIP)}
    assert after["2025-06-02"] == before["2025-06-02"] + 1
    assert after["2025-06-03"] == before["2025-06-03"] + 1
    assert result.version == after["2025-06-03"]
