from datetime import date

import pytest

from itinerary_engine.errors import NotFoundError, PersistenceError, ValidationError
from itinerary_engine.schemas.booking import Priority, Reminder, ReminderStatus, ReminderType
from tests.conftest import make_activity

DAY_ID = "trip-legacy-2025-06-02"


def _reminder(rid, reminder_date=date(2025, 6, 10), activity_date=date(2025, 6, 12)):
    return Reminder(
        id=rid,
        activity_id="a",
        activity_name="Louvre",
        activity_date=activity_date,
        reminder_date=reminder_date,
        days_before=(activity_date - reminder_date).days,
        type=ReminderType.PREPARATION,
        priority=Priority.LOW,
        message="Louvre is in 2 days!",
    )


# ── Trips and days ───────────────────────────────────────────────────────────

def test_unknown_trip(store):
    with pytest.raises(NotFoundError):
        store.get_trip("missing")


def test_trip_is_copied_on_save(store, legacy_trip):
    store.save_trip(legacy_trip)
    legacy_trip.travelers = 9
    assert store.get_trip("trip-legacy").travelers == 1


def test_days_come_back_in_order_with_activities(store, stored_trip):
    activities, version = store.get_activities(stored_trip.id, DAY_ID)
    store.replace_activities(stored_trip.id, DAY_ID,
                             [make_activity("late", "15:00"), make_activity("early", "09:00")], version)

    days = store.get_days(stored_trip.id)
    assert [d.day_number for d in days] == [1, 2, 3]
    assert [a.id for a in days[1].activities] == ["early", "late"]


def test_unknown_day(store, stored_trip):
    with pytest.raises(NotFoundError):
        store.get_activities(stored_trip.id, "no-such-day")


# ── Activity versions ────────────────────────────────────────────────────────

def test_replace_bumps_version(store, stored_trip):
    _, version = store.get_activities(stored_trip.id, DAY_ID)
    new_version = store.replace_activities(stored_trip.id, DAY_ID, [make_activity("a")], version)

    assert new_version == version + 1
    assert store.get_activities(stored_trip.id, DAY_ID)[1] == new_version


def test_stale_version_is_rejected(store, stored_trip):
    _, version = store.get_activities(stored_trip.id, DAY_ID)
    store.replace_activities(stored_trip.id, DAY_ID, [make_activity("first")], version)

    late = [make_activity("second")]
    with pytest.raises(PersistenceError) as exc:
        store.replace_activities(stored_trip.id, DAY_ID, late, version)
    assert exc.value.pending == late
    assert [a.id for a in store.get_activities(stored_trip.id, DAY_ID)[0]] == ["first"]


def test_returned_activities_are_copies(store, stored_trip):
    _, version = store.get_activities(stored_trip.id, DAY_ID)
    store.replace_activities(stored_trip.id, DAY_ID, [make_activity("a")], version)

    activities, _ = store.get_activities(stored_trip.id, DAY_ID)
    activities[0].name = "changed"
    assert store.get_activities(stored_trip.id, DAY_ID)[0][0].name == "Activity a"


# ── Reminders ────────────────────────────────────────────────────────────────

def test_reminders_saved_and_sorted(store):
    store.save_reminders("t", [_reminder("r2", date(2025, 6, 11)), _reminder("r1", date(2025, 6, 9))])
    assert [r.id for r in store.get_reminders("t")] == ["r1", "r2"]


def test_duplicate_ids_reject_whole_batch(store):
    with pytest.raises(ValidationError):
        store.save_reminders("t", [_reminder("r1"), _reminder("r2"), _reminder("r1")])
    assert store.get_reminders("t") == []


def test_reminder_must_precede_activity(store):
    with pytest.raises(ValidationError):
        store.save_reminders("t", [_reminder("ok"), _reminder("bad", date(2025, 6, 12))])
    assert store.get_reminders("t") == []


def test_resave_keeps_status(store):
    store.save_reminders("t", [_reminder("r1")])
    store.update_reminder_status("t", "r1", ReminderStatus.SENT)

    store.save_reminders("t", [_reminder("r1")])
    assert store.get_reminders("t")[0].status is ReminderStatus.SENT


def test_status_update_errors(store):
    store.save_reminders("t", [_reminder("r1")])
    store.update_reminder_status("t", "r1", ReminderStatus.DISMISSED)

    with pytest.raises(ValidationError):
        store.update_reminder_status("t", "r1", ReminderStatus.SENT)
    with pytest.raises(NotFoundError):
        store.update_reminder_status("t", "missing", ReminderStatus.SENT)
