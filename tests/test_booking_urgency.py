from datetime import date

import pytest

from itinerary_engine.errors import NotFoundError, PersistenceError, ValidationError
from itinerary_engine.modules.booking.urgency_analyzer import (
    BookingUrgencyAnalyzer,
    ReminderScope,
    ReminderSettings,
    booking_tips,
    calculate_urgency,
    generate_reminders,
    requires_booking,
)
from itinerary_engine.schemas.booking import Priority, ReminderStatus, ReminderType
from itinerary_engine.schemas.itinerary import Day
from tests.conftest import make_activity


class FailingSink:
    def __init__(self):
        self.calls = 0

    def save_reminders(self, trip_id, reminders):
        self.calls += 1
        raise PersistenceError("reminder collection unavailable")


@pytest.fixture
def museum():
    return make_activity("louvre", name="Louvre", category="museum", duration=180)


def _day(n, d, *activities):
    return Day(day_number=n, date=d, activities=list(activities))


# ── Booking requirement ──────────────────────────────────────────────────────

def test_explicit_flag_requires_booking():
    assert requires_booking(make_activity("a", booking_required=True))


def test_top_rated_restaurant_requires_booking():
    assert requires_booking(make_activity("a", category="restaurant", rating=4.6))
    assert not requires_booking(make_activity("b", category="restaurant", rating=4.2))


@pytest.mark.parametrize("name", ["Opera tickets", "Limited seating supper club", "Popular rooftop"])
def test_keywords_require_booking(name):
    assert requires_booking(make_activity("a", name=name))


def test_plain_activity_needs_no_booking():
    assert not requires_booking(make_activity("a", name="Stroll along the river"))


# ── Urgency ──────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("day,priority", [
    (date(2025, 6, 5), Priority.HIGH),
    (date(2025, 6, 20), Priority.MEDIUM),
])
def test_expert_recommended_urgency(now, day, priority):
    urgency = calculate_urgency(make_activity("a", expert_recommended=True), day, now)
    assert urgency.recommended
    assert urgency.priority is priority


@pytest.mark.parametrize("day,priority", [
    (date(2025, 6, 10), Priority.HIGH),
    (date(2025, 6, 20), Priority.MEDIUM),
])
def test_popular_venue_urgency(now, day, priority):
    venue = make_activity("a", rating=4.8, rating_count=600)
    assert calculate_urgency(venue, day, now).priority is priority


def test_popular_needs_enough_ratings(now):
    venue = make_activity("a", rating=4.9, rating_count=40)
    assert not calculate_urgency(venue, date(2025, 6, 10), now).recommended


def test_weekend_restaurant(now):
    dinner = make_activity("a", category="restaurant", start="13:00")
    assert calculate_urgency(dinner, date(2025, 6, 7), now).priority is Priority.HIGH    # Saturday, 5 days out
    assert calculate_urgency(dinner, date(2025, 6, 14), now).priority is Priority.MEDIUM


def test_weekday_dinner_restaurant(now):
    dinner = make_activity("a", category="restaurant", start="19:00")
    urgency = calculate_urgency(dinner, date(2025, 6, 4), now)
    assert urgency.recommended
    assert urgency.priority is Priority.MEDIUM


def test_weekday_lunch_not_recommended(now):
    lunch = make_activity("a", category="restaurant", start="12:00")
    assert not calculate_urgency(lunch, date(2025, 6, 4), now).recommended


def test_sightseeing_urgency(now, museum):
    assert calculate_urgency(museum, date(2025, 6, 3), now).priority is Priority.HIGH
    assert calculate_urgency(museum, date(2025, 6, 20), now).priority is Priority.LOW


# ── Reminder generation ──────────────────────────────────────────────────────

def test_reminders_count_back_from_activity_date(now, museum):
    reminders = generate_reminders(museum, date(2025, 6, 20), now, [7, 3, 1])

    assert [r.reminder_date for r in reminders] == [date(2025, 6, 13), date(2025, 6, 17), date(2025, 6, 19)]
    assert [r.type for r in reminders] == [
        ReminderType.BOOKING, ReminderType.CONFIRMATION, ReminderType.PREPARATION,
    ]
    assert [r.id for r in reminders] == ["reminder-louvre-7d", "reminder-louvre-3d", "reminder-louvre-1d"]
    assert all(r.status is ReminderStatus.PENDING for r in reminders)
    assert "tomorrow" in reminders[-1].message


def test_reminders_before_today_are_skipped(now, museum):
    reminders = generate_reminders(museum, date(2025, 6, 4), now, [7, 3, 1])
    assert [r.reminder_date for r in reminders] == [date(2025, 6, 1), date(2025, 6, 3)]


def test_past_activity_has_no_reminders(now, museum):
    assert generate_reminders(museum, date(2025, 5, 30), now, [7, 3, 1]) == []


def test_activity_without_booking_need_has_no_reminders(now):
    stroll = make_activity("a", name="Stroll along the river")
    assert generate_reminders(stroll, date(2025, 6, 20), now, [7, 3, 1]) == []


@pytest.mark.parametrize("offsets", [[0], [7, -1]])
def test_non_positive_offsets_rejected(now, museum, offsets):
    with pytest.raises(ValidationError):
        generate_reminders(museum, date(2025, 6, 20), now, offsets)


def test_reminder_offsets_are_deduplicated(now, museum):
    reminders = generate_reminders(museum, date(2025, 6, 20), now, [3, 3, 1])
    assert [r.days_before for r in reminders] == [3, 1]


def test_tips_are_capped_and_specific_first():
    venue = make_activity("a", category="restaurant", rating=4.8, price_level=4)
    tips = booking_tips(venue, dietary=["vegan"])
    assert len(tips) == 3
    assert tips[0] == "Mention dietary requirements: vegan"


# ── Analyzer ─────────────────────────────────────────────────────────────────

@pytest.fixture
def two_days(museum):
    concert = make_activity("concert", name="Ticketed jazz concert", start="20:00")
    return [
        _day(1, date(2025, 6, 3), make_activity("m", name="Orsay", category="museum", booking_required=True)),
        _day(2, date(2025, 6, 30), museum, concert),
    ]


def test_analyze_collects_stats(now, two_days):
    result = BookingUrgencyAnalyzer().analyze(two_days, now=now)

    assert result.stats.total_activities == 3
    assert result.stats.booking_required == 2
    assert result.stats.urgent_reminders == 1
    assert result.stats.reminders_created == len(result.reminders)
    assert [r.reminder_date for r in result.reminders] == sorted(r.reminder_date for r in result.reminders)


def test_analyze_persists_to_store(now, store, two_days):
    result = BookingUrgencyAnalyzer(sink=store).analyze(two_days, now=now, trip_id="trip-1")

    assert result.persisted
    assert result.persistence_error is None
    assert [r.id for r in store.get_reminders("trip-1")] == [r.id for r in result.reminders]


def test_sink_failure_keeps_computed_reminders(now, two_days):
    sink = FailingSink()
    result = BookingUrgencyAnalyzer(sink=sink).analyze(two_days, now=now, trip_id="trip-1")

    assert sink.calls == 1
    assert not result.persisted
    assert result.reminders
    assert isinstance(result.persistence_error, PersistenceError)
    assert result.persistence_error.pending == result.reminders


def test_auto_reminders_disabled_skips_sink(now, two_days):
    sink = FailingSink()
    settings = ReminderSettings(enable_auto_reminders=False)
    result = BookingUrgencyAnalyzer(sink=sink).analyze(two_days, settings=settings, now=now)

    assert sink.calls == 0
    assert result.reminders
    assert not result.persisted


def test_upcoming_scope_limits_to_window(now, two_days):
    result = BookingUrgencyAnalyzer().analyze(two_days, scope=ReminderScope.UPCOMING, now=now)
    assert {r.activity_id for r in result.reminders} == {"m"}


def test_activity_scope(now, two_days):
    result = BookingUrgencyAnalyzer().analyze(two_days, scope=ReminderScope.ACTIVITY,
                                              activity_id="concert", now=now)
    assert result.stats.total_activities == 1
    assert {r.activity_id for r in result.reminders} == {"concert"}


def test_activity_scope_requires_id(now, two_days):
    with pytest.raises(ValidationError):
        BookingUrgencyAnalyzer().analyze(two_days, scope=ReminderScope.ACTIVITY, now=now)


def test_activity_scope_unknown_id(now, two_days):
    with pytest.raises(NotFoundError):
        BookingUrgencyAnalyzer().analyze(two_days, scope=ReminderScope.ACTIVITY,
                                         activity_id="nope", now=now)


def test_empty_itinerary(now):
    result = BookingUrgencyAnalyzer().analyze([], now=now)
    assert result.reminders == []
    assert result.recommendations == ["No activities found to create reminders for."]


def test_recommendations(now):
    days = [
        _day(1, date(2025, 6, 7),
             make_activity("bistro", category="restaurant", start="19:00"),
             make_activity("chef", name="Chef's table", expert_recommended=True, start="12:00"),
             make_activity("a1", category="attraction", start="09:00"),
             make_activity("a2", category="tour", start="14:00"),
             make_activity("a3", category="museum", start="16:00")),
    ]
    recs = BookingUrgencyAnalyzer().analyze(days, now=now, travelers=6).recommendations

    assert any("need urgent booking attention" in r for r in recs)
    assert "1 restaurant visits are on weekends - book early for best tables" in recs
    assert "1 expert-recommended venues in your itinerary - these fill up quickly" in recs
    assert "Consider looking for combo tickets or city passes for multiple attractions" in recs
    assert "Large group bookings may need extra advance notice" in recs


# ── Status lifecycle ─────────────────────────────────────────────────────────

def test_status_moves_forward_only(now, museum):
    reminder = generate_reminders(museum, date(2025, 6, 20), now, [7])[0]

    reminder.transition(ReminderStatus.SENT)
    reminder.transition(ReminderStatus.DISMISSED)
    with pytest.raises(ValidationError):
        reminder.transition(ReminderStatus.PENDING)


def test_pending_can_be_dismissed_but_not_resent(now, museum):
    reminder = generate_reminders(museum, date(2025, 6, 20), now, [7])[0]
    reminder.transition(ReminderStatus.DISMISSED)
    with pytest.raises(ValidationError):
        reminder.transition(ReminderStatus.SENT)
