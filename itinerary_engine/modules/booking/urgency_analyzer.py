"""
itinerary_engine/modules/booking/urgency_analyzer.py
----------------------------------------------------
Decides which activities need advance booking, how urgently, and creates
the reminder batch counted backwards from each activity's date.

Urgency rules (first match wins, evaluated in this order)
─────────────────────────────────────────────────────────
  1. expert recommended / endorsed      high if ≤ 7 days out,  else medium
  2. rating ≥ 4.7 with > 500 ratings    high if ≤ 14 days out, else medium
  3. restaurant on a weekend            high if ≤ 7 days out,  else medium
  4. restaurant at dinner (18–21h)      medium
  5. museum / attraction / tour         high if ≤ 3 days out,  else low

Urgency is independent of requires_booking(): an activity that does not
strictly need booking can still be recommended for one.

Reminders
─────────
For every configured offset: reminder_date = activity_date − offset.
Offsets landing before today are skipped. Reminder type follows the
offset (≥ 7 booking, 3–6 confirmation, < 3 preparation). The batch is
returned sorted by reminder_date ascending.

A failing reminder sink never invalidates the computed batch: the error is
attached to the result and the reminders are still returned.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from itinerary_engine import config
from itinerary_engine.errors import NotFoundError, PersistenceError, ValidationError
from itinerary_engine.log import get_logger
from itinerary_engine.modules.storage.trip_store import ReminderSink
from itinerary_engine.modules.tool_usage.time_tool import days_until
from itinerary_engine.modules.weather.classification import classify_environment, is_exposed
from itinerary_engine.schemas.booking import BookingUrgency, Priority, Reminder, ReminderType
from itinerary_engine.schemas.itinerary import Activity, Day

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

BOOKING_KEYWORDS: tuple[str, ...] = ("reservation", "ticket", "advance", "limited", "popular")
RESTAURANT_BOOKING_MIN_RATING: float = 4.5

POPULAR_MIN_RATING: float = 4.7
POPULAR_MIN_RATING_COUNT: int = 500

DINNER_START_HOUR: int = 18
DINNER_END_HOUR: int = 21

SIGHTSEEING_CATEGORIES: set[str] = {"museum", "attraction", "tour"}
MAX_TIPS: int = 3


class ReminderScope(str, Enum):
    TRIP     = "trip"       # every activity of the trip
    UPCOMING = "upcoming"   # days within UPCOMING_WINDOW_DAYS of now
    ACTIVITY = "activity"   # one activity by id


@dataclass
class ReminderSettings:
    enable_auto_reminders: bool = True
    reminder_days_before: list[int] = field(default_factory=lambda: list(config.REMINDER_DAYS_BEFORE))


@dataclass
class BookingStats:
    total_activities: int = 0
    booking_required: int = 0
    reminders_created: int = 0
    urgent_reminders: int = 0


@dataclass
class BookingReminderResult:
    reminders: list[Reminder] = field(default_factory=list)
    stats: BookingStats = field(default_factory=BookingStats)
    recommendations: list[str] = field(default_factory=list)
    persisted: bool = False
    persistence_error: Optional[PersistenceError] = None


# ─────────────────────────────────────────────────────────────────────────────
# Pure classification
# ─────────────────────────────────────────────────────────────────────────────

def _category(activity: Activity) -> str:
    return (activity.category or "").lower()


def requires_booking(activity: Activity) -> bool:
    """Explicit flag, a highly rated restaurant, or a booking keyword in name/description."""
    if activity.booking_required:
        return True
    if _category(activity) == "restaurant" and (activity.rating or 0) >= RESTAURANT_BOOKING_MIN_RATING:
        return True
    text = f"{activity.name} {activity.description}".lower()
    return any(k in text for k in BOOKING_KEYWORDS)


def calculate_urgency(activity: Activity, activity_date: date, now: datetime) -> BookingUrgency:
    days_out = days_until(activity_date, now)
    category = _category(activity)

    if activity.expert_recommended or activity.expert_endorsed:
        return BookingUrgency(
            recommended = True,
            priority    = Priority.HIGH if days_out <= 7 else Priority.MEDIUM,
            reason      = "Expert-recommended venue - likely to be busy",
        )

    if (activity.rating or 0) >= POPULAR_MIN_RATING and activity.rating_count > POPULAR_MIN_RATING_COUNT:
        return BookingUrgency(
            recommended = True,
            priority    = Priority.HIGH if days_out <= 14 else Priority.MEDIUM,
            reason      = "Highly popular venue with excellent ratings",
        )

    if category == "restaurant" and activity_date.weekday() >= 5:
        return BookingUrgency(
            recommended = True,
            priority    = Priority.HIGH if days_out <= 7 else Priority.MEDIUM,
            reason      = "Weekend dining - reservations recommended",
        )

    if category == "restaurant" and DINNER_START_HOUR <= activity.start_minutes // 60 <= DINNER_END_HOUR:
        return BookingUrgency(
            recommended = True,
            priority    = Priority.MEDIUM,
            reason      = "Prime dinner hours - booking advised",
        )

    if category in SIGHTSEEING_CATEGORIES:
        return BookingUrgency(
            recommended = True,
            priority    = Priority.HIGH if days_out <= 3 else Priority.LOW,
            reason      = "Skip-the-line tickets may be available",
        )

    return BookingUrgency()


# ─────────────────────────────────────────────────────────────────────────────
# Reminder text
# ─────────────────────────────────────────────────────────────────────────────

def reminder_message(activity: Activity, days_before: int, urgency: BookingUrgency) -> str:
    kind = activity.category or "activity"
    reason = f" {urgency.reason}." if urgency.reason else ""
    if days_before >= 7:
        return (f"Time to book your {kind} at {activity.name}!{reason} "
                "Booking ahead ensures availability and may offer better rates.")
    if days_before >= 3:
        action = "Please confirm your booking." if activity.booking_required else "Consider making a reservation."
        return f"Reminder: {activity.name} is in {days_before} days. {action}{reason}"
    when = "tomorrow" if days_before == 1 else f"in {days_before} days"
    check = ("Check your booking confirmation." if activity.booking_url
             else "Final chance to make a reservation if needed.")
    return f"{activity.name} is {when}! {check} Don't forget to check opening hours and directions."


def booking_tips(activity: Activity, dietary: list[str] | None = None) -> list[str]:
    """At most MAX_TIPS tips, most specific first."""
    category = _category(activity)
    tips: list[str] = []

    if category == "restaurant":
        if dietary:
            tips.append(f"Mention dietary requirements: {', '.join(dietary)}")
        tips.append("Request outdoor seating if weather permits")
        tips.append("Ask about daily specials when booking")

    if category in ("museum", "attraction"):
        tips.append("Check for online discounts or combo tickets")
        tips.append("Book early morning slots to avoid crowds")
        if activity.duration_minutes > 120:
            tips.append("This is a longer activity - plan accordingly")

    if category in ("tour", "experience"):
        tips.append("Confirm meeting point and what's included")
        tips.append("Check cancellation policy")
        tips.append("Ask about group size limits")

    if is_exposed(classify_environment(activity)):
        tips.append("Check weather forecast before confirming")
        tips.append("Ask about rain/weather cancellation policy")

    if (activity.rating or 0) >= RESTAURANT_BOOKING_MIN_RATING:
        tips.append("Popular venue - book as early as possible")
    if (activity.price_level or 0) >= 3:
        tips.append("Higher-end venue - check dress code")

    return tips[:MAX_TIPS]


# ─────────────────────────────────────────────────────────────────────────────
# Reminder generation
# ─────────────────────────────────────────────────────────────────────────────

def generate_reminders(
    activity: Activity,
    activity_date: date,
    now: datetime,
    days_before: list[int] | None = None,
    dietary: list[str] | None = None,
) -> list[Reminder]:
    """
    Reminders for one activity, sorted by reminder_date ascending.

    Returns an empty list for past activities and for activities that
    neither require nor are recommended for booking.

    Raises:
        ValidationError: an offset is zero or negative.
    """
    offsets = list(config.REMINDER_DAYS_BEFORE if days_before is None else days_before)
    bad = [o for o in offsets if o <= 0]
    if bad:
        raise ValidationError(f"reminder offsets must be positive, got {bad}", field="reminder_days_before")

    today = now.date()
    if activity_date < today:
        return []

    urgency = calculate_urgency(activity, activity_date, now)
    if not (requires_booking(activity) or urgency.recommended):
        return []

    reminders: list[Reminder] = []
    for offset in sorted(set(offsets), reverse=True):
        reminder_date = activity_date - timedelta(days=offset)
        if reminder_date < today:
            continue
        reminders.append(Reminder(
            id            = f"reminder-{activity.id}-{offset}d",
            activity_id   = activity.id,
            activity_name = activity.name,
            activity_date = activity_date,
            reminder_date = reminder_date,
            days_before   = offset,
            type          = ReminderType.for_offset(offset),
            priority      = urgency.priority,
            message       = reminder_message(activity, offset, urgency),
            booking_url   = activity.booking_url,
            tips          = booking_tips(activity, dietary),
        ))
    return sorted(reminders, key=lambda r: r.reminder_date)


# ─────────────────────────────────────────────────────────────────────────────
# BookingUrgencyAnalyzer
# ─────────────────────────────────────────────────────────────────────────────

class BookingUrgencyAnalyzer:
    """
    Usage:
        analyzer = BookingUrgencyAnalyzer(sink=store)
        result   = analyzer.analyze(days, trip_id=trip.id, travelers=trip.travelers)
        if result.persistence_error:
            retry(result.reminders)
    """

    def __init__(self, sink: ReminderSink | None = None,
                 upcoming_window_days: int = config.UPCOMING_WINDOW_DAYS,
                 large_group_travelers: int = config.LARGE_GROUP_TRAVELERS):
        self.sink = sink
        self.upcoming_window_days = upcoming_window_days
        self.large_group_travelers = large_group_travelers

    def gather(self, days: list[Day], scope: ReminderScope, activity_id: str | None,
               now: datetime) -> list[tuple[Activity, date]]:
        if scope is ReminderScope.ACTIVITY:
            if not activity_id:
                raise ValidationError("activity scope requires an activity id", field="activity_id")
            for day in days:
                for activity in day.activities:
                    if activity.id == activity_id:
                        return [(activity, day.date)]
            raise NotFoundError(f"activity {activity_id} not found in trip")

        today = now.date()
        horizon = today + timedelta(days=self.upcoming_window_days)
        pairs: list[tuple[Activity, date]] = []
        for day in sorted(days, key=lambda d: d.date):
            if scope is ReminderScope.UPCOMING and not (today <= day.date <= horizon):
                continue
            pairs.extend((a, day.date) for a in day.sorted_activities())
        return pairs

    def analyze(
        self,
        days: list[Day],
        scope: ReminderScope = ReminderScope.TRIP,
        activity_id: str | None = None,
        settings: ReminderSettings | None = None,
        now: datetime | None = None,
        trip_id: str = "",
        travelers: int = 1,
        dietary: list[str] | None = None,
    ) -> BookingReminderResult:
        settings = settings or ReminderSettings()
        now = now or datetime.now()
        pairs = self.gather(days, scope, activity_id, now)

        if not pairs:
            return BookingReminderResult(recommendations=["No activities found to create reminders for."])

        reminders: list[Reminder] = []
        stats = BookingStats(total_activities=len(pairs))
        for activity, activity_date in pairs:
            reminders.extend(generate_reminders(
                activity, activity_date, now, settings.reminder_days_before, dietary,
            ))
            if requires_booking(activity):
                stats.booking_required += 1
                if 0 <= days_until(activity_date, now) <= 3:
                    stats.urgent_reminders += 1

        reminders.sort(key=lambda r: (r.reminder_date, r.activity_date, r.id))
        stats.reminders_created = len(reminders)

        result = BookingReminderResult(
            reminders       = reminders,
            stats           = stats,
            recommendations = self.recommendations(pairs, reminders, travelers),
        )

        if reminders and settings.enable_auto_reminders and self.sink is not None:
            try:
                self.sink.save_reminders(trip_id, reminders)
                result.persisted = True
            except PersistenceError as exc:
                logger.error("Reminder batch for trip %s not persisted: %s", trip_id, exc)
                exc.pending = list(reminders)
                result.persistence_error = exc

        logger.info("Trip %s: %d reminder(s) for %d activit(ies), scope=%s",
                    trip_id, len(reminders), len(pairs), scope.value)
        return result

    def recommendations(self, pairs: list[tuple[Activity, date]], reminders: list[Reminder],
                        travelers: int) -> list[str]:
        recs: list[str] = []

        urgent = sum(1 for r in reminders if r.priority is Priority.HIGH)
        if urgent:
            recs.append(f"You have {urgent} activities that need urgent booking attention")

        weekend_dining = sum(1 for a, d in pairs if d.weekday() >= 5 and _category(a) == "restaurant")
        if weekend_dining:
            recs.append(f"{weekend_dining} restaurant visits are on weekends - book early for best tables")

        expert = sum(1 for a, _ in pairs if a.expert_recommended or a.expert_endorsed)
        if expert:
            recs.append(f"{expert} expert-recommended venues in your itinerary - these fill up quickly")

        attractions = sum(1 for a, _ in pairs if _category(a) in SIGHTSEEING_CATEGORIES)
        if attractions > 2:
            recs.append("Consider looking for combo tickets or city passes for multiple attractions")

        if travelers > self.large_group_travelers:
            recs.append("Large group bookings may need extra advance notice")
        return recs
