"""modules/booking: booking urgency and reminders."""

from itinerary_engine.modules.booking.urgency_analyzer import (
    BookingReminderResult, BookingUrgencyAnalyzer, ReminderScope, ReminderSettings,
    calculate_urgency, generate_reminders, requires_booking,
)

__all__ = [
    "BookingReminderResult",
    "BookingUrgencyAnalyzer",
    "ReminderScope",
    "ReminderSettings",
    "calculate_urgency",
    "generate_reminders",
    "requires_booking",
]
