"""
itinerary_engine/schemas/booking.py
-----------------------------------
Booking urgency and reminder records.

Reminders are created in batches by the Booking Urgency Analyzer, never
deleted automatically, and only move forward through their status:

    pending → sent → dismissed
    pending → dismissed
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from itinerary_engine.errors import ValidationError


class Priority(str, Enum):
    HIGH   = "high"
    MEDIUM = "medium"
    LOW    = "low"


class ReminderType(str, Enum):
    BOOKING      = "booking"        # ≥ 7 days before
    CONFIRMATION = "confirmation"   # 3–6 days before
    PREPARATION  = "preparation"    # < 3 days before

    @classmethod
    def for_offset(cls, days_before: int) -> "ReminderType":
        if days_before >= 7:
            return cls.BOOKING
        if days_before >= 3:
            return cls.CONFIRMATION
        return cls.PREPARATION


class ReminderStatus(str, Enum):
    PENDING   = "pending"
    SENT      = "sent"
    DISMISSED = "dismissed"


_ALLOWED_TRANSITIONS: dict[ReminderStatus, set[ReminderStatus]] = {
    ReminderStatus.PENDING:   {ReminderStatus.SENT, ReminderStatus.DISMISSED},
    ReminderStatus.SENT:      {ReminderStatus.DISMISSED},
    ReminderStatus.DISMISSED: set(),
}


@dataclass
class BookingUrgency:
    """Advance-booking recommendation for one activity on one date."""
    recommended: bool = False
    priority: Priority = Priority.LOW
    reason: str = ""


@dataclass
class Reminder:
    id: str
    activity_id: str
    activity_name: str
    activity_date: date
    reminder_date: date
    days_before: int
    type: ReminderType
    priority: Priority
    message: str
    booking_url: str = ""
    tips: list[str] = field(default_factory=list)
    status: ReminderStatus = ReminderStatus.PENDING

    def transition(self, status: ReminderStatus) -> None:
        """Move to a new status; backwards or repeated moves are rejected."""
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise ValidationError(
                f"reminder {self.id}: cannot move from {self.status.value} to {status.value}",
                field="status",
            )
        self.status = status
