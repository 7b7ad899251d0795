# app/utils/time_slots.py

from datetime import datetime
from typing import List

SLOT_DURATION_MINUTES = 45

# Canonical clinic day: 14 slots of 45 minutes starting 09:15 AM
SLOT_LABELS: List[str] = [
    "09:15 AM",
    "10:00 AM",
    "10:45 AM",
    "11:30 AM",
    "12:15 PM",
    "01:00 PM",
    "01:45 PM",
    "02:30 PM",
    "03:15 PM",
    "04:00 PM",
    "04:45 PM",
    "05:30 PM",
    "06:15 PM",
    "07:00 PM",
]


class MalformedTimeError(ValueError):
    """Raised when a slot string is not a 12-hour "H:MM AM/PM" time."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid time '{value}'. Use the 12-hour format HH:MM AM/PM (e.g., 09:15 AM)")


def to_minutes(slot: str) -> int:
    """Minutes since midnight for a 12-hour clock string ("12 AM" is 0)."""
    if not isinstance(slot, str):
        raise MalformedTimeError(slot)

    try:
        parsed = datetime.strptime(slot.strip().upper(), "%I:%M %p")
    except ValueError:
        raise MalformedTimeError(slot)
    return parsed.hour * 60 + parsed.minute


def from_minutes(total: int) -> str:
    """Inverse of to_minutes, zero padded like the slot catalog."""
    total = total % (24 * 60)
    hours, minutes = divmod(total, 60)
    period = "PM" if hours >= 12 else "AM"
    hours = hours % 12 or 12
    return f"{hours:02d}:{minutes:02d} {period}"


def duration(start: str, end: str) -> int:
    return to_minutes(end) - to_minutes(start)


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Half-open interval overlap of [a_start, a_end) and [b_start, b_end)."""
    return to_minutes(a_start) < to_minutes(b_end) and to_minutes(a_end) > to_minutes(b_start)


def slot_end(start: str) -> str:
    return from_minutes(to_minutes(start) + SLOT_DURATION_MINUTES)


def is_canonical_slot(slot: str) -> bool:
    return slot in SLOT_LABELS
