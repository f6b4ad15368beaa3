from __future__ import annotations

from datetime import datetime

from timetable_engine.schemas.timetable import TimetableSlot

SHORT_DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
LONG_DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def day_of_week(now: datetime) -> int:
    """Sunday-first day index for a datetime."""
    return (now.weekday() + 1) % 7


def get_day_name(day: int, short: bool = True) -> str:
    names = SHORT_DAY_NAMES if short else LONG_DAY_NAMES
    return names[day]


def format_time_display(value: str) -> str:
    """``"14:05"`` -> ``"2:05 PM"``."""
    hours, minutes = (int(part) for part in value.split(":"))
    period = "PM" if hours >= 12 else "AM"
    display_hours = hours % 12 or 12
    return f"{display_hours}:{minutes:02d} {period}"


def _slots_for_day(slots: list[TimetableSlot], day: int) -> list[TimetableSlot]:
    return sorted((slot for slot in slots if slot.day_of_week == day), key=lambda slot: slot.start_time)


def _next_day_with_slots(slots: list[TimetableSlot], current_day: int) -> list[TimetableSlot]:
    for offset in range(1, 8):
        day_slots = _slots_for_day(slots, (current_day + offset) % 7)
        if day_slots:
            return day_slots
    return []


def get_current_and_next_class(
    slots: list[TimetableSlot],
    now: datetime | None = None,
) -> tuple[TimetableSlot | None, TimetableSlot | None]:
    now = now or datetime.now()
    current_day = day_of_week(now)
    current_time = now.strftime("%H:%M")

    current_class: TimetableSlot | None = None
    next_class: TimetableSlot | None = None
    for slot in _slots_for_day(slots, current_day):
        if slot.start_time <= current_time < slot.end_time:
            current_class = slot
        elif current_time < slot.start_time and next_class is None:
            next_class = slot

    if next_class is None:
        upcoming = _next_day_with_slots(slots, current_day)
        if upcoming:
            next_class = upcoming[0]
    return current_class, next_class


def get_nearby_slots(slots: list[TimetableSlot], now: datetime | None = None) -> list[TimetableSlot]:
    """Today's classes while any is still to finish, otherwise the next day that has classes."""
    if not slots:
        return []
    now = now or datetime.now()
    current_day = day_of_week(now)
    current_time = now.strftime("%H:%M")

    today = _slots_for_day(slots, current_day)
    if any(slot.end_time > current_time for slot in today):
        return today
    return _next_day_with_slots(slots, current_day)
