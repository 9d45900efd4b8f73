"""Offering availability rules."""

from __future__ import annotations

from datetime import date, time
from typing import Any

from app.core.enums import ConsultationTypeEnum, MeetingTypeEnum

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def parse_clock(value: str) -> time:
    """Parse an HH:MM string."""
    hours, minutes = value.strip().split(":", 1)
    return time(hour=int(hours), minute=int(minutes))


def supports_meeting_type(consultation_type: ConsultationTypeEnum, meeting_type: MeetingTypeEnum) -> bool:
    if consultation_type == ConsultationTypeEnum.BOTH:
        return True
    return consultation_type.value == meeting_type.value


def is_available_on(available_days: list[str], day: date) -> bool:
    """Check weekday against the offering's days; no days means every day."""
    if not available_days:
        return True
    allowed = {name.strip().lower() for name in available_days}
    return WEEKDAY_NAMES[day.weekday()] in allowed


def is_within_time_slots(available_time_slots: list[dict[str, Any]], at: time) -> bool:
    """Check time against [start, end) windows; no windows means any time."""
    if not available_time_slots:
        return True
    for window in available_time_slots:
        start = parse_clock(window["start"])
        end = parse_clock(window["end"])
        if start <= at < end:
            return True
    return False


def is_slot_available(offering: Any, day: date, at: time) -> bool:
    """Return True if the offering accepts a session starting at the given local date/time."""
    return is_available_on(offering.available_days, day) and is_within_time_slots(
        offering.available_time_slots,
        at,
    )
