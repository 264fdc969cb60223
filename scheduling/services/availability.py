"""
Teacher availability checks and slot maintenance.
Date slots replace the weekly slots for that date.
"""
import logging

from core.errors import AVAIL_CONFLICT, ConflictError
from core.utils import (
    WEEKDAY_LABELS,
    fmt_hhmm,
    fmt_slot_range,
    js_weekday,
    local_date,
    minutes_of_day,
)
from scheduling.models import TeacherAvailability, TeacherAvailabilityDate

logger = logging.getLogger(__name__)

# Bookable window for slots: 08:00 - 22:50
SLOT_MIN_START = 8 * 60
SLOT_MAX_END = 22 * 60 + 50


def slots_for_day(teacher_id, day):
    """(start_min, end_min) pairs for a date; weekly slots only when the date has none."""
    slots = list(
        TeacherAvailabilityDate.objects.filter(teacher_id=teacher_id, date=day)
        .order_by('start_min')
        .values_list('start_min', 'end_min')
    )
    if slots:
        return slots
    return list(
        TeacherAvailability.objects.filter(teacher_id=teacher_id, weekday=js_weekday(day))
        .order_by('start_min')
        .values_list('start_min', 'end_min')
    )


def availability_problem(teacher_id, start_at, end_at):
    """Human readable reason the teacher is unavailable, or None."""
    day = local_date(start_at)
    if day != local_date(end_at):
        return "Session spans multiple days"

    weekday = WEEKDAY_LABELS[js_weekday(day)]
    slots = slots_for_day(teacher_id, day)
    if not slots:
        return f"No availability on {weekday} (no slots)"

    start_min = minutes_of_day(start_at)
    end_min = minutes_of_day(end_at)
    if any(s <= start_min and e >= end_min for s, e in slots):
        return None
    ranges = ", ".join(fmt_slot_range(s, e) for s, e in slots)
    return f"Outside availability {weekday} {fmt_hhmm(start_at)}-{fmt_hhmm(end_at)}. Available: {ranges}"


def check_teacher_availability(teacher_id, start_at, end_at):
    problem = availability_problem(teacher_id, start_at, end_at)
    if problem:
        raise ConflictError(AVAIL_CONFLICT, problem)


def validate_slot(start_min, end_min):
    """Slot bounds as minutes of day; returns an error message or None."""
    if start_min is None or end_min is None:
        return "Invalid time"
    if start_min < SLOT_MIN_START or end_min > SLOT_MAX_END:
        return "Time must be within 08:00-22:50"
    if end_min <= start_min:
        return "End time must be after start time"
    return None


def add_weekly_slot(teacher, weekday, start_min, end_min):
    slot = TeacherAvailability.objects.create(
        teacher=teacher,
        weekday=weekday,
        start_min=start_min,
        end_min=end_min,
    )
    logger.info(f"[availability] Teacher {teacher.pk} weekly slot {weekday} {fmt_slot_range(start_min, end_min)} added")
    return slot


def add_date_slot(teacher, day, start_min, end_min):
    slot = TeacherAvailabilityDate.objects.create(
        teacher=teacher,
        date=day,
        start_min=start_min,
        end_min=end_min,
    )
    logger.info(f"[availability] Teacher {teacher.pk} date slot {day} {fmt_slot_range(start_min, end_min)} added")
    return slot


def serialize_weekly_slot(slot):
    return {
        'id': slot.id,
        'weekday': slot.weekday,
        'startMin': slot.start_min,
        'endMin': slot.end_min,
        'label': f"{WEEKDAY_LABELS[slot.weekday]} {fmt_slot_range(slot.start_min, slot.end_min)}",
    }


def serialize_date_slot(slot):
    return {
        'id': slot.id,
        'date': slot.date.isoformat(),
        'startMin': slot.start_min,
        'endMin': slot.end_min,
        'label': f"{slot.date.isoformat()} {fmt_slot_range(slot.start_min, slot.end_min)}",
    }
