"""
Daily scheduling health check over the next 30 days.

Counts teacher/room double bookings, teacher session-vs-appointment overlaps,
duplicate sessions, classes larger than their room and inverted session
times. Sessions every expected student cancelled are left out.
The result is cached once per business day in AppSetting.
"""
import logging
from collections import defaultdict
from datetime import timedelta

from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from academics.models import CourseClass, Enrollment
from attendance.models import Attendance
from core.services import get_json_setting, get_setting, set_json_setting, set_setting
from core.utils import end_of_day, local_date, start_of_day
from scheduling.models import Appointment, Session

logger = logging.getLogger(__name__)

AUDIT_LAST_DAY_KEY = 'conflict_audit_last_day'
AUDIT_LAST_RESULT_KEY = 'conflict_audit_last_result'
AUDIT_VERSION_KEY = 'conflict_audit_version'
AUDIT_VERSION = '3'
AUTOFIX_LAST_DAY_KEY = 'conflict_autofix_last_day'
AUTOFIX_LAST_RESULT_KEY = 'conflict_autofix_last_result'

HORIZON_DAYS = 30
MAX_AUTOFIX_NOTES = 20


def _overlaps(a, b):
    return a.start_at < b.end_at and b.start_at < a.end_at


def _effective_teacher_id(session):
    return session.teacher_id or session.course_class.teacher_id


def _scan_window(reference):
    day = local_date(reference)
    return start_of_day(day), end_of_day(day + timedelta(days=HORIZON_DAYS))


def is_fully_cancelled(session):
    """Every expected student of the session has an EXCUSED row."""
    cancelled = {a.student_id for a in session.attendances.all() if a.status == Attendance.STATUS_EXCUSED}
    if not cancelled:
        return False
    cls = session.course_class
    enrolled = [e.student_id for e in cls.enrollments.all()]
    if cls.capacity == 1:
        student_id = session.student_id or cls.one_on_one_student_id or (enrolled[0] if enrolled else None)
        return bool(student_id) and student_id in cancelled
    if not enrolled:
        return False
    return all(student_id in cancelled for student_id in enrolled)


def _load(window_start, window_end):
    sessions = (
        Session.objects.filter(start_at__gte=window_start, start_at__lte=window_end)
        .select_related('course_class')
        .prefetch_related(
            Prefetch('attendances', queryset=Attendance.objects.only('id', 'session_id', 'student_id', 'status')),
            Prefetch('course_class__enrollments', queryset=Enrollment.objects.order_by('created_at', 'id')),
        )
        .order_by('start_at', 'id')
    )
    appointments = list(
        Appointment.objects.filter(start_at__gte=window_start, start_at__lte=window_end).order_by('start_at', 'id')
    )
    return [s for s in sessions if not is_fully_cancelled(s)], appointments


def _group(items, key):
    groups = defaultdict(list)
    for item in items:
        k = key(item)
        if k:
            groups[k].append(item)
    return groups


def _overlap_pairs(groups):
    """Overlapping pairs within each group; lists must be sorted by start."""
    pairs = []
    for group_key, items in groups.items():
        for i, a in enumerate(items):
            for b in items[i + 1:]:
                if b.start_at >= a.end_at:
                    break
                if _overlaps(a, b):
                    pairs.append((group_key, a, b))
    return pairs


def _session_appointment_overlaps(sessions_by_teacher, appointments_by_teacher):
    """Two-pointer merge of each teacher's sorted sessions and appointments."""
    count = 0
    for teacher_id, appts in appointments_by_teacher.items():
        s_list = sessions_by_teacher.get(teacher_id, [])
        i = j = 0
        while i < len(s_list) and j < len(appts):
            s, a = s_list[i], appts[j]
            if a.end_at <= s.start_at:
                j += 1
                continue
            if s.end_at <= a.start_at:
                i += 1
                continue
            count += 1
            if s.end_at <= a.end_at:
                i += 1
            else:
                j += 1
    return count


def run_conflict_audit_snapshot(reference=None):
    reference = reference or timezone.now()
    window_start, window_end = _scan_window(reference)
    sessions, appointments = _load(window_start, window_end)

    by_teacher = _group(sessions, _effective_teacher_id)
    by_room = _group(sessions, lambda s: s.course_class.room_id)
    teacher_pairs = len(_overlap_pairs(by_teacher))
    room_pairs = len(_overlap_pairs(by_room))
    appointment_pairs = _session_appointment_overlaps(by_teacher, _group(appointments, lambda a: a.teacher_id))

    duplicates = defaultdict(int)
    for s in sessions:
        duplicates[(s.course_class_id, s.start_at, s.end_at)] += 1
    duplicate_groups = sum(1 for n in duplicates.values() if n > 1)

    capacity_issues = sum(
        1 for cls in CourseClass.objects.select_related('room').filter(room__isnull=False)
        if cls.capacity > cls.room.capacity
    )
    time_issues = sum(1 for s in sessions if s.end_at <= s.start_at)

    sample = []
    if teacher_pairs:
        sample.append(f"Teacher overlap pairs: {teacher_pairs}")
    if appointment_pairs:
        sample.append(f"Teacher appointment overlap pairs: {appointment_pairs}")
    if room_pairs:
        sample.append(f"Room overlap pairs: {room_pairs}")
    if duplicate_groups:
        sample.append(f"Duplicate session groups: {duplicate_groups}")
    if capacity_issues:
        sample.append(f"Class capacity > room capacity: {capacity_issues}")
    if time_issues:
        sample.append(f"Invalid session time ranges: {time_issues}")
    if not sample:
        sample.append("No conflict found.")

    return {
        'day': local_date(reference).isoformat(),
        'scannedFrom': local_date(window_start).isoformat(),
        'scannedTo': local_date(window_end).isoformat(),
        'teacherConflictPairs': teacher_pairs,
        'teacherAppointmentOverlapPairs': appointment_pairs,
        'roomConflictPairs': room_pairs,
        'duplicateSessionGroups': duplicate_groups,
        'capacityIssues': capacity_issues,
        'sessionTimeIssues': time_issues,
        'totalIssues': teacher_pairs + appointment_pairs + room_pairs + duplicate_groups + capacity_issues + time_issues,
        'sample': sample,
    }


def _store_snapshot(snapshot):
    with transaction.atomic():
        set_setting(AUDIT_LAST_DAY_KEY, snapshot['day'])
        set_json_setting(AUDIT_LAST_RESULT_KEY, snapshot)
        set_setting(AUDIT_VERSION_KEY, AUDIT_VERSION)


def get_or_run_daily_conflict_audit(reference=None):
    """Today's cached snapshot, or a fresh one when missing, stale or from an older format."""
    reference = reference or timezone.now()
    today = local_date(reference).isoformat()
    if get_setting(AUDIT_LAST_DAY_KEY) == today and get_setting(AUDIT_VERSION_KEY) == AUDIT_VERSION:
        cached = get_json_setting(AUDIT_LAST_RESULT_KEY)
        if cached:
            return cached
    return refresh_daily_conflict_audit(reference)


def refresh_daily_conflict_audit(reference=None):
    snapshot = run_conflict_audit_snapshot(reference)
    _store_snapshot(snapshot)
    logger.info(f"[conflict-audit] {snapshot['day']}: totalIssues={snapshot['totalIssues']}")
    return snapshot


def auto_resolve_teacher_conflicts(reference=None):
    """
    Clear teacher overrides that cause a double booking when the class teacher
    is free at that time. Pairs without such an override are counted as skipped.
    """
    reference = reference or timezone.now()
    window_start, window_end = _scan_window(reference)
    sessions, appointments = _load(window_start, window_end)

    pairs = _overlap_pairs(_group(sessions, _effective_teacher_id))
    appointment_pairs = [
        (s, a)
        for s in sessions
        for a in appointments
        if a.teacher_id == _effective_teacher_id(s) and _overlaps(s, a)
    ]

    fixed = set()
    notes = []
    skipped = 0

    def is_override(session):
        return bool(session.teacher_id) and session.teacher_id != session.course_class.teacher_id

    def class_teacher_free(session):
        fallback = session.course_class.teacher_id
        if any(
            other.pk != session.pk and _effective_teacher_id(other) == fallback and _overlaps(session, other)
            for other in sessions
        ):
            return False
        return not any(a.teacher_id == fallback and _overlaps(session, a) for a in appointments)

    def fall_back(session, note):
        Session.objects.filter(pk=session.pk).update(teacher=None)
        session.teacher_id = None
        fixed.add(session.pk)
        notes.append(note)
        logger.info(f"[conflict-audit] Session {session.pk} override cleared")

    for _, a, b in pairs:
        for candidate in (a, b):
            if candidate.pk in fixed or not is_override(candidate):
                continue
            if class_teacher_free(candidate):
                fall_back(candidate, f"Session {candidate.pk} fallback to class teacher.")
                break
        else:
            skipped += 1

    for session, _ in appointment_pairs:
        if session.pk in fixed:
            continue
        if not is_override(session) or not class_teacher_free(session):
            skipped += 1
            continue
        fall_back(session, f"Session {session.pk} fallback to class teacher (appointment overlap).")

    return {
        'scannedFrom': local_date(window_start).isoformat(),
        'scannedTo': local_date(window_end).isoformat(),
        'detectedPairs': len(pairs) + len(appointment_pairs),
        'fixedSessions': len(fixed),
        'skippedPairs': skipped,
        'notes': notes[:MAX_AUTOFIX_NOTES],
    }


def save_autofix_result(result, reference=None):
    reference = reference or timezone.now()
    with transaction.atomic():
        set_setting(AUTOFIX_LAST_DAY_KEY, local_date(reference).isoformat())
        set_json_setting(AUTOFIX_LAST_RESULT_KEY, result)


def get_latest_autofix_result():
    result = get_json_setting(AUTOFIX_LAST_RESULT_KEY)
    if not result:
        return None
    return {'day': get_setting(AUTOFIX_LAST_DAY_KEY), 'result': result}
