"""
Class session placement: single sessions and weekly series.
"""
import logging
from datetime import datetime, timedelta

from django.db import transaction
from django.utils import timezone

from academics.models import Enrollment
from core.errors import CONFLICT, ConflictError, NOT_ENROLLED
from core.utils import add_minutes, fmt_ymd, iso
from scheduling.models import Session
from scheduling.services.conflicts import find_conflict_for_session

logger = logging.getLogger(__name__)

ON_CONFLICT_REJECT = 'reject'
ON_CONFLICT_SKIP = 'skip'
MAX_SKIPPED_SAMPLES = 5


def serialize_session(session):
    cls = session.course_class
    teacher = session.teacher or cls.teacher
    return {
        'id': session.id,
        'classId': cls.id,
        'startAt': iso(session.start_at),
        'endAt': iso(session.end_at),
        'teacherId': session.teacher_id,
        'teacherName': teacher.name if teacher else None,
        'classTeacherId': cls.teacher_id,
        'studentId': session.student_id,
        'studentName': session.student.name if session.student_id else None,
    }


def resolve_session_student(course_class, student_id):
    """1-on-1 sessions are pinned to an enrolled student; group sessions to nobody."""
    if course_class.capacity != 1:
        return None
    if not student_id:
        raise ConflictError(NOT_ENROLLED, 'Please select a student')
    if not Enrollment.objects.filter(course_class=course_class, student_id=student_id).exists():
        raise ConflictError(NOT_ENROLLED, 'Student not enrolled in this class')
    return student_id


def create_class_session(course_class, start_at, duration_min, student_id=None):
    student_id = resolve_session_student(course_class, student_id)
    end_at = add_minutes(start_at, duration_min)
    conflict = find_conflict_for_session(course_class, start_at, end_at, student_id=student_id)
    if conflict:
        raise ConflictError(CONFLICT, conflict)
    session = Session.objects.create(
        course_class=course_class,
        start_at=start_at,
        end_at=end_at,
        student_id=student_id,
    )
    logger.info(f"[session] Created {session.pk} for class {course_class.pk} at {start_at}")
    return session


def delete_class_session(course_class, session_id):
    """Delete a session of this class; False when it does not exist or belongs elsewhere."""
    deleted, _ = Session.objects.filter(pk=session_id, course_class=course_class).delete()
    if deleted:
        logger.info(f"[session] Deleted {session_id} from class {course_class.pk}")
    return bool(deleted)


def first_weekday_on_or_after(start_date, weekday):
    """weekday: 1=Mon .. 7=Sun."""
    offset = (weekday - start_date.isoweekday()) % 7
    return start_date + timedelta(days=offset)


def generate_weekly(course_class, start_date, weekday, start_min, weeks, duration_min,
                    on_conflict=ON_CONFLICT_REJECT, student_id=None):
    """
    Create up to `weeks` weekly sessions. With on_conflict='reject' the first
    conflict aborts the whole series; with 'skip' conflicting weeks are left out.
    Returns {created, skipped, msg, skippedSamples}.
    """
    student_id = resolve_session_student(course_class, student_id)
    first = first_weekday_on_or_after(start_date, weekday)
    time_label = f"{start_min // 60:02d}:{start_min % 60:02d}"

    planned = []
    skipped_samples = []
    skipped = 0
    for week in range(weeks):
        day = first + timedelta(days=7 * week)
        start_at = timezone.make_aware(datetime(day.year, day.month, day.day, start_min // 60, start_min % 60))
        end_at = add_minutes(start_at, duration_min)
        conflict = find_conflict_for_session(course_class, start_at, end_at, student_id=student_id)
        if conflict:
            if on_conflict == ON_CONFLICT_REJECT:
                raise ConflictError(CONFLICT, f"Conflict on {fmt_ymd(start_at)} {time_label}: {conflict}")
            skipped += 1
            if len(skipped_samples) < MAX_SKIPPED_SAMPLES:
                skipped_samples.append(f"{fmt_ymd(start_at)} {time_label} - {conflict}")
            continue
        planned.append(Session(course_class=course_class, start_at=start_at, end_at=end_at, student_id=student_id))

    with transaction.atomic():
        Session.objects.bulk_create(planned)

    created = len(planned)
    if on_conflict == ON_CONFLICT_SKIP:
        msg = f"Generated done: created={created}, skipped={skipped}."
        if skipped_samples:
            msg += f" Samples: {' | '.join(skipped_samples)}"
    else:
        msg = f"Generated done: created={created}."
    logger.info(f"[session] Class {course_class.pk} weekly series: created={created} skipped={skipped}")
    return {'created': created, 'skipped': skipped, 'msg': msg, 'skippedSamples': skipped_samples}
