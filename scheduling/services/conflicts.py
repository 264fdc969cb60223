"""
Time-overlap checks for sessions and appointments.

Two ranges overlap when a.start < b.end and a.end > b.start; touching
ranges do not conflict. A session counts against its effective teacher
(the override when set, otherwise the class teacher).
"""
from django.db.models import Prefetch, Q

from academics.models import Enrollment
from attendance.models import Attendance
from core.errors import ConflictError, TIME_CONFLICT
from core.utils import fmt_range
from scheduling.models import Appointment, Session
from scheduling.services.availability import availability_problem


def overlapping(qs, start_at, end_at):
    return qs.filter(start_at__lt=end_at, end_at__gt=start_at)


def taught_by(teacher_id):
    """Q for sessions whose effective teacher is teacher_id."""
    return Q(teacher_id=teacher_id) | Q(teacher__isnull=True, course_class__teacher_id=teacher_id)


def with_conflict_context(qs):
    """Prefetch what should_ignore_session needs."""
    return qs.select_related('course_class').prefetch_related(
        Prefetch('attendances', queryset=Attendance.objects.only(
            'id', 'session_id', 'student_id', 'status', 'excused_charge', 'deducted_minutes', 'deducted_count',
        )),
        Prefetch('course_class__enrollments', queryset=Enrollment.objects.only('id', 'course_class_id', 'student_id')),
    )


def should_ignore_session(session, scheduling_student_id=None):
    """
    A session does not block its teacher when the student being scheduled
    is excused from it, or when everyone expected in it is excused without charge.
    """
    rows = list(session.attendances.all())

    if scheduling_student_id:
        for row in rows:
            if str(row.student_id) == str(scheduling_student_id) and row.status == Attendance.STATUS_EXCUSED:
                return True

    cls = session.course_class
    if cls.capacity != 1:
        expected = [e.student_id for e in cls.enrollments.all()]
        if not expected:
            return False
        for student_id in expected:
            student_rows = [r for r in rows if r.student_id == student_id]
            if not student_rows or not all(r.is_excused_no_charge for r in student_rows):
                return False
        return True

    student_id = session.student_id or cls.one_on_one_student_id
    if not student_id:
        return False
    student_rows = [r for r in rows if r.student_id == student_id]
    return bool(student_rows) and all(r.is_excused_no_charge for r in student_rows)


def pick_teacher_session_conflict(sessions, scheduling_student_id=None):
    for session in sessions:
        if not should_ignore_session(session, scheduling_student_id):
            return session
    return None


def teacher_session_conflict(teacher_id, start_at, end_at, student_id=None, exclude_ids=()):
    qs = overlapping(Session.objects.filter(taught_by(teacher_id)), start_at, end_at)
    if exclude_ids:
        qs = qs.exclude(pk__in=[pk for pk in exclude_ids if pk])
    return pick_teacher_session_conflict(with_conflict_context(qs.order_by('start_at')), student_id)


def teacher_appointment_conflict(teacher_id, start_at, end_at, exclude_id=None):
    qs = overlapping(Appointment.objects.filter(teacher_id=teacher_id), start_at, end_at)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    return qs.order_by('start_at').first()


def room_session_conflict(room_id, start_at, end_at, exclude_ids=()):
    if not room_id:
        return None
    qs = overlapping(Session.objects.filter(course_class__room_id=room_id), start_at, end_at)
    if exclude_ids:
        qs = qs.exclude(pk__in=[pk for pk in exclude_ids if pk])
    return pick_teacher_session_conflict(with_conflict_context(qs.order_by('start_at')))


def session_conflict_message(session):
    return f"Teacher conflict with session {session.pk} (class {session.course_class_id})"


def appointment_conflict_message(appointment):
    return f"Teacher conflict with appointment {fmt_range(appointment.start_at, appointment.end_at)}"


def find_conflict_for_session(course_class, start_at, end_at, teacher_id=None, student_id=None, exclude_ids=()):
    """
    First reason a session of course_class cannot be placed at [start_at, end_at),
    or None. Checks availability, duplicates, the teacher's sessions and
    appointments, then the room.
    """
    teacher_id = teacher_id or course_class.teacher_id

    problem = availability_problem(teacher_id, start_at, end_at)
    if problem:
        return problem

    duplicate = Session.objects.filter(course_class_id=course_class.pk, start_at=start_at, end_at=end_at)
    if exclude_ids:
        duplicate = duplicate.exclude(pk__in=exclude_ids)
    if duplicate.exists():
        return f"Session already exists at {fmt_range(start_at, end_at)}"

    session = teacher_session_conflict(teacher_id, start_at, end_at, student_id, exclude_ids)
    if session is not None:
        return session_conflict_message(session)

    appointment = teacher_appointment_conflict(teacher_id, start_at, end_at)
    if appointment is not None:
        return appointment_conflict_message(appointment)

    room_session = room_session_conflict(course_class.room_id, start_at, end_at, exclude_ids)
    if room_session is not None:
        return f"Room conflict with session {room_session.pk} (class {room_session.course_class_id})"
    return None


def check_teacher_free(teacher_id, start_at, end_at, student_id=None, exclude_session_ids=(), exclude_appointment_id=None):
    """Raise TIME_CONFLICT when the teacher has an overlapping session or appointment."""
    session = teacher_session_conflict(teacher_id, start_at, end_at, student_id, exclude_session_ids)
    if session is not None:
        raise ConflictError(TIME_CONFLICT, session_conflict_message(session))
    appointment = teacher_appointment_conflict(teacher_id, start_at, end_at, exclude_appointment_id)
    if appointment is not None:
        raise ConflictError(TIME_CONFLICT, appointment_conflict_message(appointment))
