"""
1-on-1 appointments: booking, cancellation, teacher replacement.
"""
import logging

from django.db import transaction

from academics.services import can_teach_class, can_teach_subject, class_label
from core.errors import AVAIL_CONFLICT, CANNOT_TEACH, ConflictError
from core.utils import add_minutes, fmt_range
from scheduling.models import Appointment, Session, SessionTeacherChange
from scheduling.services.availability import check_teacher_availability
from scheduling.services.conflicts import check_teacher_free, taught_by

logger = logging.getLogger(__name__)


def create_appointment(teacher, student, start_at, duration_min, mode=Appointment.MODE_OFFLINE, place=None):
    end_at = add_minutes(start_at, duration_min)
    check_teacher_availability(teacher.pk, start_at, end_at)
    check_teacher_free(teacher.pk, start_at, end_at, student_id=student.pk)

    appointment = Appointment.objects.create(
        teacher=teacher,
        student=student,
        start_at=start_at,
        end_at=end_at,
        mode=mode,
        place=place,
    )
    logger.info(f"[appointment] Created {appointment.pk} teacher={teacher.pk} student={student.pk} {fmt_range(start_at, end_at)}")
    return appointment


def appointment_label(appointment):
    return f"{fmt_range(appointment.start_at, appointment.end_at)} | {appointment.teacher.name} | {appointment.student.name}"


def cancel_appointment(appointment):
    label = appointment_label(appointment)
    appointment.delete()
    logger.info(f"[appointment] Cancelled {label}")
    return label


def matching_session(appointment):
    """The class session backing an appointment: same times, same effective teacher."""
    return (
        Session.objects.filter(
            taught_by(appointment.teacher_id),
            start_at=appointment.start_at,
            end_at=appointment.end_at,
        )
        .select_related('course_class')
        .first()
    )


def replace_appointment_teacher(appointment, new_teacher, course_class=None, reason=None):
    """
    Move an appointment (and its backing session, if any) to new_teacher.
    Returns the matched session or None.
    """
    if course_class is not None and not can_teach_class(new_teacher, course_class):
        raise ConflictError(CANNOT_TEACH, 'Teacher cannot teach this class course')

    session = matching_session(appointment)
    if session is not None and not can_teach_subject(new_teacher, session.course_class.subject_id):
        raise ConflictError(CANNOT_TEACH, 'Teacher cannot teach this course')

    check_teacher_availability(new_teacher.pk, appointment.start_at, appointment.end_at)
    check_teacher_free(
        new_teacher.pk,
        appointment.start_at,
        appointment.end_at,
        student_id=appointment.student_id,
        exclude_session_ids=[session.pk] if session is not None else (),
        exclude_appointment_id=appointment.pk,
    )

    from_teacher_id = appointment.teacher_id
    with transaction.atomic():
        appointment.teacher = new_teacher
        appointment.save(update_fields=['teacher'])
        if session is not None:
            _move_session(session, from_teacher_id, new_teacher.pk, reason)

    logger.info(f"[appointment] {appointment.pk} teacher {from_teacher_id} -> {new_teacher.pk}")
    return session


def _move_session(session, from_teacher_id, to_teacher_id, reason):
    class_teacher_id = session.course_class.teacher_id
    session.teacher_id = None if to_teacher_id == class_teacher_id else to_teacher_id
    session.save(update_fields=['teacher'])
    if from_teacher_id != to_teacher_id:
        SessionTeacherChange.objects.create(
            session=session,
            from_teacher_id=from_teacher_id,
            to_teacher_id=to_teacher_id,
            reason=reason,
        )


def replace_session_teacher(session, new_teacher, reason=None):
    """Swap the effective teacher of one session. Returns the from-teacher id."""
    cls = session.course_class
    if not can_teach_class(new_teacher, cls):
        raise ConflictError(CANNOT_TEACH, f"Teacher cannot teach this course: {class_label(cls)}")

    try:
        check_teacher_availability(new_teacher.pk, session.start_at, session.end_at)
    except ConflictError as exc:
        raise ConflictError(AVAIL_CONFLICT, f"Availability conflict: {exc.detail}")
    check_teacher_free(
        new_teacher.pk,
        session.start_at,
        session.end_at,
        student_id=session.student_id,
        exclude_session_ids=[session.pk],
    )

    from_teacher_id = session.effective_teacher_id
    with transaction.atomic():
        _move_session(session, from_teacher_id, new_teacher.pk, reason)
    logger.info(f"[session] {session.pk} teacher {from_teacher_id} -> {new_teacher.pk}")
    return from_teacher_id
