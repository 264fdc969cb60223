"""
Academics business rules: who may teach what, and the enrollment guards.
A student holds at most one enrollment per course.
"""
import logging

from django.db import IntegrityError, transaction

from academics.models import CourseClass, Enrollment
from core.errors import ALREADY_ENROLLED, ConflictError, COURSE_CONFLICT, NO_ACTIVE_PACKAGE
from core.i18n import t

logger = logging.getLogger(__name__)


def can_teach_subject(teacher, subject_id):
    if not subject_id:
        return True
    if teacher.subject_course_id and str(teacher.subject_course_id) == str(subject_id):
        return True
    return teacher.subjects.filter(pk=subject_id).exists()


def can_teach_class(teacher, course_class):
    """Subject-level check when the class has a subject, otherwise any subject of the course."""
    if course_class.subject_id:
        return can_teach_subject(teacher, course_class.subject_id)
    if teacher.subject_course_id and teacher.subject_course.course_id == course_class.course_id:
        return True
    return teacher.subjects.filter(course_id=course_class.course_id).exists()


def find_student_course_enrollment(student_id, course_id, exclude_class_id=None):
    qs = Enrollment.objects.filter(
        student_id=student_id,
        course_class__course_id=course_id,
    ).select_related(
        'course_class__course',
        'course_class__subject',
        'course_class__level',
        'course_class__teacher',
        'course_class__campus',
        'course_class__room',
    )
    if exclude_class_id:
        qs = qs.exclude(course_class_id=exclude_class_id)
    return qs.first()


def format_enrollment_conflict(enrollment):
    """'course / subject / level | teacher | campus / room'"""
    cls = enrollment.course_class
    label = cls.course.name
    if cls.subject_id:
        label += f" / {cls.subject.name}"
    if cls.level_id:
        label += f" / {cls.level.name}"
    room = cls.room.name if cls.room_id else '(none)'
    return f"{label} | {cls.teacher.name} | {cls.campus.name} / {room}"


def course_conflict_message(lang, detail=None):
    base = t(lang, 'Student already has this course enrollment', '学生已存在该课程报名')
    return f"{base}: {detail}" if detail else base


def _raise_if_course_conflict(student_id, course_class, lang):
    conflict = find_student_course_enrollment(student_id, course_class.course_id, course_class.pk)
    if conflict is not None:
        detail = format_enrollment_conflict(conflict)
        raise ConflictError(COURSE_CONFLICT, course_conflict_message(lang, detail), detail=detail)


def enroll_student(course_class, student, lang):
    """Package check, duplicate check, then the one-class-per-course guard."""
    from packages.services.access import find_enrollable_package

    if find_enrollable_package(student.pk, course_class) is None:
        raise ConflictError(NO_ACTIVE_PACKAGE, 'Student has no active package for this course')
    if Enrollment.objects.filter(course_class=course_class, student=student).exists():
        raise ConflictError(ALREADY_ENROLLED, 'Already enrolled')
    _raise_if_course_conflict(student.pk, course_class, lang)
    try:
        with transaction.atomic():
            enrollment = Enrollment.objects.create(course_class=course_class, student=student)
    except IntegrityError:
        raise ConflictError(ALREADY_ENROLLED, 'Already enrolled')
    logger.info(f"[enrollment] Student {student.pk} enrolled in class {course_class.pk}")
    return enrollment


def remove_enrollment(course_class_id, student_id):
    deleted, _ = Enrollment.objects.filter(course_class_id=course_class_id, student_id=student_id).delete()
    if deleted:
        logger.info(f"[enrollment] Student {student_id} removed from class {course_class_id}")
    return deleted


def restore_enrollment(course_class, student, lang):
    """Undo a removal. Returns (enrollment, created); no package check."""
    existing = Enrollment.objects.filter(course_class=course_class, student=student).first()
    if existing is not None:
        return existing, False
    _raise_if_course_conflict(student.pk, course_class, lang)
    enrollment = Enrollment.objects.create(course_class=course_class, student=student)
    return enrollment, True


def expected_student_ids(session):
    """Students a session is taken for: the pinned student of a 1-on-1, else the class roster."""
    cls = session.course_class
    if cls.capacity == 1 and session.student_id:
        return [session.student_id]
    return list(
        Enrollment.objects.filter(course_class_id=cls.pk).order_by('created_at', 'id').values_list('student_id', flat=True)
    )


def class_label(course_class):
    label = course_class.course.name
    if course_class.subject_id:
        label += f" / {course_class.subject.name}"
    if course_class.level_id:
        label += f" / {course_class.level.name}"
    return label
