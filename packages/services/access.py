"""
Which packages a student may draw from: their own and those shared with them.
"""
from django.db.models import Q
from django.utils import timezone

from packages.models import CoursePackage


def accessible_by_student(student_id):
    return Q(student_id=student_id) | Q(shares__student_id=student_id)


def valid_at(at):
    return Q(valid_from__lte=at) & (Q(valid_to__isnull=True) | Q(valid_to__gte=at))


def accessible_packages(student_id):
    return CoursePackage.objects.filter(accessible_by_student(student_id)).distinct()


def is_accessible(package, student_id):
    if str(package.student_id) == str(student_id):
        return True
    return package.shares.filter(student_id=student_id).exists()


def find_enrollable_package(student_id, course_class, at=None):
    """
    An ACTIVE package usable for the class right now: MONTHLY, or HOURS with
    balance left. 1-on-1 classes cannot run on group-count packs.
    """
    at = at or timezone.now()
    candidates = (
        accessible_packages(student_id)
        .filter(course_id=course_class.course_id, status=CoursePackage.STATUS_ACTIVE)
        .filter(valid_at(at))
        .order_by('created_at', 'id')
    )
    for pkg in candidates:
        if pkg.type == CoursePackage.TYPE_MONTHLY:
            return pkg
        if pkg.type != CoursePackage.TYPE_HOURS or (pkg.remaining_minutes or 0) <= 0:
            continue
        if course_class.is_one_on_one and pkg.is_group_count:
            continue
        return pkg
    return None
