"""
Per-student session cancellation and its undo.

Cancelling marks the student EXCUSED; with charge=True the full session
length is taken from an HOURS package. Restoring refunds exactly what the
row carries (minutes, or the count of a group-class charge) and puts it
back to UNMARKED.
"""
import logging

from django.db import transaction

from attendance.models import Attendance
from attendance.services.charging import settle_charge
from core.utils import duration_minutes

logger = logging.getLogger(__name__)


def _locked_row(session, student_id):
    return Attendance.objects.select_for_update().filter(session=session, student_id=student_id).first()


def _release_count(existing, session, student_id, note, user):
    """Hand a group-class count charge back to its package. Returns the released count."""
    if existing is None or existing.deducted_count <= 0:
        return 0
    released = existing.deducted_count
    settle_charge(
        student_id=student_id,
        session=session,
        course_id=session.course_class.course_id,
        prev_units=released,
        prev_package_id=existing.package_id,
        next_units=0,
        group=True,
        rollback_note=note,
        user=user,
    )
    existing.deducted_count = 0
    if existing.deducted_minutes <= 0:
        existing.package_id = None
    return released


def cancel_for_student(session, student_id, charge, note='', user=None):
    """Returns the cancellation's deducted minutes."""
    desired = duration_minutes(session.start_at, session.end_at) if charge else 0

    with transaction.atomic():
        existing = _locked_row(session, student_id)
        _release_count(existing, session, student_id, f"Cancel rollback. studentId={student_id}", user)
        package_id, delta = settle_charge(
            student_id=student_id,
            session=session,
            course_id=session.course_class.course_id,
            prev_units=existing.deducted_minutes if existing else 0,
            prev_package_id=existing.package_id if existing else None,
            next_units=desired,
            group=False,
            deduct_note=f"Cancel charge. studentId={student_id}",
            rollback_note=f"Cancel rollback. studentId={student_id}",
            user=user,
        )
        Attendance.objects.update_or_create(
            session=session,
            student_id=student_id,
            defaults={
                'status': Attendance.STATUS_EXCUSED,
                'deducted_minutes': desired,
                'deducted_count': 0,
                'package_id': package_id,
                'note': note or 'Canceled',
                'excused_charge': bool(charge),
            },
        )
    logger.info(f"[attendance] Session {session.pk} cancelled for student {student_id} charge={charge} delta={delta}")
    return desired


def restore_for_student(session, student_id, user=None):
    """Undo a cancellation. Returns the refunded minutes (0 when nothing was cancelled)."""
    with transaction.atomic():
        existing = _locked_row(session, student_id)
        if existing is None or existing.status != Attendance.STATUS_EXCUSED:
            return 0

        note = f"Restore cancel. studentId={student_id}"
        released = _release_count(existing, session, student_id, note, user)
        refunded = existing.deducted_minutes
        settle_charge(
            student_id=student_id,
            session=session,
            course_id=session.course_class.course_id,
            prev_units=refunded,
            prev_package_id=existing.package_id,
            next_units=0,
            group=False,
            rollback_note=note,
            user=user,
        )
        existing.status = Attendance.STATUS_UNMARKED
        existing.excused_charge = False
        existing.deducted_minutes = 0
        existing.deducted_count = 0
        existing.package = None
        existing.note = None
        existing.save(update_fields=[
            'status', 'excused_charge', 'deducted_minutes', 'deducted_count', 'package', 'note', 'updated_at',
        ])

    logger.info(f"[attendance] Session {session.pk} restored for student {student_id} refunded={refunded} count={released}")
    return refunded
