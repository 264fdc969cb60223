"""
Attendance charge settlement.

An attendance row remembers what its package absorbed (deducted_minutes for
1-on-1 classes, deducted_count for group classes). Settling moves that charge
from the previous amount to the new one with a single DEDUCT or ROLLBACK row,
so cancelling, re-marking and restoring never drift from the ledger.
"""
import logging

from django.db import transaction

from core.errors import ConflictError, NO_ACTIVE_HOURS_PACKAGE, PKG_NOT_FOUND
from packages.models import CoursePackage, PackageTxn
from packages.services import ledger

logger = logging.getLogger(__name__)


def settle_charge(*, student_id, session, course_id, prev_units, prev_package_id, next_units,
                  group, package_id=None, deduct_note='', rollback_note='', user=None):
    """
    Move this student's charge for `session` from prev_units to next_units.
    package_id selects a package explicitly; otherwise the previous package is
    kept, or the oldest usable one is picked.
    Returns (package_id carrying next_units or None, delta).
    """
    at = session.start_at
    target_id = package_id or prev_package_id

    with transaction.atomic():
        if prev_units > 0 and prev_package_id and str(target_id) != str(prev_package_id):
            # Switching packages: hand the old charge back in full first.
            _refund(prev_package_id, prev_units, session, rollback_note, user)
            prev_units = 0

        delta = next_units - prev_units
        if delta > 0:
            if not target_id:
                picked = ledger.pick_hours_package(student_id, course_id, at, delta, group=group)
                if picked is None:
                    kind = 'GROUP' if group else 'HOURS'
                    raise ConflictError(
                        NO_ACTIVE_HOURS_PACKAGE,
                        f"Student {student_id} has no active {kind} package for this course",
                    )
                target_id = picked.pk
            pkg = ledger.usable_package(target_id, student_id, course_id, at, group=group)
            ledger.deduct(pkg, delta, session=session, note=deduct_note, user=user)
        elif delta < 0:
            if not prev_package_id:
                raise ConflictError(PKG_NOT_FOUND, f"Package not found for refund: student {student_id}")
            _refund(prev_package_id, -delta, session, rollback_note, user)

    return (target_id if next_units > 0 else None), delta


def _refund(package_id, units, session, note, user):
    pkg = CoursePackage.objects.filter(pk=package_id).first()
    if pkg is None:
        raise ConflictError(PKG_NOT_FOUND, f"Package not found: {package_id}")
    ledger.credit(pkg, units, kind=PackageTxn.KIND_ROLLBACK, session=session, note=note, user=user)
