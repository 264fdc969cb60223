"""
Package ledger primitives. Every balance change goes through here so that
remaining_minutes and the PackageTxn rows move together.

Deduction runs under a row lock and a conditional UPDATE
(remaining_minutes >= units), so two concurrent deductions can never take
a package below zero.
"""
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.errors import (
    ConflictError,
    PKG_MODE_MISMATCH,
    PKG_NEGATIVE,
    PKG_NOT_ENOUGH,
    PKG_NOT_FOUND,
    PKG_NOT_HOURS,
    PKG_REMAIN_NULL,
)
from core.utils import parse_id
from packages.models import CoursePackage, PackageTxn
from packages.services.access import accessible_packages, valid_at

logger = logging.getLogger(__name__)


def _actor(user):
    return user if user is not None and getattr(user, 'is_authenticated', False) else None


def lock_package(package_id):
    """Row-lock a package for the rest of the enclosing transaction."""
    pkg = CoursePackage.objects.select_for_update().filter(pk=package_id).first()
    if pkg is None:
        raise ConflictError(PKG_NOT_FOUND, f"Package not found: {package_id}")
    return pkg


def deduct(package, units, session=None, note='', user=None):
    """Take `units` from the package and write a DEDUCT row. Returns the txn."""
    if units <= 0:
        raise ValueError('units must be positive')
    with transaction.atomic():
        locked = lock_package(package.pk)
        if locked.remaining_minutes is None:
            raise ConflictError(PKG_REMAIN_NULL, f"Package remainingMinutes is null (please set it): {locked.pk}")
        updated = CoursePackage.objects.filter(
            pk=locked.pk,
            remaining_minutes__gte=units,
        ).update(
            remaining_minutes=F('remaining_minutes') - units,
            updated_at=timezone.now(),
        )
        if updated != 1:
            raise ConflictError(
                PKG_NOT_ENOUGH,
                f"Not enough balance. package={locked.pk}, remaining={locked.remaining_minutes}, need={units}",
            )
        txn = PackageTxn.objects.create(
            package=locked,
            kind=PackageTxn.KIND_DEDUCT,
            delta_minutes=-units,
            session=session,
            note=note,
            created_by=_actor(user),
        )
    package.remaining_minutes = locked.remaining_minutes - units
    logger.info(f"[ledger] DEDUCT package={package.pk} units={units} remaining={package.remaining_minutes}")
    return txn


def credit(package, units, kind=PackageTxn.KIND_ROLLBACK, session=None, note='', user=None, add_total=False):
    """
    Give `units` back (ROLLBACK) or add new balance (GIFT, PURCHASE top-up).
    add_total also raises total_minutes, for purchases.
    """
    if units <= 0:
        raise ValueError('units must be positive')
    with transaction.atomic():
        locked = lock_package(package.pk)
        changes = {
            'remaining_minutes': F('remaining_minutes') + units,
            'updated_at': timezone.now(),
        }
        if locked.remaining_minutes is None:
            changes['remaining_minutes'] = units
        if add_total:
            changes['total_minutes'] = F('total_minutes') + units if locked.total_minutes is not None else units
        CoursePackage.objects.filter(pk=locked.pk).update(**changes)
        txn = PackageTxn.objects.create(
            package=locked,
            kind=kind,
            delta_minutes=units,
            session=session,
            note=note,
            created_by=_actor(user),
        )
    package.refresh_from_db(fields=['remaining_minutes', 'total_minutes'])
    logger.info(f"[ledger] {kind} package={package.pk} units={units} remaining={package.remaining_minutes}")
    return txn


def set_remaining(package, new_remaining, note='manual adjust', user=None):
    """Move the balance to an absolute value with one ADJUST row; None when unchanged."""
    if new_remaining < 0:
        raise ConflictError(PKG_NEGATIVE, 'Remaining minutes cannot be negative')
    with transaction.atomic():
        locked = lock_package(package.pk)
        old = locked.remaining_minutes or 0
        delta = new_remaining - old
        if delta == 0 and locked.remaining_minutes is not None:
            return None
        CoursePackage.objects.filter(pk=locked.pk).update(
            remaining_minutes=new_remaining,
            updated_at=timezone.now(),
        )
        txn = None
        if delta != 0:
            txn = PackageTxn.objects.create(
                package=locked,
                kind=PackageTxn.KIND_ADJUST,
                delta_minutes=delta,
                note=note,
                created_by=_actor(user),
            )
    package.remaining_minutes = new_remaining
    logger.info(f"[ledger] ADJUST package={package.pk} {old}->{new_remaining}")
    return txn


def pick_hours_package(student_id, course_id, at, need, group=False):
    """Oldest ACTIVE HOURS package the student can use at `at` with at least max(1, need) left."""
    mode = CoursePackage.MODE_GROUP_COUNT if group else CoursePackage.MODE_HOURS_MINUTES
    return (
        accessible_packages(student_id)
        .filter(
            course_id=course_id,
            type=CoursePackage.TYPE_HOURS,
            status=CoursePackage.STATUS_ACTIVE,
            mode=mode,
            remaining_minutes__gte=max(1, need),
        )
        .filter(valid_at(at))
        .order_by('created_at', 'id')
        .first()
    )


def usable_package(package_id, student_id, course_id, at, group=None):
    """
    Resolve an explicitly chosen (or previously used) package and check it
    can carry a charge for this student/course at `at`. A package that is
    not ACTIVE or not valid at `at` is reported as not found.
    group=None skips the mode check.
    """
    pid = parse_id(package_id)
    if pid is None:
        raise ConflictError(PKG_NOT_FOUND, f"Package not found: {package_id}")
    pkg = (
        accessible_packages(student_id)
        .filter(pk=pid, course_id=course_id, status=CoursePackage.STATUS_ACTIVE)
        .filter(valid_at(at))
        .first()
    )
    if pkg is None:
        raise ConflictError(PKG_NOT_FOUND, f"Package not found: {package_id}")
    if pkg.type != CoursePackage.TYPE_HOURS:
        raise ConflictError(PKG_NOT_HOURS, f"Selected package is not HOURS: {package_id}")
    if pkg.remaining_minutes is None:
        raise ConflictError(PKG_REMAIN_NULL, f"Package remainingMinutes is null (please set it): {package_id}")
    if group is True and not pkg.is_group_count:
        raise ConflictError(PKG_MODE_MISMATCH, f"Selected package is not GROUP package: {package_id}")
    if group is False and pkg.is_group_count:
        raise ConflictError(
            PKG_MODE_MISMATCH,
            f"Selected package is GROUP package and cannot be used for 1-on-1: {package_id}",
        )
    return pkg
