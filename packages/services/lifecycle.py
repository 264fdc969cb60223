"""
Package lifecycle: create, edit, retire, top-up, gift, and ledger-editor
corrections. Balance changes are delegated to packages.services.ledger.
"""
import logging
from datetime import datetime

from django.db import transaction
from django.utils import timezone

from core.errors import ConflictError, INVALID_INPUT, PKG_NEGATIVE, PKG_NOT_HOURS, PKG_OVERLAP
from core.utils import parse_id
from packages.models import CoursePackage, CoursePackageShare, PackageTxn
from packages.services import ledger
from students.models import Student

logger = logging.getLogger(__name__)

FAR_FUTURE_YEAR = 2999


def _check_monthly_overlap(student_id, course_id, valid_from, valid_to, exclude_id=None):
    far = timezone.make_aware(datetime(FAR_FUTURE_YEAR, 1, 1))
    qs = CoursePackage.objects.filter(
        student_id=student_id,
        course_id=course_id,
        type=CoursePackage.TYPE_MONTHLY,
        status=CoursePackage.STATUS_ACTIVE,
        valid_from__lte=valid_to or far,
    ).exclude(valid_to__lt=valid_from)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise ConflictError(PKG_OVERLAP, 'Overlapping ACTIVE package exists')


def _clean_shared_ids(owner_id, shared_student_ids):
    if not isinstance(shared_student_ids, (list, tuple)):
        shared_student_ids = [shared_student_ids] if shared_student_ids else []
    seen = []
    for raw in shared_student_ids:
        sid = parse_id(raw)
        if sid is None:
            raise ConflictError(INVALID_INPUT, 'Invalid sharedStudentIds')
        if sid != owner_id and sid not in seen:
            seen.append(sid)
    if seen and Student.objects.filter(pk__in=seen).count() != len(seen):
        raise ConflictError(INVALID_INPUT, 'Invalid sharedStudentIds')
    return seen


def check_paid(paid, paid_at, paid_amount):
    if paid and paid_at is None and paid_amount is None:
        raise ConflictError(INVALID_INPUT, 'Paid requires paidAt or paidAmount')


def create_package(student, course, pkg_type, mode, status, valid_from, valid_to, total_minutes=None,
                   note='', paid=False, paid_at=None, paid_amount=None, paid_note='',
                   shared_student_ids=None, settlement_mode=CoursePackage.SETTLEMENT_NONE, user=None):
    """Create a package with its opening PURCHASE row (0 for MONTHLY)."""
    check_paid(paid, paid_at, paid_amount)
    shared = _clean_shared_ids(student.pk, shared_student_ids)

    if pkg_type == CoursePackage.TYPE_MONTHLY:
        _check_monthly_overlap(student.pk, course.pk, valid_from, valid_to)
        mode = CoursePackage.MODE_HOURS_MINUTES
        total_minutes = None
    elif pkg_type == CoursePackage.TYPE_HOURS:
        if not total_minutes or total_minutes <= 0:
            raise ConflictError(INVALID_INPUT, 'HOURS package needs totalMinutes')
    else:
        raise ConflictError(INVALID_INPUT, 'Invalid type')

    with transaction.atomic():
        pkg = CoursePackage.objects.create(
            student=student,
            course=course,
            type=pkg_type,
            mode=mode,
            status=status,
            total_minutes=total_minutes,
            remaining_minutes=total_minutes,
            valid_from=valid_from,
            valid_to=valid_to,
            note=note or None,
            paid=paid,
            paid_at=paid_at if paid and paid_at else (timezone.now() if paid else None),
            paid_amount=paid_amount if paid else None,
            paid_note=(paid_note or None) if paid else None,
            settlement_mode=settlement_mode,
        )
        CoursePackageShare.objects.bulk_create([
            CoursePackageShare(package=pkg, student_id=sid) for sid in shared
        ])
        PackageTxn.objects.create(
            package=pkg,
            kind=PackageTxn.KIND_PURCHASE,
            delta_minutes=total_minutes or 0,
            note=note or None,
            created_by=user if user is not None and user.is_authenticated else None,
        )
    logger.info(f"[packages] Created package {pkg.pk} type={pkg_type} mode={mode} student={student.pk}")
    return pkg


def update_package(pkg, changes, user=None):
    """
    Apply an admin edit. `changes` holds only the keys the caller sent:
    status, remaining_minutes, valid_from, valid_to, note, paid fields,
    shared_student_ids.
    """
    with transaction.atomic():
        status = changes.get('status', pkg.status)
        valid_from = changes.get('valid_from', pkg.valid_from)
        valid_to = changes['valid_to'] if 'valid_to' in changes else pkg.valid_to

        if status == CoursePackage.STATUS_ACTIVE and pkg.type == CoursePackage.TYPE_MONTHLY:
            _check_monthly_overlap(pkg.student_id, pkg.course_id, valid_from, valid_to, exclude_id=pkg.pk)

        if 'paid' in changes:
            paid = changes['paid']
            check_paid(paid, changes.get('paid_at'), changes.get('paid_amount'))
            pkg.paid = paid
            pkg.paid_at = (changes.get('paid_at') or timezone.now()) if paid else None
            pkg.paid_amount = changes.get('paid_amount') if paid else None
            pkg.paid_note = (changes.get('paid_note') or None) if paid else None

        pkg.status = status
        pkg.valid_from = valid_from
        pkg.valid_to = valid_to
        if 'note' in changes:
            pkg.note = changes['note'] or None
        pkg.save(update_fields=[
            'status', 'valid_from', 'valid_to', 'note',
            'paid', 'paid_at', 'paid_amount', 'paid_note', 'updated_at',
        ])

        if 'shared_student_ids' in changes:
            shared = _clean_shared_ids(pkg.student_id, changes['shared_student_ids'])
            CoursePackageShare.objects.filter(package=pkg).exclude(student_id__in=shared).delete()
            existing = set(CoursePackageShare.objects.filter(package=pkg).values_list('student_id', flat=True))
            CoursePackageShare.objects.bulk_create([
                CoursePackageShare(package=pkg, student_id=sid) for sid in shared if sid not in existing
            ])

        if changes.get('remaining_minutes') is not None and pkg.type == CoursePackage.TYPE_HOURS:
            ledger.set_remaining(pkg, changes['remaining_minutes'], note='manual adjust', user=user)
    return pkg


def retire_package(pkg):
    """Packages are never hard-deleted: ledger rows stay, the package stops being usable."""
    CoursePackage.objects.filter(pk=pkg.pk).update(status=CoursePackage.STATUS_RETIRED, updated_at=timezone.now())
    pkg.status = CoursePackage.STATUS_RETIRED
    logger.info(f"[packages] Retired package {pkg.pk}")
    return pkg


def top_up(pkg, add_minutes, note='', paid=False, paid_at=None, paid_amount=None, paid_note='', user=None):
    """Add purchased minutes to an HOURS package; snapshots partner online usage first."""
    from partners.services import snapshot_online_settlement_before_top_up

    if not add_minutes or add_minutes <= 0:
        raise ConflictError(INVALID_INPUT, 'Invalid addMinutes')
    if pkg.type != CoursePackage.TYPE_HOURS:
        raise ConflictError(PKG_NOT_HOURS, 'Only HOURS package can top-up')
    check_paid(paid, paid_at, paid_amount)

    with transaction.atomic():
        locked = ledger.lock_package(pkg.pk)
        snapshot = snapshot_online_settlement_before_top_up(locked)
        if locked.total_minutes is None:
            CoursePackage.objects.filter(pk=locked.pk).update(total_minutes=locked.remaining_minutes or 0)
        ledger.credit(
            pkg,
            add_minutes,
            kind=PackageTxn.KIND_PURCHASE,
            note=f"Top-up: {note}" if note else 'Top-up purchase',
            user=user,
            add_total=True,
        )
        if paid:
            CoursePackage.objects.filter(pk=pkg.pk).update(
                paid=True,
                paid_at=paid_at or timezone.now(),
                paid_amount=paid_amount,
                paid_note=paid_note or None,
            )
    pkg.refresh_from_db()
    return pkg, snapshot


def gift(pkg, units, note='', user=None):
    if not units or units <= 0:
        raise ConflictError(INVALID_INPUT, 'Invalid value')
    if pkg.type != CoursePackage.TYPE_HOURS:
        raise ConflictError(PKG_NOT_HOURS, 'Only HOURS package is supported')
    return ledger.credit(pkg, units, kind=PackageTxn.KIND_GIFT, note=note or None, user=user)


def ledger_rows(pkg):
    """Txns oldest first with the balance after each row."""
    rows = []
    running = 0
    for txn in pkg.txns.select_related('created_by').order_by('created_at', 'id'):
        running += txn.delta_minutes
        rows.append((txn, running))
    return rows


# Ledger-editor corrections. Each keeps remaining == sum of txn deltas.

def edit_txn(pkg, txn, delta_minutes, note=''):
    with transaction.atomic():
        locked = ledger.lock_package(pkg.pk)
        diff = delta_minutes - txn.delta_minutes
        next_remaining = (locked.remaining_minutes or 0) + diff
        if next_remaining < 0:
            raise ConflictError(PKG_NEGATIVE, 'Remaining minutes cannot be negative')
        PackageTxn.objects.filter(pk=txn.pk).update(delta_minutes=delta_minutes, note=note or None)
        CoursePackage.objects.filter(pk=locked.pk).update(remaining_minutes=next_remaining, updated_at=timezone.now())
    logger.warning(f"[ledger] Edited txn {txn.pk} on package {pkg.pk}: {txn.delta_minutes} -> {delta_minutes}")
    return next_remaining


def delete_txn(pkg, txn):
    with transaction.atomic():
        locked = ledger.lock_package(pkg.pk)
        next_remaining = (locked.remaining_minutes or 0) - txn.delta_minutes
        if next_remaining < 0:
            raise ConflictError(PKG_NEGATIVE, 'Remaining minutes cannot be negative')
        txn.delete()
        CoursePackage.objects.filter(pk=locked.pk).update(remaining_minutes=next_remaining, updated_at=timezone.now())
    logger.warning(f"[ledger] Deleted txn {txn.pk} ({txn.kind} {txn.delta_minutes}) on package {pkg.pk}")
    return next_remaining


def restore_txn(pkg, txn_id, kind, delta_minutes, session_id=None, note='', created_at=None):
    """Undo a delete: re-create the row with its original id and timestamp."""
    if kind not in dict(PackageTxn.KIND_CHOICES):
        raise ConflictError(INVALID_INPUT, 'Invalid kind')
    with transaction.atomic():
        locked = ledger.lock_package(pkg.pk)
        next_remaining = (locked.remaining_minutes or 0) + delta_minutes
        if next_remaining < 0:
            raise ConflictError(PKG_NEGATIVE, 'Remaining minutes cannot be negative')
        if PackageTxn.objects.filter(pk=txn_id).exists():
            raise ConflictError(INVALID_INPUT, 'Ledger record already exists')
        PackageTxn.objects.create(
            id=txn_id,
            package=locked,
            kind=kind,
            delta_minutes=delta_minutes,
            session_id=session_id,
            note=note or None,
        )
        if created_at is not None:
            PackageTxn.objects.filter(pk=txn_id).update(created_at=created_at)
        CoursePackage.objects.filter(pk=locked.pk).update(remaining_minutes=next_remaining, updated_at=timezone.now())
    logger.warning(f"[ledger] Restored txn {txn_id} on package {pkg.pk}")
    return next_remaining
