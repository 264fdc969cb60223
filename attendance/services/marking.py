"""
Attendance marking by admins and teachers.

Admin saves settle package charges: group classes take one count from a
GROUP_COUNT package, 1-on-1 classes take minutes from an HOURS_MINUTES
package. EXCUSED is charged only when excusedCharge is set and the student
has reached EXCUSED_CHARGE_THRESHOLD excused sessions (this one included).
Teacher saves change status and note only.
"""
import logging

from django.db import transaction
from django.db.models import Count

from academics.services import expected_student_ids
from attendance.models import Attendance
from attendance.services.charging import settle_charge
from core.errors import ConflictError, PKG_NOT_FOUND
from core.utils import duration_minutes, parse_id, parse_int
from students.models import Student

logger = logging.getLogger(__name__)

DEDUCTABLE_STATUSES = {Attendance.STATUS_PRESENT, Attendance.STATUS_LATE, Attendance.STATUS_EXCUSED}
VALID_STATUSES = {choice for choice, _ in Attendance.STATUS_CHOICES}
EXCUSED_CHARGE_THRESHOLD = 4


def parse_status(value):
    value = str(value or '').strip().upper()
    return value if value in VALID_STATUSES else Attendance.STATUS_UNMARKED


def is_group_session(session):
    return session.course_class.capacity != 1


def _excused_elsewhere(session, student_ids):
    rows = (
        Attendance.objects.filter(student_id__in=student_ids, status=Attendance.STATUS_EXCUSED)
        .exclude(session=session)
        .values('student_id')
        .annotate(n=Count('id'))
    )
    return {row['student_id']: row['n'] for row in rows}


def _notes(group, student_id):
    unit = 'group count' if group else 'minutes'
    return (
        f"Auto deduct by attendance save ({unit}). studentId={student_id}",
        f"Auto rollback by attendance change ({unit}). studentId={student_id}",
    )


def _chosen_package(item):
    raw = item.get('packageId')
    if raw is None or str(raw).strip() == '':
        return None
    package_id = parse_id(raw)
    if package_id is None:
        raise ConflictError(PKG_NOT_FOUND, f"Package not found: {raw}")
    return package_id


def _apply(session, student_id, existing, status, next_units, note, excused_charge, package_id, user):
    """Settle the charge and write the row. Returns the delta."""
    group = is_group_session(session)
    deduct_note, rollback_note = _notes(group, student_id)
    if existing is None:
        prev_units, prev_package_id = 0, None
    else:
        prev_units = existing.deducted_count if group else existing.deducted_minutes
        prev_package_id = existing.package_id

    carrier_id, delta = settle_charge(
        student_id=student_id,
        session=session,
        course_id=session.course_class.course_id,
        prev_units=prev_units,
        prev_package_id=prev_package_id,
        next_units=next_units,
        group=group,
        package_id=package_id,
        deduct_note=deduct_note,
        rollback_note=rollback_note,
        user=user,
    )
    Attendance.objects.update_or_create(
        session=session,
        student_id=student_id,
        defaults={
            'status': status,
            'deducted_count': next_units if group else 0,
            'deducted_minutes': 0 if group else next_units,
            'package_id': carrier_id,
            'note': note,
            'excused_charge': excused_charge,
        },
    )
    return delta


def save_admin_attendance(session, items, user=None):
    """
    items: [{studentId, status, deductedMinutes?, note?, packageId?, excusedCharge?}]
    Students not expected in the session are ignored. All-or-nothing.
    Returns the total units newly deducted.
    """
    expected = expected_student_ids(session)
    expected_keys = {str(sid): sid for sid in expected}
    excused_counts = _excused_elsewhere(session, expected)
    group = is_group_session(session)
    default_minutes = duration_minutes(session.start_at, session.end_at)

    desired = {}
    for item in items:
        student_id = expected_keys.get(str(item.get('studentId') or ''))
        if student_id is None:
            continue
        status = parse_status(item.get('status'))
        excused_charge = False
        if status == Attendance.STATUS_EXCUSED:
            eligible = excused_counts.get(student_id, 0) + 1 >= EXCUSED_CHARGE_THRESHOLD
            excused_charge = eligible and bool(item.get('excusedCharge'))

        can_deduct = excused_charge if status == Attendance.STATUS_EXCUSED else status in DEDUCTABLE_STATUSES
        if not can_deduct:
            units = 0
        elif group:
            units = 1
        else:
            units = max(0, parse_int(item.get('deductedMinutes'), default_minutes))

        desired[student_id] = {
            'status': status,
            'units': units,
            'note': str(item.get('note') or '').strip() or None,
            'excused_charge': excused_charge,
            'package_id': _chosen_package(item),
        }

    total_deducted = 0
    with transaction.atomic():
        existing_rows = {
            row.student_id: row
            for row in Attendance.objects.select_for_update().filter(session=session, student_id__in=list(desired))
        }
        for student_id in expected:
            wanted = desired.get(student_id)
            if wanted is None:
                continue
            delta = _apply(
                session,
                student_id,
                existing_rows.get(student_id),
                wanted['status'],
                wanted['units'],
                wanted['note'],
                wanted['excused_charge'],
                wanted['package_id'],
                user,
            )
            if delta > 0:
                total_deducted += delta

    logger.info(f"[attendance] Admin saved session {session.pk}: {len(desired)} rows, deducted={total_deducted}")
    return total_deducted


def mark_all_present(session, user=None):
    """PRESENT for every expected student, charged like an admin save. Returns the count."""
    expected = expected_student_ids(session)
    group = is_group_session(session)
    units = 1 if group else duration_minutes(session.start_at, session.end_at)

    with transaction.atomic():
        existing_rows = {
            row.student_id: row
            for row in Attendance.objects.select_for_update().filter(session=session, student_id__in=expected)
        }
        for student_id in expected:
            existing = existing_rows.get(student_id)
            _apply(
                session,
                student_id,
                existing,
                Attendance.STATUS_PRESENT,
                units,
                existing.note if existing else None,
                False,
                None,
                user,
            )
    logger.info(f"[attendance] Marked {len(expected)} present for session {session.pk}")
    return len(expected), units


def save_teacher_attendance(session, items):
    """Status and note for expected students; package charges are left untouched. Returns the saved count."""
    expected_keys = {str(sid): sid for sid in expected_student_ids(session)}
    saved = 0
    with transaction.atomic():
        for item in items:
            student_id = expected_keys.get(str(item.get('studentId') or ''))
            if student_id is None:
                continue
            Attendance.objects.update_or_create(
                session=session,
                student_id=student_id,
                defaults={
                    'status': parse_status(item.get('status')),
                    'note': str(item.get('note') or '').strip() or None,
                },
            )
            saved += 1
    return saved


def roster(session):
    """Expected students with their attendance row (or defaults)."""
    expected = expected_student_ids(session)
    students = {s.pk: s for s in Student.objects.filter(pk__in=expected)}
    rows = {a.student_id: a for a in Attendance.objects.filter(session=session, student_id__in=expected)}
    excused_counts = _excused_elsewhere(session, expected)
    result = []
    for student_id in expected:
        row = rows.get(student_id)
        student = students.get(student_id)
        result.append({
            'studentId': student_id,
            'studentName': student.name if student else None,
            'status': row.status if row else Attendance.STATUS_UNMARKED,
            'deductedMinutes': row.deducted_minutes if row else 0,
            'deductedCount': row.deducted_count if row else 0,
            'packageId': row.package_id if row else None,
            'note': row.note if row else None,
            'excusedCharge': row.excused_charge if row else False,
            'excusedCountElsewhere': excused_counts.get(student_id, 0),
        })
    return result
