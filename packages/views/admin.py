"""
Admin package API.
Endpoints:
- GET|POST         /api/admin/packages                        ?studentId=&courseId=&status=
- GET|PATCH|DELETE /api/admin/packages/{id}                   DELETE retires (ledger kept)
- POST             /api/admin/packages/{id}/top-up             { addMinutes, note?, paid... }
- GET              /api/admin/packages/{id}/ledger             rows with running balance
- POST             /api/admin/packages/{id}/ledger/gift        { minutes, note? }
- POST             /api/admin/packages/{id}/ledger/txns        re-create a deleted row (undo)
- PATCH|DELETE     /api/admin/packages/{id}/ledger/txns/{txnId}

Ledger row edits are limited to settings.LEDGER_EDITOR_EMAILS.
"""
import logging

from django.db.models import Prefetch
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from academics.models import Course
from accounts.permissions import IsAdmin, IsLedgerEditor
from core.audit import log_audit
from core.utils import (
    end_of_day,
    error_response,
    iso,
    paginate,
    parse_bool,
    parse_decimal,
    parse_id,
    parse_int,
    parse_local_datetime,
    parse_ymd,
    query_id,
    start_of_day,
)
from packages.models import CoursePackage, CoursePackageShare, PackageTxn
from packages.serializers import CoursePackageSerializer, PackageTxnSerializer
from packages.services.integrity import verify_package_ledger
from packages.services.lifecycle import (
    create_package,
    delete_txn,
    edit_txn,
    gift,
    ledger_rows,
    restore_txn,
    retire_package,
    top_up,
    update_package,
)
from students.models import Student

logger = logging.getLogger(__name__)

GROUP_COUNT_TYPE = 'GROUP_COUNT'


def _package_qs():
    return CoursePackage.objects.select_related('student', 'course').prefetch_related(
        Prefetch('shares', queryset=CoursePackageShare.objects.only('id', 'package_id', 'student_id')),
    )


def _parse_paid(data):
    """(paid, paid_at, paid_amount, paid_note) or an error message."""
    paid = parse_bool(data.get('paid', False))
    paid_at = None
    if data.get('paidAt'):
        paid_at = parse_local_datetime(data.get('paidAt'))
        if paid_at is None:
            return None, 'Invalid paidAt'
    paid_amount = None
    if data.get('paidAmount') not in (None, ''):
        paid_amount = parse_decimal(data.get('paidAmount'))
        if paid_amount is None or paid_amount < 0:
            return None, 'Invalid paidAmount'
    return (paid, paid_at, paid_amount, str(data.get('paidNote') or '').strip()), None


def _validity(data):
    """(valid_from, valid_to) as start/end of the given days, or an error message."""
    valid_from = parse_ymd(data.get('validFrom'))
    if valid_from is None:
        return None, 'Missing validFrom'
    valid_to = None
    if data.get('validTo'):
        day = parse_ymd(data.get('validTo'))
        if day is None:
            return None, 'Invalid validTo'
        valid_to = end_of_day(day)
    start = start_of_day(valid_from)
    if valid_to is not None and valid_to < start:
        return None, 'validTo must be after validFrom'
    return (start, valid_to), None


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def packages_view(request):
    """
    GET  /api/admin/packages?studentId=&courseId=&status=
    POST /api/admin/packages
    Body: { studentId, courseId, type: HOURS|MONTHLY|GROUP_COUNT, status?, validFrom, validTo?,
            totalMinutes (HOURS), note?, paid?, paidAt?, paidAmount?, paidNote?,
            sharedStudentIds?, settlementMode? }
    """
    if request.method == 'GET':
        qs = _package_qs().order_by('-created_at')
        student_id = query_id(request, 'studentId')
        if student_id:
            qs = qs.filter(student_id=student_id)
        course_id = query_id(request, 'courseId')
        if course_id:
            qs = qs.filter(course_id=course_id)
        pkg_status = request.query_params.get('status')
        if pkg_status:
            qs = qs.filter(status=pkg_status)
        items, meta = paginate(qs, request)
        return Response({'ok': True, 'packages': CoursePackageSerializer(items, many=True).data, **meta})

    data = request.data
    if not data.get('studentId') or not data.get('courseId') or not data.get('validFrom'):
        return error_response('Missing studentId/courseId/validFrom', status.HTTP_409_CONFLICT)

    student_id, course_id = parse_id(data.get('studentId')), parse_id(data.get('courseId'))
    if student_id is None or course_id is None:
        return error_response('Invalid studentId or courseId')
    student = Student.objects.filter(pk=student_id).first()
    if student is None:
        return error_response('Student not found', status.HTTP_404_NOT_FOUND)
    course = Course.objects.filter(pk=course_id).first()
    if course is None:
        return error_response('Course not found', status.HTTP_404_NOT_FOUND)

    pkg_type = str(data.get('type') or CoursePackage.TYPE_HOURS).upper()
    mode = CoursePackage.MODE_HOURS_MINUTES
    if pkg_type == GROUP_COUNT_TYPE:
        pkg_type, mode = CoursePackage.TYPE_HOURS, CoursePackage.MODE_GROUP_COUNT

    pkg_status = str(data.get('status') or CoursePackage.STATUS_PAUSED).upper()
    if pkg_status not in (CoursePackage.STATUS_ACTIVE, CoursePackage.STATUS_PAUSED, CoursePackage.STATUS_EXPIRED):
        return error_response('Invalid status', status.HTTP_409_CONFLICT)
    settlement_mode = data.get('settlementMode') or CoursePackage.SETTLEMENT_NONE
    if settlement_mode not in dict(CoursePackage.SETTLEMENT_CHOICES):
        return error_response('Invalid settlementMode', status.HTTP_409_CONFLICT)

    validity, problem = _validity(data)
    if problem:
        return error_response(problem, status.HTTP_409_CONFLICT)
    paid_fields, problem = _parse_paid(data)
    if problem:
        return error_response(problem, status.HTTP_409_CONFLICT)
    paid, paid_at, paid_amount, paid_note = paid_fields

    pkg = create_package(
        student,
        course,
        pkg_type,
        mode,
        pkg_status,
        validity[0],
        validity[1],
        total_minutes=parse_int(data.get('totalMinutes')),
        note=str(data.get('note') or '').strip(),
        paid=paid,
        paid_at=paid_at,
        paid_amount=paid_amount,
        paid_note=paid_note,
        shared_student_ids=data.get('sharedStudentIds') or [],
        settlement_mode=settlement_mode,
        user=request.user,
    )
    log_audit(request.user, 'PACKAGE', 'CREATE', 'CoursePackage', pkg.pk, {
        'studentId': student.pk,
        'type': pkg.type,
        'mode': pkg.mode,
        'totalMinutes': pkg.total_minutes,
    })
    return Response({'ok': True, 'id': pkg.pk}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdmin])
def package_detail_view(request, pk):
    """
    PATCH Body: { validFrom, validTo?, status?, remainingMinutes?, note?, paid?, paidAt?,
                  paidAmount?, paidNote?, sharedStudentIds? }
    DELETE retires the package: { ok, status: "RETIRED" }
    """
    pkg = _package_qs().filter(pk=pk).first()
    if pkg is None:
        return error_response('Package not found', status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response({
            'ok': True,
            'package': CoursePackageSerializer(pkg).data,
            'ledgerCheck': verify_package_ledger(pkg),
        })

    if request.method == 'DELETE':
        retire_package(pkg)
        log_audit(request.user, 'PACKAGE', 'RETIRE', 'CoursePackage', pkg.pk)
        return Response({'ok': True, 'status': CoursePackage.STATUS_RETIRED})

    data = request.data
    validity, problem = _validity(data)
    if problem:
        return error_response(problem, status.HTTP_409_CONFLICT)
    changes = {'valid_from': validity[0], 'valid_to': validity[1]}

    if 'status' in data:
        pkg_status = str(data.get('status') or '').upper()
        if pkg_status not in dict(CoursePackage.STATUS_CHOICES):
            return error_response('Invalid status', status.HTTP_409_CONFLICT)
        changes['status'] = pkg_status
    if 'remainingMinutes' in data and data.get('remainingMinutes') not in (None, ''):
        remaining = parse_int(data.get('remainingMinutes'))
        if remaining is None:
            return error_response('Invalid remainingMinutes', status.HTTP_409_CONFLICT)
        changes['remaining_minutes'] = remaining
    if 'note' in data:
        changes['note'] = str(data.get('note') or '').strip()
    if 'paid' in data:
        paid_fields, problem = _parse_paid(data)
        if problem:
            return error_response(problem, status.HTTP_409_CONFLICT)
        changes['paid'], changes['paid_at'], changes['paid_amount'], changes['paid_note'] = paid_fields
    if 'sharedStudentIds' in data:
        changes['shared_student_ids'] = data.get('sharedStudentIds') or []

    before = pkg.remaining_minutes
    update_package(pkg, changes, user=request.user)
    pkg = _package_qs().get(pk=pk)
    log_audit(request.user, 'PACKAGE', 'UPDATE', 'CoursePackage', pkg.pk, {
        'fields': sorted(k for k in data.keys()),
        'remainingBefore': before,
        'remainingAfter': pkg.remaining_minutes,
    })
    return Response({'ok': True, 'package': CoursePackageSerializer(pkg).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def package_top_up_view(request, pk):
    pkg = CoursePackage.objects.filter(pk=pk).first()
    if pkg is None:
        return error_response('Package not found', status.HTTP_404_NOT_FOUND)
    paid_fields, problem = _parse_paid(request.data)
    if problem:
        return error_response(problem, status.HTTP_409_CONFLICT)
    paid, paid_at, paid_amount, paid_note = paid_fields
    add_minutes = parse_int(request.data.get('addMinutes'))

    pkg, snapshot = top_up(
        pkg,
        add_minutes,
        note=str(request.data.get('note') or '').strip(),
        paid=paid,
        paid_at=paid_at,
        paid_amount=paid_amount,
        paid_note=paid_note,
        user=request.user,
    )
    log_audit(request.user, 'PACKAGE', 'TOP_UP', 'CoursePackage', pkg.pk, {
        'addMinutes': add_minutes,
        'partnerSettlementId': snapshot.pk if snapshot else None,
    })
    return Response({
        'ok': True,
        'remainingMinutes': pkg.remaining_minutes,
        'totalMinutes': pkg.total_minutes,
        'partnerSettlementId': snapshot.pk if snapshot else None,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def package_gift_view(request, pk):
    pkg = CoursePackage.objects.filter(pk=pk).first()
    if pkg is None:
        return error_response('Package not found', status.HTTP_404_NOT_FOUND)
    minutes = parse_int(request.data.get('minutes'))
    gift(pkg, minutes, note=str(request.data.get('note') or '').strip(), user=request.user)
    log_audit(request.user, 'PACKAGE', 'GIFT', 'CoursePackage', pkg.pk, {'minutes': minutes})
    return Response({'ok': True, 'remainingMinutes': pkg.remaining_minutes})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def package_ledger_view(request, pk):
    pkg = _package_qs().filter(pk=pk).first()
    if pkg is None:
        return error_response('Package not found', status.HTTP_404_NOT_FOUND)
    rows = []
    for txn, running in ledger_rows(pkg):
        row = PackageTxnSerializer(txn).data
        row['balanceAfter'] = running
        rows.append(row)
    return Response({
        'ok': True,
        'package': CoursePackageSerializer(pkg).data,
        'rows': rows,
        'ledgerCheck': verify_package_ledger(pkg),
    })


def _txn_payload(txn):
    return {
        'id': txn.pk,
        'kind': txn.kind,
        'deltaMinutes': txn.delta_minutes,
        'sessionId': txn.session_id,
        'note': txn.note,
        'createdAt': iso(txn.created_at),
    }


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin, IsLedgerEditor])
def package_txns_view(request, pk):
    """
    POST /api/admin/packages/{id}/ledger/txns
    Body: { id, kind, deltaMinutes, sessionId?, note?, createdAt? }   (payload returned by DELETE)
    """
    pkg = CoursePackage.objects.filter(pk=pk).first()
    if pkg is None:
        return error_response('Package not found', status.HTTP_404_NOT_FOUND)
    data = request.data
    txn_id = parse_id(data.get('id'))
    delta = parse_int(data.get('deltaMinutes'))
    if txn_id is None or delta is None or not data.get('kind'):
        return error_response('Invalid input')
    created_at = parse_local_datetime(data.get('createdAt')) if data.get('createdAt') else None

    remaining = restore_txn(
        pkg,
        txn_id,
        str(data.get('kind')).upper(),
        delta,
        session_id=parse_id(data.get('sessionId')),
        note=str(data.get('note') or '').strip(),
        created_at=created_at,
    )
    log_audit(request.user, 'PACKAGE', 'TXN_RESTORE', 'PackageTxn', txn_id, {'packageId': pkg.pk, 'deltaMinutes': delta})
    return Response({'ok': True, 'remainingMinutes': remaining}, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdmin, IsLedgerEditor])
def package_txn_detail_view(request, pk, txn_id):
    """
    PATCH  Body: { deltaMinutes, note? }  -> { ok, remainingMinutes }
    DELETE -> { ok, remainingMinutes, deleted } (deleted can be POSTed back to undo)
    """
    pkg = CoursePackage.objects.filter(pk=pk).first()
    if pkg is None:
        return error_response('Package not found', status.HTTP_404_NOT_FOUND)
    txn = PackageTxn.objects.filter(pk=txn_id, package=pkg).first()
    if txn is None:
        return error_response('Ledger record not found', status.HTTP_404_NOT_FOUND)

    if request.method == 'DELETE':
        payload = _txn_payload(txn)
        remaining = delete_txn(pkg, txn)
        log_audit(request.user, 'PACKAGE', 'TXN_DELETE', 'PackageTxn', txn_id, {'packageId': pkg.pk, **payload})
        return Response({'ok': True, 'remainingMinutes': remaining, 'deleted': payload})

    delta = parse_int(request.data.get('deltaMinutes'))
    if delta is None:
        return error_response('Invalid deltaMinutes')
    before = txn.delta_minutes
    remaining = edit_txn(pkg, txn, delta, note=str(request.data.get('note', txn.note) or '').strip())
    log_audit(request.user, 'PACKAGE', 'TXN_EDIT', 'PackageTxn', txn_id, {
        'packageId': pkg.pk,
        'before': before,
        'after': delta,
    })
    return Response({'ok': True, 'remainingMinutes': remaining})
