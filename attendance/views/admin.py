"""
Admin attendance API.
Endpoints:
- POST     /api/admin/students/{id}/sessions/cancel                { sessionId, charge, note? }
- POST     /api/admin/students/{id}/sessions/restore               { sessionId }
- GET|POST /api/admin/sessions/{id}/attendance                     roster / { items: [...] }
- POST     /api/admin/sessions/{id}/attendance/mark-all-present

Package failures (no package, wrong mode, not enough balance) are 409 with a code.
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsAdmin
from attendance.models import Attendance
from attendance.services.cancellation import cancel_for_student, restore_for_student
from attendance.services.marking import is_group_session, mark_all_present, roster, save_admin_attendance
from core.audit import log_audit
from core.utils import error_response, iso, parse_bool, parse_id
from scheduling.models import Session
from students.models import Student

logger = logging.getLogger(__name__)


def _session(pk):
    pk = parse_id(pk)
    if pk is None:
        return None
    return Session.objects.select_related('course_class__course', 'course_class__teacher', 'teacher').filter(pk=pk).first()


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def student_session_cancel_view(request, pk):
    """
    POST /api/admin/students/{id}/sessions/cancel
    Body: { sessionId, charge: bool, note? }
    Returns: { ok, status: "EXCUSED", excusedCharge, deductedMinutes }
    """
    session_id = request.data.get('sessionId')
    if not session_id:
        return error_response('Missing sessionId')
    if parse_id(session_id) is None:
        return error_response('Invalid sessionId')
    if not Student.objects.filter(pk=pk).exists():
        return error_response('Student not found', status.HTTP_404_NOT_FOUND)
    session = _session(session_id)
    if session is None:
        return error_response('Session not found', status.HTTP_404_NOT_FOUND)

    charge = parse_bool(request.data.get('charge', False))
    note = str(request.data.get('note') or '').strip()
    deducted = cancel_for_student(session, pk, charge, note, user=request.user)
    log_audit(request.user, 'ATTENDANCE', 'SESSION_CANCEL', 'Session', session.pk, {
        'studentId': pk,
        'charge': charge,
        'deductedMinutes': deducted,
    })
    return Response({
        'ok': True,
        'status': Attendance.STATUS_EXCUSED,
        'excusedCharge': charge,
        'deductedMinutes': deducted,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def student_session_restore_view(request, pk):
    """
    POST /api/admin/students/{id}/sessions/restore
    Body: { sessionId }
    Returns: { ok, status: "UNMARKED", refundedMinutes }
    """
    session_id = request.data.get('sessionId')
    if not session_id:
        return error_response('Missing sessionId')
    if parse_id(session_id) is None:
        return error_response('Invalid sessionId')
    session = _session(session_id)
    if session is None:
        return error_response('Session not found', status.HTTP_404_NOT_FOUND)

    refunded = restore_for_student(session, pk, user=request.user)
    if refunded or Attendance.objects.filter(session=session, student_id=pk).exists():
        log_audit(request.user, 'ATTENDANCE', 'SESSION_RESTORE', 'Session', session.pk, {
            'studentId': pk,
            'refundedMinutes': refunded,
        })
    return Response({'ok': True, 'status': Attendance.STATUS_UNMARKED, 'refundedMinutes': refunded})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def session_attendance_view(request, pk):
    """
    GET  /api/admin/sessions/{id}/attendance
    POST /api/admin/sessions/{id}/attendance
    Body: { items: [{ studentId, status, deductedMinutes?, note?, packageId?, excusedCharge? }] }
    Returns: { ok, totalDeducted }
    """
    if request.method == 'POST':
        items = request.data.get('items')
        if not isinstance(items, list) or not items:
            return error_response('No items', status.HTTP_409_CONFLICT)
        if not all(isinstance(item, dict) for item in items):
            return error_response('Invalid items')

    session = _session(pk)
    if session is None:
        return error_response('Session not found', status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response({
            'ok': True,
            'session': {
                'id': session.id,
                'classId': session.course_class_id,
                'startAt': iso(session.start_at),
                'endAt': iso(session.end_at),
                'isGroupClass': is_group_session(session),
            },
            'rows': roster(session),
        })

    total = save_admin_attendance(session, items, user=request.user)
    log_audit(request.user, 'ATTENDANCE', 'ADMIN_SAVE', 'Session', session.pk, {
        'itemCount': len(items),
        'totalDeducted': total,
    })
    return Response({'ok': True, 'totalDeducted': total})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def session_mark_all_present_view(request, pk):
    session = _session(pk)
    if session is None:
        return error_response('Session not found', status.HTTP_404_NOT_FOUND)

    updated, units = mark_all_present(session, user=request.user)
    group = is_group_session(session)
    log_audit(request.user, 'ATTENDANCE', 'ADMIN_MARK_ALL_PRESENT', 'Session', session.pk, {
        'studentCount': updated,
        'isGroupClass': group,
        'deductedMinutesPerStudent': 0 if group else units,
    })
    return Response({'ok': True, 'updatedCount': updated})
