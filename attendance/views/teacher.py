"""
Teacher attendance API.
Endpoints:
- GET  /api/teacher/sessions/{id}/attendance     Roster for one of the teacher's sessions
- POST /api/teacher/sessions/{id}/attendance     { items: [{ studentId, status, note? }] }

Teachers set status and notes only; package charges stay with the admin save.
"""
import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsTeacher
from accounts.services import resolve_teacher_profile
from academics.services import class_label, expected_student_ids
from attendance.services.marking import roster, save_teacher_attendance
from core.audit import log_audit
from core.utils import error_response, iso
from scheduling.models import Session

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsTeacher])
def teacher_session_attendance_view(request, pk):
    teacher = resolve_teacher_profile(request.user)
    if teacher is None:
        return error_response('Teacher profile not linked', status.HTTP_403_FORBIDDEN)

    if request.method == 'POST':
        items = request.data.get('items')
        if not isinstance(items, list) or not items:
            return error_response('No items', status.HTTP_409_CONFLICT)
        if not all(isinstance(item, dict) for item in items):
            return error_response('Invalid items')

    session = Session.objects.select_related(
        'course_class__course', 'course_class__subject', 'course_class__level',
    ).filter(pk=pk).first()
    if session is None:
        return error_response('Session not found', status.HTTP_404_NOT_FOUND)
    if session.effective_teacher_id != teacher.pk:
        logger.warning(f"[attendance] Teacher {teacher.pk} denied session {session.pk}")
        return error_response('No permission', status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        return Response({
            'ok': True,
            'session': {
                'id': session.id,
                'classLabel': class_label(session.course_class),
                'startAt': iso(session.start_at),
                'endAt': iso(session.end_at),
            },
            'rows': [
                {k: row[k] for k in ('studentId', 'studentName', 'status', 'note')}
                for row in roster(session)
            ],
        })

    saved = save_teacher_attendance(session, items)
    log_audit(request.user, 'ATTENDANCE', 'TEACHER_SAVE', 'Session', session.pk, {
        'submittedItemCount': len(items),
        'expectedStudentCount': len(expected_student_ids(session)),
        'savedCount': saved,
    })
    return Response({'ok': True, 'savedAt': iso(timezone.now())})
