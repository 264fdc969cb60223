"""
Teacher self-service payroll.
GET /api/teacher/payroll?month=YYYY-MM   own sessions only
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsTeacher
from accounts.services import resolve_teacher_profile
from core.utils import error_response
from payroll.services import current_month_key, load_teacher_payroll
from payroll.views.admin import INVALID_MONTH, payroll_payload


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsTeacher])
def teacher_own_payroll_view(request):
    teacher = resolve_teacher_profile(request.user)
    if teacher is None:
        return error_response('Teacher profile not linked', status.HTTP_403_FORBIDDEN)
    month = request.query_params.get('month') or current_month_key()
    data = load_teacher_payroll(month, teacher_id=teacher.pk)
    if data is None:
        return error_response(INVALID_MONTH)
    return Response(payroll_payload(month, data))
