"""
Teacher picker.
GET /api/teachers   any signed-in user; names only
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from academics.models import Teacher


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def teacher_picker_view(request):
    teachers = Teacher.objects.order_by('name', 'id').values('id', 'name')
    return Response({'ok': True, 'teachers': list(teachers)})
