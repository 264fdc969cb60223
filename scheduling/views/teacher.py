"""
Teacher self-service scheduling API.
Endpoints:
- GET         /api/teacher/sessions                     own sessions from today (?days=14)
- GET|POST    /api/teacher/availability/slots           date slots ?from=&to= / { date, start, end }
- DELETE      /api/teacher/availability/slots/{id}
"""
from datetime import timedelta

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsTeacher
from accounts.services import resolve_teacher_profile
from academics.services import class_label
from core.utils import error_response, iso, local_date, parse_hhmm, parse_int, parse_ymd, start_of_day
from scheduling.models import Session, TeacherAvailabilityDate
from scheduling.services.availability import add_date_slot, serialize_date_slot, validate_slot
from scheduling.services.conflicts import taught_by


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsTeacher])
def teacher_sessions_view(request):
    teacher = resolve_teacher_profile(request.user)
    if teacher is None:
        return error_response('Teacher profile not linked', status.HTTP_403_FORBIDDEN)

    days = min(max(parse_int(request.query_params.get('days'), 14), 1), 90)
    window_start = start_of_day(local_date(timezone.now()))
    sessions = (
        Session.objects.filter(taught_by(teacher.pk), start_at__gte=window_start, start_at__lt=window_start + timedelta(days=days))
        .select_related('course_class__course', 'course_class__subject', 'course_class__level',
                        'course_class__campus', 'course_class__room', 'student')
        .order_by('start_at')
    )
    return Response({
        'ok': True,
        'sessions': [
            {
                'id': s.id,
                'classId': s.course_class_id,
                'classLabel': class_label(s.course_class),
                'campus': s.course_class.campus.name,
                'room': s.course_class.room.name if s.course_class.room_id else None,
                'startAt': iso(s.start_at),
                'endAt': iso(s.end_at),
                'studentName': s.student.name if s.student_id else None,
            }
            for s in sessions
        ],
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsTeacher])
def teacher_availability_slots_view(request):
    teacher = resolve_teacher_profile(request.user)
    if teacher is None:
        return error_response('Teacher profile not linked', status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        slots = TeacherAvailabilityDate.objects.filter(teacher=teacher).order_by('date', 'start_min')
        day_from = parse_ymd(request.query_params.get('from'))
        day_to = parse_ymd(request.query_params.get('to'))
        if day_from:
            slots = slots.filter(date__gte=day_from)
        if day_to:
            slots = slots.filter(date__lte=day_to)
        return Response({'ok': True, 'slots': [serialize_date_slot(s) for s in slots]})

    day = parse_ymd(request.data.get('date'))
    if day is None:
        return error_response('Invalid date')
    start_min = parse_hhmm(request.data.get('start'))
    end_min = parse_hhmm(request.data.get('end'))
    problem = validate_slot(start_min, end_min)
    if problem:
        return error_response(problem, status.HTTP_409_CONFLICT)
    slot = add_date_slot(teacher, day, start_min, end_min)
    return Response({'ok': True, 'slot': serialize_date_slot(slot)}, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsTeacher])
def teacher_availability_slot_delete_view(request, pk):
    teacher = resolve_teacher_profile(request.user)
    if teacher is None:
        return error_response('Teacher profile not linked', status.HTTP_403_FORBIDDEN)
    deleted, _ = TeacherAvailabilityDate.objects.filter(teacher=teacher, pk=pk).delete()
    if not deleted:
        return error_response('Slot not found', status.HTTP_404_NOT_FOUND)
    return Response({'ok': True})
