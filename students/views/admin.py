"""
Admin student API.
Endpoints:
- GET|POST   /api/admin/students            ?q= (name / school / phone), paginated
- GET|PATCH  /api/admin/students/{id}       detail: packages, enrollments, upcoming sessions
- GET|POST   /api/admin/student-sources
"""
import logging

from django.db.models import Q
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from academics.models import Enrollment
from academics.services import class_label
from accounts.permissions import IsAdmin
from attendance.models import Attendance
from core.audit import log_audit
from core.utils import error_response, iso, local_date, paginate, query_id, start_of_day
from packages.serializers import CoursePackageSerializer
from packages.services.access import accessible_packages
from scheduling.models import Session
from students.models import Student, StudentSource
from students.serializers import StudentSerializer, StudentSourceSerializer

logger = logging.getLogger(__name__)

UPCOMING_LIMIT = 50


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def students_view(request):
    if request.method == 'GET':
        qs = Student.objects.select_related('source')
        q = (request.query_params.get('q') or '').strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(school__icontains=q) | Q(phone__icontains=q))
        source_id = query_id(request, 'sourceId')
        if source_id:
            qs = qs.filter(source_id=source_id)
        items, meta = paginate(qs.order_by('-created_at', '-id'), request)
        return Response({'ok': True, 'students': StudentSerializer(items, many=True).data, **meta})

    serializer = StudentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    student = serializer.save()
    log_audit(request.user, 'STUDENT', 'CREATE', 'Student', student.pk, {'name': student.name})
    logger.info(f"[students] Created student {student.pk}")
    return Response({'ok': True, 'student': StudentSerializer(student).data}, status=status.HTTP_201_CREATED)


def _enrollments(student):
    rows = []
    qs = Enrollment.objects.filter(student=student).select_related(
        'course_class__course', 'course_class__subject', 'course_class__level',
        'course_class__teacher', 'course_class__campus', 'course_class__room',
    )
    for e in qs:
        cls = e.course_class
        rows.append({
            'classId': cls.pk,
            'courseId': cls.course_id,
            'label': class_label(cls),
            'teacherName': cls.teacher.name,
            'campusName': cls.campus.name,
            'roomName': cls.room.name if cls.room_id else None,
            'oneOnOne': cls.is_one_on_one,
            'createdAt': iso(e.created_at),
        })
    return rows


def _upcoming_sessions(student):
    """Sessions from today on for the student's classes (1-on-1 sessions only when pinned to them)."""
    class_ids = Enrollment.objects.filter(student=student).values_list('course_class_id', flat=True)
    today = start_of_day(local_date(timezone.now()))
    sessions = list(
        Session.objects.filter(course_class_id__in=class_ids, start_at__gte=today)
        .filter(Q(student__isnull=True) | Q(student=student))
        .select_related('course_class__course', 'course_class__subject', 'course_class__level',
                        'course_class__teacher', 'teacher')
        .order_by('start_at', 'id')[:UPCOMING_LIMIT]
    )
    marks = {
        a.session_id: a
        for a in Attendance.objects.filter(student=student, session_id__in=[s.pk for s in sessions])
    }
    rows = []
    for s in sessions:
        teacher = s.teacher or s.course_class.teacher
        mark = marks.get(s.pk)
        rows.append({
            'id': s.pk,
            'classId': s.course_class_id,
            'label': class_label(s.course_class),
            'startAt': iso(s.start_at),
            'endAt': iso(s.end_at),
            'teacherName': teacher.name,
            'attendanceStatus': mark.status if mark else Attendance.STATUS_UNMARKED,
            'excusedCharge': mark.excused_charge if mark else False,
            'deductedMinutes': mark.deducted_minutes if mark else 0,
            'deductedCount': mark.deducted_count if mark else 0,
        })
    return rows


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsAdmin])
def student_detail_view(request, pk):
    student = Student.objects.select_related('source').filter(pk=pk).first()
    if student is None:
        return error_response('Student not found', status.HTTP_404_NOT_FOUND)

    if request.method == 'PATCH':
        serializer = StudentSerializer(student, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        student = serializer.save()
        log_audit(request.user, 'STUDENT', 'UPDATE', 'Student', student.pk, {'fields': sorted(request.data.keys())})
        return Response({'ok': True, 'student': StudentSerializer(student).data})

    packages = (
        accessible_packages(student.pk)
        .select_related('student', 'course')
        .prefetch_related('shares')
        .order_by('-created_at')
    )
    return Response({
        'ok': True,
        'student': StudentSerializer(student).data,
        'packages': CoursePackageSerializer(packages, many=True).data,
        'enrollments': _enrollments(student),
        'upcomingSessions': _upcoming_sessions(student),
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def student_sources_view(request):
    if request.method == 'GET':
        sources = StudentSource.objects.all()
        return Response({'ok': True, 'sources': StudentSourceSerializer(sources, many=True).data})

    name = str(request.data.get('name') or '').strip()
    if not name:
        return error_response('Name is required')
    source, created = StudentSource.objects.get_or_create(name=name)
    if created:
        log_audit(request.user, 'STUDENT', 'SOURCE_CREATE', 'StudentSource', source.pk, {'name': name})
    return Response(
        {'ok': True, 'source': StudentSourceSerializer(source).data},
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )
