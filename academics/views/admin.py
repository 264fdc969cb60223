"""
Admin academics API.
Endpoints:
- POST|DELETE /api/admin/enrollments           { classId, studentId }
- POST        /api/admin/enrollments/restore   { classId, studentId }
- GET|POST    /api/admin/courses | subjects | levels | campuses | rooms | teachers | classes
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from academics.models import Campus, Course, CourseClass, Enrollment, Level, Room, Subject, Teacher
from academics.serializers import (
    CampusSerializer,
    CourseClassSerializer,
    CourseSerializer,
    LevelSerializer,
    RoomSerializer,
    SubjectSerializer,
    TeacherSerializer,
)
from academics.services import enroll_student, remove_enrollment, restore_enrollment
from accounts.permissions import IsAdmin
from core.audit import log_audit
from core.i18n import request_lang
from core.utils import error_response, iso, parse_id, query_id
from students.models import Student

logger = logging.getLogger(__name__)


def _serialize_enrollment(enrollment):
    return {
        'id': enrollment.pk,
        'classId': enrollment.course_class_id,
        'studentId': enrollment.student_id,
        'createdAt': iso(enrollment.created_at),
    }


def _class_and_student(data):
    if not data.get('classId') or not data.get('studentId'):
        return None, None, error_response('Missing classId or studentId')
    class_id, student_id = parse_id(data.get('classId')), parse_id(data.get('studentId'))
    if class_id is None or student_id is None:
        return None, None, error_response('Invalid classId or studentId')
    course_class = CourseClass.objects.filter(pk=class_id).first()
    if course_class is None:
        return None, None, error_response('Class not found', status.HTTP_404_NOT_FOUND)
    student = Student.objects.filter(pk=student_id).first()
    if student is None:
        return None, None, error_response('Student not found', status.HTTP_404_NOT_FOUND)
    return course_class, student, None


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdmin])
def enrollments_view(request):
    """
    POST   -> 201 { ok, enrollment }; 409 NO_ACTIVE_PACKAGE | ALREADY_ENROLLED | COURSE_CONFLICT
    DELETE -> { ok, deleted }
    """
    if request.method == 'DELETE':
        class_id = parse_id(request.data.get('classId') or request.query_params.get('classId'))
        student_id = parse_id(request.data.get('studentId') or request.query_params.get('studentId'))
        if not class_id or not student_id:
            return error_response('Missing classId or studentId')
        deleted = remove_enrollment(class_id, student_id)
        if deleted:
            log_audit(request.user, 'ENROLLMENT', 'DELETE', 'Enrollment', None, {
                'classId': class_id,
                'studentId': student_id,
            })
        return Response({'ok': True, 'deleted': deleted})

    course_class, student, problem = _class_and_student(request.data)
    if problem:
        return problem
    enrollment = enroll_student(course_class, student, request_lang(request))
    log_audit(request.user, 'ENROLLMENT', 'CREATE', 'Enrollment', enrollment.pk, {
        'classId': course_class.pk,
        'studentId': student.pk,
    })
    return Response({'ok': True, 'enrollment': _serialize_enrollment(enrollment)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def enrollment_restore_view(request):
    course_class, student, problem = _class_and_student(request.data)
    if problem:
        return problem
    enrollment, created = restore_enrollment(course_class, student, request_lang(request))
    if created:
        log_audit(request.user, 'ENROLLMENT', 'RESTORE', 'Enrollment', enrollment.pk, {
            'classId': course_class.pk,
            'studentId': student.pk,
        })
    return Response({'ok': True, 'enrollment': _serialize_enrollment(enrollment), 'restored': created})


def _reference_view(request, queryset, serializer_class, key, entity_type):
    if request.method == 'GET':
        return Response({'ok': True, key: serializer_class(queryset, many=True).data})
    serializer = serializer_class(data=request.data)
    serializer.is_valid(raise_exception=True)
    obj = serializer.save()
    log_audit(request.user, 'ACADEMICS', 'CREATE', entity_type, obj.pk, {'name': str(obj)})
    return Response({'ok': True, 'id': obj.pk, 'item': serializer_class(obj).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def courses_view(request):
    return _reference_view(request, Course.objects.all(), CourseSerializer, 'courses', 'Course')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def subjects_view(request):
    qs = Subject.objects.select_related('course')
    course_id = query_id(request, 'courseId')
    if course_id:
        qs = qs.filter(course_id=course_id)
    return _reference_view(request, qs, SubjectSerializer, 'subjects', 'Subject')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def levels_view(request):
    qs = Level.objects.all()
    subject_id = query_id(request, 'subjectId')
    if subject_id:
        qs = qs.filter(subject_id=subject_id)
    return _reference_view(request, qs, LevelSerializer, 'levels', 'Level')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def campuses_view(request):
    return _reference_view(request, Campus.objects.all(), CampusSerializer, 'campuses', 'Campus')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def rooms_view(request):
    qs = Room.objects.select_related('campus')
    campus_id = query_id(request, 'campusId')
    if campus_id:
        qs = qs.filter(campus_id=campus_id)
    return _reference_view(request, qs, RoomSerializer, 'rooms', 'Room')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def teachers_view(request):
    qs = Teacher.objects.prefetch_related('subjects')
    return _reference_view(request, qs, TeacherSerializer, 'teachers', 'Teacher')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def classes_view(request):
    qs = CourseClass.objects.select_related('course', 'subject', 'level', 'teacher').prefetch_related('enrollments')
    course_id = query_id(request, 'courseId')
    if course_id:
        qs = qs.filter(course_id=course_id)
    teacher_id = query_id(request, 'teacherId')
    if teacher_id:
        qs = qs.filter(teacher_id=teacher_id)
    return _reference_view(request, qs, CourseClassSerializer, 'classes', 'CourseClass')
