"""
Admin scheduling API.
Endpoints:
- GET|POST /api/admin/appointments                          list ?teacherId=&from=&to= / book
- POST     /api/admin/appointments/{id}/cancel
- POST     /api/admin/appointments/{id}/replace-teacher      { newTeacherId, classId?, reason? }
- POST     /api/admin/sessions/{id}/replace-teacher          { newTeacherId, reason? }
- GET|POST|DELETE /api/admin/classes/{id}/sessions
- POST     /api/admin/classes/{id}/sessions/generate-weekly
- GET|POST|DELETE /api/admin/teachers/{id}/availability/weekly
- GET|POST|DELETE /api/admin/teachers/{id}/availability/date
- GET|POST /api/admin/todos/conflict-audit                  { action: rerun|autofix }
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from academics.models import CourseClass, Teacher
from accounts.permissions import IsAdmin
from core.audit import log_audit
from core.utils import (
    end_of_day,
    error_response,
    iso,
    parse_hhmm,
    parse_id,
    parse_int,
    parse_local_datetime,
    parse_ymd,
    query_id,
    start_of_day,
)
from scheduling.models import Appointment, Session, TeacherAvailability, TeacherAvailabilityDate
from scheduling.services.appointments import (
    cancel_appointment,
    create_appointment,
    replace_appointment_teacher,
    replace_session_teacher,
)
from scheduling.services.availability import (
    add_date_slot,
    add_weekly_slot,
    serialize_date_slot,
    serialize_weekly_slot,
    validate_slot,
)
from scheduling.services.conflict_audit import (
    auto_resolve_teacher_conflicts,
    get_latest_autofix_result,
    get_or_run_daily_conflict_audit,
    refresh_daily_conflict_audit,
    save_autofix_result,
)
from scheduling.services.sessions import (
    ON_CONFLICT_REJECT,
    ON_CONFLICT_SKIP,
    create_class_session,
    delete_class_session,
    generate_weekly,
    serialize_session,
)
from students.models import Student

logger = logging.getLogger(__name__)

MIN_DURATION = 15


def serialize_appointment(appointment):
    return {
        'id': appointment.id,
        'teacherId': appointment.teacher_id,
        'teacherName': appointment.teacher.name,
        'studentId': appointment.student_id,
        'studentName': appointment.student.name,
        'startAt': iso(appointment.start_at),
        'endAt': iso(appointment.end_at),
        'mode': appointment.mode,
        'place': appointment.place,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def appointments_view(request):
    """
    GET  /api/admin/appointments?teacherId=&from=YYYY-MM-DD&to=YYYY-MM-DD
    POST /api/admin/appointments
    Body: { teacherId, studentId, startAt: "YYYY-MM-DDTHH:MM", durationMin=60, mode?, place? }
    409 with code AVAIL_CONFLICT or TIME_CONFLICT when the teacher is not free.
    """
    if request.method == 'GET':
        qs = Appointment.objects.select_related('teacher', 'student').order_by('start_at')
        teacher_id = query_id(request, 'teacherId')
        if teacher_id:
            qs = qs.filter(teacher_id=teacher_id)
        day_from = parse_ymd(request.query_params.get('from'))
        day_to = parse_ymd(request.query_params.get('to'))
        if day_from:
            qs = qs.filter(start_at__gte=start_of_day(day_from))
        if day_to:
            qs = qs.filter(start_at__lte=end_of_day(day_to))
        return Response({'ok': True, 'appointments': [serialize_appointment(a) for a in qs[:500]]})

    data = request.data
    duration = parse_int(data.get('durationMin'), 60)
    if not data.get('teacherId') or not data.get('studentId') or not data.get('startAt') or duration is None or duration < MIN_DURATION:
        return error_response('Invalid input')
    start_at = parse_local_datetime(data.get('startAt'))
    if start_at is None:
        return error_response('Invalid startAt')
    mode = data.get('mode') or Appointment.MODE_OFFLINE
    if mode not in dict(Appointment.MODE_CHOICES):
        return error_response('Invalid mode')

    teacher_id, student_id = parse_id(data.get('teacherId')), parse_id(data.get('studentId'))
    if teacher_id is None or student_id is None:
        return error_response('Invalid teacherId or studentId')
    teacher = Teacher.objects.filter(pk=teacher_id).first()
    if teacher is None:
        return error_response('Teacher not found', status.HTTP_404_NOT_FOUND)
    student = Student.objects.filter(pk=student_id).first()
    if student is None:
        return error_response('Student not found', status.HTTP_404_NOT_FOUND)

    appointment = create_appointment(teacher, student, start_at, duration, mode=mode, place=data.get('place') or None)
    return Response({'ok': True, 'appointment': serialize_appointment(appointment)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def appointment_cancel_view(request, pk):
    appointment = Appointment.objects.select_related('teacher', 'student').filter(pk=pk).first()
    if appointment is None:
        return error_response('Appointment not found', status.HTTP_404_NOT_FOUND)
    label = cancel_appointment(appointment)
    log_audit(request.user, 'SCHEDULING', 'APPOINTMENT_CANCEL', 'Appointment', pk, {'label': label})
    return Response({'ok': True, 'message': f"Appointment cancelled: {label}"})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def appointment_replace_teacher_view(request, pk):
    """
    POST /api/admin/appointments/{id}/replace-teacher
    Body: { newTeacherId, classId?, reason? }
    Moves the appointment and its backing session (same start/end) to the new teacher.
    """
    new_teacher_id = request.data.get('newTeacherId')
    if not new_teacher_id:
        return error_response('Missing newTeacherId')
    new_teacher_id = parse_id(new_teacher_id)
    if new_teacher_id is None:
        return error_response('Invalid newTeacherId')
    appointment = Appointment.objects.filter(pk=pk).first()
    if appointment is None:
        return error_response('Appointment not found', status.HTTP_404_NOT_FOUND)
    teacher = Teacher.objects.filter(pk=new_teacher_id).first()
    if teacher is None:
        return error_response('Teacher not found', status.HTTP_404_NOT_FOUND)

    course_class = None
    class_id = request.data.get('classId')
    if class_id:
        class_id = parse_id(class_id)
        if class_id is None:
            return error_response('Invalid classId')
        course_class = CourseClass.objects.filter(pk=class_id).first()
        if course_class is None:
            return error_response('Class not found', status.HTTP_404_NOT_FOUND)

    reason = str(request.data.get('reason') or '').strip() or None
    from_teacher_id = appointment.teacher_id
    session = replace_appointment_teacher(appointment, teacher, course_class, reason)
    log_audit(request.user, 'SCHEDULING', 'APPOINTMENT_REPLACE_TEACHER', 'Appointment', pk, {
        'fromTeacherId': from_teacher_id,
        'toTeacherId': teacher.pk,
        'sessionId': session.pk if session else None,
    })
    return Response({'ok': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def session_replace_teacher_view(request, pk):
    new_teacher_id = request.data.get('newTeacherId')
    if not new_teacher_id:
        return error_response('Missing newTeacherId')
    new_teacher_id = parse_id(new_teacher_id)
    if new_teacher_id is None:
        return error_response('Invalid newTeacherId')
    session = Session.objects.select_related(
        'teacher', 'course_class__course', 'course_class__subject', 'course_class__level', 'course_class__teacher',
    ).filter(pk=pk).first()
    if session is None:
        return error_response('Session not found', status.HTTP_404_NOT_FOUND)
    teacher = Teacher.objects.filter(pk=new_teacher_id).first()
    if teacher is None:
        return error_response('Teacher not found', status.HTTP_404_NOT_FOUND)

    from_name = (session.teacher or session.course_class.teacher).name
    reason = str(request.data.get('reason') or '').strip() or None
    from_teacher_id = replace_session_teacher(session, teacher, reason)
    log_audit(request.user, 'SCHEDULING', 'SESSION_REPLACE_TEACHER', 'Session', pk, {
        'fromTeacherId': from_teacher_id,
        'toTeacherId': teacher.pk,
    })
    return Response({'ok': True, 'message': f"Teacher updated: {from_name} -> {teacher.name}"})


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdmin])
def class_sessions_view(request, pk):
    """
    GET    /api/admin/classes/{id}/sessions          newest first
    POST   /api/admin/classes/{id}/sessions          { startAt, durationMin=60, studentId? }
    DELETE /api/admin/classes/{id}/sessions          { sessionId }
    """
    course_class = CourseClass.objects.select_related('teacher').filter(pk=pk).first()
    if course_class is None:
        return error_response('Class not found', status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        sessions = (
            Session.objects.filter(course_class=course_class)
            .select_related('teacher', 'student', 'course_class__teacher')
            .order_by('-start_at')
        )
        return Response({'ok': True, 'sessions': [serialize_session(s) for s in sessions]})

    if request.method == 'DELETE':
        session_id = request.data.get('sessionId')
        if not session_id:
            return error_response('Missing sessionId')
        session_id = parse_id(session_id)
        if session_id is None:
            return error_response('Invalid sessionId')
        if not delete_class_session(course_class, session_id):
            return error_response('Session not found', status.HTTP_404_NOT_FOUND)
        log_audit(request.user, 'SCHEDULING', 'SESSION_DELETE', 'Session', session_id, {'classId': course_class.pk})
        return Response({'ok': True})

    duration = parse_int(request.data.get('durationMin'), 60)
    start_at = parse_local_datetime(request.data.get('startAt'))
    student_id = parse_id(request.data.get('studentId'))
    if start_at is None or duration is None or duration < MIN_DURATION:
        return error_response('Invalid input')
    if request.data.get('studentId') and student_id is None:
        return error_response('Invalid studentId')
    session = create_class_session(course_class, start_at, duration, student_id)
    session = Session.objects.select_related('teacher', 'student', 'course_class__teacher').get(pk=session.pk)
    return Response({'ok': True, 'session': serialize_session(session)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def class_sessions_generate_weekly_view(request, pk):
    """
    POST /api/admin/classes/{id}/sessions/generate-weekly
    Body: { startDate, weekday 1..7 (7=Sun), time "HH:MM", weeks 1..52,
            durationMin>=15, onConflict: reject|skip, studentId? }
    """
    data = request.data
    start_date = parse_ymd(data.get('startDate'))
    weekday = parse_int(data.get('weekday'), 1)
    start_min = parse_hhmm(data.get('time') or '19:00')
    weeks = parse_int(data.get('weeks'), 8)
    duration = parse_int(data.get('durationMin'), 60)
    on_conflict = str(data.get('onConflict') or ON_CONFLICT_REJECT)

    if (
        not data.get('startDate')
        or weekday is None or not 1 <= weekday <= 7
        or start_min is None
        or weeks is None or not 1 <= weeks <= 52
        or duration is None or duration < MIN_DURATION
        or on_conflict not in (ON_CONFLICT_REJECT, ON_CONFLICT_SKIP)
    ):
        return error_response('Invalid input')
    if start_date is None:
        return error_response('Invalid startDate')
    student_id = parse_id(data.get('studentId'))
    if data.get('studentId') and student_id is None:
        return error_response('Invalid studentId')

    course_class = CourseClass.objects.filter(pk=pk).first()
    if course_class is None:
        return error_response('Class not found', status.HTTP_404_NOT_FOUND)

    result = generate_weekly(
        course_class,
        start_date,
        weekday,
        start_min,
        weeks,
        duration,
        on_conflict=on_conflict,
        student_id=student_id,
    )
    return Response({'ok': True, **result})


def _teacher_or_404(pk):
    return Teacher.objects.filter(pk=pk).first()


def _slot_bounds(data):
    start_min = parse_hhmm(data.get('start'))
    end_min = parse_hhmm(data.get('end'))
    return start_min, end_min, validate_slot(start_min, end_min)


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdmin])
def teacher_weekly_availability_view(request, pk):
    """Body (POST): { weekday 0..6 (0=Sun), start "HH:MM", end "HH:MM" }; (DELETE): { id }"""
    teacher = _teacher_or_404(pk)
    if teacher is None:
        return error_response('Teacher not found', status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        slots = TeacherAvailability.objects.filter(teacher=teacher).order_by('weekday', 'start_min')
        return Response({'ok': True, 'slots': [serialize_weekly_slot(s) for s in slots]})

    if request.method == 'DELETE':
        deleted, _ = TeacherAvailability.objects.filter(teacher=teacher, pk=parse_id(request.data.get('id'))).delete()
        if not deleted:
            return error_response('Slot not found', status.HTTP_404_NOT_FOUND)
        return Response({'ok': True})

    weekday = parse_int(request.data.get('weekday'))
    if weekday is None or not 0 <= weekday <= 6:
        return error_response('Invalid weekday')
    start_min, end_min, problem = _slot_bounds(request.data)
    if problem:
        return error_response(problem, status.HTTP_409_CONFLICT)
    slot = add_weekly_slot(teacher, weekday, start_min, end_min)
    return Response({'ok': True, 'slot': serialize_weekly_slot(slot)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdmin])
def teacher_date_availability_view(request, pk):
    """
    GET ?from=&to=  Body (POST): { date, start "HH:MM", end "HH:MM" }; (DELETE): { id }
    """
    teacher = _teacher_or_404(pk)
    if teacher is None:
        return error_response('Teacher not found', status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        slots = TeacherAvailabilityDate.objects.filter(teacher=teacher).order_by('date', 'start_min')
        day_from = parse_ymd(request.query_params.get('from'))
        day_to = parse_ymd(request.query_params.get('to'))
        if day_from:
            slots = slots.filter(date__gte=day_from)
        if day_to:
            slots = slots.filter(date__lte=day_to)
        return Response({'ok': True, 'slots': [serialize_date_slot(s) for s in slots]})

    if request.method == 'DELETE':
        deleted, _ = TeacherAvailabilityDate.objects.filter(teacher=teacher, pk=parse_id(request.data.get('id'))).delete()
        if not deleted:
            return error_response('Slot not found', status.HTTP_404_NOT_FOUND)
        return Response({'ok': True})

    day = parse_ymd(request.data.get('date'))
    if day is None:
        return error_response('Invalid date')
    start_min, end_min, problem = _slot_bounds(request.data)
    if problem:
        return error_response(problem, status.HTTP_409_CONFLICT)
    slot = add_date_slot(teacher, day, start_min, end_min)
    return Response({'ok': True, 'slot': serialize_date_slot(slot)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def conflict_audit_todo_view(request):
    """
    GET  today's (cached) conflict snapshot plus the last auto-fix result.
    POST { action: "rerun" | "autofix" }
    """
    if request.method == 'GET':
        return Response({
            'ok': True,
            'snapshot': get_or_run_daily_conflict_audit(),
            'autoFix': get_latest_autofix_result(),
        })

    action = request.data.get('action')
    if action == 'rerun':
        snapshot = refresh_daily_conflict_audit()
        return Response({'ok': True, 'snapshot': snapshot})
    if action == 'autofix':
        result = auto_resolve_teacher_conflicts()
        save_autofix_result(result)
        snapshot = refresh_daily_conflict_audit()
        log_audit(request.user, 'SCHEDULING', 'CONFLICT_AUTOFIX', meta={
            'fixedSessions': result['fixedSessions'],
            'detectedPairs': result['detectedPairs'],
        })
        return Response({'ok': True, 'snapshot': snapshot, 'autoFixResult': result})
    return error_response('Invalid action')
