"""
Teacher payroll.

A payroll month "YYYY-MM" covers sessions starting in
[15th of the previous month 00:00, 15th of that month 00:00) business time.
Each session is paid to its effective teacher (session override, else the
class teacher) at the most specific hourly rate found:
exact (course, subject, level) -> without level -> course only -> 0.
"""
import logging
from datetime import datetime

from django.db import transaction
from django.utils import timezone

from core.errors import ConflictError, INVALID_INPUT
from core.utils import duration_minutes, parse_month, round_half_up
from payroll.models import TeacherCourseRate
from scheduling.models import Session

logger = logging.getLogger(__name__)

MAX_SESSIONS = 10000


def payroll_range(month):
    """(start, end) for 'YYYY-MM', or None when the month does not parse."""
    parsed = parse_month(month)
    if parsed is None:
        return None
    year, mon = parsed
    prev_year, prev_month = (year - 1, 12) if mon == 1 else (year, mon - 1)
    start = timezone.make_aware(datetime(prev_year, prev_month, 15))
    end = timezone.make_aware(datetime(year, mon, 15))
    return start, end


def current_month_key():
    return timezone.localtime().strftime('%Y-%m')


def combo_key(teacher_id, course_id, subject_id, level_id):
    return (teacher_id, course_id, subject_id, level_id)


def to_hours(minutes):
    return round(minutes / 60, 2)


def fmt_money_cents(cents):
    return f"{cents / 100:.2f}"


def combo_label(course_name, subject_name, level_name):
    return ' / '.join(x for x in (course_name, subject_name, level_name) if x)


def resolve_rate_cents(rate_map, teacher_id, course_id, subject_id, level_id):
    exact = rate_map.get(combo_key(teacher_id, course_id, subject_id, level_id))
    if exact is not None:
        return exact
    if level_id:
        no_level = rate_map.get(combo_key(teacher_id, course_id, subject_id, None))
        if no_level is not None:
            return no_level
    if subject_id or level_id:
        course_only = rate_map.get(combo_key(teacher_id, course_id, None, None))
        if course_only is not None:
            return course_only
    return 0


def upsert_rate(teacher, course, subject, level, hourly_rate_cents):
    """One rate per (teacher, course, subject, level); NULL subject/level count as a value."""
    if hourly_rate_cents is None or hourly_rate_cents < 0:
        raise ConflictError(INVALID_INPUT, 'Invalid hourlyRateCents')
    if subject is not None and subject.course_id != course.pk:
        raise ConflictError(INVALID_INPUT, 'Subject does not belong to course')
    if level is not None and (subject is None or level.subject_id != subject.pk):
        raise ConflictError(INVALID_INPUT, 'Level does not belong to subject')
    with transaction.atomic():
        rate = (
            TeacherCourseRate.objects.select_for_update()
            .filter(teacher=teacher, course=course, subject=subject, level=level)
            .first()
        )
        if rate is None:
            rate = TeacherCourseRate.objects.create(
                teacher=teacher, course=course, subject=subject, level=level,
                hourly_rate_cents=hourly_rate_cents,
            )
        else:
            rate.hourly_rate_cents = hourly_rate_cents
            rate.save(update_fields=['hourly_rate_cents', 'updated_at'])
    logger.info(
        f"[payroll] Rate teacher={teacher.pk} course={course.pk} subject={rate.subject_id} "
        f"level={rate.level_id} -> {hourly_rate_cents}"
    )
    return rate


def _sort_key(row):
    return (row['teacherName'], row['courseName'], row['subjectName'] or '', row['levelName'] or '')


def load_teacher_payroll(month, teacher_id=None):
    """
    Returns None for an unparseable month, else:
    { range, breakdownRows, summaryRows, rateEditorRows, grandTotalAmountCents, grandTotalHours }.
    teacher_id narrows everything to one effective teacher.
    """
    rng = payroll_range(month)
    if rng is None:
        return None
    start, end = rng

    sessions = list(
        Session.objects.filter(start_at__gte=start, start_at__lt=end)
        .select_related(
            'teacher',
            'course_class__teacher',
            'course_class__course',
            'course_class__subject',
            'course_class__level',
        )
        .order_by('start_at', 'id')[:MAX_SESSIONS]
    )

    teacher_ids = {(s.teacher_id or s.course_class.teacher_id) for s in sessions}
    if teacher_id is not None:
        teacher_ids = {t for t in teacher_ids if t == teacher_id}
    rates = list(
        TeacherCourseRate.objects.filter(teacher_id__in=teacher_ids)
        .select_related('teacher', 'course', 'subject', 'level')
    )
    rate_map = {combo_key(r.teacher_id, r.course_id, r.subject_id, r.level_id): r.hourly_rate_cents for r in rates}

    breakdown = {}
    totals = {}
    for s in sessions:
        teacher = s.teacher or s.course_class.teacher
        if teacher_id is not None and teacher.pk != teacher_id:
            continue
        minutes = duration_minutes(s.start_at, s.end_at)
        if minutes <= 0:
            continue
        cls = s.course_class
        rate = resolve_rate_cents(rate_map, teacher.pk, cls.course_id, cls.subject_id, cls.level_id)
        amount = round_half_up(minutes * rate / 60)

        key = combo_key(teacher.pk, cls.course_id, cls.subject_id, cls.level_id)
        row = breakdown.get(key)
        if row is None:
            row = breakdown[key] = {
                'teacherId': teacher.pk,
                'teacherName': teacher.name,
                'courseId': cls.course_id,
                'courseName': cls.course.name,
                'subjectId': cls.subject_id,
                'subjectName': cls.subject.name if cls.subject_id else None,
                'levelId': cls.level_id,
                'levelName': cls.level.name if cls.level_id else None,
                'sessionCount': 0,
                'totalMinutes': 0,
                'totalHours': 0,
                'hourlyRateCents': rate,
                'amountCents': 0,
            }
        row['sessionCount'] += 1
        row['totalMinutes'] += minutes
        row['totalHours'] = to_hours(row['totalMinutes'])
        row['amountCents'] += amount

        summary = totals.get(teacher.pk)
        if summary is None:
            summary = totals[teacher.pk] = {
                'teacherId': teacher.pk,
                'teacherName': teacher.name,
                'totalSessions': 0,
                'totalMinutes': 0,
                'totalHours': 0,
                'totalAmountCents': 0,
            }
        summary['totalSessions'] += 1
        summary['totalMinutes'] += minutes
        summary['totalHours'] = to_hours(summary['totalMinutes'])
        summary['totalAmountCents'] += amount

    breakdown_rows = sorted(breakdown.values(), key=_sort_key)
    summary_rows = sorted(totals.values(), key=lambda r: r['teacherName'])

    # Rate editor: every combo that was taught plus every stored rate.
    editor = {}
    for row in breakdown_rows:
        editor[combo_key(row['teacherId'], row['courseId'], row['subjectId'], row['levelId'])] = {
            'teacherId': row['teacherId'],
            'teacherName': row['teacherName'],
            'courseId': row['courseId'],
            'courseName': row['courseName'],
            'subjectId': row['subjectId'],
            'subjectName': row['subjectName'],
            'levelId': row['levelId'],
            'levelName': row['levelName'],
            'hourlyRateCents': row['hourlyRateCents'],
            'matchedSessions': row['sessionCount'],
            'matchedHours': row['totalHours'],
        }
    for r in rates:
        key = combo_key(r.teacher_id, r.course_id, r.subject_id, r.level_id)
        if key not in editor:
            editor[key] = {
                'teacherId': r.teacher_id,
                'teacherName': r.teacher.name,
                'courseId': r.course_id,
                'courseName': r.course.name,
                'subjectId': r.subject_id,
                'subjectName': r.subject.name if r.subject_id else None,
                'levelId': r.level_id,
                'levelName': r.level.name if r.level_id else None,
                'hourlyRateCents': r.hourly_rate_cents,
                'matchedSessions': 0,
                'matchedHours': 0,
            }

    return {
        'range': rng,
        'breakdownRows': breakdown_rows,
        'summaryRows': summary_rows,
        'rateEditorRows': sorted(editor.values(), key=_sort_key),
        'grandTotalAmountCents': sum(r['totalAmountCents'] for r in summary_rows),
        'grandTotalHours': round(sum(r['totalHours'] for r in summary_rows), 2),
    }
