"""
Admin payroll and hours reports.
Endpoints:
- GET  /api/admin/reports/teacher-payroll?month=YYYY-MM
- POST /api/admin/reports/teacher-payroll/rates               { teacherId, courseId, subjectId?, levelId?, hourlyRateCents }
- GET  /api/admin/reports/teacher-payroll/{teacherId}/pdf?month=
- GET  /api/admin/reports/monthly-hours/export?month=&sourceId=&format=csv|xlsx
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from academics.models import Course, Level, Subject, Teacher
from accounts.permissions import IsAdmin
from core.audit import log_audit
from core.i18n import request_lang
from core.pdf import pdf_response, render_table_pdf
from core.utils import csv_response, error_response, fmt_ymd, iso, parse_id, parse_int, parse_month
from payroll.monthly_hours import header as monthly_hours_header
from payroll.monthly_hours import monthly_hours_rows, xlsx_response
from payroll.services import (
    combo_label,
    current_month_key,
    fmt_money_cents,
    load_teacher_payroll,
    upsert_rate,
)

logger = logging.getLogger(__name__)

INVALID_MONTH = 'Invalid month format. Use YYYY-MM.'


def payroll_payload(month, data):
    start, end = data['range']
    return {
        'ok': True,
        'month': month,
        'rangeStart': iso(start),
        'rangeEnd': iso(end),
        'breakdownRows': data['breakdownRows'],
        'summaryRows': data['summaryRows'],
        'grandTotalAmountCents': data['grandTotalAmountCents'],
        'grandTotalHours': data['grandTotalHours'],
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def teacher_payroll_view(request):
    month = request.query_params.get('month') or current_month_key()
    data = load_teacher_payroll(month)
    if data is None:
        return error_response(INVALID_MONTH)
    payload = payroll_payload(month, data)
    payload['rateEditorRows'] = data['rateEditorRows']
    return Response(payload)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def teacher_payroll_rates_view(request):
    data = request.data
    ids = {key: parse_id(data.get(key)) for key in ('teacherId', 'courseId', 'subjectId', 'levelId')}
    for key, value in ids.items():
        if data.get(key) and value is None:
            return error_response(f"Invalid {key}")
    teacher = Teacher.objects.filter(pk=ids['teacherId']).first() if ids['teacherId'] else None
    course = Course.objects.filter(pk=ids['courseId']).first() if ids['courseId'] else None
    if teacher is None or course is None:
        return error_response('Missing teacherId or courseId')
    subject = None
    if ids['subjectId']:
        subject = Subject.objects.filter(pk=ids['subjectId']).first()
        if subject is None:
            return error_response('Subject not found', status.HTTP_404_NOT_FOUND)
    level = None
    if ids['levelId']:
        level = Level.objects.filter(pk=ids['levelId']).first()
        if level is None:
            return error_response('Level not found', status.HTTP_404_NOT_FOUND)

    rate = upsert_rate(teacher, course, subject, level, parse_int(data.get('hourlyRateCents')))
    log_audit(request.user, 'PAYROLL', 'RATE_UPSERT', 'TeacherCourseRate', rate.pk, {
        'teacherId': teacher.pk,
        'courseId': course.pk,
        'subjectId': rate.subject_id,
        'levelId': rate.level_id,
        'hourlyRateCents': rate.hourly_rate_cents,
    })
    return Response({'ok': True, 'id': rate.pk, 'hourlyRateCents': rate.hourly_rate_cents})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def teacher_payroll_pdf_view(request, teacher_id):
    teacher = Teacher.objects.filter(pk=teacher_id).first()
    if teacher is None:
        return error_response('Teacher not found', status.HTTP_404_NOT_FOUND)
    month = request.query_params.get('month') or current_month_key()
    data = load_teacher_payroll(month, teacher_id=teacher.pk)
    if data is None:
        return error_response(INVALID_MONTH)

    start, end = data['range']
    rows = [
        [
            combo_label(r['courseName'], r['subjectName'], r['levelName']),
            r['sessionCount'],
            f"{r['totalHours']:.2f}",
            fmt_money_cents(r['hourlyRateCents']),
            fmt_money_cents(r['amountCents']),
        ]
        for r in data['breakdownRows']
    ]
    pdf = render_table_pdf(
        f"Teacher Payroll {month}",
        [
            f"Teacher: {teacher.name}",
            f"Period: {fmt_ymd(start)} - {fmt_ymd(end)} (end exclusive)",
        ],
        ['Course / Subject / Level', 'Sessions', 'Hours', 'Rate/h', 'Amount'],
        rows,
        [80, 20, 20, 30, 30],
        footer_lines=[
            f"Total hours: {data['grandTotalHours']:.2f}",
            f"Total amount: {fmt_money_cents(data['grandTotalAmountCents'])}",
        ],
    )
    return pdf_response(pdf, f"teacher-payroll-{teacher.pk}-{month}.pdf")


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def monthly_hours_export_view(request):
    month = request.query_params.get('month') or ''
    parsed = parse_month(month)
    if parsed is None:
        return error_response(INVALID_MONTH)
    source_id = parse_int(request.query_params.get('sourceId'))
    lang = request_lang(request)
    header = monthly_hours_header(lang)
    rows = monthly_hours_rows(parsed[0], parsed[1], source_id)
    suffix = f"-source-{source_id}" if source_id else ''
    logger.info(f"[payroll] Monthly hours export month={month} rows={len(rows)}")

    if request.query_params.get('format') == 'xlsx':
        return xlsx_response(f"monthly-hours-{month}{suffix}.xlsx", header, rows)
    return csv_response(f"monthly-hours-{month}{suffix}.csv", header, rows)
