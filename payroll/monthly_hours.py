"""
Monthly hours export: every marked attendance row updated in a calendar month.
"""
import io

from django.http import HttpResponse
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from attendance.models import Attendance
from core.i18n import t
from core.utils import iso, month_bounds

MAX_ROWS = 5000

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def header(lang):
    return [
        t(lang, 'Updated At', '更新时间'),
        t(lang, 'Student ID', '学生ID'),
        t(lang, 'Student Name', '学生姓名'),
        t(lang, 'Source Channel', '来源渠道'),
        t(lang, 'Session Start', '课次开始'),
        t(lang, 'Session End', '课次结束'),
        t(lang, 'Course', '课程'),
        t(lang, 'Subject', '科目'),
        t(lang, 'Level', '级别'),
        t(lang, 'Teacher', '老师'),
        t(lang, 'Campus', '校区'),
        t(lang, 'Room', '教室'),
        t(lang, 'Status', '状态'),
        t(lang, 'Deducted Count', '扣次数'),
        t(lang, 'Deducted Minutes', '扣分钟'),
        t(lang, 'Excused Charge', '请假扣费'),
    ]


def monthly_hours_rows(year, month, source_id=None):
    start, end = month_bounds(year, month)
    qs = (
        Attendance.objects.filter(updated_at__gte=start, updated_at__lt=end)
        .exclude(status=Attendance.STATUS_UNMARKED)
        .select_related(
            'student__source',
            'session__teacher',
            'session__course_class__course',
            'session__course_class__subject',
            'session__course_class__level',
            'session__course_class__teacher',
            'session__course_class__campus',
            'session__course_class__room',
        )
        .order_by('-updated_at', '-id')
    )
    if source_id:
        qs = qs.filter(student__source_id=source_id)

    rows = []
    for a in qs[:MAX_ROWS]:
        session = a.session
        cls = session.course_class
        teacher = session.teacher or cls.teacher
        rows.append([
            iso(a.updated_at),
            a.student_id,
            a.student.name,
            a.student.source.name if a.student.source_id else '',
            iso(session.start_at),
            iso(session.end_at),
            cls.course.name,
            cls.subject.name if cls.subject_id else '',
            cls.level.name if cls.level_id else '',
            teacher.name,
            cls.campus.name,
            cls.room.name if cls.room_id else '',
            a.status,
            a.deducted_count,
            a.deducted_minutes,
            'true' if a.excused_charge else 'false',
        ])
    return rows


def xlsx_response(filename, header_row, rows, title='Monthly Hours'):
    wb = Workbook()
    ws = wb.active
    ws.title = title
    ws.append(header_row)
    bold = Font(bold=True)
    center = Alignment(horizontal='center', vertical='center', wrap_text=True)
    for col in range(1, len(header_row) + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = bold
        cell.alignment = center
        ws.column_dimensions[get_column_letter(col)].width = 18
    ws.freeze_panes = 'A2'
    for row in rows:
        ws.append(row)

    buf = io.BytesIO()
    wb.save(buf)
    response = HttpResponse(buf.getvalue(), content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
