"""
Core utilities: response envelope, business-time date helpers, input parsing.
All wall-clock math (availability slots, day boundaries) happens in the
current Django time zone (settings.TIME_ZONE).
"""
import csv
import io
import math
import re
from datetime import datetime, time, timedelta
from decimal import Decimal, InvalidOperation

from django.http import HttpResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

WEEKDAY_LABELS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']
_MONTH_RE = re.compile(r'^(\d{4})-(\d{2})$')


def error_response(message, status_code=status.HTTP_400_BAD_REQUEST, **extra):
    """{ ok: false, message, ...extra } with the given status."""
    return Response({'ok': False, 'message': message, **extra}, status=status_code)


def round_half_up(value):
    return int(math.floor(value + 0.5))


def parse_int(value, default=None):
    """Loose numeric parse ("60", 60, 60.0 -> 60); default on anything else."""
    if value is None or value == '':
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return round_half_up(number)


def parse_id(value):
    """Primary key from a body or query value ("12", 12 -> 12); None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    text = str(value or '').strip()
    if not text.isdigit():
        return None
    return int(text) or None


def query_id(request, param):
    """?param= as a primary key; None when absent. A value that is not an id is a 400."""
    raw = request.query_params.get(param)
    if raw is None or raw == '':
        return None
    value = parse_id(raw)
    if value is None:
        raise ValidationError(f"Invalid {param}")
    return value


def parse_decimal(value):
    if value is None or value == '':
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def parse_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def parse_ymd(value):
    """'YYYY-MM-DD' (extra characters ignored) -> date, or None."""
    if not value:
        return None
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except (ValueError, TypeError):
        return None


def parse_local_datetime(value):
    """
    'YYYY-MM-DDTHH:MM' (business time) or ISO-8601 with offset -> aware datetime.
    Returns None when unparseable.
    """
    if not value:
        return None
    try:
        dt = parse_datetime(str(value).strip())
    except ValueError:
        return None
    if dt is None:
        return None
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt)
    return dt


def parse_month(value):
    """'YYYY-MM' -> (year, month) or None."""
    m = _MONTH_RE.match(str(value or '').strip())
    if not m:
        return None
    year, month = int(m.group(1)), int(m.group(2))
    if month < 1 or month > 12:
        return None
    return year, month


def month_bounds(year, month):
    """[first day 00:00, first day of next month 00:00) in business time."""
    start = timezone.make_aware(datetime(year, month, 1))
    if month == 12:
        end = timezone.make_aware(datetime(year + 1, 1, 1))
    else:
        end = timezone.make_aware(datetime(year, month + 1, 1))
    return start, end


def start_of_day(d):
    return timezone.make_aware(datetime.combine(d, time.min))


def end_of_day(d):
    return timezone.make_aware(datetime.combine(d, time.max))


def local_date(dt):
    return timezone.localtime(dt).date()


def minutes_of_day(dt):
    local = timezone.localtime(dt)
    return local.hour * 60 + local.minute


def js_weekday(d):
    """Sun=0 .. Sat=6 (availability slots use this numbering)."""
    return (d.weekday() + 1) % 7


def fmt_hhmm(dt):
    return timezone.localtime(dt).strftime('%H:%M')


def fmt_ymd(dt):
    return timezone.localtime(dt).strftime('%Y-%m-%d')


def fmt_min(minutes):
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def fmt_slot_range(start_min, end_min):
    return f"{fmt_min(start_min)}-{fmt_min(end_min)}"


def parse_hhmm(value):
    """'HH:MM' -> minutes since midnight, or None."""
    m = re.match(r'^(\d{1,2}):(\d{2})$', str(value or '').strip())
    if not m:
        return None
    hh, mm = int(m.group(1)), int(m.group(2))
    if hh > 23 or mm > 59:
        return None
    return hh * 60 + mm


def duration_minutes(start_at, end_at):
    return max(0, round_half_up((end_at - start_at).total_seconds() / 60))


def add_minutes(dt, minutes):
    return dt + timedelta(minutes=minutes)


def iso(dt):
    return dt.isoformat() if dt else None


def normalize_email(email):
    return str(email or '').strip().lower()


def sanitize_next_path(next_path):
    """Only same-site absolute paths; never the login page itself."""
    value = str(next_path or '').strip()
    if not value:
        return ''
    if not value.startswith('/'):
        return ''
    if value.startswith('//'):
        return ''
    if value.startswith('/admin/login'):
        return ''
    return value


def csv_response(filename, header, rows):
    """UTF-8 CSV with BOM so spreadsheet apps detect the encoding."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(header)
    writer.writerows(rows)
    response = HttpResponse(
        "\ufeff" + output.getvalue(),
        content_type="text/csv; charset=utf-8",
    )
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


def paginate(qs, request, page_size=50):
    """Slice a queryset by ?page=&page_size= (max 200); returns (items, meta)."""
    page = max(parse_int(request.query_params.get('page'), 1), 1)
    page_size = min(max(parse_int(request.query_params.get('page_size'), page_size), 1), 200)
    offset = (page - 1) * page_size
    items = list(qs[offset:offset + page_size + 1])
    has_next = len(items) > page_size
    if has_next:
        items = items[:page_size]
    return items, {'page': page, 'pageSize': page_size, 'hasNext': has_next}


def fmt_range(start_at, end_at):
    return f"{fmt_ymd(start_at)} {fmt_hhmm(start_at)}-{fmt_hhmm(end_at)}"
