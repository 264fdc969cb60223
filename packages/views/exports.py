"""
Package ledger export.
GET /api/exports/package-ledger/{id}             PDF
GET /api/exports/package-ledger/{id}?format=csv  CSV (UTF-8 with BOM)
"""
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsAdmin
from core.pdf import pdf_response, render_table_pdf
from core.utils import csv_response, error_response, fmt_hhmm, fmt_ymd
from packages.models import CoursePackage
from packages.services.lifecycle import ledger_rows


def _unit_label(pkg):
    return 'sessions' if pkg.is_group_count else 'min'


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def package_ledger_export_view(request, pk):
    pkg = CoursePackage.objects.select_related('student', 'course').filter(pk=pk).first()
    if pkg is None:
        return error_response('Package not found', status.HTTP_404_NOT_FOUND)

    header = ['Time', 'Kind', 'Change', 'Balance', 'Session', 'Note', 'By']
    rows = []
    for txn, running in ledger_rows(pkg):
        rows.append([
            f"{fmt_ymd(txn.created_at)} {fmt_hhmm(txn.created_at)}",
            txn.kind,
            txn.delta_minutes,
            running,
            txn.session_id or '',
            txn.note or '',
            txn.created_by.email if txn.created_by_id else '',
        ])

    if request.query_params.get('format') == 'csv':
        return csv_response(f"package-ledger-{pkg.pk}.csv", header, rows)

    unit = _unit_label(pkg)
    meta = [
        f"Student: {pkg.student.name}",
        f"Course: {pkg.course.name}",
        f"Package: #{pkg.pk} {pkg.type} / {pkg.mode} / {pkg.status}",
        f"Valid: {fmt_ymd(pkg.valid_from)} - {fmt_ymd(pkg.valid_to) if pkg.valid_to else 'open'}",
        f"Exported: {fmt_ymd(timezone.now())} {fmt_hhmm(timezone.now())}",
    ]
    footer = [
        f"Total: {pkg.total_minutes if pkg.total_minutes is not None else '-'} {unit}",
        f"Remaining: {pkg.remaining_minutes if pkg.remaining_minutes is not None else '-'} {unit}",
    ]
    pdf = render_table_pdf(
        'Package Ledger',
        meta,
        header,
        rows,
        [28, 20, 16, 16, 16, 56, 28],
        footer_lines=footer,
    )
    return pdf_response(pdf, f"package-ledger-{pkg.pk}.pdf")
