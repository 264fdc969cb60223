"""
Partner invoice export.
GET /api/exports/partner-invoice/{id}   PDF, needs every approval
"""
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsAdmin
from core.audit import log_audit
from core.pdf import pdf_response, render_table_pdf
from core.utils import fmt_ymd
from partners.models import PartnerSettlement
from partners.services import mark_exported
from partners.views.admin import load_exportable_settlement


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def partner_invoice_view(request, pk):
    settlement, problem = load_exportable_settlement(pk)
    if problem:
        return problem
    mark_exported(settlement, request.user)
    log_audit(request.user, 'PARTNER', 'EXPORT_INVOICE', 'PartnerSettlement', settlement.pk)

    course = settlement.package.course.name if settlement.package_id else '-'
    footer = [f"Total: {settlement.amount}"]
    if settlement.note:
        footer.append(f"Note: {settlement.note}")
    period = settlement.month_key or fmt_ymd(settlement.created_at)
    mode = 'Online' if settlement.mode == PartnerSettlement.MODE_ONLINE_PACKAGE_END else 'Offline'
    pdf = render_table_pdf(
        'Partner Invoice',
        [
            f"Invoice: PS-{settlement.pk:06d}",
            f"Issued: {fmt_ymd(timezone.now())}",
            f"Student: {settlement.student.name}",
            f"Period: {period}",
        ],
        ['Item', 'Mode', 'Hours', 'Amount'],
        [[course, mode, str(settlement.hours), str(settlement.amount)]],
        [80, 40, 30, 30],
        footer_lines=footer,
    )
    return pdf_response(pdf, f"partner-invoice-{settlement.pk}.pdf")
