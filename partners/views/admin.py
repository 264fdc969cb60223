"""
Admin partner billing API.
Endpoints:
- GET  /api/admin/partner-settlements                          ?status=&mode=&studentId=
- POST /api/admin/partner-settlements/{id}/manager-approve
- POST /api/admin/partner-settlements/{id}/manager-reject      { reason }
- POST /api/admin/partner-settlements/{id}/finance-approve
- POST /api/admin/partner-settlements/{id}/finance-reject      { reason }
- GET  /api/admin/reports/partner-settlement/export?id=        CSV, needs every approval
- GET|POST /api/admin/settings/approvers                       { managerApproverEmails, financeApproverEmails }
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsAdmin
from core.audit import log_audit
from core.utils import csv_response, error_response, iso, paginate, parse_int, query_id
from partners.models import PartnerSettlement, SettlementApproval
from partners.services import (
    are_all_approvers_confirmed,
    finance_approve,
    finance_reject,
    get_approval_config,
    is_role_approver,
    manager_approve,
    manager_reject,
    mark_exported,
    save_approval_config,
)

logger = logging.getLogger(__name__)

EXPORT_HEADER = ['settlement_id', 'created_at', 'student', 'mode', 'month', 'course', 'hours', 'amount', 'status', 'note']


def approval_state(approval, config):
    manager_by = approval.manager_approved_by if approval else []
    finance_by = approval.finance_approved_by if approval else []
    manager_ready = are_all_approvers_confirmed(manager_by, config['managerApproverEmails'])
    finance_ready = are_all_approvers_confirmed(finance_by, config['financeApproverEmails'])
    return {
        'managerApprovedBy': manager_by,
        'financeApprovedBy': finance_by,
        'managerReady': manager_ready,
        'financeReady': finance_ready,
        'exportReady': manager_ready and finance_ready,
        'managerRejectedBy': approval.manager_rejected_by if approval else None,
        'managerRejectReason': approval.manager_reject_reason if approval else None,
        'financeRejectedBy': approval.finance_rejected_by if approval else None,
        'financeRejectReason': approval.finance_reject_reason if approval else None,
        'exportedAt': iso(approval.exported_at) if approval else None,
    }


def serialize_settlement(settlement, approval, config):
    course = settlement.package.course.name if settlement.package_id else None
    return {
        'id': settlement.pk,
        'studentId': settlement.student_id,
        'studentName': settlement.student.name,
        'packageId': settlement.package_id,
        'courseName': course,
        'mode': settlement.mode,
        'monthKey': settlement.month_key,
        'hours': str(settlement.hours),
        'amount': settlement.amount,
        'status': settlement.status,
        'onlineSnapshotTotalMinutes': settlement.online_snapshot_total_minutes,
        'note': settlement.note,
        'createdAt': iso(settlement.created_at),
        'approval': approval_state(approval, config),
    }


def _settlement_qs():
    return PartnerSettlement.objects.select_related('student', 'package__course')


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def settlements_view(request):
    qs = _settlement_qs().order_by('-created_at', '-id')
    student_id = query_id(request, 'studentId')
    if student_id:
        qs = qs.filter(student_id=student_id)
    for param, field in (('status', 'status'), ('mode', 'mode')):
        value = request.query_params.get(param)
        if value:
            qs = qs.filter(**{field: value})
    items, meta = paginate(qs, request)
    approvals = {a.settlement_id: a for a in SettlementApproval.objects.filter(settlement__in=items)}
    config = get_approval_config()
    return Response({
        'ok': True,
        'settlements': [serialize_settlement(s, approvals.get(s.pk), config) for s in items],
        'approvers': config,
        'isManagerApprover': is_role_approver(request.user.email, config['managerApproverEmails']),
        'isFinanceApprover': is_role_approver(request.user.email, config['financeApproverEmails']),
        **meta,
    })


def _approval_action(request, pk, role, action):
    settlement = _settlement_qs().filter(pk=pk).first()
    if settlement is None:
        return error_response('Settlement not found', status.HTTP_404_NOT_FOUND)
    config = get_approval_config()
    approvers = config['managerApproverEmails'] if role == 'manager' else config['financeApproverEmails']
    if not is_role_approver(request.user.email, approvers):
        return error_response('Not allowed', status.HTTP_403_FORBIDDEN)

    reason = str(request.data.get('reason') or '').strip()
    if action == 'reject' and not reason:
        return error_response('Reject reason is required')

    if role == 'manager':
        approval = manager_approve(settlement, request.user.email) if action == 'approve' \
            else manager_reject(settlement, request.user.email, reason)
    else:
        if action == 'approve':
            current = SettlementApproval.objects.filter(settlement=settlement).first()
            manager_by = current.manager_approved_by if current else []
            if not are_all_approvers_confirmed(manager_by, config['managerApproverEmails']):
                return error_response('Manager approval required first', status.HTTP_409_CONFLICT)
            approval = finance_approve(settlement, request.user.email)
        else:
            approval = finance_reject(settlement, request.user.email, reason)

    log_audit(request.user, 'PARTNER', f"{role.upper()}_{action.upper()}", 'PartnerSettlement', settlement.pk,
              {'reason': reason} if reason else None)
    logger.info(f"[partners] {role} {action} settlement {settlement.pk} by {request.user.email}")
    return Response({'ok': True, 'settlement': serialize_settlement(settlement, approval, config)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def settlement_manager_approve_view(request, pk):
    return _approval_action(request, pk, 'manager', 'approve')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def settlement_manager_reject_view(request, pk):
    return _approval_action(request, pk, 'manager', 'reject')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def settlement_finance_approve_view(request, pk):
    return _approval_action(request, pk, 'finance', 'approve')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def settlement_finance_reject_view(request, pk):
    return _approval_action(request, pk, 'finance', 'reject')


def load_exportable_settlement(pk):
    """(settlement, None) when every approver signed off, else (None, error response)."""
    if not pk:
        return None, error_response('Missing id')
    settlement = _settlement_qs().filter(pk=pk).first()
    if settlement is None:
        return None, error_response('Settlement not found', status.HTTP_404_NOT_FOUND)
    config = get_approval_config()
    approval = SettlementApproval.objects.filter(settlement=settlement).first()
    if not approval_state(approval, config)['exportReady']:
        return None, error_response('All manager + finance approvals are required before export', status.HTTP_403_FORBIDDEN)
    return settlement, None


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def settlement_export_view(request):
    settlement, problem = load_exportable_settlement(parse_int(request.query_params.get('id')))
    if problem:
        return problem
    mark_exported(settlement, request.user)
    log_audit(request.user, 'PARTNER', 'EXPORT_CSV', 'PartnerSettlement', settlement.pk)
    row = [
        settlement.pk,
        iso(settlement.created_at),
        settlement.student.name,
        settlement.mode,
        settlement.month_key or '',
        settlement.package.course.name if settlement.package_id else '',
        str(settlement.hours),
        str(settlement.amount),
        settlement.status,
        settlement.note or '',
    ]
    return csv_response(f"partner-settlement-{settlement.pk}.csv", EXPORT_HEADER, [row])


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def approvers_view(request):
    """
    POST Body: { managerApproverEmails: "a@x, b@x", financeApproverEmails: "c@x" }
    Lists may also be sent as arrays.
    """
    if request.method == 'GET':
        return Response({'ok': True, **get_approval_config()})

    def as_text(value):
        if isinstance(value, (list, tuple)):
            return ','.join(str(v) for v in value)
        return value

    config = save_approval_config(
        as_text(request.data.get('managerApproverEmails')),
        as_text(request.data.get('financeApproverEmails')),
    )
    log_audit(request.user, 'SETTINGS', 'APPROVERS_UPDATE', 'AppSetting', None, config)
    return Response({'ok': True, **config})
