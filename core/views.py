"""
Admin audit trail.
GET /api/admin/audit-logs?module=&action=&entityType=&entityId=   newest first, paginated
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsAdmin
from core.models import AuditLog
from core.utils import iso, paginate


def serialize_audit_log(row):
    return {
        'id': row.pk,
        'actorEmail': row.actor_email,
        'actorName': row.actor_name,
        'actorRole': row.actor_role,
        'module': row.module,
        'action': row.action,
        'entityType': row.entity_type,
        'entityId': row.entity_id,
        'meta': row.meta,
        'createdAt': iso(row.created_at),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def audit_logs_view(request):
    qs = AuditLog.objects.order_by('-created_at', '-id')
    params = request.query_params
    if params.get('module'):
        qs = qs.filter(module=params.get('module').strip().upper())
    if params.get('action'):
        qs = qs.filter(action=params.get('action').strip().upper())
    if params.get('entityType'):
        qs = qs.filter(entity_type=params.get('entityType').strip())
    if params.get('entityId'):
        qs = qs.filter(entity_id=str(params.get('entityId')).strip())
    items, meta = paginate(qs, request)
    return Response({'ok': True, 'logs': [serialize_audit_log(r) for r in items], **meta})
