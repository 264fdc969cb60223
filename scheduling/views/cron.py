"""
Scheduler-triggered jobs.
- GET|POST /api/cron/conflict-audit[?autofix=1]

Authorized by settings.CRON_SECRET passed as ?secret=, an x-cron-secret
header or "Authorization: Bearer <secret>". With no secret configured the
endpoint only answers when DEBUG is on.
"""
import hmac
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.utils import parse_bool
from scheduling.services.conflict_audit import (
    auto_resolve_teacher_conflicts,
    refresh_daily_conflict_audit,
    save_autofix_result,
)

logger = logging.getLogger(__name__)


def is_cron_authorized(request):
    expected = settings.CRON_SECRET
    if not expected:
        return settings.DEBUG
    auth = request.headers.get('Authorization', '')
    bearer = auth[7:].strip() if auth.startswith('Bearer ') else ''
    provided = (
        request.query_params.get('secret')
        or request.headers.get('x-cron-secret')
        or bearer
    )
    return bool(provided) and hmac.compare_digest(str(provided), str(expected))


@api_view(['GET', 'POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def cron_conflict_audit_view(request):
    if not is_cron_authorized(request):
        logger.warning("[cron] Unauthorized conflict-audit call")
        return Response({'ok': False, 'error': 'unauthorized'}, status=status.HTTP_401_UNAUTHORIZED)

    auto_fix_result = None
    if parse_bool(request.query_params.get('autofix', '')):
        auto_fix_result = auto_resolve_teacher_conflicts()
        save_autofix_result(auto_fix_result)
    snapshot = refresh_daily_conflict_audit()
    return Response({'ok': True, 'snapshot': snapshot, 'autoFixResult': auto_fix_result})
