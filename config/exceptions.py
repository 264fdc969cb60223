"""
Global exception handler for consistent API error responses.
Every error leaves the API as { ok: false, message, code, ...extra }.
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from rest_framework.exceptions import ValidationError
from django.core.exceptions import PermissionDenied, ValidationError as DjangoValidationError
from django.conf import settings

from core.errors import ConflictError

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Wrap DRF's handler so business conflicts (ConflictError -> 409), auth
    failures and validation errors share one envelope.
    """
    response = exception_handler(exc, context)
    if response is not None:
        data = {
            'ok': False,
            'message': _get_detail(exc),
            'code': _get_code(exc),
        }
        if isinstance(exc, ValidationError) and isinstance(response.data, dict):
            data['errors'] = response.data
        if isinstance(exc, ConflictError):
            data.update(exc.extra)
        response.data = data
        return response

    if isinstance(exc, PermissionDenied):
        return Response(
            {'ok': False, 'message': str(exc) or 'Permission denied', 'code': 'permission_denied'},
            status=status.HTTP_403_FORBIDDEN
        )
    if isinstance(exc, DjangoValidationError):
        return Response(
            {'ok': False, 'message': '; '.join(exc.messages), 'code': 'validation_error'},
            status=status.HTTP_400_BAD_REQUEST
        )

    logger.exception('Unhandled exception: %s', exc)
    message = 'An internal error occurred.'
    if settings.DEBUG:
        message = f'An internal error occurred: {exc}'
    return Response(
        {'ok': False, 'message': message, 'code': 'internal_error'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def _get_detail(exc):
    if hasattr(exc, 'detail'):
        d = exc.detail
        if isinstance(d, list):
            return str(d[0]) if d else 'Error'
        if isinstance(d, dict):
            first = next(iter(d.values()), 'Error')
            if isinstance(first, list):
                first = first[0] if first else 'Error'
            return str(d.get('detail', first))
        return str(d)
    return str(exc)


def _get_code(exc):
    if isinstance(exc, ConflictError):
        return exc.error_code
    codes = {
        'AuthenticationFailed': 'invalid_credentials',
        'NotAuthenticated': 'not_authenticated',
        'NotFound': 'not_found',
        'PermissionDenied': 'permission_denied',
        'ValidationError': 'validation_error',
    }
    return codes.get(type(exc).__name__, 'error')
