"""
Authentication views.
Endpoints:
- POST /api/admin/setup                  First admin (only while no users exist)
- POST /api/admin/auth/login             Cookie session login
- POST /api/admin/auth/logout            Drop session + cookie
- GET  /api/admin/auth/me                Current user
- POST /api/admin/auth/change-password   { currentPassword, newPassword }
- POST /api/admin/language               { lang: BILINGUAL|ZH|EN }
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken
from django.conf import settings
from django.db import transaction

from accounts.models import User
from accounts.serializers import LoginSerializer, SetupSerializer, UserSerializer
from accounts.services import (
    clear_session_cookie,
    create_auth_session,
    destroy_auth_session,
    set_session_cookie,
)
from core.i18n import VALID_LANGS
from core.utils import error_response, sanitize_next_path

logger = logging.getLogger(__name__)


def _login_response(user, payload, status_code=status.HTTP_200_OK):
    session = create_auth_session(user)
    payload['accessToken'] = str(RefreshToken.for_user(user).access_token)
    payload['user'] = UserSerializer(user).data
    response = Response(payload, status=status_code)
    return set_session_cookie(response, session)


@api_view(['POST'])
@permission_classes([AllowAny])
def setup_view(request):
    """
    POST /api/admin/setup
    Body: { email, name, password }
    Creates the first ADMIN and logs them in. 409 once any user exists.
    """
    serializer = SetupSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response('Missing fields', status.HTTP_409_CONFLICT, errors=serializer.errors)

    with transaction.atomic():
        if User.objects.exists():
            return error_response('Setup already completed', status.HTTP_409_CONFLICT, redirectTo='/admin/login')
        user = User.objects.create_user(
            email=serializer.validated_data['email'],
            password=serializer.validated_data['password'],
            name=serializer.validated_data['name'].strip(),
            role=User.ROLE_ADMIN,
            is_staff=True,
        )
    logger.info(f"[auth] Setup created first admin {user.email}")
    return _login_response(user, {'ok': True, 'redirectTo': '/admin'}, status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    POST /api/admin/auth/login
    Body: { email, password, next?, portal?: "admin"|"teacher" }
    Returns: { ok, redirectTo, accessToken, user } and sets the session cookie.

    Status codes:
    - 200: Success
    - 400: Missing fields
    - 401: Invalid credentials or disabled account
    - 403: Account cannot enter the requested portal
    """
    serializer = LoginSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response('Missing email or password', errors=serializer.errors)
    user = serializer.validated_data['user']

    portal = str(request.data.get('portal') or '').strip().lower()
    if portal == 'teacher' and user.role != User.ROLE_TEACHER and not (user.is_admin and user.teacher_id):
        return error_response('This account cannot enter Teacher Portal', status.HTTP_403_FORBIDDEN)
    if portal == 'admin' and user.role == User.ROLE_STUDENT:
        return error_response('This account cannot enter Admin Portal', status.HTTP_403_FORBIDDEN)

    redirect_to = sanitize_next_path(request.data.get('next'))
    if not redirect_to:
        if portal == 'teacher' or user.role == User.ROLE_TEACHER:
            redirect_to = '/teacher'
        else:
            redirect_to = '/admin'

    logger.info(f"[auth] Login {user.email} role={user.role}")
    return _login_response(user, {'ok': True, 'redirectTo': redirect_to})


@api_view(['POST'])
@permission_classes([AllowAny])
def logout_view(request):
    """
    POST /api/admin/auth/logout
    Deletes the DB session (if any) and clears the cookie.
    """
    destroy_auth_session(request.COOKIES.get(settings.AUTH_SESSION_COOKIE))
    response = Response({'ok': True}, status=status.HTTP_200_OK)
    return clear_session_cookie(response)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    """
    GET /api/admin/auth/me
    Returns: { ok, user: {id, email, name, role, language, teacherId} }
    """
    return Response({'ok': True, 'user': UserSerializer(request.user).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password_view(request):
    """
    POST /api/admin/auth/change-password
    Body: { currentPassword, newPassword }
    """
    current = request.data.get('currentPassword')
    new_pw = request.data.get('newPassword')

    if not current or not new_pw:
        return error_response('currentPassword and newPassword are required')
    if len(new_pw) < 8:
        return error_response('New password must be at least 8 characters')

    user = request.user
    if not user.check_password(current):
        return error_response('Current password is incorrect')

    user.set_password(new_pw)
    user.save(update_fields=['password'])
    return Response({'ok': True, 'message': 'Password changed successfully'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def language_view(request):
    """
    POST /api/admin/language
    Body: { lang }
    """
    lang = str(request.data.get('lang') or 'BILINGUAL')
    if lang not in VALID_LANGS:
        return error_response('Invalid lang', status.HTTP_409_CONFLICT)
    User.objects.filter(pk=request.user.pk).update(language=lang)
    return Response({'ok': True, 'lang': lang})
