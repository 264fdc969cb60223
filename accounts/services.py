"""
Auth session lifecycle: create on login, resolve per request, destroy on logout.
"""
import logging

from django.conf import settings
from django.utils import timezone

from accounts.models import AuthSession, User

logger = logging.getLogger(__name__)


def create_auth_session(user):
    return AuthSession.objects.create(user=user)


def resolve_session_user(token):
    """User for a cookie token, or None. Expired sessions are deleted on sight."""
    if not token:
        return None
    session = AuthSession.objects.select_related('user').filter(token=token).first()
    if session is None:
        return None
    if session.is_expired:
        session.delete()
        return None
    if not session.user.is_active:
        return None
    return session.user


def destroy_auth_session(token):
    if token:
        AuthSession.objects.filter(token=token).delete()


def purge_expired_sessions():
    deleted, _ = AuthSession.objects.filter(expires_at__lt=timezone.now()).delete()
    return deleted


def set_session_cookie(response, session):
    response.set_cookie(
        settings.AUTH_SESSION_COOKIE,
        session.token,
        expires=session.expires_at,
        httponly=True,
        samesite='Lax',
        secure=not settings.DEBUG,
        path='/',
    )
    return response


def clear_session_cookie(response):
    response.delete_cookie(settings.AUTH_SESSION_COOKIE, path='/', samesite='Lax')
    return response


def resolve_teacher_profile(user):
    """
    Teacher profile for a TEACHER user. Accounts created before the explicit
    link are linked by matching Teacher.name once.
    """
    if user.teacher_id:
        return user.teacher
    from academics.models import Teacher

    teacher = Teacher.objects.filter(name=user.name, user__isnull=True).first()
    if teacher is None:
        return None
    User.objects.filter(pk=user.pk).update(teacher=teacher)
    user.teacher = teacher
    logger.info(f"[auth] Linked user {user.email} to teacher {teacher.id} by name")
    return teacher
