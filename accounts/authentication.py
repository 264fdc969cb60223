"""
DRF authentication from the HTTP-only session cookie (accounts.AuthSession).
"""
from django.conf import settings
from rest_framework.authentication import BaseAuthentication

from accounts.services import resolve_session_user


class SessionCookieAuthentication(BaseAuthentication):
    """Cookie token -> User. Falls through (None) so Bearer JWT can still apply."""

    def authenticate(self, request):
        token = request.COOKIES.get(settings.AUTH_SESSION_COOKIE)
        if not token:
            return None
        user = resolve_session_user(token)
        if user is None:
            return None
        return (user, token)

    def authenticate_header(self, request):
        return 'Session'
