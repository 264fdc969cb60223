"""
Custom permissions for role-based access
"""
from rest_framework import permissions

from accounts.models import User


class IsAdmin(permissions.BasePermission):
    """Permission check for admin role"""

    def has_permission(self, request, view):
        return (
            request.user and
            request.user.is_authenticated and
            request.user.role == User.ROLE_ADMIN
        )


class IsTeacher(permissions.BasePermission):
    """Permission check for teacher role"""

    def has_permission(self, request, view):
        return (
            request.user and
            request.user.is_authenticated and
            request.user.role == User.ROLE_TEACHER
        )


class IsLedgerEditor(permissions.BasePermission):
    """Admins listed in settings.LEDGER_EDITOR_EMAILS may rewrite ledger rows."""
    message = 'Only ledger editors can change ledger records'

    def has_permission(self, request, view):
        from django.conf import settings
        return (
            request.user and
            request.user.is_authenticated and
            request.user.role == User.ROLE_ADMIN and
            request.user.email.strip().lower() in settings.LEDGER_EDITOR_EMAILS
        )
