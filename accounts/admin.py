"""
Admin configuration for accounts app
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.forms import UserCreationForm

from .models import AuthSession, User


class UserAddForm(UserCreationForm):
    """Add form for the email-based user."""

    class Meta(UserCreationForm.Meta):
        model = User
        fields = ('email', 'name', 'role', 'language')


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Email-based user admin (no username field)."""
    add_form = UserAddForm
    list_display = ['email', 'name', 'role', 'language', 'teacher', 'is_active']
    list_filter = ['role', 'language', 'is_active']
    search_fields = ['email', 'name']
    ordering = ['email']
    readonly_fields = ['date_joined', 'updated_at', 'last_login']
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Profile', {'fields': ('name', 'role', 'language', 'teacher')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser')}),
        ('Dates', {'fields': ('last_login', 'date_joined', 'updated_at')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'name', 'role', 'password1', 'password2'),
        }),
    )
    filter_horizontal = []


@admin.register(AuthSession)
class AuthSessionAdmin(admin.ModelAdmin):
    list_display = ['user', 'created_at', 'expires_at']
    search_fields = ['user__email']
    readonly_fields = ['token', 'created_at']
