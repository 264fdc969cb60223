"""
Admin configuration for core app
"""
from django.contrib import admin
from .models import AppSetting, AuditLog


@admin.register(AppSetting)
class AppSettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'updated_at']
    search_fields = ['key']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'actor_email', 'module', 'action', 'entity_type', 'entity_id']
    list_filter = ['module', 'action']
    search_fields = ['actor_email', 'entity_id']
    readonly_fields = ['created_at']
    ordering = ['-created_at']
