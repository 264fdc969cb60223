"""
Admin configuration for attendance app
"""
from django.contrib import admin
from .models import Attendance


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    """Attendance Admin"""
    list_display = ['session', 'student', 'status', 'deducted_minutes', 'deducted_count', 'package', 'updated_at']
    list_filter = ['status', 'excused_charge']
    search_fields = ['student__name']
    raw_id_fields = ['session', 'student', 'package']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-updated_at']
