"""
Admin configuration for packages app.
Ledger rows are read-only here; balance changes go through the API.
"""
from django.contrib import admin
from .models import CoursePackage, CoursePackageShare, PackageTxn


class PackageShareInline(admin.TabularInline):
    model = CoursePackageShare
    extra = 0
    raw_id_fields = ['student']


class PackageTxnInline(admin.TabularInline):
    model = PackageTxn
    extra = 0
    can_delete = False
    fields = ['created_at', 'kind', 'delta_minutes', 'session', 'note', 'created_by']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(CoursePackage)
class CoursePackageAdmin(admin.ModelAdmin):
    list_display = ['id', 'student', 'course', 'type', 'mode', 'status', 'remaining_minutes', 'total_minutes', 'valid_from', 'valid_to']
    list_filter = ['type', 'mode', 'status', 'settlement_mode']
    search_fields = ['student__name', 'course__name']
    raw_id_fields = ['student', 'course']
    readonly_fields = ['remaining_minutes', 'created_at', 'updated_at']
    inlines = [PackageShareInline, PackageTxnInline]


@admin.register(PackageTxn)
class PackageTxnAdmin(admin.ModelAdmin):
    list_display = ['id', 'package', 'kind', 'delta_minutes', 'session', 'created_by', 'created_at']
    list_filter = ['kind']
    raw_id_fields = ['package', 'session', 'created_by']
    readonly_fields = ['package', 'kind', 'delta_minutes', 'session', 'note', 'created_by', 'created_at']
