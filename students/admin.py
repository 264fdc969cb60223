"""
Admin configuration for students app
"""
from django.contrib import admin
from .models import Student, StudentSource


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    """Student Admin"""
    list_display = ['name', 'grade', 'school', 'source', 'created_at']
    list_filter = ['source', 'grade']
    search_fields = ['name', 'phone', 'school']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-created_at']


@admin.register(StudentSource)
class StudentSourceAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']
