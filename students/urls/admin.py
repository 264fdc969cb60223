"""
Admin student URLs (mounted under /api/admin/)
"""
from django.urls import path
from ..views.admin import (
    students_view,
    student_detail_view,
    student_sources_view,
)

app_name = 'students-admin'

urlpatterns = [
    path('students', students_view, name='students'),
    path('students/<int:pk>', student_detail_view, name='student-detail'),
    path('student-sources', student_sources_view, name='student-sources'),
]
