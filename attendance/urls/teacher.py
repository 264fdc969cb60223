"""
Teacher attendance URLs (mounted under /api/teacher/)
"""
from django.urls import path
from ..views.teacher import teacher_session_attendance_view

app_name = 'attendance-teacher'

urlpatterns = [
    path('sessions/<int:pk>/attendance', teacher_session_attendance_view, name='session-attendance'),
]
