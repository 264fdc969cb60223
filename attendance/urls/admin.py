"""
Admin attendance URLs (mounted under /api/admin/)
"""
from django.urls import path
from ..views.admin import (
    student_session_cancel_view,
    student_session_restore_view,
    session_attendance_view,
    session_mark_all_present_view,
)

app_name = 'attendance-admin'

urlpatterns = [
    path('students/<int:pk>/sessions/cancel', student_session_cancel_view, name='student-session-cancel'),
    path('students/<int:pk>/sessions/restore', student_session_restore_view, name='student-session-restore'),
    path('sessions/<int:pk>/attendance', session_attendance_view, name='session-attendance'),
    path('sessions/<int:pk>/attendance/mark-all-present', session_mark_all_present_view, name='session-mark-all-present'),
]
