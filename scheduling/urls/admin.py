"""
Admin scheduling URLs (mounted under /api/admin/)
"""
from django.urls import path
from ..views.admin import (
    appointments_view,
    appointment_cancel_view,
    appointment_replace_teacher_view,
    session_replace_teacher_view,
    class_sessions_view,
    class_sessions_generate_weekly_view,
    teacher_weekly_availability_view,
    teacher_date_availability_view,
    conflict_audit_todo_view,
)

app_name = 'scheduling-admin'

urlpatterns = [
    path('appointments', appointments_view, name='appointments'),
    path('appointments/<int:pk>/cancel', appointment_cancel_view, name='appointment-cancel'),
    path('appointments/<int:pk>/replace-teacher', appointment_replace_teacher_view, name='appointment-replace-teacher'),
    path('sessions/<int:pk>/replace-teacher', session_replace_teacher_view, name='session-replace-teacher'),
    path('classes/<int:pk>/sessions', class_sessions_view, name='class-sessions'),
    path('classes/<int:pk>/sessions/generate-weekly', class_sessions_generate_weekly_view, name='class-sessions-generate-weekly'),
    path('teachers/<int:pk>/availability/weekly', teacher_weekly_availability_view, name='teacher-availability-weekly'),
    path('teachers/<int:pk>/availability/date', teacher_date_availability_view, name='teacher-availability-date'),
    path('todos/conflict-audit', conflict_audit_todo_view, name='conflict-audit'),
]
