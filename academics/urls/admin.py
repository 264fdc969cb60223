"""
Admin academics URLs (mounted under /api/admin/)
"""
from django.urls import path
from ..views.admin import (
    enrollments_view,
    enrollment_restore_view,
    courses_view,
    subjects_view,
    levels_view,
    campuses_view,
    rooms_view,
    teachers_view,
    classes_view,
)

app_name = 'academics-admin'

urlpatterns = [
    path('enrollments', enrollments_view, name='enrollments'),
    path('enrollments/restore', enrollment_restore_view, name='enrollment-restore'),
    path('courses', courses_view, name='courses'),
    path('subjects', subjects_view, name='subjects'),
    path('levels', levels_view, name='levels'),
    path('campuses', campuses_view, name='campuses'),
    path('rooms', rooms_view, name='rooms'),
    path('teachers', teachers_view, name='teachers'),
    path('classes', classes_view, name='classes'),
]
