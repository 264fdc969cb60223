"""
Shared academics URLs (mounted under /api/)
"""
from django.urls import path
from ..views.public import teacher_picker_view

app_name = 'academics-public'

urlpatterns = [
    path('teachers', teacher_picker_view, name='teacher-picker'),
]
