"""
Teacher scheduling URLs (mounted under /api/teacher/)
"""
from django.urls import path
from ..views.teacher import (
    teacher_sessions_view,
    teacher_availability_slots_view,
    teacher_availability_slot_delete_view,
)

app_name = 'scheduling-teacher'

urlpatterns = [
    path('sessions', teacher_sessions_view, name='sessions'),
    path('availability/slots', teacher_availability_slots_view, name='availability-slots'),
    path('availability/slots/<int:pk>', teacher_availability_slot_delete_view, name='availability-slot-delete'),
]
