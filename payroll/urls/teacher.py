"""
Teacher payroll URLs (mounted under /api/teacher/)
"""
from django.urls import path
from ..views.teacher import teacher_own_payroll_view

app_name = 'payroll-teacher'

urlpatterns = [
    path('payroll', teacher_own_payroll_view, name='payroll'),
]
