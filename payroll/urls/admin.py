"""
Admin payroll URLs (mounted under /api/admin/)
"""
from django.urls import path
from ..views.admin import (
    teacher_payroll_view,
    teacher_payroll_rates_view,
    teacher_payroll_pdf_view,
    monthly_hours_export_view,
)

app_name = 'payroll-admin'

urlpatterns = [
    path('reports/teacher-payroll', teacher_payroll_view, name='teacher-payroll'),
    path('reports/teacher-payroll/rates', teacher_payroll_rates_view, name='teacher-payroll-rates'),
    path('reports/teacher-payroll/<int:teacher_id>/pdf', teacher_payroll_pdf_view, name='teacher-payroll-pdf'),
    path('reports/monthly-hours/export', monthly_hours_export_view, name='monthly-hours-export'),
]
