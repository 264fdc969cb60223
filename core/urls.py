"""
Core admin URLs (mounted under /api/admin/)
"""
from django.urls import path
from .views import audit_logs_view

app_name = 'core-admin'

urlpatterns = [
    path('audit-logs', audit_logs_view, name='audit-logs'),
]
