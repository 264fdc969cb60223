"""
Cron URLs (mounted under /api/cron/)
"""
from django.urls import path
from ..views.cron import cron_conflict_audit_view

app_name = 'cron'

urlpatterns = [
    path('conflict-audit', cron_conflict_audit_view, name='conflict-audit'),
]
