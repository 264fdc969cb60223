"""
Package export URLs (mounted under /api/exports/)
"""
from django.urls import path
from ..views.exports import package_ledger_export_view

app_name = 'packages-exports'

urlpatterns = [
    path('package-ledger/<int:pk>', package_ledger_export_view, name='package-ledger'),
]
