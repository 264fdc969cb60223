"""
Admin partner billing URLs (mounted under /api/admin/)
"""
from django.urls import path
from ..views.admin import (
    settlements_view,
    settlement_manager_approve_view,
    settlement_manager_reject_view,
    settlement_finance_approve_view,
    settlement_finance_reject_view,
    settlement_export_view,
    approvers_view,
)

app_name = 'partners-admin'

urlpatterns = [
    path('partner-settlements', settlements_view, name='settlements'),
    path('partner-settlements/<int:pk>/manager-approve', settlement_manager_approve_view, name='manager-approve'),
    path('partner-settlements/<int:pk>/manager-reject', settlement_manager_reject_view, name='manager-reject'),
    path('partner-settlements/<int:pk>/finance-approve', settlement_finance_approve_view, name='finance-approve'),
    path('partner-settlements/<int:pk>/finance-reject', settlement_finance_reject_view, name='finance-reject'),
    path('reports/partner-settlement/export', settlement_export_view, name='settlement-export'),
    path('settings/approvers', approvers_view, name='approvers'),
]
