"""
Partner export URLs (mounted under /api/exports/)
"""
from django.urls import path
from ..views.exports import partner_invoice_view

app_name = 'partners-exports'

urlpatterns = [
    path('partner-invoice/<int:pk>', partner_invoice_view, name='partner-invoice'),
]
